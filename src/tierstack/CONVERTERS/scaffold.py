# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Generates the files of a three-tier stack: compose manifest, build recipes,
credential template and network creation script.
"""
import os
import re
from typing import Dict
from jinja2 import Template
from pydantic import BaseModel, field_validator, model_validator
from ..MODELS.stack_manifest import NetworkIsolation

COMPOSE_TEMPLATE = """\
name: {{ project }}

services:
  frontend:
    build:
      context: ./frontend
    image: {{ project }}-frontend:{{ version }}
    restart: unless-stopped
    ports:
      - "{{ frontend_port }}:80"
    depends_on:
      - backend
    networks:
      - {{ network }}

  backend:
    build:
      context: ./backend
    image: {{ project }}-backend:{{ version }}
    restart: unless-stopped
    ports:
      - "{{ backend_port }}:{{ api_port }}"
    env_file:
      - .env
    environment:
      DB_HOST: db
      DB_PORT: "{{ db.port }}"
    depends_on:
      db:
        condition: service_healthy
    networks:
      - {{ network }}

  db:
    image: {{ db.image }}
    restart: unless-stopped
    env_file:
      - .env
    volumes:
      - {{ volume }}:{{ db.data_path }}
    healthcheck:
      test: {{ db.healthcheck }}
      interval: 10s
      timeout: 5s
      retries: 5
    networks:
      - {{ network }}

networks:
  {{ network }}:
    driver: {{ isolation }}

volumes:
  {{ volume }}:
"""

FRONTEND_DOCKERFILE = """\
FROM nginx:1.27-alpine
COPY nginx.conf /etc/nginx/conf.d/default.conf
COPY dist/ /usr/share/nginx/html/
EXPOSE 80
CMD ["nginx", "-g", "daemon off;"]
"""

BACKEND_DOCKERFILE = """\
# Build stage: installs all dependencies and compiles the API
FROM node:20-alpine AS build
WORKDIR /app
COPY package*.json ./
RUN npm ci
COPY . .
RUN npm run build

# Runtime stage: production dependencies and build output only
FROM node:20-alpine AS runtime
WORKDIR /app
ENV NODE_ENV=production
COPY --from=build /app/package*.json ./
RUN npm ci --omit=dev
COPY --from=build /app/dist ./dist
EXPOSE {{ api_port }}
USER node
CMD ["node", "dist/server.js"]
"""

ENV_TEMPLATE = """\
# Database credentials, read by the db and backend services.
# Copy to .env and replace the placeholder values.
{% for key, value in db.credentials.items() %}
{{ key }}={{ value }}
{% endfor %}
"""

NETWORK_SCRIPT = """\
#!/bin/sh
# Creates the {{ network }} network for running the containers without compose
docker network create --driver {{ isolation }} {{ network }}
"""

DATABASES = {
    "postgres": {
        "image": "postgres:16-alpine",
        "port": 5432,
        "data_path": "/var/lib/postgresql/data",
        "healthcheck": '["CMD-SHELL", "pg_isready -U $${POSTGRES_USER}"]',
        "credentials": {
            "POSTGRES_USER": "app",
            "POSTGRES_PASSWORD": "change-me",
            "POSTGRES_DB": "app",
        },
    },
    "mysql": {
        "image": "mysql:8.4",
        "port": 3306,
        "data_path": "/var/lib/mysql",
        "healthcheck": '["CMD", "mysqladmin", "ping", "-h", "localhost"]',
        "credentials": {
            "MYSQL_ROOT_PASSWORD": "change-me",
            "MYSQL_DATABASE": "app",
            "MYSQL_USER": "app",
            "MYSQL_PASSWORD": "change-me",
        },
    },
}

NAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_-]*$')

class ScaffoldConfig(BaseModel):
    """
    Parameters of a generated stack.
    """
    project: str = "three-tier"
    version: str = "0.1.0"
    network: str = "app-network"
    isolation: NetworkIsolation = NetworkIsolation.BRIDGE
    database: str = "postgres"
    volume: str = "db-data"
    frontend_port: int = 8080
    backend_port: int = 3000
    api_port: int = 3000

    @field_validator("project", "network", "volume")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not NAME_PATTERN.match(value):
            raise ValueError(f"{value!r} must be lowercase letters, digits, '-' or '_'")
        return value

    @field_validator("isolation")
    @classmethod
    def _check_isolation(cls, value: NetworkIsolation) -> NetworkIsolation:
        if value not in (NetworkIsolation.BRIDGE, NetworkIsolation.OVERLAY):
            raise ValueError("services can only find each other by name on bridge or overlay networks")
        return value

    @field_validator("database")
    @classmethod
    def _check_database(cls, value: str) -> str:
        if value not in DATABASES:
            raise ValueError(f"database must be one of {', '.join(DATABASES)}")
        return value

    @field_validator("frontend_port", "backend_port", "api_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return value

    @model_validator(mode="after")
    def _check_host_ports(self) -> "ScaffoldConfig":
        if self.frontend_port == self.backend_port:
            raise ValueError(f"frontend and backend cannot both publish host port {self.frontend_port}")
        return self

class StackScaffolder:
    """
    Renders the files of a three-tier stack from a ScaffoldConfig.
    """
    FILES = {
        "docker-compose.yml": COMPOSE_TEMPLATE,
        "frontend/Dockerfile": FRONTEND_DOCKERFILE,
        "backend/Dockerfile": BACKEND_DOCKERFILE,
        ".env.example": ENV_TEMPLATE,
        "network.sh": NETWORK_SCRIPT,
    }

    def __init__(self, config: ScaffoldConfig):
        """
        Initializes the scaffolder.

        :param config: The stack parameters.
        """
        self.config = config
        self.templates = {
            path: Template(text, trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
            for path, text in self.FILES.items()
        }

    def render(self) -> Dict[str, str]:
        """
        Renders every file.

        :return: Mapping of relative path to file content.
        """
        context = self.config.model_dump()
        context["isolation"] = self.config.isolation.value
        context["db"] = DATABASES[self.config.database]
        return {path: template.render(**context) for path, template in self.templates.items()}

    def write(self, output_dir: str, overwrite: bool = False) -> Dict[str, str]:
        """
        Writes the rendered files below ``output_dir``.

        :param output_dir: The directory where the stack will be created.
        :param overwrite: Replace files that already exist.
        :return: Mapping of relative path to the written absolute path.
        :raises FileExistsError: If a file exists and ``overwrite`` is False.
        """
        rendered = self.render()
        targets = {path: os.path.abspath(os.path.join(output_dir, path)) for path in rendered}

        if not overwrite:
            for target in targets.values():
                if os.path.exists(target):
                    raise FileExistsError(f"{target} already exists")

        for path, content in rendered.items():
            os.makedirs(os.path.dirname(targets[path]), exist_ok=True)
            with open(targets[path], "w") as f:
                f.write(content)

        print(f"Three-tier stack generated in {output_dir}")
        return targets
