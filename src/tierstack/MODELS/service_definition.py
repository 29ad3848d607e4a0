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
Models for defining services, including restart policies, ports, mounts and dependencies.
"""
from typing import List, Dict, Optional
from pydantic import BaseModel, Field
from enum import Enum

class RestartPolicyCondition(str, Enum):
    """
    Conditions under which a service should be restarted.
    """
    NO = "no"
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    UNLESS_STOPPED = "unless-stopped"

class DependencyCondition(str, Enum):
    """
    What a dependent service waits for before it is started.
    """
    SERVICE_STARTED = "service_started"
    SERVICE_HEALTHY = "service_healthy"
    SERVICE_COMPLETED_SUCCESSFULLY = "service_completed_successfully"

class PortMapping(BaseModel):
    """
    Maps a container port to a host port. ``host`` is None for an unpublished
    or randomly published port.
    """
    container: int
    host: Optional[int] = None
    host_ip: Optional[str] = None
    protocol: str = "tcp"

class VolumeMount(BaseModel):
    """
    Defines a mapping between a volume (or host path) and a path in the service.
    """
    source: str
    target: str
    read_only: bool = False

    @property
    def is_named(self) -> bool:
        """True when the source is a named volume rather than a host path."""
        return bool(self.source) and not self.source.startswith(('/', '.', '~'))

class ServiceDefinition(BaseModel):
    """
    The full definition of a single service, as written in a compose manifest.
    """
    name: str
    image: Optional[str] = None
    build_context: Optional[str] = None
    dockerfile: Optional[str] = None
    container_name: Optional[str] = None

    restart_policy: Optional[RestartPolicyCondition] = None

    # Networking
    ports: List[PortMapping] = []
    networks: List[str] = []
    network_mode: Optional[str] = None

    # Environment
    environment: Dict[str, str] = {}
    env_files: List[str] = []

    # Storage
    volumes: List[VolumeMount] = []

    # Lifecycle
    depends_on: Dict[str, DependencyCondition] = Field(default_factory=dict)
    healthcheck: Optional[List[str]] = None

    @property
    def source(self) -> Optional[str]:
        """
        Where the service's image comes from: ``"build"`` when a build context is
        given, ``"image"`` for a registry reference, None when neither is set.
        """
        if self.build_context:
            return "build"
        if self.image:
            return "image"
        return None
