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
Checks that the database tier gets its credentials and that other tiers can
find it.
"""
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit
from ..MODELS.stack_manifest import StackManifest
from ..MODELS.image_reference import ImageReference
from ..MODELS.report import Report
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MANAGERS.network_manager import NetworkManager

# engine -> groups of variables; at least one variable of each group must be set,
# directly or as <VAR>_FILE pointing at a secrets file
DATABASE_CREDENTIALS: Dict[str, List[Tuple[str, ...]]] = {
    "postgres": [("POSTGRES_PASSWORD",)],
    "mysql": [("MYSQL_ROOT_PASSWORD", "MYSQL_ALLOW_EMPTY_PASSWORD", "MYSQL_RANDOM_ROOT_PASSWORD")],
    "mariadb": [(
        "MARIADB_ROOT_PASSWORD", "MARIADB_ALLOW_EMPTY_ROOT_PASSWORD", "MARIADB_RANDOM_ROOT_PASSWORD",
        "MYSQL_ROOT_PASSWORD", "MYSQL_ALLOW_EMPTY_PASSWORD", "MYSQL_RANDOM_ROOT_PASSWORD",
    )],
}

SECRET_MARKERS = ("PASSWORD", "SECRET", "TOKEN")
LOOPBACK = {"localhost", "127.0.0.1", "::1"}

def database_engine(image: Optional[str]) -> Optional[str]:
    """
    Returns 'postgres', 'mysql' or 'mariadb' for a database image reference.
    """
    if not image:
        return None
    try:
        name = ImageReference.parse(image).name
    except ValueError:
        return None
    if name in ("postgres", "postgis"):
        return "postgres"
    if name in ("mysql", "mariadb"):
        return name
    return None

class CredentialsValidator:
    """
    Validates database credential variables and the hostnames services use to
    reach each other.
    """
    def validate(self, manifest: StackManifest, base_dir: str = ".",
                 env: Optional[Dict[str, str]] = None) -> Report:
        """
        :param manifest: The parsed manifest.
        :param base_dir: Directory env files are resolved against.
        :param env: Variables that override env files and inline values.
        """
        report = Report(checked=1)
        env_manager = EnvironmentManager(base_dir, overrides=env)
        network = NetworkManager(manifest)
        databases = []

        for name, svc in manifest.services.items():
            location = f"services.{name}"
            environment = env_manager.for_service(svc)

            for key, value in svc.environment.items():
                if value and not key.upper().endswith("_FILE") \
                        and any(marker in key.upper() for marker in SECRET_MARKERS):
                    report.warning(
                        "inline-secret",
                        f"{key} of service {name} is written in the manifest; keep it in an env file",
                        location,
                    )

            engine = database_engine(svc.image)
            if engine:
                databases.append(name)
                for group in DATABASE_CREDENTIALS[engine]:
                    if self._trusts_without_password(engine, environment):
                        break
                    if not any(environment.get(var) or environment.get(f"{var}_FILE") for var in group):
                        report.error(
                            "missing-credential",
                            f"Database service {name} needs {' or '.join(group)}",
                            location,
                        )

            for key, host in self._referenced_hosts(environment):
                self._check_host(report, network, name, key, host, location, svc.network_mode)

        if not databases:
            report.info("no-database", "No database service found in the manifest")
        return report

    @staticmethod
    def _trusts_without_password(engine: str, environment: Dict[str, str]) -> bool:
        return engine == "postgres" and environment.get("POSTGRES_HOST_AUTH_METHOD") == "trust"

    @staticmethod
    def _referenced_hosts(environment: Dict[str, str]) -> List[Tuple[str, str]]:
        """
        Hostnames found in *_HOST variables and in connection URLs.
        """
        hosts = []
        for key, value in environment.items():
            if not value:
                continue
            upper = key.upper()
            if upper.endswith("_HOST"):
                hosts.append((key, value.split(':', 1)[0]))
            elif (upper.endswith("_URL") or upper.endswith("_URI") or upper.endswith("_DSN")) and "://" in value:
                try:
                    hostname = urlsplit(value).hostname
                except ValueError:
                    continue
                if hostname:
                    hosts.append((key, hostname))
        return hosts

    def _check_host(self, report: Report, network: NetworkManager, service: str, key: str,
                    host: str, location: str, network_mode: Optional[str]):
        if host in LOOPBACK:
            if network_mode != "host":
                report.warning(
                    "loopback-host",
                    f"{key} of service {service} points at {host}, which is the {service} container itself; "
                    f"use the service name instead",
                    location,
                )
            return
        target = network.service_for(host)
        if target is None:
            # Not a service of this stack
            return
        if not network.can_reach(service, target):
            report.error(
                "unreachable-host",
                f"{key} of service {service} names {host}, but the two services share no network",
                location,
            )
