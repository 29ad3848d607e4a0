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
Parsers for Docker Compose YAML files.
"""
import yaml
from typing import Dict, Any, List, Optional, Tuple
from pydantic import ValidationError
from ..MODELS.stack_manifest import StackManifest, NetworkDefinition, VolumeDefinition
from ..MODELS.service_definition import (
    ServiceDefinition, DependencyCondition, PortMapping, VolumeMount
)
from ..UTILS.string_interpolation import EnvironmentInterpolator
import os

DEFAULT_NETWORK = "default"

class ManifestError(ValueError):
    """
    Raised when a compose file cannot be turned into a StackManifest.
    """

class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: A dictionary of environment variables for interpolation.
        """
        self.context = context if context is not None else dict(os.environ)
        self.warnings: List[str] = []
        self.missing_variables: List[str] = []
        self.unquoted_ports: List[Tuple[str, int]] = []

    def parse(self, compose_path: str) -> StackManifest:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed manifest.
        """
        with open(compose_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> StackManifest:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed manifest.
        :raises ManifestError: If the YAML is invalid or has the wrong shape.
        :raises InterpolationError: If a required variable is missing.
        """
        self.warnings = []
        self.missing_variables = []
        self.unquoted_ports = []

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ManifestError(f"Invalid YAML: {e}") from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ManifestError("Compose file must be a mapping at the top level")

        # Only values are interpolated, after loading
        interpolator = EnvironmentInterpolator(self.context)
        data = self._interpolate(interpolator, data)
        self.missing_variables = list(interpolator.missing)
        for name in interpolator.missing:
            # In Docker, ${VAR} if unset is empty string.
            self.warnings.append(f"Variable {name} is not set, defaulting to a blank string")

        services = {}
        for name, spec in self._mapping(data, 'services').items():
            if spec is None:
                spec = {}
            if not isinstance(spec, dict):
                raise ManifestError(f"Service {name} must be a mapping")
            services[str(name)] = self._parse_service(str(name), spec)

        networks = {}
        for name, spec in self._mapping(data, 'networks').items():
            networks[str(name)] = self._parse_network(str(name), spec or {})

        if any(DEFAULT_NETWORK in svc.networks for svc in services.values()) \
                and DEFAULT_NETWORK not in networks:
            networks[DEFAULT_NETWORK] = NetworkDefinition(name=DEFAULT_NETWORK)

        volumes = {}
        for name, spec in self._mapping(data, 'volumes').items():
            spec = spec or {}
            if not isinstance(spec, dict):
                raise ManifestError(f"Volume {name} must be a mapping")
            volumes[str(name)] = VolumeDefinition(
                name=str(name),
                driver=str(spec.get("driver", "local")),
                external=bool(spec.get('external', False)),
            )

        name = data.get('name')
        return StackManifest(
            name=str(name) if name is not None else None,
            services=services,
            networks=networks,
            volumes=volumes
        )

    def _interpolate(self, interpolator: EnvironmentInterpolator, value: Any) -> Any:
        if isinstance(value, str):
            return interpolator.interpolate(value)
        if isinstance(value, dict):
            return {k: self._interpolate(interpolator, v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._interpolate(interpolator, v) for v in value]
        return value

    def _parse_service(self, name: str, spec: Dict[str, Any]) -> ServiceDefinition:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :return: A ServiceDefinition instance.
        """
        build = spec.get('build')
        if isinstance(build, dict):
            build_context = build.get('context', '.')
            dockerfile = build.get('dockerfile')
        else:
            build_context = build
            dockerfile = None

        restart = spec.get('restart')
        if restart is False:
            # YAML 1.1 reads a bare `no` as a boolean
            restart = 'no'
        elif isinstance(restart, str) and restart.startswith('on-failure:'):
            restart = 'on-failure'

        network_mode = spec.get('network_mode')
        networks = spec.get('networks')
        if isinstance(networks, dict):
            networks = [str(n) for n in networks]
        elif networks is None:
            networks = [] if network_mode else [DEFAULT_NETWORK]
        else:
            networks = [str(n) for n in networks]

        healthcheck = spec.get('healthcheck')
        test = None
        if isinstance(healthcheck, dict) and not healthcheck.get('disable'):
            test = healthcheck.get('test')
            if isinstance(test, str):
                test = ["CMD-SHELL", test]

        try:
            return ServiceDefinition(
                name=name,
                image=spec.get('image'),
                build_context=build_context,
                dockerfile=dockerfile,
                container_name=spec.get('container_name'),
                restart_policy=restart,
                ports=self._parse_ports(name, spec.get('ports') or []),
                networks=networks,
                network_mode=network_mode,
                environment=self._parse_environment(spec.get('environment')),
                env_files=self._parse_env_files(spec.get('env_file')),
                volumes=self._parse_volumes(name, spec.get('volumes') or []),
                depends_on=self._parse_depends_on(spec.get('depends_on')),
                healthcheck=test,
            )
        except ValidationError as e:
            raise ManifestError(f"Invalid definition for service {name}: {e}") from e

    def _parse_ports(self, service: str, ports: List[Any]) -> List[PortMapping]:
        """
        Parses short ("8080:80", "127.0.0.1:8080:80/udp") and long port syntax.
        """
        mappings = []
        for p in ports:
            if isinstance(p, dict):
                published = p.get('published')
                mappings.append(PortMapping(
                    container=self._to_port(service, p.get('target')),
                    host=self._to_port(service, published) if published not in (None, '') else None,
                    host_ip=p.get('host_ip'),
                    protocol=p.get('protocol', 'tcp'),
                ))
                continue

            if isinstance(p, int) and not isinstance(p, bool):
                self.unquoted_ports.append((service, p))
                self.warnings.append(
                    f"Port {p} of service {service} should be quoted; YAML reads unquoted 'a:b' entries as base-60 numbers"
                )

            text = str(p)
            protocol = 'tcp'
            if '/' in text:
                text, protocol = text.rsplit('/', 1)
            parts = text.rsplit(':', 2) if text.count(':') <= 2 else None
            if not parts:
                raise ManifestError(f"Invalid port mapping {p!r} in service {service}")

            host_ip = None
            host = None
            if len(parts) == 3:
                host_ip, host, container = parts
            elif len(parts) == 2:
                host, container = parts
            else:
                container = parts[0]

            container_ports = self._expand_range(service, container)
            host_ports = self._expand_range(service, host) if host else [None] * len(container_ports)
            if len(host_ports) != len(container_ports):
                raise ManifestError(f"Port ranges do not match in {p!r} of service {service}")
            for c, h in zip(container_ports, host_ports):
                mappings.append(PortMapping(container=c, host=h, host_ip=host_ip or None, protocol=protocol))
        return mappings

    def _expand_range(self, service: str, text: str) -> List[int]:
        if '-' in text:
            start, end = text.split('-', 1)
            start, end = self._to_port(service, start), self._to_port(service, end)
            if end < start:
                raise ManifestError(f"Invalid port range {text} in service {service}")
            return list(range(start, end + 1))
        return [self._to_port(service, text)]

    def _to_port(self, service: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ManifestError(f"Invalid port {value!r} in service {service}")

    def _parse_volumes(self, service: str, volumes: List[Any]) -> List[VolumeMount]:
        mounts = []
        for v in volumes:
            if isinstance(v, str):
                parts = v.split(':')
                if len(parts) == 1:
                    # Anonymous volume
                    mounts.append(VolumeMount(source='', target=parts[0]))
                elif len(parts) == 2:
                    mounts.append(VolumeMount(source=parts[0], target=parts[1]))
                elif len(parts) == 3:
                    mounts.append(VolumeMount(source=parts[0], target=parts[1], read_only=('ro' in parts[2].split(','))))
                else:
                    raise ManifestError(f"Invalid volume {v!r} in service {service}")
            elif isinstance(v, dict):
                mounts.append(VolumeMount(
                    source=v.get('source') or '',
                    target=v.get('target', ''),
                    read_only=bool(v.get('read_only', False)),
                ))
            else:
                raise ManifestError(f"Invalid volume {v!r} in service {service}")
        return mounts

    def _parse_environment(self, env_spec: Any) -> Dict[str, str]:
        environment = {}
        if isinstance(env_spec, list):
            for e in env_spec:
                e = str(e)
                if '=' in e:
                    k, v = e.split('=', 1)
                    environment[k] = v
                else:
                    # Bare name: value taken from the shell
                    environment[e] = self.context.get(e, '')
        elif isinstance(env_spec, dict):
            for k, v in env_spec.items():
                if v is None:
                    # No value: taken from the shell
                    environment[str(k)] = self.context.get(str(k), '')
                else:
                    environment[str(k)] = self._to_env_value(v)
        return environment

    def _to_env_value(self, value: Any) -> str:
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)

    def _parse_env_files(self, env_file: Any) -> List[str]:
        files = []
        for entry in self._to_list(env_file):
            if isinstance(entry, dict):
                files.append(entry['path'])
            else:
                files.append(entry)
        return files

    def _parse_depends_on(self, depends_on: Any) -> Dict[str, DependencyCondition]:
        if isinstance(depends_on, dict):
            return {
                str(dep): (opts if isinstance(opts, dict) else {}).get('condition', DependencyCondition.SERVICE_STARTED)
                for dep, opts in depends_on.items()
            }
        return {str(dep): DependencyCondition.SERVICE_STARTED for dep in self._to_list(depends_on)}

    def _parse_network(self, name: str, spec: Dict[str, Any]) -> NetworkDefinition:
        if not isinstance(spec, dict):
            raise ManifestError(f"Network {name} must be a mapping")
        try:
            return NetworkDefinition(
                name=name,
                driver=spec.get('driver', 'bridge'),
                internal=bool(spec.get('internal', False)),
                external=bool(spec.get('external', False)),
            )
        except ValidationError as e:
            raise ManifestError(f"Invalid network {name}: {e}") from e

    def _mapping(self, data: Dict[str, Any], key: str) -> Dict[Any, Any]:
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ManifestError(f"Top-level '{key}' must be a mapping")
        return value

    def _to_list(self, val: Any) -> List[Any]:
        """
        Helper to ensure a value is a list.

        :param val: The value to convert.
        :return: A list.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return list(val)
