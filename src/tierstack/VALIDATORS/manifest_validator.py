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
Consistency checks for a parsed compose manifest.
"""
import os
from typing import List, Optional, Tuple
from ..MODELS.stack_manifest import StackManifest
from ..MODELS.service_definition import ServiceDefinition, DependencyCondition
from ..MODELS.report import Report
from ..MODELS.image_reference import ImageReference
from ..RUNNERS.dependency_resolver import DependencyResolver

# host_ip values that bind every interface
ANY_ADDRESS = {None, "", "0.0.0.0", "::"}

class ManifestValidator:
    """
    Checks references between services, networks and volumes, port
    conflicts, and the startup-ordering hints of a manifest.
    """
    def __init__(self):
        self.resolver = DependencyResolver()

    def validate(self, manifest: StackManifest, base_dir: Optional[str] = None) -> Report:
        """
        Validates a manifest.

        :param manifest: The parsed manifest.
        :param base_dir: Directory of the compose file. When given, env files
                         and build contexts are checked on disk.
        :return: A report with the findings.
        """
        report = Report(checked=1)
        if not manifest.services:
            report.error("no-services", "Manifest defines no services")
            return report

        used_volumes = set()
        used_networks = set()
        host_ports: List[Tuple[Optional[str], int, str, str]] = []

        for name, svc in manifest.services.items():
            location = f"services.{name}"
            self._check_source(report, svc, location, base_dir)
            self._check_dependencies(report, manifest, svc, location)

            for mount in svc.volumes:
                if not mount.is_named:
                    continue
                used_volumes.add(mount.source)
                if mount.source not in manifest.volumes:
                    report.error(
                        "undeclared-volume",
                        f"Service {name} mounts volume {mount.source} which is not declared under 'volumes'",
                        location,
                    )

            for network in svc.networks:
                used_networks.add(network)
                if network not in manifest.networks:
                    report.error(
                        "undeclared-network",
                        f"Service {name} is attached to network {network} which is not declared under 'networks'",
                        location,
                    )

            for port in svc.ports:
                for value in (port.container, port.host):
                    if value is not None and not 1 <= value <= 65535:
                        report.error("invalid-port", f"Port {value} of service {name} is out of range", location)
                if port.host is None:
                    continue
                owner = self._port_owner(host_ports, port.host_ip, port.host, port.protocol)
                if owner is not None:
                    report.error(
                        "host-port-conflict",
                        f"Host port {port.host}/{port.protocol} is published by both {owner} and {name}",
                        location,
                    )
                else:
                    host_ports.append((port.host_ip, port.host, port.protocol, name))

            if base_dir is not None:
                for env_file in svc.env_files:
                    if not os.path.exists(os.path.join(base_dir, env_file)):
                        report.error("missing-env-file", f"Env file {env_file} of service {name} does not exist", location)

            if svc.restart_policy is None:
                report.info("no-restart-policy", f"Service {name} has no restart policy", location)

        for volume in manifest.volumes:
            if volume not in used_volumes:
                report.warning("unused-volume", f"Volume {volume} is declared but not mounted by any service", "volumes")
        for network in manifest.networks:
            if network not in used_networks:
                report.warning("unused-network", f"Network {network} is declared but no service is attached to it", "networks")

        cycle = self.resolver.find_cycle(manifest)
        if cycle:
            report.error("dependency-cycle", f"Circular dependency detected: {' -> '.join(cycle)}", "services")

        return report

    @staticmethod
    def _port_owner(host_ports: List[Tuple[Optional[str], int, str, str]], host_ip: Optional[str],
                    host: int, protocol: str) -> Optional[str]:
        """
        Returns the service already bound to the host port, if any. A port
        published on all interfaces conflicts with the same port on any address.
        """
        for bound_ip, bound_host, bound_protocol, owner in host_ports:
            if bound_host != host or bound_protocol != protocol:
                continue
            if bound_ip in ANY_ADDRESS or host_ip in ANY_ADDRESS or bound_ip == host_ip:
                return owner
        return None

    def _check_source(self, report: Report, svc: ServiceDefinition, location: str, base_dir: Optional[str]):
        if svc.source is None:
            report.error("missing-source", f"Service {svc.name} has neither an image nor a build context", location)
            return
        if svc.source == "build":
            if base_dir is not None and "://" not in svc.build_context \
                    and not os.path.isdir(os.path.join(base_dir, svc.build_context)):
                report.error(
                    "missing-build-context",
                    f"Build context {svc.build_context} of service {svc.name} does not exist",
                    location,
                )
            return
        try:
            reference = ImageReference.parse(svc.image)
        except ValueError as e:
            report.error("invalid-image", f"Image of service {svc.name}: {e}", location)
            return
        if not reference.is_pinned:
            report.warning("latest-tag", f"Image {svc.image} of service {svc.name} is not pinned to a version", location)

    def _check_dependencies(self, report: Report, manifest: StackManifest, svc: ServiceDefinition, location: str):
        for dep, condition in svc.depends_on.items():
            target = manifest.services.get(dep)
            if target is None:
                report.error("unknown-dependency", f"Service {svc.name} depends on undefined service {dep}", location)
                continue
            if condition == DependencyCondition.SERVICE_STARTED:
                report.info(
                    "ordering-not-readiness",
                    f"{svc.name} starts after {dep} is started, not after it is ready; "
                    f"use condition service_healthy with a healthcheck to wait for readiness",
                    location,
                )
            elif condition == DependencyCondition.SERVICE_HEALTHY and not target.healthcheck:
                report.error(
                    "healthy-without-healthcheck",
                    f"{svc.name} waits for {dep} to be healthy but {dep} defines no healthcheck",
                    location,
                )
