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
Service discovery on the networks declared by a stack.
"""
from typing import Dict, List, Optional
from ..MODELS.stack_manifest import StackManifest, NetworkIsolation

# Drivers on which containers cannot look each other up by name
NO_DISCOVERY = {NetworkIsolation.HOST, NetworkIsolation.NONE}

class NetworkManager:
    """
    Answers which names each service can resolve, given the networks it is
    attached to. Services on a shared network find each other by service
    name or container name; nothing is resolved to an address.
    """
    def __init__(self, manifest: StackManifest):
        """
        Initializes the network manager.

        :param manifest: The stack whose networks are inspected.
        """
        self.manifest = manifest
        self.service_networks: Dict[str, List[str]] = {}  # service_name -> [network]
        self.network_members: Dict[str, List[str]] = {}  # network -> [service_name]

        for name, svc in manifest.services.items():
            attached = [n for n in svc.networks if self._allows_discovery(n)]
            self.service_networks[name] = attached
            for network in attached:
                self.network_members.setdefault(network, []).append(name)

    def _allows_discovery(self, network: str) -> bool:
        definition = self.manifest.networks.get(network)
        if definition is None:
            # Undeclared networks are reported by the manifest validator
            return False
        return definition.driver not in NO_DISCOVERY

    def networks_of(self, service: str) -> List[str]:
        return list(self.service_networks.get(service, []))

    def members(self, network: str) -> List[str]:
        return list(self.network_members.get(network, []))

    def can_reach(self, source: str, target: str) -> bool:
        """
        True if both services share at least one network.
        """
        if source == target:
            return source in self.manifest.services
        return bool(set(self.networks_of(source)) & set(self.networks_of(target)))

    def resolve(self, source: str, hostname: str) -> Optional[str]:
        """
        Returns the service a hostname refers to when looked up from ``source``,
        or None if it is not a reachable service name or container name.
        """
        target = self.service_for(hostname)
        if target and self.can_reach(source, target):
            return target
        return None

    def service_for(self, hostname: str) -> Optional[str]:
        """
        Maps a service name or container name to its service.
        """
        if hostname in self.manifest.services:
            return hostname
        for name, svc in self.manifest.services.items():
            if svc.container_name and svc.container_name == hostname:
                return name
        return None

    def peers(self, service: str) -> List[str]:
        """
        Other services reachable from ``service``, in manifest order.
        """
        return [
            name for name in self.manifest.services
            if name != service and self.can_reach(service, name)
        ]

    def discovery_env(self, service: str) -> Dict[str, str]:
        """
        Generates environment variables for service discovery.
        Example: DB_HOST=db, API_HOST=api
        """
        env = {}
        for name in self.peers(service):
            prefix = name.upper().replace('-', '_').replace('.', '_')
            env[f"{prefix}_HOST"] = name
        return env
