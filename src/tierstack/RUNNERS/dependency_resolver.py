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
Dependency resolution for services to determine startup and shutdown order.
"""
from typing import List, Dict, Optional
from ..MODELS.stack_manifest import StackManifest

class DependencyError(ValueError):
    """
    Base class for dependency graph problems.
    """

class UnknownDependencyError(DependencyError):
    def __init__(self, service: str, dependency: str):
        super().__init__(f"Service {service} depends on undefined service {dependency}")
        self.service = service
        self.dependency = dependency

class CircularDependencyError(DependencyError):
    def __init__(self, cycle: List[str]):
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")
        self.cycle = cycle

class DependencyResolver:
    """
    Resolves the startup and shutdown order of services based on their dependencies.

    Ordering only: a dependency that is started first is not necessarily
    ready to accept connections when its dependents start.
    """
    def resolve_order(self, manifest: StackManifest) -> List[str]:
        """
        Determines the order to start services.

        Services are started as soon as all their dependencies have been
        started; ties keep manifest declaration order.

        :param manifest: The stack manifest.
        :return: Service names in the order they should be started.
        :raises UnknownDependencyError: If a dependency is not defined.
        :raises CircularDependencyError: If a circular dependency is detected.
        """
        return [name for wave in self.resolve_waves(manifest) for name in wave]

    def resolve_waves(self, manifest: StackManifest) -> List[List[str]]:
        """
        Groups services into waves. Every dependency of a service in wave N is
        in a wave before N, so the services of one wave may start in parallel.
        """
        dependencies = self._graph(manifest)
        remaining = list(dependencies)
        started = set()
        waves = []

        while remaining:
            wave = [name for name in remaining if dependencies[name] <= started]
            if not wave:
                raise CircularDependencyError(self.find_cycle(manifest) or remaining)
            waves.append(wave)
            started.update(wave)
            remaining = [name for name in remaining if name not in started]

        return waves

    def shutdown_order(self, manifest: StackManifest) -> List[str]:
        """
        Dependents are stopped before the services they depend on.
        """
        return list(reversed(self.resolve_order(manifest)))

    def find_cycle(self, manifest: StackManifest) -> Optional[List[str]]:
        """
        Returns one dependency cycle as a path whose first and last entries are
        the same service, or None when the graph is acyclic. Dependencies on
        undefined services are ignored.
        """
        services = manifest.services
        dependencies = {
            name: [dep for dep in svc.depends_on if dep in services]
            for name, svc in services.items()
        }
        visited = set()
        path: List[str] = []
        on_path = set()

        def visit(name):
            """
            Depth-first search keeping the current path.
            """
            if name in on_path:
                return path[path.index(name):] + [name]
            if name in visited:
                return None
            visited.add(name)
            on_path.add(name)
            path.append(name)
            for dep in dependencies[name]:
                cycle = visit(dep)
                if cycle:
                    return cycle
            path.pop()
            on_path.remove(name)
            return None

        for name in services:
            cycle = visit(name)
            if cycle:
                return cycle
        return None

    def _graph(self, manifest: StackManifest) -> Dict[str, set]:
        services = manifest.services
        for name, svc in services.items():
            for dep in svc.depends_on:
                if dep not in services:
                    raise UnknownDependencyError(name, dep)
        return {name: set(svc.depends_on) for name, svc in services.items()}
