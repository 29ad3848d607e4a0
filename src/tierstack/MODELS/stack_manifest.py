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
Models for a complete stack: services plus the networks and volumes they share.
"""
from typing import Dict, Optional
from enum import Enum
from pydantic import BaseModel
from .service_definition import ServiceDefinition

class NetworkIsolation(str, Enum):
    """
    Network drivers, i.e. how containers on the network are isolated.
    """
    BRIDGE = "bridge"
    HOST = "host"
    NONE = "none"
    OVERLAY = "overlay"

class NetworkDefinition(BaseModel):
    """
    A network declared at the top level of a manifest.
    """
    name: str
    driver: NetworkIsolation = NetworkIsolation.BRIDGE
    internal: bool = False
    external: bool = False

class VolumeDefinition(BaseModel):
    """
    A named volume declared at the top level of a manifest.
    """
    name: str
    driver: str = "local"
    external: bool = False

class StackManifest(BaseModel):
    """
    Complete configuration for a multi-service stack.
    Equivalent to a parsed docker-compose.yml file.
    """
    name: Optional[str] = None
    services: Dict[str, ServiceDefinition]
    networks: Dict[str, NetworkDefinition] = {}
    volumes: Dict[str, VolumeDefinition] = {}
