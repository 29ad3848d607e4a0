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
Management of service environments, resolving env files and inline variables.
"""
import os
from typing import Dict, List, Optional
from ..PARSERS.env_parser import EnvParser
from ..MODELS.service_definition import ServiceDefinition

class EnvironmentManager:
    """
    Computes the environment a service container would receive.
    """
    def __init__(self, base_dir: str = ".", overrides: Optional[Dict[str, str]] = None):
        """
        Initializes the environment manager.

        :param base_dir: The base directory for resolving relative paths to .env files.
        :param overrides: Variables that take precedence over everything else.
        """
        self.base_dir = base_dir
        self.overrides = overrides or {}
        self.parser = EnvParser()
        self.missing_files: List[str] = []

    def get_merged_environment(self,
                               explicit_env: Dict[str, str],
                               env_files: List[str]) -> Dict[str, str]:
        """
        Merges environment variables from the specified .env files and explicit
        environment variable definitions.

        :param explicit_env: A dictionary of explicitly defined environment variables.
        :param env_files: A list of paths to .env files.
        :return: A dictionary containing the merged environment variables.
        """
        merged_env: Dict[str, str] = {}

        # 1. Load from env files (later files override earlier ones)
        for env_file in env_files:
            file_path = os.path.join(self.base_dir, env_file)
            if os.path.exists(file_path):
                merged_env.update(self.parser.parse(file_path))
            elif file_path not in self.missing_files:
                self.missing_files.append(file_path)

        # 2. Explicit environment variables override files
        merged_env.update(explicit_env)

        # 3. Overrides win
        merged_env.update(self.overrides)

        return merged_env

    def for_service(self, service: ServiceDefinition) -> Dict[str, str]:
        return self.get_merged_environment(service.environment, service.env_files)
