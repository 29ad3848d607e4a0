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
Parsers for .env files, supporting quotes, comments and the export prefix.
"""
import io
from typing import Dict, List
from dotenv.parser import parse_stream

class EnvParser:
    """
    Parser for .env files, backed by python-dotenv.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Dictionary of environment variables.
        """
        with open(env_path, 'r') as f:
            content = f.read()
        return EnvParser.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses environment variables from a string.
        Lines dotenv cannot read are ignored; a name without a value maps to "".
        """
        env = {}
        for binding in parse_stream(io.StringIO(content)):
            if binding.error or binding.key is None:
                continue
            env[binding.key] = binding.value if binding.value is not None else ''
        return env

    @staticmethod
    def invalid_lines(content: str) -> List[int]:
        """
        Returns the 1-based line numbers of statements that could not be parsed.
        """
        return [
            binding.original.line
            for binding in parse_stream(io.StringIO(content))
            if binding.error
        ]
