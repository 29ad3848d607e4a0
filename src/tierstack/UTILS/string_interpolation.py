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
Utilities for string interpolation using environment variables.
"""
import re
from typing import Dict, List, Optional

class InterpolationError(ValueError):
    """
    Raised by ``${VAR:?message}`` / ``${VAR?message}`` when VAR is missing.
    """

class EnvironmentInterpolator:
    """
    Utility for interpolating environment variables in strings, following
    compose rules.

    Supports ``$VAR``, ``${VAR}``, ``${VAR:-default}``, ``${VAR-default}``,
    ``${VAR:+value}``, ``${VAR+value}``, ``${VAR:?error}``, ``${VAR?error}``
    and ``$$`` as an escaped dollar sign. Unset plain variables become an
    empty string; their names are collected in ``missing``.
    """
    # Group 1: escaped $
    # Group 2: braced VAR name, group 3: operator, group 4: operand
    # Group 5: bare VAR name
    PATTERN = re.compile(
        r'\$(?:(\$)'
        r'|\{([A-Za-z_][A-Za-z0-9_]*)(?:(:?[-+?])([^}]*))?\}'
        r'|([A-Za-z_][A-Za-z0-9_]*))'
    )

    def __init__(self, context: Dict[str, str]):
        self.context = context
        self.missing: List[str] = []

    def interpolate(self, template: str) -> str:
        """
        Interpolates environment variables in the template string.

        :param template: The string containing ${VAR} placeholders.
        :return: The interpolated string.
        :raises InterpolationError: For a required variable that is missing.
        """
        return self.PATTERN.sub(self._replace, template)

    def _replace(self, match: "re.Match") -> str:
        if match.group(1):
            return '$'

        var_name = match.group(2) or match.group(5)
        operator: Optional[str] = match.group(3)
        operand = match.group(4) or ''
        value = self.context.get(var_name)

        # The colon forms treat an empty value like an unset one
        if operator and operator.startswith(':'):
            present = bool(value)
            operator = operator[1:]
        else:
            present = value is not None

        if operator == '-':
            return value if present else operand
        if operator == '+':
            return operand if present else ''
        if operator == '?':
            if not present:
                raise InterpolationError(
                    f"Required variable {var_name} is missing: {operand or 'no message'}"
                )
            return value

        if value is None:
            if var_name not in self.missing:
                self.missing.append(var_name)
            return ''
        return value
