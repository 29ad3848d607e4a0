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
Parsers for Dockerfiles, extracting instructions, arguments and build stages.
"""
import json
import re
import shlex
from typing import List, Tuple
from ..MODELS.dockerfile_ast import Instruction, BuildStage, BuildRecipe

# Instructions whose shell-form argument is kept as one string
SINGLE_ARGUMENT = {"RUN", "CMD", "ENTRYPOINT", "HEALTHCHECK", "ONBUILD", "WORKDIR", "USER", "MAINTAINER"}
KEY_VALUE = {"ENV", "ARG", "LABEL"}
# Instructions that accept leading --flag=value options
FLAGGED = {"FROM", "COPY", "ADD", "RUN"}

class DockerfileSyntaxError(ValueError):
    """
    Raised for a line that is not an instruction.
    """
    def __init__(self, message: str, line: int):
        super().__init__(f"line {line}: {message}")
        self.line = line

class DockerfileParser:
    """
    Parser for Dockerfile instructions.
    """
    def parse(self, dockerfile_path: str) -> BuildRecipe:
        """
        Parses a Dockerfile from a file path.

        Args:
            dockerfile_path (str): Path to the Dockerfile.

        Returns:
            BuildRecipe: Parsed stages and instructions.
        """
        with open(dockerfile_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> BuildRecipe:
        """
        Parses a Dockerfile from a string content.

        Args:
            content (str): Content of the Dockerfile.

        Returns:
            BuildRecipe: Parsed stages and instructions.

        Raises:
            DockerfileSyntaxError: If a line is not a valid instruction.
        """
        recipe = BuildRecipe()
        for inst in self.parse_instructions(content):
            if inst.instruction == "FROM":
                if not inst.arguments:
                    raise DockerfileSyntaxError("FROM requires an image", inst.line)
                alias = None
                if len(inst.arguments) >= 3 and inst.arguments[1].lower() == "as":
                    alias = inst.arguments[2]
                recipe.stages.append(BuildStage(
                    index=len(recipe.stages),
                    base_image=inst.arguments[0],
                    alias=alias,
                    line=inst.line,
                    instructions=[inst],
                ))
            elif recipe.stages:
                recipe.stages[-1].instructions.append(inst)
            else:
                recipe.preamble.append(inst)
        return recipe

    def parse_instructions(self, content: str) -> List[Instruction]:
        """
        Parses the flat list of instructions, in file order.
        """
        instructions = []
        pattern = re.compile(r'^\s*([A-Za-z]+)(?:\s+(.*))?$', re.DOTALL)

        for line_no, text in self._logical_lines(content):
            match = pattern.match(text)
            if not match:
                raise DockerfileSyntaxError(f"unexpected content {text.strip()[:40]!r}", line_no)

            inst = match.group(1).upper()
            args_str = (match.group(2) or '').strip()
            flags: List[str] = []
            if inst in FLAGGED:
                flags, args_str = self._split_flags(args_str)

            instructions.append(Instruction(
                instruction=inst,
                arguments=self._parse_arguments(inst, args_str),
                raw=text.strip(),
                line=line_no,
                flags=flags,
            ))

        return instructions

    def _logical_lines(self, content: str) -> List[Tuple[int, str]]:
        """
        Joins line continuations with \\ and drops comments and blank lines.
        Returns (starting line number, text) pairs.
        """
        result = []
        buffer: List[str] = []
        start = 0
        for index, line in enumerate(content.splitlines(), start=1):
            stripped = line.strip()
            # Comments are allowed between continuation lines too
            if not stripped or stripped.startswith('#'):
                continue
            if not buffer:
                start = index
            if stripped.endswith('\\'):
                buffer.append(stripped[:-1].strip())
                continue
            buffer.append(stripped)
            result.append((start, ' '.join(part for part in buffer if part)))
            buffer = []
        if buffer:
            result.append((start, ' '.join(part for part in buffer if part)))
        return result

    def _split_flags(self, args_str: str) -> Tuple[List[str], str]:
        flags = []
        rest = args_str
        while rest.startswith('--'):
            parts = rest.split(None, 1)
            flags.append(parts[0])
            rest = parts[1] if len(parts) > 1 else ''
        return flags, rest

    def _parse_arguments(self, inst: str, args_str: str) -> List[str]:
        if not args_str:
            return []

        # Handle JSON/Exec form vs Shell form
        if args_str.startswith('[') and args_str.endswith(']'):
            try:
                args = json.loads(args_str)
                if isinstance(args, list) and all(isinstance(a, str) for a in args):
                    return args
            except json.JSONDecodeError:
                # Not valid JSON, treat as shell form
                pass

        if inst in KEY_VALUE:
            try:
                tokens = shlex.split(args_str)
            except ValueError:
                tokens = args_str.split()
            if inst == "ENV" and tokens and '=' not in tokens[0]:
                # Legacy form: ENV KEY VALUE
                key, _, value = args_str.partition(' ')
                return [f"{key}={value.strip()}"]
            return tokens

        if inst in SINGLE_ARGUMENT:
            return [args_str]
        return args_str.split()
