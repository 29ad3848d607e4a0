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
Extraction of fenced code blocks from markdown documents.
"""
import re
from typing import List
from ..MODELS.code_block import CodeBlock

OPENING_FENCE = re.compile(r'^( {0,3})(`{3,}|~{3,})\s*([^`]*)$')

class MarkdownParser:
    """
    Finds ``` and ~~~ fenced code blocks.
    """
    def parse(self, markdown_path: str) -> List[CodeBlock]:
        with open(markdown_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.extract_code_blocks(content)

    def extract_code_blocks(self, content: str) -> List[CodeBlock]:
        """
        Returns the fenced code blocks of a document in order.

        A block closes on a fence of the same character that is at least as
        long as the opening one. An unterminated block runs to the end of the
        document.
        """
        blocks = []
        lines = content.splitlines()
        index = 0
        while index < len(lines):
            match = OPENING_FENCE.match(lines[index])
            if not match:
                index += 1
                continue

            indent = len(match.group(1))
            fence = match.group(2)
            info = match.group(3).strip()
            start = index
            body = []
            index += 1
            closing = re.compile(r'^ {0,3}' + re.escape(fence[0]) + '{' + str(len(fence)) + r',}\s*$')
            while index < len(lines) and not closing.match(lines[index]):
                body.append(self._dedent(lines[index], indent))
                index += 1
            # Skip the closing fence
            index += 1

            blocks.append(CodeBlock(
                language=info.split()[0].lower() if info else '',
                info=info,
                content='\n'.join(body) + ('\n' if body else ''),
                line=start + 1,
            ))
        return blocks

    def _dedent(self, line: str, indent: int) -> str:
        removable = len(line) - len(line.lstrip(' '))
        return line[min(indent, removable):]
