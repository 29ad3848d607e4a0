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
Proofreading for markdown guides: every fenced YAML, Dockerfile, env and
JSON block must be valid.
"""
import json
import re
from typing import Callable, Dict, Optional
import yaml
from ..MODELS.code_block import CodeBlock
from ..MODELS.report import Report, Severity
from ..PARSERS.markdown_parser import MarkdownParser
from ..PARSERS.compose_parser import ComposeParser, ManifestError
from ..PARSERS.dockerfile_parser import DockerfileParser, DockerfileSyntaxError
from ..PARSERS.env_parser import EnvParser
from ..UTILS.string_interpolation import InterpolationError
from ..VALIDATORS.manifest_validator import ManifestValidator
from ..VALIDATORS.dockerfile_validator import DockerfileValidator

SKIP_MARKER = "no-check"
LINE_IN_LOCATION = re.compile(r'(?:^|:|line )(\d+)$')

class DocumentChecker:
    """
    Validates the fenced code blocks of a markdown document by language.

    Issues found inside a block point at the document line they come from.
    Issue severities from the manifest and Dockerfile validators are kept, so
    a snippet with an undeclared volume is an error while an unpinned image
    is a warning.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        :param context: Variables for compose interpolation. Defaults to an
                        empty context so results do not depend on the shell.
        """
        self.markdown = MarkdownParser()
        self.compose_parser = ComposeParser(context=context or {})
        self.dockerfile_parser = DockerfileParser()
        self.manifest_validator = ManifestValidator()
        self.dockerfile_validator = DockerfileValidator()
        self.checkers: Dict[str, Callable[[CodeBlock, str, Report], None]] = {
            "yaml": self._check_yaml,
            "yml": self._check_yaml,
            "dockerfile": self._check_dockerfile,
            "docker": self._check_dockerfile,
            "env": self._check_env,
            "dotenv": self._check_env,
            "json": self._check_json,
        }

    def check_file(self, path: str) -> Report:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.check(content, source=path)

    def check(self, content: str, source: str = "<string>") -> Report:
        """
        Checks every fenced block of a document.

        :param content: Markdown text.
        :param source: Name used in issue locations.
        :return: Report; ``checked`` and ``skipped`` count blocks.
        """
        report = Report()
        for block in self.markdown.extract_code_blocks(content):
            checker = self.checkers.get(block.language)
            if checker is None or SKIP_MARKER in block.info.split():
                report.skipped += 1
                continue
            report.checked += 1
            checker(block, source, report)
        return report

    def _location(self, source: str, block: CodeBlock, offset: int = 1) -> str:
        """
        ``offset`` is the 1-based line inside the block.
        """
        return f"{source}:{block.line + offset}"

    def _check_yaml(self, block: CodeBlock, source: str, report: Report):
        try:
            documents = list(yaml.safe_load_all(block.content))
        except yaml.YAMLError as e:
            offset = 1
            mark = getattr(e, 'problem_mark', None)
            if mark is not None:
                offset = mark.line + 1
            report.error("invalid-yaml", f"Block does not parse as YAML: {getattr(e, 'problem', None) or e}",
                         self._location(source, block, offset))
            return

        if not any(isinstance(doc, dict) and 'services' in doc for doc in documents):
            return

        try:
            manifest = self.compose_parser.parse_from_string(block.content)
        except (ManifestError, InterpolationError) as e:
            report.error("invalid-manifest", str(e), self._location(source, block))
            return

        for name in self.compose_parser.missing_variables:
            report.warning("unset-variable", f"Variable {name} is not set, defaulting to a blank string",
                           self._location(source, block))
        for service, port in self.compose_parser.unquoted_ports:
            report.warning("unquoted-port", f"Port {port} of service {service} should be quoted",
                           self._location(source, block))

        inner = self.manifest_validator.validate(manifest)
        for issue in inner.issues:
            if issue.severity == Severity.INFO:
                continue
            message = f"{issue.location}: {issue.message}" if issue.location else issue.message
            report.issues.append(issue.model_copy(update={
                "location": self._location(source, block),
                "message": message,
            }))

    def _check_dockerfile(self, block: CodeBlock, source: str, report: Report):
        try:
            recipe = self.dockerfile_parser.parse_from_string(block.content)
        except DockerfileSyntaxError as e:
            report.error("invalid-dockerfile", str(e), self._location(source, block, e.line))
            return

        inner = self.dockerfile_validator.validate(recipe)
        for issue in inner.issues:
            if issue.severity == Severity.INFO:
                continue
            offset = 1
            match = LINE_IN_LOCATION.search(issue.location or "")
            if match:
                offset = int(match.group(1))
            report.issues.append(issue.model_copy(update={"location": self._location(source, block, offset)}))

    def _check_env(self, block: CodeBlock, source: str, report: Report):
        for line in EnvParser.invalid_lines(block.content):
            report.error("invalid-env-line", "Line is not a KEY=VALUE assignment", self._location(source, block, line))

    def _check_json(self, block: CodeBlock, source: str, report: Report):
        try:
            json.loads(block.content)
        except json.JSONDecodeError as e:
            report.error("invalid-json", f"Block does not parse as JSON: {e.msg}", self._location(source, block, e.lineno))
