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
Models for validation findings.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel

class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

class Issue(BaseModel):
    """
    A single finding. ``code`` is a stable identifier such as ``unknown-dependency``.
    """
    severity: Severity
    code: str
    message: str
    location: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.location}: " if self.location else ""
        return f"{prefix}{self.severity.value}: {self.message} [{self.code}]"

class Report(BaseModel):
    """
    Findings collected by a validator or checker.
    """
    issues: List[Issue] = []
    checked: int = 0
    skipped: int = 0

    def add(self, severity: Severity, code: str, message: str, location: Optional[str] = None) -> Issue:
        issue = Issue(severity=severity, code=code, message=message, location=location)
        self.issues.append(issue)
        return issue

    def error(self, code: str, message: str, location: Optional[str] = None) -> Issue:
        return self.add(Severity.ERROR, code, message, location)

    def warning(self, code: str, message: str, location: Optional[str] = None) -> Issue:
        return self.add(Severity.WARNING, code, message, location)

    def info(self, code: str, message: str, location: Optional[str] = None) -> Issue:
        return self.add(Severity.INFO, code, message, location)

    def merge(self, other: "Report", location: Optional[str] = None) -> "Report":
        """
        Appends the issues of another report. When ``location`` is given it
        replaces the location of issues that have none.
        """
        for issue in other.issues:
            if location and not issue.location:
                issue = issue.model_copy(update={"location": location})
            self.issues.append(issue)
        self.checked += other.checked
        self.skipped += other.skipped
        return self

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]
