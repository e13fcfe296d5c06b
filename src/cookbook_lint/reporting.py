"""
cookbook-lint: Reporting and output formatting.

Handles:
- Severity levels and the LintIssue dataclass
- Human-readable output with a per-severity summary
- JSON output
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Severity(Enum):
    """Lint issue severity levels."""
    ERROR = "error"         # Broken: unreadable file, broken docs
    WARNING = "warning"     # Violates a style rule that causes real problems
    INFO = "info"           # Style issues or suggestions
    HINT = "hint"           # Minor improvements

    @property
    def rank(self) -> int:
        """0 for the most severe level."""
        return SEVERITY_ORDER.index(self)

    def at_least(self, other: "Severity") -> bool:
        """True if this severity is as severe as `other` or more."""
        return self.rank <= other.rank

    @classmethod
    def parse(cls, value: str) -> "Severity":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown severity '{value}' (expected one of: {choices})") from None


SEVERITY_ORDER = [Severity.ERROR, Severity.WARNING, Severity.INFO, Severity.HINT]


@dataclass
class LintIssue:
    """A single lint issue found in a file."""
    severity: Severity
    code: str               # e.g., "W001", "D002"
    rule: str               # e.g., "one-dependency-per-line"
    message: str
    file: str
    line: int
    column: int = 0
    context: str = ""       # The problematic code snippet
    suggestion: str = ""    # How to fix it

    def __str__(self):
        prefix = {
            Severity.ERROR: "[ERROR]",
            Severity.WARNING: "[WARNING]",
            Severity.INFO: "[INFO]",
            Severity.HINT: "[HINT]"
        }[self.severity]

        loc = f"{self.file}:{self.line}"
        if self.column:
            loc += f":{self.column}"

        msg = f"{prefix} {self.code} {loc}: {self.message}"
        if self.context:
            msg += f"\n    {self.context}"
        if self.suggestion:
            msg += f"\n    -> {self.suggestion}"
        return msg

    def sort_key(self) -> tuple:
        return (self.file, self.line, self.column, self.severity.rank, self.code)

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "rule": self.rule,
            "message": self.message,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "context": self.context,
            "suggestion": self.suggestion,
        }


class Reporter:
    """Collects and formats issues."""

    def __init__(self) -> None:
        self.issues: list[LintIssue] = []
        self.files_scanned = 0

    def add(self, issue: LintIssue) -> None:
        self.issues.append(issue)

    def extend(self, issues: Iterable[LintIssue]) -> None:
        self.issues.extend(issues)

    def sorted_issues(self) -> list[LintIssue]:
        return sorted(self.issues, key=LintIssue.sort_key)

    def filter(self, min_severity: Severity) -> None:
        """Drop issues less severe than `min_severity`."""
        self.issues = [i for i in self.issues if i.severity.at_least(min_severity)]

    def counts(self) -> Counter:
        return Counter(i.severity for i in self.issues)

    @property
    def errors(self) -> list[LintIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    def has_issues_at(self, level: Severity) -> bool:
        return any(i.severity.at_least(level) for i in self.issues)

    def render_human(self) -> str:
        """Render issues as human-readable text followed by a summary."""
        lines = []
        for issue in self.sorted_issues():
            lines.append(str(issue))
            lines.append("")

        counts = self.counts()
        noun = "file" if self.files_scanned == 1 else "files"
        if not self.issues:
            lines.append(f"Summary: no issues found ({self.files_scanned} {noun} checked)")
            return "\n".join(lines)

        lines.append(f"Summary: {len(self.issues)} issues found "
                     f"({self.files_scanned} {noun} checked)")
        for sev in SEVERITY_ORDER:
            if counts[sev]:
                lines.append(f"  {sev.value}: {counts[sev]}")
        return "\n".join(lines)

    def render_json(self) -> str:
        """Render issues as JSON."""
        return json.dumps(
            [i.to_dict() for i in self.sorted_issues()],
            indent=2,
        )
