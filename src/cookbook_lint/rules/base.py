"""
Rule base classes.

A FileRule checks one file at a time; a ProjectRule sees every loaded file
at once (for cross-file checks such as version agreement).
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from ..analysis import FileIndex
from ..config import LintConfig
from ..reporting import LintIssue, Severity
from ..scanner import FileKind, SourceFile, get_line


class LintRule:
    """Base class for lint rules."""

    code: str = "X000"
    name: str = "unnamed"
    severity: Severity = Severity.WARNING
    description: str = ""

    def issue(self, src: SourceFile, line: int, message: str, column: int = 0,
              suggestion: str = "", context: str | None = None) -> LintIssue:
        """Build an issue for this rule; context defaults to the stripped source line."""
        if context is None:
            context = get_line(src.lines, line).strip()
        return LintIssue(
            severity=self.severity,
            code=self.code,
            rule=self.name,
            message=message,
            file=src.display_path,
            line=line,
            column=column,
            context=context,
            suggestion=suggestion,
        )


class FileRule(LintRule):
    """A rule applied to each file whose kind is in `kinds`."""

    kinds: frozenset[FileKind] = frozenset()

    def applies_to(self, src: SourceFile) -> bool:
        return src.kind in self.kinds

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        """Check a file and return any issues found."""
        raise NotImplementedError


class ProjectRule(LintRule):
    """A rule applied once to the whole set of loaded files."""

    def check_project(self, cfg: LintConfig,
                      files: Sequence[Tuple[SourceFile, FileIndex]]) -> List[LintIssue]:
        raise NotImplementedError
