"""
Documentation rules.

- D001 undefined-link-reference
- D002 invalid-code-fence
- D003 version-mismatch (project-wide)
- D004 unused-link-definition
"""

from __future__ import annotations

import ast
import json
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from ..analysis import FileIndex
from ..config import LintConfig
from ..lexer import LexerError, TokenType, find_unbalanced, tokenize_source
from ..markdown import CodeFence, MarkdownDocument, normalize_label
from ..patterns import (
    BADGE_VERSION_LABELS,
    CHANGELOG_FILENAMES,
    FENCE_LANGUAGE_ALIASES,
    README_FILENAMES,
    SEMVER,
    SHIELDS_BADGE,
)
from ..reporting import LintIssue, Severity
from ..scanner import FileKind, SourceFile
from .base import FileRule, ProjectRule


class UndefinedLinkReferenceRule(FileRule):
    """[text][label] needs a [label]: definition somewhere in the file."""

    code = "D001"
    name = "undefined-link-reference"
    severity = Severity.ERROR
    description = "Reference-style links must resolve to a defined target"
    kinds = frozenset({FileKind.MARKDOWN})

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        doc = idx.markdown
        issues = []
        for ref in doc.references:
            if doc.resolve(ref.label) is not None:
                continue
            issues.append(self.issue(
                src, ref.line,
                f"Link reference [{ref.label}] has no definition",
                column=ref.column,
                suggestion=f"Add a definition line: [{ref.label}]: <url>",
            ))
        return issues


class UnusedLinkDefinitionRule(FileRule):
    """A [label]: url line that nothing refers to."""

    code = "D004"
    name = "unused-link-definition"
    severity = Severity.HINT
    description = "Link definitions should be referenced at least once"
    kinds = frozenset({FileKind.MARKDOWN})

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        doc = idx.markdown
        used = {normalize_label(r.label) for r in doc.references + doc.shortcuts}
        issues = []
        for label, definition in doc.definitions.items():
            if label in used:
                continue
            issues.append(self.issue(
                src, definition.line,
                f"Link definition [{definition.label}] is never used",
                column=1,
                suggestion="Remove the definition or reference it",
            ))
        return issues


# =============================================================================
# D002: code fence validation
# =============================================================================

def validate_fence(fence: CodeFence) -> Optional[Tuple[str, int]]:
    """
    Check a fence body against its declared language.

    Returns (message, line within the body, 1-based) or None when the body
    is valid or its language is not checked.
    """
    language = FENCE_LANGUAGE_ALIASES.get(fence.language)
    if language is None or not fence.body.strip():
        return None

    if language == "json":
        try:
            json.loads(fence.body)
        except json.JSONDecodeError as e:
            return f"Invalid JSON: {e.msg}", e.lineno
    elif language == "yaml":
        try:
            list(yaml.safe_load_all(fence.body))
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            problem = getattr(e, "problem", None) or str(e).splitlines()[0]
            return f"Invalid YAML: {problem}", (mark.line + 1) if mark is not None else 1
    elif language == "python":
        try:
            ast.parse(fence.body)
        except SyntaxError as e:
            return f"Invalid Python: {e.msg}", e.lineno or 1
        except ValueError as e:
            # NUL bytes, before Python 3.12
            return f"Invalid Python: {e}", 1
    elif language == "ruby":
        try:
            tokens = tokenize_source(fence.body, include_newlines=True)
        except LexerError as e:
            return f"Invalid Ruby: {e.reason}", e.line
        problem = find_unbalanced([t for t in tokens if t.type != TokenType.EOF])
        if problem is not None:
            message, line, _ = problem
            return f"Invalid Ruby: {message}", line
    return None


class InvalidCodeFenceRule(FileRule):
    """Fenced examples must be valid for the language they declare."""

    code = "D002"
    name = "invalid-code-fence"
    severity = Severity.ERROR
    description = "Fenced code blocks must be syntactically valid for their declared language"
    kinds = frozenset({FileKind.MARKDOWN})

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        issues = []
        for fence in idx.markdown.fences:
            if not fence.closed:
                issues.append(self.issue(
                    src, fence.line,
                    "Code fence is never closed",
                    column=1,
                    suggestion="Add a closing fence line",
                ))
                continue
            problem = validate_fence(fence)
            if problem is None:
                continue
            message, body_line = problem
            issues.append(self.issue(
                src, fence.body_line + body_line - 1,
                f"{message} (in {fence.language} block starting at line {fence.line})",
                column=1,
            ))
        return issues


# =============================================================================
# D003: version agreement
# =============================================================================

@dataclass
class VersionSource:
    """Where a version string was found."""
    what: str               # "CHANGELOG.md", "README.md badge", "metadata.rb"
    version: str
    src: SourceFile
    line: int
    column: int = 1


def changelog_version(src: SourceFile, doc: MarkdownDocument) -> Optional[VersionSource]:
    """The newest release: the first heading that names a semantic version."""
    for heading in doc.headings:
        m = SEMVER.search(heading.text)
        if m:
            return VersionSource(src.path.name, m.group(1), src, heading.line)
    return None


def _unescape_badge(part: str) -> str:
    return part.replace("--", "\0").replace("__", "\1").replace("_", " ") \
        .replace("\0", "-").replace("\1", "_")


def badge_version(src: SourceFile, doc: MarkdownDocument) -> Optional[VersionSource]:
    """The version shown in a shields.io badge image."""
    for image in doc.images:
        m = SHIELDS_BADGE.search(image.url)
        if not m:
            continue
        label = _unescape_badge(m.group("label")).strip().lower()
        message = _unescape_badge(m.group("message")).strip()
        version = SEMVER.search(message)
        if version is None:
            continue
        if label in BADGE_VERSION_LABELS or not label:
            return VersionSource(f"{src.path.name} badge", version.group(1), src,
                                 image.line, image.column)
    return None


def metadata_version(src: SourceFile, idx: FileIndex) -> Optional[VersionSource]:
    """`version '1.2.3'` in metadata.rb."""
    tokens = idx.tokens
    for i, tok in enumerate(tokens):
        if tok.type != TokenType.IDENTIFIER or tok.value != "version":
            continue
        if i > 0 and tokens[i - 1].type not in (TokenType.NEWLINE, TokenType.SEMICOLON):
            continue
        j = i + 1
        if j < len(tokens) and tokens[j].type == TokenType.LPAREN:
            j += 1
        if j < len(tokens) and tokens[j].type == TokenType.STRING and not tokens[j].interpolated:
            m = SEMVER.search(tokens[j].value)
            if m:
                return VersionSource(src.path.name, m.group(1), src, tok.line, tokens[j].column)
    return None


class VersionMismatchRule(ProjectRule):
    """The changelog, the README badge and metadata.rb name the same version."""

    code = "D003"
    name = "version-mismatch"
    severity = Severity.ERROR
    description = "The changelog version must match the version badge (and metadata.rb)"

    def collect(self, files: Sequence[Tuple[SourceFile, FileIndex]]) -> Dict[Path, List[VersionSource]]:
        """Version sources grouped by directory; each directory is one cookbook."""
        found: Dict[Path, Dict[str, VersionSource]] = defaultdict(dict)
        for src, idx in files:
            directory = src.path.parent
            name = src.path.name
            source = None
            slot = None
            if src.kind == FileKind.MARKDOWN and name in CHANGELOG_FILENAMES:
                source, slot = changelog_version(src, idx.markdown), "changelog"
            elif src.kind == FileKind.MARKDOWN and name in README_FILENAMES:
                source, slot = badge_version(src, idx.markdown), "badge"
            elif src.kind == FileKind.METADATA:
                source, slot = metadata_version(src, idx), "metadata"
            if source is not None and slot not in found[directory]:
                found[directory][slot] = source

        ordered = {}
        for directory, slots in found.items():
            ordered[directory] = [slots[s] for s in ("changelog", "badge", "metadata") if s in slots]
        return ordered

    def check_project(self, cfg: LintConfig,
                      files: Sequence[Tuple[SourceFile, FileIndex]]) -> List[LintIssue]:
        issues = []
        for directory, sources in sorted(self.collect(files).items()):
            if len(sources) < 2:
                continue
            baseline = sources[0]
            for other in sources[1:]:
                if other.version == baseline.version:
                    continue
                issues.append(self.issue(
                    other.src, other.line,
                    f"Version {other.version} in {other.what} does not match "
                    f"{baseline.version} in {baseline.what}",
                    column=other.column,
                    suggestion=f"Update {other.what} to {baseline.version}",
                ))
        return issues
