"""
cookbook-lint: Main runner.

Orchestrates all lint checks:
1. Load every source file (unreadable files become E000 issues)
2. Build a per-file index (tokens, ERB tags, Markdown, suppressions)
3. Run file rules, then project rules
4. Drop suppressed issues and issues below the reporting threshold
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .analysis import FileIndex, build_index
from .config import LintConfig
from .lexer import LexerError
from .reporting import LintIssue, Reporter
from .rules import FileRule, LintRule, ProjectRule, UnreadableFileRule, select_rules
from .scanner import SourceFile, iter_files, load_source

logger = logging.getLogger(__name__)


def _load(path: Path, cfg: LintConfig, rules: List[LintRule]) -> Tuple[Optional[Tuple[SourceFile, FileIndex]], List[LintIssue]]:
    """Load and index one file. Returns ((src, idx) or None, issues)."""
    unreadable = next((r for r in rules if isinstance(r, UnreadableFileRule)), None)
    display_root = None if cfg.explicit_files is not None else cfg.root
    shown = path
    if display_root is not None:
        try:
            shown = path.relative_to(display_root)
        except ValueError:
            pass

    try:
        src = load_source(path, display_root)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read {shown}: {e}")
        if unreadable is None:
            return None, []
        return None, [LintIssue(
            severity=unreadable.severity,
            code=unreadable.code,
            rule=unreadable.name,
            message=f"Cannot read file: {e}",
            file=shown.as_posix(),
            line=0,
        )]

    try:
        idx = build_index(src)
    except LexerError as e:
        logger.debug(f"Tokenize failed for {src.display_path}: {e}")
        if unreadable is None:
            return None, []
        return None, [unreadable.issue(src, e.line, f"Cannot tokenize: {e.reason}",
                                       column=e.column)]

    return (src, idx), []


def lint_paths(cfg: LintConfig, paths: Iterable[Path], reporter: Optional[Reporter] = None) -> Reporter:
    """Lint the given files with the rules `cfg` selects."""
    reporter = reporter or Reporter()
    rules = select_rules(cfg)
    file_rules = [r for r in rules if isinstance(r, FileRule)]
    project_rules = [r for r in rules if isinstance(r, ProjectRule)]

    loaded: List[Tuple[SourceFile, FileIndex]] = []
    pending: List[Tuple[LintIssue, Optional[FileIndex]]] = []

    for path in paths:
        reporter.files_scanned += 1
        result, load_issues = _load(path, cfg, rules)
        pending.extend((issue, None) for issue in load_issues)
        if result is None:
            continue
        src, idx = result
        loaded.append(result)
        for rule in file_rules:
            if not rule.applies_to(src):
                continue
            started = time.perf_counter()
            found = rule.check(cfg, src, idx)
            elapsed = (time.perf_counter() - started) * 1000
            logger.debug(f"{rule.code} on {src.display_path}: {len(found)} issues in {elapsed:.1f}ms")
            pending.extend((issue, idx) for issue in found)

    indexes = {src.display_path: idx for src, idx in loaded}
    for rule in project_rules:
        for issue in rule.check_project(cfg, loaded):
            pending.append((issue, indexes.get(issue.file)))

    suppressed = 0
    for issue, idx in pending:
        if idx is not None and idx.is_suppressed(issue.line, issue.code, issue.rule):
            suppressed += 1
            continue
        reporter.add(issue)

    if suppressed:
        logger.info(f"{suppressed} issues suppressed by inline comments")
    reporter.filter(cfg.min_severity)
    return reporter


def run(cfg: LintConfig) -> Reporter:
    """Run all lint checks under cfg.root (or cfg.explicit_files)."""
    logger.info(f"Scanning {cfg.root}")
    paths = list(iter_files(cfg))
    logger.info(f"Found {len(paths)} files to lint")
    reporter = lint_paths(cfg, paths)
    logger.info(f"Lint complete: {len(reporter.issues)} issues in {reporter.files_scanned} files")
    return reporter
