"""
cookbook-lint: File scanning and source loading.

Handles:
- Directory walking with exclusions
- File classification (metadata, recipes, attributes, templates, docs)
- Source file loading
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

from .config import LintConfig, should_exclude_path
from .patterns import DEPENDENCY_FILENAMES, METADATA_FILENAME

logger = logging.getLogger(__name__)


class FileKind(Enum):
    METADATA = "metadata"           # metadata.rb
    DEPENDENCIES = "dependencies"   # Berksfile, Policyfile.rb
    ATTRIBUTES = "attributes"       # attributes/*.rb
    RECIPE = "recipe"               # recipes/*.rb
    RUBY = "ruby"                   # libraries, resources, providers, ...
    TEMPLATE = "template"           # templates/**/*.erb
    MARKDOWN = "markdown"           # README.md, CHANGELOG.md, ...
    OTHER = "other"

    @property
    def is_ruby(self) -> bool:
        return self in RUBY_KINDS


RUBY_KINDS = frozenset({
    FileKind.METADATA,
    FileKind.DEPENDENCIES,
    FileKind.ATTRIBUTES,
    FileKind.RECIPE,
    FileKind.RUBY,
})


def classify(path: Path) -> FileKind:
    """Decide which rules apply to a file from its name and location."""
    name = path.name
    if name == METADATA_FILENAME:
        return FileKind.METADATA
    if name in DEPENDENCY_FILENAMES:
        return FileKind.DEPENDENCIES
    suffix = path.suffix.lower()
    if suffix == ".erb":
        return FileKind.TEMPLATE
    if suffix in (".md", ".markdown"):
        return FileKind.MARKDOWN
    if suffix == ".rb":
        parent = path.parent.name
        if parent == "attributes":
            return FileKind.ATTRIBUTES
        if parent == "recipes":
            return FileKind.RECIPE
        return FileKind.RUBY
    return FileKind.OTHER


@dataclass(frozen=True)
class SourceFile:
    """A loaded source file with content."""
    path: Path
    kind: FileKind
    text: str
    lines: list[str]

    @property
    def display_path(self) -> str:
        return self.path.as_posix()


def load_source(path: Path, display_root: Path | None = None) -> SourceFile:
    """
    Load a single source file.

    Raises OSError or UnicodeDecodeError; callers report those as issues.
    """
    text = path.read_bytes().decode("utf-8-sig")
    shown = path
    if display_root is not None:
        try:
            shown = path.relative_to(display_root)
        except ValueError:
            pass
    return SourceFile(path=shown, kind=classify(path), text=text, lines=text.splitlines())


def is_lintable(cfg: LintConfig, path: Path) -> bool:
    """Whether a file's kind is checked at all (Markdown only with check_docs)."""
    kind = classify(path)
    if kind == FileKind.OTHER:
        return False
    return kind != FileKind.MARKDOWN or cfg.check_docs


def iter_files(cfg: LintConfig) -> Iterator[Path]:
    """Iterate over all relevant files under root (or explicit list)."""
    if cfg.explicit_files is not None:
        for path in cfg.explicit_files:
            if not path.is_file():
                logger.warning(f"Skipping {path}: not a file")
            elif not is_lintable(cfg, path):
                logger.warning(f"Skipping {path}: not a file cookbook-lint checks")
            else:
                yield path
        return

    for path in sorted(cfg.root.rglob("*")):
        if not path.is_file():
            continue
        rel = path.relative_to(cfg.root)
        if should_exclude_path(cfg, rel):
            continue
        if is_lintable(cfg, path):
            yield path


def get_line(lines: list[str], line_no: int) -> str:
    """Get line by 1-based line number."""
    if line_no <= 0 or line_no > len(lines):
        return ""
    return lines[line_no - 1]
