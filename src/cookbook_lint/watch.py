"""
cookbook-lint: File watch mode.

Re-lints cookbook files as they are edited, most recent first.

Usage:
    cookbook-lint watch
    cookbook-lint watch path/to/cookbook --interval 1.0
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import LintConfig, should_exclude_path
from .patterns import CHANGELOG_FILENAMES, METADATA_FILENAME, README_FILENAMES
from .reporting import Reporter
from .runner import lint_paths, run
from .rules import VersionMismatchRule
from .scanner import is_lintable

logger = logging.getLogger(__name__)

# Files that feed the version agreement check; editing one re-lints the others
_VERSION_FILES = frozenset(CHANGELOG_FILENAMES + README_FILENAMES + (METADATA_FILENAME,))


class _RecentQueue:
    """Thread-safe queue of changed files, newest first."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, float] = {}  # path -> last_ts

    def push(self, path: Path, ts: float) -> None:
        p = str(path)
        with self._lock:
            prev = self._items.get(p)
            if prev is None or ts > prev:
                self._items[p] = ts

    def pop_most_recent(self) -> Optional[Tuple[Path, float]]:
        with self._lock:
            if not self._items:
                return None
            p, ts = max(self._items.items(), key=lambda kv: kv[1])
            del self._items[p]
            return Path(p), ts

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class _ChangeHandler(FileSystemEventHandler):
    """Queues lintable files that were created, modified or moved into place."""

    def __init__(self, cfg: LintConfig, queue: _RecentQueue) -> None:
        super().__init__()
        self.cfg = cfg
        self.queue = queue

    def wants(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self.cfg.root)
        except ValueError:
            return False
        if should_exclude_path(self.cfg, rel):
            return False
        return is_lintable(self.cfg, path)

    def _queue(self, raw_path) -> None:
        path = Path(raw_path if isinstance(raw_path, str) else raw_path.decode())
        if self.wants(path):
            self.queue.push(path, time.time())

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self.on_modified(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename show up as moves onto the real name
        if not event.is_directory:
            self._queue(event.dest_path)


def affected_files(path: Path) -> List[Path]:
    """The changed file plus the version files it must agree with."""
    if path.name not in _VERSION_FILES:
        return [path]
    siblings = sorted(p for p in path.parent.iterdir()
                      if p.name in _VERSION_FILES and p.is_file() and p != path)
    return [path] + siblings


def lint_changed(cfg: LintConfig, path: Path) -> Reporter:
    """
    Lint one changed file.

    Sibling version files are loaded too. Of their issues only version
    mismatches are kept: a changelog bump is reported on whichever file
    now disagrees with it.
    """
    reporter = lint_paths(cfg, affected_files(path))
    shown = path.relative_to(cfg.root).as_posix() if path.is_relative_to(cfg.root) else path.as_posix()
    reporter.issues = [i for i in reporter.issues
                       if i.file == shown or i.code == VersionMismatchRule.code]
    reporter.files_scanned = 1
    return reporter


def watch(cfg: LintConfig, interval: float = 0.5, debounce_seconds: float = 1.0) -> int:
    """Lint the whole tree once, then re-lint files as they change."""
    cfg = replace(cfg, root=cfg.root.resolve(), explicit_files=None)
    queue = _RecentQueue()
    observer = Observer()
    observer.schedule(_ChangeHandler(cfg, queue), str(cfg.root), recursive=True)
    observer.start()

    print(f"[cookbook-lint] watching {cfg.root} (Ctrl+C to stop)")
    print(run(cfg).render_human())

    try:
        while True:
            item = queue.pop_most_recent()
            if item is None:
                time.sleep(interval)
                continue

            path, ts = item
            if time.time() - ts < debounce_seconds:
                # Still being written; wait for it to settle
                queue.push(path, ts)
                time.sleep(interval)
                continue

            if not path.is_file():
                logger.debug(f"{path} vanished before it could be linted")
                continue

            reporter = lint_changed(cfg, path)
            print(f"\n[cookbook-lint] {path} (queue={len(queue)})")
            print(reporter.render_human())
    except KeyboardInterrupt:
        print("\n[cookbook-lint] stopping...")
    finally:
        observer.stop()
        observer.join()

    return 0
