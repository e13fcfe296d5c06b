"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cookbook_lint import config
from cookbook_lint.analysis import build_index
from cookbook_lint.config import LintConfig
from cookbook_lint.scanner import load_source


# =============================================================================
# ISOLATION
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep the developer's own config and environment out of every test."""
    for name in (config.ENV_CONFIG_PATH, config.ENV_MAX_LINE_LENGTH,
                 config.ENV_FAIL_ON, config.ENV_DISABLE):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "USER_CONFIG_PATHS", [])


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def fixtures_dir():
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_cookbook(fixtures_dir):
    """Path to the sample cookbook."""
    return fixtures_dir / "sample_cookbook"


# =============================================================================
# SOURCE HELPERS
# =============================================================================

@pytest.fixture
def write_file(tmp_path):
    """Write a file under tmp_path and return its path."""
    def _write(relpath, text):
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_source(tmp_path, write_file):
    """Write a file and load it as a SourceFile relative to tmp_path."""
    def _make(relpath, text):
        return load_source(write_file(relpath, text), tmp_path)
    return _make


@pytest.fixture
def check(tmp_path, make_source):
    """Run one rule against one file's text (if the rule applies to it)."""
    def _check(rule, relpath, text, **settings):
        src = make_source(relpath, text)
        if not rule.applies_to(src):
            return []
        cfg = LintConfig(root=tmp_path, **settings)
        return rule.check(cfg, src, build_index(src))
    return _check
