"""
cookbook-lint: Configuration.

Runtime configuration, loaded in layers (lowest precedence first):

1. Built-in defaults (LintConfig field defaults)
2. YAML file: --config PATH, else .cookbook-lint.yml in the scanned root,
   else ~/.cookbook-lint/config.yml
3. Environment variables (COOKBOOK_LINT_*)
4. CLI flags (applied by the caller through `overrides`)

For rule vocabularies, see patterns.py.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .reporting import Severity

logger = logging.getLogger(__name__)


CONFIG_FILENAME = ".cookbook-lint.yml"

# Checked when the scanned root has no config file of its own
USER_CONFIG_PATHS = [
    Path.home() / ".cookbook-lint" / "config.yml",
]

ENV_CONFIG_PATH = "COOKBOOK_LINT_CONFIG"
ENV_MAX_LINE_LENGTH = "COOKBOOK_LINT_MAX_LINE_LENGTH"
ENV_FAIL_ON = "COOKBOOK_LINT_FAIL_ON"
ENV_DISABLE = "COOKBOOK_LINT_DISABLE"


class ConfigError(Exception):
    """Invalid configuration value or file."""


@dataclass
class LintConfig:
    """Runtime configuration for cookbook-lint."""

    root: Path = field(default_factory=Path.cwd)

    # Explicit files (disables the directory scan)
    explicit_files: Optional[tuple[Path, ...]] = None

    # Line and chain limits
    max_line_length: int = 80
    min_chain_depth: int = 2

    # Directory exclusions
    exclude_dirs: tuple[str, ...] = (
        ".git",
        ".kitchen",
        ".bundle",
        ".delivery",
        "vendor",
        "node_modules",
        "coverage",
        "pkg",
        "tmp",
    )

    # Rule selection: empty enabled_rules means every rule
    enabled_rules: tuple[str, ...] = ()
    disabled_rules: tuple[str, ...] = ()
    severity_overrides: Dict[str, Severity] = field(default_factory=dict)

    # Feature toggles
    check_docs: bool = True

    # Reporting
    min_severity: Severity = Severity.HINT
    fail_on: Severity = Severity.ERROR
    json_output: bool = False

    # Where the settings came from, for diagnostics
    config_path: Optional[Path] = None


# Keys a YAML file may set
_FILE_KEYS = {
    "max_line_length", "min_chain_depth", "exclude_dirs", "enabled_rules",
    "disabled_rules", "severity_overrides", "check_docs", "min_severity",
    "fail_on",
}


def should_exclude_path(cfg: LintConfig, path: Path) -> bool:
    """Check if path should be excluded from scanning."""
    return any(d in path.parts for d in cfg.exclude_dirs)


def _as_positive_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if value < 1:
        raise ConfigError(f"{key} must be at least 1, got {value}")
    return value


def _as_names(key: str, value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(v.strip() for v in value.split(",") if v.strip())
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(v.strip() for v in value)
    raise ConfigError(f"{key} must be a list of strings, got {value!r}")


def _as_severity(key: str, value: Any) -> Severity:
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a severity name, got {value!r}")
    try:
        return Severity.parse(value)
    except ValueError as e:
        raise ConfigError(f"{key}: {e}") from None


def _coerce(key: str, value: Any) -> Any:
    """Validate and convert one raw setting."""
    if key in ("max_line_length", "min_chain_depth"):
        return _as_positive_int(key, value)
    if key in ("exclude_dirs", "enabled_rules", "disabled_rules"):
        return _as_names(key, value)
    if key in ("min_severity", "fail_on"):
        return _as_severity(key, value)
    if key == "check_docs":
        if not isinstance(value, bool):
            raise ConfigError(f"check_docs must be true or false, got {value!r}")
        return value
    if key == "severity_overrides":
        if not isinstance(value, dict):
            raise ConfigError(f"severity_overrides must be a mapping, got {value!r}")
        return {str(rule): _as_severity(f"severity_overrides.{rule}", sev)
                for rule, sev in value.items()}
    raise ConfigError(f"Unknown config key '{key}'")


def read_config_file(path: Path) -> Dict[str, Any]:
    """Load and validate a YAML config file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    settings = {}
    for key, value in data.items():
        key = str(key).replace("-", "_")
        if key not in _FILE_KEYS:
            raise ConfigError(f"Unknown config key '{key}' in {path}")
        settings[key] = _coerce(key, value)
    return settings


def find_config_file(root: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    """Locate the config file to use, or None for defaults only."""
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        path = Path(env_path)
        if not path.is_file():
            raise ConfigError(f"{ENV_CONFIG_PATH} points to a missing file: {path}")
        return path

    search = [root / CONFIG_FILENAME] + USER_CONFIG_PATHS
    for candidate in search:
        if candidate.is_file():
            return candidate
    return None


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Settings taken from COOKBOOK_LINT_* environment variables."""
    environ = os.environ if environ is None else environ
    settings: Dict[str, Any] = {}
    if environ.get(ENV_MAX_LINE_LENGTH):
        settings["max_line_length"] = _coerce("max_line_length", environ[ENV_MAX_LINE_LENGTH])
    if environ.get(ENV_FAIL_ON):
        settings["fail_on"] = _coerce("fail_on", environ[ENV_FAIL_ON])
    if environ.get(ENV_DISABLE):
        settings["disabled_rules"] = _coerce("disabled_rules", environ[ENV_DISABLE])
    return settings


def load_config(root: Path, config_path: Optional[Path] = None,
                overrides: Optional[Dict[str, Any]] = None) -> LintConfig:
    """
    Build a LintConfig for `root` from file, environment and overrides.

    `overrides` holds CLI-level settings; keys with a None value are ignored.
    """
    cfg = LintConfig(root=root)

    path = find_config_file(root, config_path)
    if path is not None:
        logger.info(f"Loading config from {path}")
        cfg = replace(cfg, config_path=path, **read_config_file(path))
    else:
        logger.debug("No config file found, using defaults")

    env = env_overrides()
    if "disabled_rules" in env:
        env["disabled_rules"] = tuple(cfg.disabled_rules) + env["disabled_rules"]
    cfg = replace(cfg, **env)

    valid = {f.name for f in fields(LintConfig)}
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key not in valid:
            raise ConfigError(f"Unknown config key '{key}'")
        if key in _FILE_KEYS:
            value = _coerce(key, value)
        if key == "disabled_rules":
            value = tuple(cfg.disabled_rules) + tuple(value)
        cfg = replace(cfg, **{key: value})

    return cfg
