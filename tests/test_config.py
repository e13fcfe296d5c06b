"""
Tests for configuration loading and layering.
"""

from pathlib import Path

import pytest
from cookbook_lint.config import (
    CONFIG_FILENAME,
    ConfigError,
    LintConfig,
    env_overrides,
    find_config_file,
    load_config,
    read_config_file,
    should_exclude_path,
)
from cookbook_lint.reporting import Severity


class TestDefaults:
    """Built-in defaults."""

    def test_defaults(self):
        """Defaults match the documented settings."""
        cfg = LintConfig(root=Path("."))
        assert cfg.max_line_length == 80
        assert cfg.min_chain_depth == 2
        assert cfg.fail_on == Severity.ERROR
        assert cfg.min_severity == Severity.HINT
        assert cfg.check_docs
        assert cfg.enabled_rules == ()

    def test_excluded_directories(self):
        """Paths under vendored or generated directories are skipped."""
        cfg = LintConfig(root=Path("."))
        assert should_exclude_path(cfg, Path("vendor/cookbooks/x/metadata.rb"))
        assert should_exclude_path(cfg, Path(".kitchen/logs/x.rb"))
        assert not should_exclude_path(cfg, Path("recipes/default.rb"))


class TestConfigFile:
    """YAML config files."""

    def test_read_settings(self, write_file):
        """Hyphenated keys are accepted and values are converted."""
        path = write_file("lint.yml", "max-line-length: 100\nfail_on: warning\n"
                                      "disabled_rules: [W001, I003]\n")
        settings = read_config_file(path)
        assert settings == {
            "max_line_length": 100,
            "fail_on": Severity.WARNING,
            "disabled_rules": ("W001", "I003"),
        }

    def test_severity_overrides(self, write_file):
        """severity_overrides maps rules to severities."""
        path = write_file("lint.yml", "severity_overrides:\n  W003: error\n")
        assert read_config_file(path)["severity_overrides"] == {"W003": Severity.ERROR}

    def test_empty_file(self, write_file):
        """An empty file means no settings."""
        assert read_config_file(write_file("lint.yml", "")) == {}

    @pytest.mark.parametrize("text", [
        "unknown_key: 1\n",
        "max_line_length: abc\n",
        "max_line_length: 0\n",
        "check_docs: 3\n",
        "fail_on: fatal\n",
        "- a\n- b\n",
        "key: [unclosed\n",
    ])
    def test_invalid_files(self, write_file, text):
        """Bad keys, values and YAML raise ConfigError."""
        with pytest.raises(ConfigError):
            read_config_file(write_file("lint.yml", text))


class TestConfigDiscovery:
    """Which config file is used."""

    def test_root_config_file(self, tmp_path, write_file):
        """.cookbook-lint.yml in the root is found."""
        path = write_file(CONFIG_FILENAME, "max_line_length: 100\n")
        assert find_config_file(tmp_path) == path

    def test_no_config_file(self, tmp_path):
        """No file means defaults."""
        assert find_config_file(tmp_path) is None

    def test_explicit_missing(self, tmp_path):
        """An explicit path that does not exist is an error."""
        with pytest.raises(ConfigError):
            find_config_file(tmp_path, tmp_path / "missing.yml")

    def test_env_config_path(self, tmp_path, write_file, monkeypatch):
        """COOKBOOK_LINT_CONFIG wins over the root file."""
        write_file(CONFIG_FILENAME, "max_line_length: 100\n")
        other = write_file("elsewhere.yml", "max_line_length: 90\n")
        monkeypatch.setenv("COOKBOOK_LINT_CONFIG", str(other))
        assert find_config_file(tmp_path) == other


class TestLayering:
    """Defaults < file < environment < CLI overrides."""

    def test_file_then_env_then_overrides(self, tmp_path, write_file, monkeypatch):
        """Each layer overrides the one below."""
        write_file(CONFIG_FILENAME, "max_line_length: 100\nmin_chain_depth: 3\n")
        monkeypatch.setenv("COOKBOOK_LINT_MAX_LINE_LENGTH", "120")

        cfg = load_config(tmp_path)
        assert cfg.max_line_length == 120
        assert cfg.min_chain_depth == 3
        assert cfg.config_path == tmp_path / CONFIG_FILENAME

        cfg = load_config(tmp_path, overrides={"max_line_length": 90})
        assert cfg.max_line_length == 90

    def test_disabled_rules_accumulate(self, tmp_path, write_file, monkeypatch):
        """disabled_rules from every layer are combined."""
        write_file(CONFIG_FILENAME, "disabled_rules: [W001]\n")
        monkeypatch.setenv("COOKBOOK_LINT_DISABLE", "I003, D004")
        cfg = load_config(tmp_path, overrides={"disabled_rules": ("W002",)})
        assert cfg.disabled_rules == ("W001", "I003", "D004", "W002")

    def test_none_overrides_ignored(self, tmp_path):
        """Unset CLI flags leave settings alone."""
        cfg = load_config(tmp_path, overrides={"max_line_length": None, "fail_on": None})
        assert cfg.max_line_length == 80
        assert cfg.fail_on == Severity.ERROR

    def test_override_strings_are_converted(self, tmp_path):
        """CLI strings are validated like file values."""
        cfg = load_config(tmp_path, overrides={"fail_on": "warning", "json_output": True})
        assert cfg.fail_on == Severity.WARNING
        assert cfg.json_output

    def test_invalid_env_value(self, tmp_path, monkeypatch):
        """A bad environment value is a ConfigError."""
        monkeypatch.setenv("COOKBOOK_LINT_FAIL_ON", "loud")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_env_overrides_reads_mapping(self):
        """env_overrides accepts an explicit environment."""
        settings = env_overrides({"COOKBOOK_LINT_FAIL_ON": "info"})
        assert settings == {"fail_on": Severity.INFO}
