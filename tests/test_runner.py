"""
Tests for the lint runner against whole cookbooks.
"""

import pytest
from cookbook_lint.config import ConfigError, LintConfig
from cookbook_lint.reporting import Severity
from cookbook_lint.runner import run


def summary(reporter):
    return sorted((i.file, i.line, i.code) for i in reporter.issues)


class TestSampleCookbook:
    """The fixture cookbook has one issue of each kind it exercises."""

    EXPECTED = [
        ("README.md", 8, "D004"),
        ("attributes/default.rb", 2, "I002"),
        ("attributes/default.rb", 2, "I002"),
        ("metadata.rb", 7, "W002"),
        ("recipes/default.rb", 6, "I001"),
        ("templates/default/app.conf.erb", 2, "W003"),
    ]

    def test_full_run(self, sample_cookbook):
        """Every rule runs; the inline suppression hides W004."""
        reporter = run(LintConfig(root=sample_cookbook))
        assert summary(reporter) == self.EXPECTED
        assert reporter.files_scanned == 7
        assert not reporter.has_issues_at(Severity.ERROR)

    def test_min_severity(self, sample_cookbook):
        """Issues below min_severity are dropped."""
        reporter = run(LintConfig(root=sample_cookbook, min_severity=Severity.WARNING))
        assert [i.code for i in reporter.sorted_issues()] == ["W002", "W003"]

    def test_no_docs(self, sample_cookbook):
        """check_docs=False skips Markdown files."""
        reporter = run(LintConfig(root=sample_cookbook, check_docs=False))
        assert reporter.files_scanned == 5
        assert "D004" not in {i.code for i in reporter.issues}

    def test_enabled_rules(self, sample_cookbook):
        """enabled_rules limits the run to those rules, by code or name."""
        reporter = run(LintConfig(root=sample_cookbook, enabled_rules=("W002", "template-logic")))
        assert sorted(i.code for i in reporter.issues) == ["W002", "W003"]

    def test_disabled_rules(self, sample_cookbook):
        """disabled_rules removes rules."""
        reporter = run(LintConfig(root=sample_cookbook, disabled_rules=("I002", "d004")))
        assert sorted(i.code for i in reporter.issues) == ["I001", "W002", "W003"]

    def test_severity_overrides(self, sample_cookbook):
        """A rule's severity can be raised."""
        cfg = LintConfig(root=sample_cookbook, severity_overrides={"W003": Severity.ERROR})
        reporter = run(cfg)
        assert [i.code for i in reporter.errors] == ["W003"]

    def test_unknown_rule(self, sample_cookbook):
        """Referring to a rule that does not exist is a config error."""
        with pytest.raises(ConfigError):
            run(LintConfig(root=sample_cookbook, disabled_rules=("W999",)))

    def test_explicit_files(self, sample_cookbook):
        """An explicit file list replaces the directory scan."""
        cfg = LintConfig(root=sample_cookbook,
                         explicit_files=(sample_cookbook / "metadata.rb",))
        reporter = run(cfg)
        assert reporter.files_scanned == 1
        assert [i.code for i in reporter.issues] == ["W002"]

    def test_explicit_markdown_without_docs(self, sample_cookbook):
        """check_docs=False drops named Markdown files too."""
        cfg = LintConfig(root=sample_cookbook, check_docs=False,
                         explicit_files=(sample_cookbook / "README.md",
                                         sample_cookbook / "metadata.rb"))
        reporter = run(cfg)
        assert reporter.files_scanned == 1
        assert [i.code for i in reporter.issues] == ["W002"]


class TestFailures:
    """Broken files become E000 issues without stopping the run."""

    def test_undecodable_file(self, tmp_path, write_file):
        """Invalid UTF-8 is reported and the rest still runs."""
        (tmp_path / "recipes").mkdir()
        (tmp_path / "recipes" / "bad.rb").write_bytes(b"x = '\xff\xfe'\n")
        write_file("metadata.rb", "depends 'my-dep'\n")
        reporter = run(LintConfig(root=tmp_path))
        assert summary(reporter) == [
            ("metadata.rb", 1, "W002"),
            ("recipes/bad.rb", 0, "E000"),
        ]
        assert reporter.errors[0].message.startswith("Cannot read file:")

    def test_untokenizable_file(self, tmp_path, write_file):
        """Unterminated strings are reported where they start."""
        write_file("recipes/default.rb", "x = 1\ny = 'never closed\n")
        reporter = run(LintConfig(root=tmp_path))
        issue = reporter.issues[0]
        assert (issue.code, issue.line, issue.column) == ("E000", 2, 5)
        assert issue.message == "Cannot tokenize: Unterminated string"

    def test_unterminated_erb_tag(self, tmp_path, write_file):
        """Broken templates are E000 too."""
        write_file("templates/default/a.erb", "ok\n<%= @x\n")
        reporter = run(LintConfig(root=tmp_path))
        assert summary(reporter) == [("templates/default/a.erb", 2, "E000")]

    def test_e000_can_be_disabled(self, tmp_path, write_file):
        """Disabling E000 silences unreadable files."""
        write_file("recipes/default.rb", "y = 'never closed\n")
        reporter = run(LintConfig(root=tmp_path, disabled_rules=("unreadable-file",)))
        assert reporter.issues == []


class TestSuppressions:
    """Inline and file-wide disable comments."""

    def test_line_suppression_by_name(self, tmp_path, write_file):
        """disable= accepts rule names and only covers its own line."""
        write_file("recipes/default.rb",
                   "a = node[:x] # cookbook-lint: disable=symbol-attribute-key\n"
                   "b = node[:y]\n")
        reporter = run(LintConfig(root=tmp_path))
        assert summary(reporter) == [("recipes/default.rb", 2, "I001")]

    def test_file_suppression(self, tmp_path, write_file):
        """disable-file=all silences the whole file."""
        write_file("recipes/default.rb",
                   "# cookbook-lint: disable-file=all\n"
                   "a = node[:x]\n"
                   "include_recipe 'my-cb'\n")
        assert run(LintConfig(root=tmp_path)).issues == []

    def test_template_comment_suppression(self, tmp_path, write_file):
        """ERB comment tags suppress on their line."""
        write_file("templates/default/a.erb",
                   "<% if @x %><%# cookbook-lint: disable=W003 %>\n"
                   "<% end %>\n")
        assert run(LintConfig(root=tmp_path)).issues == []

    def test_markdown_comment_suppression(self, tmp_path, write_file):
        """HTML comments suppress in Markdown."""
        write_file("README.md",
                   "<!-- cookbook-lint: disable-file=D004 -->\n"
                   "[unused]: https://example.com\n")
        assert run(LintConfig(root=tmp_path)).issues == []


class TestScanning:
    """Which files are linted."""

    def test_excluded_and_unknown_files(self, tmp_path, write_file):
        """Vendored cookbooks and non-cookbook files are skipped."""
        write_file("vendor/other/metadata.rb", "depends 'a-b'\n")
        write_file("files/default/script.sh", "echo hi\n")
        write_file("metadata.rb", "name 'ok'\n")
        reporter = run(LintConfig(root=tmp_path))
        assert reporter.files_scanned == 1
        assert reporter.issues == []
