"""
Tests for the documentation rules.
"""

from cookbook_lint.analysis import build_index
from cookbook_lint.config import LintConfig
from cookbook_lint.markdown import CodeFence
from cookbook_lint.rules import (
    InvalidCodeFenceRule,
    UndefinedLinkReferenceRule,
    UnusedLinkDefinitionRule,
    VersionMismatchRule,
)
from cookbook_lint.rules.docs import validate_fence


README = """\
# App

See the [install guide][install] and [usage][].
Also [install] as a shortcut.

[install]: https://example.com/install
[unused]: https://example.com/unused
"""

FENCES = """\
# Usage

```json
{"a": 1,}
```

```yaml
key: [unclosed
```

```python
def f(:
```

```ruby
if x
  y
```

```ruby
depends 'ok'
```

```sh
whatever ((
```
"""


def fence(language, body):
    return CodeFence(language=language, info=language, body=body, line=1, end_line=3)


class TestLinkRules:
    """D001 undefined-link-reference and D004 unused-link-definition."""

    def test_undefined_reference(self, check):
        """[usage][] has no definition."""
        issues = check(UndefinedLinkReferenceRule(), "README.md", README)
        assert len(issues) == 1
        assert issues[0].line == 3
        assert issues[0].message == "Link reference [usage] has no definition"
        assert issues[0].code == "D001"

    def test_unused_definition(self, check):
        """[unused] is defined but never referenced."""
        issues = check(UnusedLinkDefinitionRule(), "README.md", README)
        assert [(i.line, i.message) for i in issues] == [
            (7, "Link definition [unused] is never used"),
        ]
        assert issues[0].severity.value == "hint"

    def test_shortcut_counts_as_use(self, check):
        """A lone [label] uses its definition."""
        source = "See [docs].\n\n[docs]: https://example.com\n"
        assert check(UnusedLinkDefinitionRule(), "README.md", source) == []

    def test_references_in_headings(self, check):
        """Changelog headings can use and be checked as references."""
        source = (
            "# Changelog\n"
            "\n"
            "## [1.2.0][v120]\n"
            "\n"
            "## [1.1.0] - 2019-01-01\n"
            "\n"
            "[1.1.0]: https://example.com/1.1.0\n"
        )
        issues = check(UndefinedLinkReferenceRule(), "CHANGELOG.md", source)
        assert [(i.line, i.message) for i in issues] == [
            (3, "Link reference [v120] has no definition"),
        ]
        assert check(UnusedLinkDefinitionRule(), "CHANGELOG.md", source) == []

    def test_indented_code_block_skipped(self, check):
        """Ruby in an indented code block is not a link reference."""
        source = "# App\n\nExample:\n\n    node['apache']['port'] = 80\n"
        assert check(UndefinedLinkReferenceRule(), "README.md", source) == []

    def test_only_markdown(self, check):
        """Ruby files are not documentation."""
        assert check(UndefinedLinkReferenceRule(), "recipes/default.rb", "x = a[b][c]\n") == []


class TestValidateFence:
    """Per-language validation of fence bodies."""

    def test_valid_bodies(self):
        """Valid examples pass."""
        assert validate_fence(fence("json", '{"a": [1, 2]}')) is None
        assert validate_fence(fence("yml", "a: 1\n---\nb: 2")) is None
        assert validate_fence(fence("py", "def f():\n    return 1")) is None
        assert validate_fence(fence("rb", "node['a'].each do |k|\n  puts k\nend")) is None

    def test_unchecked_language(self):
        """Unknown languages are not validated."""
        assert validate_fence(fence("sh", "if then ((")) is None
        assert validate_fence(fence("", "{")) is None

    def test_empty_body(self):
        """Empty fences are fine."""
        assert validate_fence(fence("json", "  \n")) is None

    def test_json_error_line(self):
        """JSON errors carry the body line."""
        message, line = validate_fence(fence("json", '{\n  "a": 1,\n}'))
        assert message.startswith("Invalid JSON:")
        assert line == 3

    def test_python_null_byte(self):
        """A NUL byte is an invalid Python body, not a crash."""
        message, line = validate_fence(fence("python", "x = 1\0"))
        assert message.startswith("Invalid Python:")
        assert line == 1

    def test_ruby_lexer_error(self):
        """Unterminated Ruby strings are reported."""
        message, line = validate_fence(fence("ruby", "x = 1\ny = 'oops"))
        assert message == "Invalid Ruby: Unterminated string"
        assert line == 2


class TestInvalidCodeFence:
    """D002 invalid-code-fence."""

    def test_fences(self, check):
        """Each invalid block is reported at the failing line."""
        issues = check(InvalidCodeFenceRule(), "README.md", FENCES)
        assert len(issues) == 4
        json_issue, yaml_issue, python_issue, ruby_issue = issues
        assert json_issue.line == 4
        assert json_issue.message.startswith("Invalid JSON:")
        assert json_issue.message.endswith("(in json block starting at line 3)")
        assert yaml_issue.message.startswith("Invalid YAML:")
        assert 8 <= yaml_issue.line <= 9
        assert python_issue.line == 12
        assert python_issue.message.startswith("Invalid Python:")
        assert ruby_issue.line == 16
        assert ruby_issue.message.startswith("Invalid Ruby: Unclosed 'if'")

    def test_unclosed_fence(self, check):
        """A fence that never closes is reported at its opening line."""
        issues = check(InvalidCodeFenceRule(), "README.md", "# A\n\n```json\n{}\n")
        assert [(i.line, i.message) for i in issues] == [(3, "Code fence is never closed")]


class TestVersionMismatch:
    """D003 version-mismatch."""

    CHANGELOG = "# Changelog\n\n## Unreleased\n\n## 1.2.0 (2024-01-01)\n\n- thing\n\n## 1.1.0\n"

    def run_rule(self, make_source, tmp_path, files):
        loaded = []
        for relpath, text in files.items():
            src = make_source(relpath, text)
            loaded.append((src, build_index(src)))
        return VersionMismatchRule().check_project(LintConfig(root=tmp_path), loaded)

    def test_badge_mismatch(self, make_source, tmp_path):
        """A stale badge is reported against the changelog."""
        issues = self.run_rule(make_source, tmp_path, {
            "CHANGELOG.md": self.CHANGELOG,
            "README.md": "# App\n![Version](https://img.shields.io/badge/version-1.1.0-blue.svg)\n",
            "metadata.rb": "name 'app'\nversion '1.2.0'\n",
        })
        assert len(issues) == 1
        issue = issues[0]
        assert (issue.file, issue.line) == ("README.md", 2)
        assert issue.message == "Version 1.1.0 in README.md badge does not match 1.2.0 in CHANGELOG.md"
        assert issue.suggestion == "Update README.md badge to 1.2.0"

    def test_metadata_mismatch(self, make_source, tmp_path):
        """metadata.rb is compared too."""
        issues = self.run_rule(make_source, tmp_path, {
            "CHANGELOG.md": self.CHANGELOG,
            "metadata.rb": "name 'app'\nversion '1.3.0'\n",
        })
        assert [(i.file, i.line) for i in issues] == [("metadata.rb", 2)]

    def test_agreement(self, make_source, tmp_path):
        """Matching versions produce nothing."""
        issues = self.run_rule(make_source, tmp_path, {
            "CHANGELOG.md": self.CHANGELOG,
            "README.md": "![v](https://img.shields.io/badge/v-1.2.0-green)\n",
            "metadata.rb": "version '1.2.0'\n",
        })
        assert issues == []

    def test_unrelated_badges_ignored(self, make_source, tmp_path):
        """A badge for some other version (a Chef release) is not the cookbook's."""
        issues = self.run_rule(make_source, tmp_path, {
            "CHANGELOG.md": self.CHANGELOG,
            "README.md": "![chef](https://img.shields.io/badge/chef-12.5.1-orange.svg)\n",
        })
        assert issues == []

    def test_single_source(self, make_source, tmp_path):
        """One version source has nothing to disagree with."""
        assert self.run_rule(make_source, tmp_path, {"CHANGELOG.md": self.CHANGELOG}) == []

    def test_cookbooks_compared_separately(self, make_source, tmp_path):
        """Each directory is its own cookbook."""
        issues = self.run_rule(make_source, tmp_path, {
            "a/CHANGELOG.md": "## 1.0.0\n",
            "a/metadata.rb": "version '1.0.0'\n",
            "b/CHANGELOG.md": "## 2.0.0\n",
            "b/metadata.rb": "version '2.0.1'\n",
        })
        assert [(i.file, i.line) for i in issues] == [("b/metadata.rb", 1)]
