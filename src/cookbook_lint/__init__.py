"""
cookbook-lint - Style checker for Chef cookbooks

Checks recipes, attributes, templates, dependency files and cookbook
documentation against the cookbook style guide.
"""

__version__ = "0.1.0"
__author__ = "cookbook-lint contributors"

from cookbook_lint.config import ConfigError, LintConfig, load_config
from cookbook_lint.lexer import LexerError, Token, TokenType, tokenize_source
from cookbook_lint.reporting import LintIssue, Reporter, Severity
from cookbook_lint.runner import lint_paths, run

__all__ = [
    "__version__",
    "ConfigError",
    "LintConfig",
    "load_config",
    "LexerError",
    "Token",
    "TokenType",
    "tokenize_source",
    "LintIssue",
    "Reporter",
    "Severity",
    "lint_paths",
    "run",
]
