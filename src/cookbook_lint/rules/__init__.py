"""
cookbook_lint.rules - Rule registry

Every rule has a stable code (W001) and a slug (one-dependency-per-line).
Configuration and inline suppressions accept either.
"""

from __future__ import annotations

from typing import List, Optional

from ..config import ConfigError, LintConfig
from ..reporting import Severity
from .base import FileRule, LintRule, ProjectRule
from .cookbook import (
    DoubleQuotedAttributeKeyRule,
    HyphenatedCookbookNameRule,
    LongAttributeChainRule,
    MethodAttributeAccessRule,
    OneDependencyPerLineRule,
    SymbolAttributeKeyRule,
)
from .docs import (
    InvalidCodeFenceRule,
    UndefinedLinkReferenceRule,
    UnusedLinkDefinitionRule,
    VersionMismatchRule,
)
from .templates import TemplateLogicRule


class UnreadableFileRule(LintRule):
    """Reported by the runner when a file cannot be decoded or tokenized."""

    code = "E000"
    name = "unreadable-file"
    severity = Severity.ERROR
    description = "Files must be readable UTF-8 and tokenize cleanly"


def all_rules() -> List[LintRule]:
    """Fresh instances of every rule, in reporting order."""
    return [
        UnreadableFileRule(),
        OneDependencyPerLineRule(),
        HyphenatedCookbookNameRule(),
        TemplateLogicRule(),
        MethodAttributeAccessRule(),
        SymbolAttributeKeyRule(),
        DoubleQuotedAttributeKeyRule(),
        LongAttributeChainRule(),
        UndefinedLinkReferenceRule(),
        InvalidCodeFenceRule(),
        VersionMismatchRule(),
        UnusedLinkDefinitionRule(),
    ]


def find_rule(ref: str, rules: Optional[List[LintRule]] = None) -> Optional[LintRule]:
    """Look a rule up by code or slug (case-insensitive)."""
    ref = ref.strip().lower()
    for rule in rules if rules is not None else all_rules():
        if ref in (rule.code.lower(), rule.name):
            return rule
    return None


def select_rules(cfg: LintConfig) -> List[LintRule]:
    """
    The rules a run should apply, with severity overrides set.

    Raises ConfigError for any rule reference that matches no rule.
    """
    rules = all_rules()

    def resolve(ref: str, setting: str) -> LintRule:
        rule = find_rule(ref, rules)
        if rule is None:
            raise ConfigError(f"Unknown rule '{ref}' in {setting}")
        return rule

    enabled = {resolve(r, "enabled_rules").code for r in cfg.enabled_rules}
    disabled = {resolve(r, "disabled_rules").code for r in cfg.disabled_rules}
    for ref, severity in cfg.severity_overrides.items():
        resolve(ref, "severity_overrides").severity = severity

    selected = []
    for rule in rules:
        if enabled and rule.code not in enabled:
            continue
        if rule.code in disabled:
            continue
        selected.append(rule)
    return selected


__all__ = [
    "LintRule",
    "FileRule",
    "ProjectRule",
    "UnreadableFileRule",
    "OneDependencyPerLineRule",
    "HyphenatedCookbookNameRule",
    "TemplateLogicRule",
    "MethodAttributeAccessRule",
    "SymbolAttributeKeyRule",
    "DoubleQuotedAttributeKeyRule",
    "LongAttributeChainRule",
    "UndefinedLinkReferenceRule",
    "InvalidCodeFenceRule",
    "VersionMismatchRule",
    "UnusedLinkDefinitionRule",
    "all_rules",
    "find_rule",
    "select_rules",
]
