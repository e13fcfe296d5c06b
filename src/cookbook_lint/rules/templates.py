"""
Template rules.

- W003 template-logic: ERB tags that branch or loop
"""

from __future__ import annotations

from typing import List, Optional

from ..analysis import FileIndex
from ..config import LintConfig
from ..erb import TagKind
from ..lexer import Token, TokenType
from ..patterns import TEMPLATE_CONTROL_KEYWORDS, TEMPLATE_ITERATION_METHODS
from ..reporting import LintIssue, Severity
from ..scanner import FileKind, SourceFile
from .base import FileRule

_SNIPPET_WIDTH = 60


def find_logic(tokens: List[Token]) -> Optional[str]:
    """Describe the first piece of control flow in a tag's tokens, or None."""
    for i, tok in enumerate(tokens):
        prev = tokens[i - 1] if i > 0 else None
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        after_dot = prev is not None and prev.type in (TokenType.DOT, TokenType.SCOPE)

        if tok.type == TokenType.IDENTIFIER and not after_dot:
            is_label = (nxt is not None and nxt.type == TokenType.COLON
                        and nxt.column == tok.end_column)
            if tok.value in TEMPLATE_CONTROL_KEYWORDS and not is_label:
                return f"conditional logic ('{tok.value}')"
        if (tok.type == TokenType.IDENTIFIER and after_dot
                and prev.type == TokenType.DOT
                and tok.value in TEMPLATE_ITERATION_METHODS):
            return f"iteration ('.{tok.value}')"
        if tok.type == TokenType.QUESTION:
            return "a ternary operator"
    return None


class TemplateLogicRule(FileRule):
    """Templates render values; decisions belong in the recipe."""

    code = "W003"
    name = "template-logic"
    severity = Severity.WARNING
    description = "Templates must not contain conditional logic or loops"
    kinds = frozenset({FileKind.TEMPLATE})

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        issues = []
        for tag, tokens in idx.tag_tokens:
            found = find_logic(tokens)
            if found is None:
                continue
            code = " ".join(tag.code.split())
            if len(code) > _SNIPPET_WIDTH:
                code = code[:_SNIPPET_WIDTH - 3] + "..."
            marker = "<%=" if tag.kind == TagKind.OUTPUT else "<%"
            issues.append(self.issue(
                src, tag.line,
                f"Template {tag.kind.value} tag contains {found}",
                column=tag.column,
                context=f"{marker} {code} %>",
                suggestion="Compute the value in the recipe and pass it through `variables`",
            ))
        return issues
