"""
Cookbook source rules.

- W001 one-dependency-per-line
- W002 hyphenated-cookbook-name
- W004 method-attribute-access
- I001 symbol-attribute-key
- I002 double-quoted-attribute-key
- I003 long-attribute-chain
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterator, List, Optional

from ..analysis import FileIndex
from ..config import LintConfig
from ..lexer import Token, TokenType
from ..patterns import (
    DEPENDENCY_FILE_KEYWORDS,
    METADATA_DEPENDENCY_KEYWORDS,
    RECIPE_REFERENCE_CALLS,
    RUN_LIST_RECIPE,
)
from ..reporting import LintIssue, Severity
from ..scanner import RUBY_KINDS, FileKind, SourceFile, get_line
from .base import FileRule

# Tokens after an identifier that mean it is not being called with arguments
_NOT_A_CALL = frozenset({
    TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.RBRACE, TokenType.RPAREN,
    TokenType.RBRACKET, TokenType.DOT, TokenType.COMMA, TokenType.COLON,
    TokenType.SCOPE, TokenType.QUESTION,
})

ATTRIBUTE_KINDS = RUBY_KINDS | {FileKind.TEMPLATE}


def _at_statement_start(tokens: List[Token], i: int) -> bool:
    if i == 0:
        return True
    return tokens[i - 1].type in (TokenType.NEWLINE, TokenType.SEMICOLON)


def find_calls(tokens: List[Token], names: frozenset[str]) -> Iterator[int]:
    """Yield indexes of `name args...` / `name(args)` calls to any of `names`."""
    for i, tok in enumerate(tokens):
        if tok.type != TokenType.IDENTIFIER or tok.value not in names:
            continue
        prev = tokens[i - 1] if i > 0 else None
        if prev is not None and prev.type in (TokenType.DOT, TokenType.SCOPE):
            continue
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if nxt is None or nxt.type in _NOT_A_CALL:
            continue
        if nxt.type == TokenType.OPERATOR and nxt.value not in ("*", "**"):
            continue
        yield i


def first_argument(tokens: List[Token], i: int) -> Optional[Token]:
    """First token of the first argument of the call at tokens[i]."""
    j = i + 1
    if j < len(tokens) and tokens[j].type == TokenType.LPAREN:
        j += 1
    if j >= len(tokens):
        return None
    return tokens[j]


def _describe(arg: Optional[Token]) -> str:
    if arg is None or arg.type in (TokenType.NEWLINE, TokenType.RPAREN):
        return "no cookbook name"
    if arg.type == TokenType.WORDS:
        return f"a word list (%w({arg.value.strip()}))"
    if arg.type == TokenType.IDENTIFIER:
        return f"the variable '{arg.value}'"
    if arg.type == TokenType.OPERATOR and arg.value.startswith("*"):
        return "a splat"
    if arg.type == TokenType.LBRACKET:
        return "an array"
    if arg.type == TokenType.STRING and arg.interpolated:
        return "an interpolated string"
    return "an expression"


# =============================================================================
# W001: one dependency per line
# =============================================================================

class OneDependencyPerLineRule(FileRule):
    """Each dependency gets its own literal declaration on its own line."""

    code = "W001"
    name = "one-dependency-per-line"
    severity = Severity.WARNING
    description = "Dependency declarations must be one per line, with a literal cookbook name"
    kinds = frozenset({FileKind.METADATA, FileKind.DEPENDENCIES})

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        keywords = (METADATA_DEPENDENCY_KEYWORDS if src.kind == FileKind.METADATA
                    else DEPENDENCY_FILE_KEYWORDS)
        tokens = idx.tokens
        issues = []
        by_line: Dict[int, List[Token]] = defaultdict(list)

        for i in find_calls(tokens, keywords):
            call = tokens[i]
            by_line[call.line].append(call)

            arg = first_argument(tokens, i)
            if arg is None or arg.type != TokenType.STRING or arg.interpolated:
                issues.append(self.issue(
                    src, call.line,
                    f"'{call.value}' is given {_describe(arg)} instead of a literal cookbook name",
                    column=call.column,
                    suggestion=f"Declare each dependency literally on its own line: {call.value} 'name'",
                ))

        for line, calls in sorted(by_line.items()):
            if len(calls) > 1:
                issues.append(self.issue(
                    src, line,
                    f"{len(calls)} dependencies declared on one line",
                    column=calls[1].column,
                    suggestion=f"Put each '{calls[0].value}' statement on a separate line",
                ))
        return issues


# =============================================================================
# W002: hyphenated cookbook names
# =============================================================================

class HyphenatedCookbookNameRule(FileRule):
    """Cookbook names use underscores, never hyphens."""

    code = "W002"
    name = "hyphenated-cookbook-name"
    severity = Severity.WARNING
    description = "Cookbook names must use underscores instead of hyphens"
    kinds = RUBY_KINDS

    def _report(self, src: SourceFile, tok: Token, cookbook: str) -> LintIssue:
        return self.issue(
            src, tok.line,
            f"Cookbook name '{cookbook}' contains a hyphen",
            column=tok.column,
            suggestion=f"Use underscores: '{cookbook.replace('-', '_')}'",
        )

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        tokens = idx.tokens
        issues = []
        seen = set()

        def named(i: int, split_recipe: bool = False) -> None:
            arg = first_argument(tokens, i)
            if arg is None or arg.type != TokenType.STRING or arg.interpolated:
                return
            seen.add(id(arg))
            cookbook = arg.value.split("::")[0] if split_recipe else arg.value
            if "-" in cookbook:
                issues.append(self._report(src, arg, cookbook))

        if src.kind == FileKind.METADATA:
            for i in find_calls(tokens, frozenset({"name"})):
                if _at_statement_start(tokens, i):
                    named(i)
            for i in find_calls(tokens, METADATA_DEPENDENCY_KEYWORDS):
                named(i)
        elif src.kind == FileKind.DEPENDENCIES:
            for i in find_calls(tokens, DEPENDENCY_FILE_KEYWORDS):
                named(i)

        for i in find_calls(tokens, RECIPE_REFERENCE_CALLS):
            named(i, split_recipe=True)

        for tok in tokens:
            if tok.type not in (TokenType.STRING, TokenType.WORDS) or id(tok) in seen:
                continue
            for m in RUN_LIST_RECIPE.finditer(tok.value):
                if "-" in m.group(1):
                    issues.append(self._report(src, tok, m.group(1)))

        return issues


# =============================================================================
# Attribute access rules
# =============================================================================

class MethodAttributeAccessRule(FileRule):
    """node.foo.bar reads attributes through method_missing."""

    code = "W004"
    name = "method-attribute-access"
    severity = Severity.WARNING
    description = "Node attributes must be read with brackets, not method calls"
    kinds = ATTRIBUTE_KINDS

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        issues = []
        for chain in idx.chains:
            if not chain.methods:
                continue
            first = chain.methods[0]
            dotted = ".".join(m.value for m in chain.methods)
            brackets = "".join(f"['{m.value}']" for m in chain.methods)
            issues.append(self.issue(
                src, first.line,
                f"Attribute '{dotted}' read with method syntax",
                column=first.column,
                suggestion=f"Use {chain.prefix()}{brackets}",
            ))
        return issues


class SymbolAttributeKeyRule(FileRule):
    """node[:foo] should be node['foo']."""

    code = "I001"
    name = "symbol-attribute-key"
    severity = Severity.INFO
    description = "Attribute keys must be strings, not symbols"
    kinds = ATTRIBUTE_KINDS

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        issues = []
        for chain in idx.chains:
            for sub in chain.subscripts:
                key = sub.single_key
                if key is None or key.type != TokenType.SYMBOL or key.interpolated:
                    continue
                issues.append(self.issue(
                    src, key.line,
                    f"Symbol key ':{key.value}' in attribute access",
                    column=key.column,
                    suggestion=f"Use a string key: ['{key.value}']",
                ))
        return issues


class DoubleQuotedAttributeKeyRule(FileRule):
    """node["foo"] should be node['foo'] unless the key interpolates."""

    code = "I002"
    name = "double-quoted-attribute-key"
    severity = Severity.INFO
    description = "Attribute keys without interpolation use single quotes"
    kinds = ATTRIBUTE_KINDS

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        issues = []
        for chain in idx.chains:
            for sub in chain.subscripts:
                key = sub.single_key
                if (key is None or key.type != TokenType.STRING or key.quote != '"'
                        or key.interpolated or "'" in key.value or "\\" in key.value):
                    continue
                issues.append(self.issue(
                    src, key.line,
                    f'Double-quoted key "{key.value}" in attribute access',
                    column=key.column,
                    suggestion=f"Use single quotes: ['{key.value}']",
                ))
        return issues


class LongAttributeChainRule(FileRule):
    """Over-long lines holding a deep attribute chain."""

    code = "I003"
    name = "long-attribute-chain"
    severity = Severity.INFO
    description = "Lines with long attribute chains must stay within the line length limit"
    kinds = ATTRIBUTE_KINDS

    def check(self, cfg: LintConfig, src: SourceFile, idx: FileIndex) -> List[LintIssue]:
        deepest: Dict[int, int] = {}
        for chain in idx.chains:
            if chain.depth >= cfg.min_chain_depth:
                deepest[chain.line] = max(deepest.get(chain.line, 0), chain.depth)

        issues = []
        for line_no, depth in sorted(deepest.items()):
            length = len(get_line(src.lines, line_no).rstrip("\r"))
            if length <= cfg.max_line_length:
                continue
            issues.append(self.issue(
                src, line_no,
                f"Line is {length} characters long (limit {cfg.max_line_length}) "
                f"and holds a {depth}-key attribute chain",
                column=cfg.max_line_length + 1,
                suggestion="Assign the attribute chain to a local variable or split the line",
            ))
        return issues
