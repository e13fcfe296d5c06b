"""
cookbook-lint: Source analysis and file indexing.

Handles:
- Ruby tokenization of cookbook files and ERB tag bodies
- Markdown parsing
- Inline suppression comments
- Node attribute chain extraction
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .erb import ErbTag, TagKind, split_template
from .lexer import Lexer, Token, TokenType
from .markdown import MarkdownDocument, parse_markdown
from .patterns import (
    ATTRIBUTE_FILE_ROOTS,
    NODE_API,
    NODE_ROOT,
    NON_ATTRIBUTE_SUBSCRIPTS,
    PRECEDENCE_LEVELS,
    SUPPRESS_ALL,
    SUPPRESSION_DIRECTIVE,
    SUPPRESSION_TAG,
)
from .scanner import FileKind, SourceFile

_HTML_COMMENT = re.compile(r"<!--(.*?)-->")
_RULE_REF = re.compile(r"^[A-Za-z0-9_-]*[A-Za-z0-9]$")


@dataclass
class Subscript:
    """One [key] step of an attribute chain."""
    open: Token
    close: Token
    key: list[Token]

    @property
    def single_key(self) -> Optional[Token]:
        return self.key[0] if len(self.key) == 1 else None


@dataclass
class AttributeChain:
    """A node attribute read such as node.default['apache']['port']."""
    root: Token
    precedence: Optional[Token] = None
    methods: list[Token] = field(default_factory=list)
    subscripts: list[Subscript] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.methods) + len(self.subscripts)

    @property
    def line(self) -> int:
        return self.root.line

    def prefix(self) -> str:
        text = self.root.value
        if self.precedence is not None:
            text += "." + self.precedence.value
        return text


@dataclass
class FileIndex:
    """Everything the rules need to know about one file."""
    tokens: list[Token] = field(default_factory=list)     # code tokens incl. NEWLINE
    comments: list[Token] = field(default_factory=list)
    tags: list[ErbTag] = field(default_factory=list)
    tag_tokens: list[tuple[ErbTag, list[Token]]] = field(default_factory=list)
    markdown: Optional[MarkdownDocument] = None
    chains: list[AttributeChain] = field(default_factory=list)
    line_suppressions: dict[int, set[str]] = field(default_factory=dict)
    file_suppressions: set[str] = field(default_factory=set)

    def is_suppressed(self, line: int, code: str, name: str) -> bool:
        keys = {code.lower(), name.lower(), SUPPRESS_ALL}
        if keys & self.file_suppressions:
            return True
        return bool(keys & self.line_suppressions.get(line, set()))


# =============================================================================
# Suppressions
# =============================================================================

def _record_suppressions(idx: FileIndex, text: str, line: int) -> None:
    if SUPPRESSION_TAG not in text:
        return
    for m in SUPPRESSION_DIRECTIVE.finditer(text):
        refs = {r.lower() for r in re.split(r"[,\s]+", m.group("rules")) if _RULE_REF.match(r)}
        if m.group("scope") == "disable-file":
            idx.file_suppressions |= refs
        else:
            idx.line_suppressions.setdefault(line, set()).update(refs)


# =============================================================================
# Tokenization
# =============================================================================

def _lex(text: str, filename: str, line: int = 1, column: int = 1) -> tuple[list[Token], list[Token]]:
    """Split a Ruby fragment into (code tokens, comment tokens)."""
    code: list[Token] = []
    comments: list[Token] = []
    lexer = Lexer(text, filename=filename, line=line, column=column)
    for tok in lexer.tokenize(include_comments=True, include_newlines=True):
        if tok.type == TokenType.COMMENT:
            comments.append(tok)
        elif tok.type != TokenType.EOF:
            code.append(tok)
    return code, comments


def build_index(src: SourceFile) -> FileIndex:
    """
    Build the index for one source file.

    Raises LexerError when Ruby code (or an ERB tag) cannot be tokenized.
    """
    idx = FileIndex()
    filename = src.display_path

    if src.kind.is_ruby:
        idx.tokens, idx.comments = _lex(src.text, filename)
    elif src.kind == FileKind.TEMPLATE:
        idx.tags = split_template(src.text)
        for tag in idx.tags:
            if tag.kind == TagKind.COMMENT:
                _record_suppressions(idx, tag.code, tag.line)
                continue
            code, comments = _lex(tag.code, filename, tag.code_line, tag.code_column)
            idx.tag_tokens.append((tag, code))
            idx.comments.extend(comments)
            # Tags are separate statements
            idx.tokens.extend(code)
            idx.tokens.append(Token(TokenType.NEWLINE, "\n", tag.end_line, 0))
    elif src.kind == FileKind.MARKDOWN:
        idx.markdown = parse_markdown(src.text)
        for line_no, line in enumerate(src.lines, start=1):
            for m in _HTML_COMMENT.finditer(line):
                _record_suppressions(idx, m.group(1), line_no)

    for comment in idx.comments:
        _record_suppressions(idx, comment.value, comment.line)

    if idx.tokens:
        roots = ATTRIBUTE_FILE_ROOTS if src.kind == FileKind.ATTRIBUTES else frozenset()
        idx.chains = find_attribute_chains(idx.tokens, roots)

    return idx


# =============================================================================
# Attribute chains
# =============================================================================

def _matching_bracket(tokens: list[Token], start: int) -> Optional[int]:
    """Index of the RBRACKET closing tokens[start], or None."""
    depth = 0
    for j in range(start, len(tokens)):
        t = tokens[j].type
        if t == TokenType.LBRACKET:
            depth += 1
        elif t == TokenType.RBRACKET:
            depth -= 1
            if depth == 0:
                return j
    return None


def _is_root(tokens: list[Token], i: int, bare_roots: frozenset[str]) -> bool:
    tok = tokens[i]
    if tok.type != TokenType.IDENTIFIER:
        return False
    prev = tokens[i - 1] if i > 0 else None
    if prev is not None and prev.type in (TokenType.DOT, TokenType.SCOPE):
        return False
    nxt = tokens[i + 1] if i + 1 < len(tokens) else None
    if nxt is None:
        return False
    if tok.value == NODE_ROOT:
        return nxt.type in (TokenType.LBRACKET, TokenType.DOT)
    if tok.value in bare_roots:
        # `default['x']` and `default.x`, but not `default ['x']` (a call with an array argument)
        return nxt.type in (TokenType.LBRACKET, TokenType.DOT) and nxt.column == tok.end_column
    return False


def _walk_chain(tokens: list[Token], i: int) -> tuple[Optional[AttributeChain], int]:
    """Follow .method and [key] steps from the root at tokens[i]."""
    chain = AttributeChain(root=tokens[i])
    j = i + 1
    n = len(tokens)
    while j < n:
        tok = tokens[j]
        if tok.type == TokenType.DOT and j + 1 < n and tokens[j + 1].type == TokenType.IDENTIFIER:
            name = tokens[j + 1]
            after = tokens[j + 2] if j + 2 < n else None
            if chain.subscripts:
                break
            if name.value in NON_ATTRIBUTE_SUBSCRIPTS and not chain.methods:
                return None, j
            if (name.value in PRECEDENCE_LEVELS and chain.precedence is None
                    and not chain.methods and chain.root.value == NODE_ROOT):
                chain.precedence = name
                j += 2
                continue
            if name.value in NODE_API or name.value.endswith(("?", "!")):
                break
            if after is not None and after.type == TokenType.LPAREN and after.column == name.end_column:
                break
            chain.methods.append(name)
            j += 2
            continue
        if tok.type == TokenType.LBRACKET:
            close = _matching_bracket(tokens, j)
            if close is None:
                break
            chain.subscripts.append(Subscript(open=tok, close=tokens[close], key=tokens[j + 1:close]))
            j = close + 1
            continue
        break
    if chain.depth == 0:
        return None, j
    return chain, j


def find_attribute_chains(tokens: list[Token], bare_roots: frozenset[str] = frozenset()) -> list[AttributeChain]:
    """Find every node attribute chain in a token stream."""
    chains: list[AttributeChain] = []
    for i in range(len(tokens)):
        if not _is_root(tokens, i, bare_roots):
            continue
        chain, _ = _walk_chain(tokens, i)
        if chain is not None:
            chains.append(chain)
    return chains
