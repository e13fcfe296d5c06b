"""
ERB Template Splitter

Splits Chef templates (.erb) into literal text and embedded-Ruby tags:

    <%  code   %>     code tag
    <%= expr   %>     output tag
    <%# note   %>     comment tag
    <%- code  -%>     whitespace-trimming variants
    <%%               literal "<%"

Tag bodies keep their file positions so the Ruby lexer can report
locations relative to the template.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from .lexer import LexerError


class TagKind(Enum):
    CODE = "code"
    OUTPUT = "output"
    COMMENT = "comment"


@dataclass(frozen=True)
class ErbTag:
    """One embedded-Ruby tag."""
    kind: TagKind
    code: str
    line: int           # line of the opening "<%"
    column: int         # column of the opening "<%"
    code_line: int      # position where `code` starts
    code_column: int
    end_line: int

    @property
    def is_ruby(self) -> bool:
        return self.kind != TagKind.COMMENT


def _position(text: str, offset: int, line_starts: List[int]) -> tuple[int, int]:
    """Map a character offset to a 1-based (line, column)."""
    lo, hi = 0, len(line_starts) - 1
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if line_starts[mid] <= offset:
            lo = mid
        else:
            hi = mid - 1
    return lo + 1, offset - line_starts[lo] + 1


def split_template(text: str) -> List[ErbTag]:
    """
    Find every ERB tag in a template.

    Raises LexerError for a tag that is never closed.
    """
    line_starts = [0]
    for i, ch in enumerate(text):
        if ch == '\n':
            line_starts.append(i + 1)

    tags: List[ErbTag] = []
    pos = 0
    while True:
        start = text.find('<%', pos)
        if start == -1:
            break
        if text.startswith('<%%', start):
            pos = start + 3
            continue

        body = start + 2
        kind = TagKind.CODE
        if text.startswith('=', body):
            kind = TagKind.OUTPUT
            body += 1
        elif text.startswith('#', body):
            kind = TagKind.COMMENT
            body += 1
        elif text.startswith('-', body):
            body += 1
            if text.startswith('=', body):
                kind = TagKind.OUTPUT
                body += 1

        end = text.find('%>', body)
        if end == -1:
            line, column = _position(text, start, line_starts)
            raise LexerError("Unterminated ERB tag", line, column)
        code_end = end - 1 if text[end - 1:end] == '-' and end - 1 >= body else end

        line, column = _position(text, start, line_starts)
        code_line, code_column = _position(text, body, line_starts)
        end_line, _ = _position(text, end, line_starts)
        tags.append(ErbTag(
            kind=kind,
            code=text[body:code_end],
            line=line,
            column=column,
            code_line=code_line,
            code_column=code_column,
            end_line=end_line,
        ))
        pos = end + 2

    return tags
