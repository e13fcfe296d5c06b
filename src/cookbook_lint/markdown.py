"""
Markdown Parser (documentation checks)

Parses README / CHANGELOG style Markdown into the pieces the documentation
rules need:

    # Heading              -> Heading
    ```json ... ```        -> CodeFence
    [text][label]          -> LinkReference
    [label]: https://...   -> LinkDefinition
    ![alt](url)            -> Image

Only structure is parsed, nothing is rendered. Text inside fences, indented
code blocks and inline code spans is never scanned for links.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class Heading:
    level: int
    text: str
    line: int


@dataclass
class CodeFence:
    """A fenced code block."""
    language: str
    info: str
    body: str
    line: int               # line of the opening fence
    end_line: int           # line of the closing fence (last line if unclosed)
    closed: bool = True

    @property
    def body_line(self) -> int:
        """Line number of the first body line."""
        return self.line + 1


@dataclass
class LinkReference:
    label: str
    line: int
    column: int


@dataclass
class LinkDefinition:
    label: str
    url: str
    line: int


@dataclass
class Image:
    alt: str
    url: str
    line: int
    column: int


@dataclass
class MarkdownDocument:
    """Parsed Markdown structure."""
    headings: List[Heading] = field(default_factory=list)
    fences: List[CodeFence] = field(default_factory=list)
    references: List[LinkReference] = field(default_factory=list)
    shortcuts: List[LinkReference] = field(default_factory=list)
    definitions: Dict[str, LinkDefinition] = field(default_factory=dict)
    images: List[Image] = field(default_factory=list)

    def resolve(self, label: str) -> Optional[LinkDefinition]:
        return self.definitions.get(normalize_label(label))


# Regex patterns
FENCE_OPEN = re.compile(r'^ {0,3}(`{3,}|~{3,})\s*([^`\s]*)(.*)$')
ATX_HEADING = re.compile(r'^ {0,3}(#{1,6})(?:\s+(.*?))?\s*#*\s*$')
SETEXT_UNDERLINE = re.compile(r'^ {0,3}(=+|-+)\s*$')
LINK_DEFINITION = re.compile(r'^ {0,3}\[([^\]]+)\]:\s*<?(\S*?)>?(?:\s+.*)?$')
INDENTED_CODE = re.compile(r'^(?: {4}|\t)')
INLINE_CODE = re.compile(r'(`+)(.+?)\1')
INLINE_IMAGE = re.compile(r'!\[([^\]]*)\]\(\s*<?([^)\s>]+)>?[^)]*\)')


def normalize_label(label: str) -> str:
    """Labels match case-insensitively with internal whitespace collapsed."""
    return ' '.join(label.split()).casefold()


def _mask_code_spans(line: str) -> str:
    """Blank out inline code spans, keeping column positions."""
    return INLINE_CODE.sub(lambda m: ' ' * len(m.group(0)), line)


def _scan_references(line: str) -> List[tuple]:
    """
    Find bracketed references on one line.

    Returns (label, column, is_image, text, is_shortcut) tuples. Full
    ([text][label]) and collapsed ([label][]) forms have is_shortcut False;
    a lone [label] not followed by "(" or ":" has is_shortcut True.
    """
    found = []
    stack: List[int] = []
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '[':
            stack.append(i)
        elif ch == ']' and stack:
            open_pos = stack.pop()
            text = line[open_pos + 1:i]
            is_image = open_pos > 0 and line[open_pos - 1] == '!'
            column = open_pos if is_image else open_pos + 1
            nxt = line[i + 1] if i + 1 < n else ''
            if nxt == '[':
                close = line.find(']', i + 2)
                if close != -1 and '[' not in line[i + 2:close]:
                    label = line[i + 2:close] or text
                    found.append((label, column, is_image, text, False))
                    i = close + 1
                    continue
            elif nxt not in ('(', ':') and text.strip():
                found.append((text, column, is_image, text, True))
        i += 1
    return found


def _collect_links(doc: MarkdownDocument, line: str, line_no: int, pending_images: list) -> None:
    masked = _mask_code_spans(line)
    for label, column, is_image, alt, is_shortcut in _scan_references(masked):
        ref = LinkReference(label=label, line=line_no, column=column)
        if is_shortcut:
            doc.shortcuts.append(ref)
        else:
            doc.references.append(ref)
        if is_image:
            pending_images.append((alt, label, line_no, column))
    for im in INLINE_IMAGE.finditer(masked):
        doc.images.append(Image(alt=im.group(1), url=im.group(2), line=line_no,
                                column=im.start() + 1))


def parse_markdown(text: str) -> MarkdownDocument:
    """Parse Markdown text into a MarkdownDocument."""
    doc = MarkdownDocument()
    lines = text.splitlines()
    pending_images = []
    fence: Optional[CodeFence] = None
    fence_marker = ''
    fence_body: List[str] = []
    prev_text: Optional[str] = None
    in_indented_code = False

    for line_no, line in enumerate(lines, start=1):
        if fence is not None:
            stripped = line.strip()
            if (stripped and stripped[0] == fence_marker[0]
                    and set(stripped) == {fence_marker[0]}
                    and len(stripped) >= len(fence_marker)
                    and len(line) - len(line.lstrip(' ')) <= 3):
                fence.body = '\n'.join(fence_body)
                fence.end_line = line_no
                doc.fences.append(fence)
                fence = None
                fence_body = []
            else:
                fence_body.append(line)
            continue

        # Indented code cannot interrupt a paragraph; blank lines continue it
        if not line.strip():
            prev_text = None
            continue
        if INDENTED_CODE.match(line) and (prev_text is None or in_indented_code):
            in_indented_code = True
            prev_text = None
            continue
        in_indented_code = False

        m = FENCE_OPEN.match(line)
        if m and not (m.group(1)[0] == '`' and '`' in m.group(3)):
            fence_marker = m.group(1)
            info = (m.group(2) + m.group(3)).strip()
            fence = CodeFence(language=m.group(2).lower(), info=info, body='',
                              line=line_no, end_line=line_no)
            prev_text = None
            continue

        m = ATX_HEADING.match(line)
        if m:
            doc.headings.append(Heading(level=len(m.group(1)), text=(m.group(2) or '').strip(),
                                        line=line_no))
            _collect_links(doc, line, line_no, pending_images)
            prev_text = None
            continue

        m = SETEXT_UNDERLINE.match(line)
        if m and prev_text:
            level = 1 if m.group(1)[0] == '=' else 2
            doc.headings.append(Heading(level=level, text=prev_text.strip(), line=line_no - 1))
            prev_text = None
            continue

        m = LINK_DEFINITION.match(line)
        if m:
            label = normalize_label(m.group(1))
            if label and label not in doc.definitions:
                doc.definitions[label] = LinkDefinition(label=m.group(1), url=m.group(2),
                                                        line=line_no)
            prev_text = None
            continue

        _collect_links(doc, line, line_no, pending_images)
        prev_text = line if line.strip() else None

    if fence is not None:
        fence.body = '\n'.join(fence_body)
        fence.end_line = len(lines)
        fence.closed = False
        doc.fences.append(fence)

    # Reference-style images resolve once every definition has been seen
    for alt, label, line_no, column in pending_images:
        target = doc.resolve(label)
        if target is not None:
            doc.images.append(Image(alt=alt, url=target.url, line=line_no, column=column))

    doc.images.sort(key=lambda im: (im.line, im.column))
    return doc
