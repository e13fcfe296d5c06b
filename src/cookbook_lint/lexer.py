"""
Ruby Lexer (Tokenizer) for cookbook sources

Converts recipe, attribute, metadata and Berksfile text into a stream of tokens.
Handles: identifiers, symbols, strings (with interpolation), heredocs,
percent literals, regex literals, numbers, operators, comments.

The lexer does not evaluate Ruby. Its job is to separate code from strings and
comments so rules never match text inside a comment or a string literal.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple


class TokenType(Enum):
    """Types of tokens in cookbook Ruby."""
    IDENTIFIER = auto()      # node, depends, @var, $global, platform?
    SYMBOL = auto()          # :apache, :"quoted"
    STRING = auto()          # 'single' "double #{interp}" <<~EOS heredoc
    WORDS = auto()           # %w(a b) %i[a b]
    REGEX = auto()           # /pattern/ %r{pattern}
    NUMBER = auto()          # 42, 0.5, 1_000, 0x1f
    LPAREN = auto()          # (
    RPAREN = auto()          # )
    LBRACKET = auto()        # [
    RBRACKET = auto()        # ]
    LBRACE = auto()          # {
    RBRACE = auto()          # }
    DOT = auto()             # . or &.
    SCOPE = auto()           # ::
    COMMA = auto()           # ,
    SEMICOLON = auto()       # ;
    QUESTION = auto()        # ? (ternary)
    COLON = auto()           # : (ternary, hash label)
    OPERATOR = auto()        # = == => || && + - ...
    COMMENT = auto()         # # comment to end of line
    NEWLINE = auto()         # \n
    EOF = auto()             # End of file


# Keywords after which an expression (not an operator) is expected
VALUE_KEYWORDS = frozenset({
    "if", "unless", "elsif", "while", "until", "when", "and", "or", "not",
    "return", "then", "in", "case", "do", "else", "puts", "yield",
})

# Keywords that open a block closed by `end`
BLOCK_OPENERS = frozenset({"def", "class", "module", "begin", "case", "do"})
MODIFIER_OPENERS = frozenset({"if", "unless", "while", "until"})
LOOP_OPENERS = frozenset({"while", "until", "for"})

_PAIRS = {"(": ")", "[": "]", "{": "}", "<": ">"}

_OPERATORS = (
    "**=", "<=>", "===", "...", "<<=", ">>=", "&&=", "||=",
    "**", "==", "!=", ">=", "<=", "&&", "||", "<<", ">>", "=~", "!~",
    "=>", "->", "+=", "-=", "*=", "/=", "%=", "|=", "&=", "^=", "..",
    "=", "<", ">", "+", "-", "*", "/", "%", "!", "&", "|", "^", "~",
)


@dataclass
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: str
    line: int
    column: int
    quote: str = ""             # Opening quote for STRING tokens
    interpolated: bool = False  # True when a double-quoted string holds #{...}

    @property
    def end_column(self) -> int:
        return self.column + len(self.value)

    def __repr__(self):
        if self.type == TokenType.NEWLINE:
            return f"Token({self.type.name}, '\\n', L{self.line}:{self.column})"
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.column})"


class LexerError(Exception):
    """Error during lexical analysis."""
    def __init__(self, message: str, line: int, column: int):
        self.reason = message
        self.line = line
        self.column = column
        super().__init__(f"Lexer error at line {line}, column {column}: {message}")


class Lexer:
    """
    Tokenizer for Ruby cookbook files.

    Usage:
        lexer = Lexer(source_text)
        tokens = list(lexer.tokenize())

    Line and column offsets let callers lex a fragment (an ERB tag body)
    and still get positions relative to the enclosing file.
    """

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        return ch == '_' or ch.isalpha()

    @staticmethod
    def _is_ident_cont(ch: str) -> bool:
        return ch == '_' or ch.isalnum()

    def __init__(self, source: str, filename: str = "<unknown>",
                 line: int = 1, column: int = 1):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = line
        self.column = column
        self.length = len(source)
        self._prev: Optional[Token] = None
        self._space_before = False
        self._heredoc_resume: Optional[int] = None
        self._heredoc_lines = 0

    def _current(self) -> Optional[str]:
        """Get current character or None if at end."""
        if self.pos >= self.length:
            return None
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Peek ahead by offset characters."""
        pos = self.pos + offset
        if pos >= self.length:
            return None
        return self.source[pos]

    def _advance(self) -> Optional[str]:
        """Advance one character and return it."""
        ch = self._current()
        if ch is not None:
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        """Skip spaces, tabs and backslash line continuations (but not newlines)."""
        while True:
            ch = self._current()
            if ch in (' ', '\t', '\r'):
                self._advance()
            elif ch == '\\' and self._peek() == '\n':
                self._advance()
                self._advance()
            else:
                break

    def _at_line_start(self) -> bool:
        return self.pos == 0 or self.source[self.pos - 1] == '\n'

    def _value_expected(self) -> bool:
        """True when the next token starts an expression rather than an operator."""
        prev = self._prev
        if prev is None:
            return True
        if prev.type in (TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.COMMA,
                         TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE,
                         TokenType.OPERATOR, TokenType.QUESTION, TokenType.COLON):
            return True
        if prev.type == TokenType.IDENTIFIER and prev.value in VALUE_KEYWORDS:
            return True
        return False

    def _command_argument(self) -> bool:
        """`depends %w(a b)` style: identifier, whitespace, then a literal with no space."""
        if self._prev is None or self._prev.type != TokenType.IDENTIFIER:
            return False
        nxt = self._peek()
        return self._space_before and nxt is not None and nxt not in (' ', '\t', '=')

    def _read_delimited(self, close: str, open_: Optional[str], start_line: int,
                        start_col: int, what: str, interpolate: bool) -> Tuple[str, bool]:
        """Read up to the closing delimiter, honoring nesting, escapes and #{...}."""
        result = []
        depth = 0
        interpolated = False
        while True:
            ch = self._current()
            if ch is None:
                raise LexerError(f"Unterminated {what}", start_line, start_col)
            if ch == '\\':
                result.append(self._advance())
                nxt = self._advance()
                if nxt is not None:
                    result.append(nxt)
                continue
            if interpolate and ch == '#' and self._peek() == '{':
                interpolated = True
                result.append(self._read_interpolation(start_line, start_col))
                continue
            if open_ is not None and ch == open_:
                depth += 1
            elif ch == close:
                if depth == 0:
                    self._advance()
                    break
                depth -= 1
            result.append(ch)
            self._advance()
        return ''.join(result), interpolated

    def _read_interpolation(self, start_line: int, start_col: int) -> str:
        """Read a #{...} segment verbatim, skipping over nested strings."""
        result = [self._advance(), self._advance()]  # '#{'
        depth = 1
        while depth:
            ch = self._current()
            if ch is None:
                raise LexerError("Unterminated interpolation", start_line, start_col)
            if ch in ('"', "'"):
                self._advance()
                inner, _ = self._read_delimited(ch, None, self.line, self.column,
                                                "string", interpolate=ch == '"')
                result.append(ch + inner + ch)
                continue
            if ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
            result.append(ch)
            self._advance()
        return ''.join(result)

    def _read_string(self, quote_char: str) -> Token:
        start_line, start_col = self.line, self.column
        self._advance()
        value, interpolated = self._read_delimited(
            quote_char, None, start_line, start_col, "string",
            interpolate=quote_char in ('"', '`'),
        )
        return Token(TokenType.STRING, value, start_line, start_col,
                     quote=quote_char, interpolated=interpolated)

    def _read_identifier(self) -> str:
        result = []
        while True:
            ch = self._current()
            if ch is None or not self._is_ident_cont(ch):
                break
            result.append(ch)
            self._advance()
        # Predicate and bang methods: platform?, save!  (but not a != b)
        ch = self._current()
        if ch in ('?', '!') and self._peek() != '=' and result:
            nxt = self._peek()
            if ch == '!' or nxt is None or not self._is_ident_cont(nxt):
                result.append(ch)
                self._advance()
        return ''.join(result)

    def _read_number(self) -> str:
        result = []
        while True:
            ch = self._current()
            if ch is None:
                break
            if ch.isalnum() or ch == '_':
                result.append(ch)
                self._advance()
            elif ch == '.' and (self._peek() or '').isdigit():
                result.append(ch)
                self._advance()
            else:
                break
        return ''.join(result)

    def _read_comment(self) -> str:
        """Read a comment from # to end of line."""
        result = []
        self._advance()
        while True:
            ch = self._current()
            if ch is None or ch == '\n':
                break
            result.append(ch)
            self._advance()
        return ''.join(result)

    def _skip_block_comment(self) -> str:
        """Skip an =begin ... =end block; returns its text."""
        start_line, start_col = self.line, self.column
        end = self.source.find('\n=end', self.pos)
        if end == -1:
            raise LexerError("Unterminated =begin comment", start_line, start_col)
        stop = self.source.find('\n', end + 1)
        stop = self.length if stop == -1 else stop
        text = self.source[self.pos:stop]
        while self.pos < stop:
            self._advance()
        return text

    def _try_heredoc(self) -> Optional[Token]:
        """Read a heredoc opener (<<~EOS, <<-EOS, <<EOS) and its body."""
        start_line, start_col = self.line, self.column
        i = self.pos + 2
        squiggly = dash = False
        if i < self.length and self.source[i] in '~-':
            squiggly = self.source[i] == '~'
            dash = self.source[i] == '-'
            i += 1
        quote = ''
        if i < self.length and self.source[i] in ('"', "'", '`'):
            quote = self.source[i]
            end_quote = self.source.find(quote, i + 1)
            if end_quote == -1:
                return None
            ident = self.source[i + 1:end_quote]
            i = end_quote + 1
        else:
            j = i
            while j < self.length and self._is_ident_cont(self.source[j]):
                j += 1
            ident = self.source[i:j]
            if not ident or not (squiggly or dash or ident[0].isupper()):
                return None
            i = j

        # The body starts after the current line (or after a previous heredoc body)
        body_start = self._heredoc_resume
        if body_start is None:
            nl = self.source.find('\n', i)
            if nl == -1:
                raise LexerError("Unterminated heredoc", start_line, start_col)
            body_start = nl + 1
        body_lines = []
        cursor = body_start
        while True:
            if cursor >= self.length:
                raise LexerError(f"Unterminated heredoc <<{ident}", start_line, start_col)
            nl = self.source.find('\n', cursor)
            line_end = self.length if nl == -1 else nl
            text = self.source[cursor:line_end]
            cursor = line_end + 1
            self._heredoc_lines += 1
            check = text.strip() if (squiggly or dash) else text.rstrip('\r')
            if check == ident:
                break
            body_lines.append(text)
        self._heredoc_resume = min(cursor, self.length)

        while self.pos < i:
            self._advance()
        return Token(TokenType.STRING, '\n'.join(body_lines), start_line, start_col,
                     quote='<<', interpolated=quote != "'" and '#{' in ''.join(body_lines))

    def _read_percent_literal(self) -> Optional[Token]:
        """Read %w() %i[] %q() %Q{} %() %r{} literals."""
        start_line, start_col = self.line, self.column
        kind = self._peek() or ''
        offset = 2 if kind.isalpha() else 1
        if kind.isalpha() and kind not in 'wWiIqQr':
            return None
        delim = self._peek(offset)
        if delim is None or delim.isalnum() or delim.isspace():
            return None
        for _ in range(offset + 1):
            self._advance()
        close = _PAIRS.get(delim, delim)
        open_ = delim if delim in _PAIRS else None
        interpolate = kind in ('W', 'I', 'Q', 'r') or not kind.isalpha()
        value, interpolated = self._read_delimited(close, open_, start_line, start_col,
                                                   "percent literal", interpolate)
        if kind in ('w', 'W', 'i', 'I'):
            return Token(TokenType.WORDS, value, start_line, start_col, quote='%' + kind)
        if kind == 'r':
            while (self._current() or '') in 'imxo' and self._current():
                self._advance()
            return Token(TokenType.REGEX, value, start_line, start_col, quote='%r')
        return Token(TokenType.STRING, value, start_line, start_col,
                     quote='%' + (kind if kind.isalpha() else ''), interpolated=interpolated)

    def _read_regex(self) -> Token:
        start_line, start_col = self.line, self.column
        self._advance()
        value, interpolated = self._read_delimited('/', None, start_line, start_col,
                                                   "regex", interpolate=True)
        while (self._current() or '') in 'imxo' and self._current():
            self._advance()
        return Token(TokenType.REGEX, value, start_line, start_col,
                     quote='/', interpolated=interpolated)

    def _read_symbol(self) -> Optional[Token]:
        start_line, start_col = self.line, self.column
        nxt = self._peek()
        if nxt in ('"', "'"):
            self._advance()
            tok = self._read_string(nxt)
            return Token(TokenType.SYMBOL, tok.value, start_line, start_col,
                         quote=nxt, interpolated=tok.interpolated)
        if nxt is not None and (self._is_ident_start(nxt) or nxt in '@$'):
            self._advance()
            name = ''
            while self._current() in ('@', '$'):
                name += self._advance()
            name += self._read_identifier()
            if self._current() == '=' and self._peek() not in ('=', '>', '~'):
                name += self._advance()
            return Token(TokenType.SYMBOL, name, start_line, start_col)
        return None

    def _emit(self, token: Token) -> Token:
        if token.type not in (TokenType.COMMENT,):
            self._prev = token
        return token

    def tokenize(self, include_comments: bool = False, include_newlines: bool = False) -> Iterator[Token]:
        """
        Generate tokens from the source.

        Args:
            include_comments: If True, emit COMMENT tokens. Otherwise skip them.
            include_newlines: If True, emit NEWLINE tokens. Otherwise skip them.
        """
        while True:
            before = self.pos
            self._skip_whitespace()
            self._space_before = self.pos != before

            ch = self._current()
            start_line = self.line
            start_col = self.column

            if ch is None:
                yield Token(TokenType.EOF, '', start_line, start_col)
                break

            if ch == '\n':
                self._advance()
                tok = self._emit(Token(TokenType.NEWLINE, '\n', start_line, start_col))
                if self._heredoc_resume is not None:
                    self.pos = self._heredoc_resume
                    self.line += self._heredoc_lines
                    self.column = 1
                    self._heredoc_resume = None
                    self._heredoc_lines = 0
                if include_newlines:
                    yield tok
                continue

            if self._at_line_start():
                if self.source.startswith('=begin', self.pos):
                    text = self._skip_block_comment()
                    if include_comments:
                        yield Token(TokenType.COMMENT, text, start_line, start_col)
                    continue
                if self.source.startswith('__END__', self.pos):
                    yield Token(TokenType.EOF, '', start_line, start_col)
                    break

            if ch == '#':
                comment = self._read_comment()
                if include_comments:
                    yield Token(TokenType.COMMENT, comment, start_line, start_col)
                continue

            if ch in ('"', "'", '`'):
                yield self._emit(self._read_string(ch))
                continue

            if ch == ':':
                if self._peek() == ':':
                    self._advance()
                    self._advance()
                    yield self._emit(Token(TokenType.SCOPE, '::', start_line, start_col))
                    continue
                prev = self._prev
                label_end = (prev is not None and not self._space_before
                             and prev.type in (TokenType.IDENTIFIER, TokenType.STRING))
                if not label_end:
                    sym = self._read_symbol()
                    if sym is not None:
                        yield self._emit(sym)
                        continue
                self._advance()
                yield self._emit(Token(TokenType.COLON, ':', start_line, start_col))
                continue

            if ch == '%' and (self._value_expected() or self._command_argument()):
                lit = self._read_percent_literal()
                if lit is not None:
                    yield self._emit(lit)
                    continue

            if ch == '/' and (self._value_expected() or self._command_argument()):
                yield self._emit(self._read_regex())
                continue

            if ch == '<' and self._peek() == '<' and (self._value_expected() or self._command_argument()):
                doc = self._try_heredoc()
                if doc is not None:
                    yield self._emit(doc)
                    continue

            if ch == '&' and self._peek() == '.':
                self._advance()
                self._advance()
                yield self._emit(Token(TokenType.DOT, '&.', start_line, start_col))
                continue

            if ch == '.' and self._peek() != '.':
                self._advance()
                yield self._emit(Token(TokenType.DOT, '.', start_line, start_col))
                continue

            single = {
                '(': TokenType.LPAREN, ')': TokenType.RPAREN,
                '[': TokenType.LBRACKET, ']': TokenType.RBRACKET,
                '{': TokenType.LBRACE, '}': TokenType.RBRACE,
                ',': TokenType.COMMA, ';': TokenType.SEMICOLON,
            }.get(ch)
            if single is not None:
                self._advance()
                yield self._emit(Token(single, ch, start_line, start_col))
                continue

            if ch == '?':
                self._advance()
                yield self._emit(Token(TokenType.QUESTION, '?', start_line, start_col))
                continue

            if ch.isdigit():
                yield self._emit(Token(TokenType.NUMBER, self._read_number(), start_line, start_col))
                continue

            if ch in ('@', '$'):
                sigil = self._advance()
                if self._current() == '@':
                    sigil += self._advance()
                nxt = self._current()
                if nxt is not None and (self._is_ident_cont(nxt) or (sigil == '$' and not nxt.isspace())):
                    name = self._read_identifier() if self._is_ident_cont(nxt) else self._advance()
                    yield self._emit(Token(TokenType.IDENTIFIER, sigil + name, start_line, start_col))
                    continue
                raise LexerError(f"Unexpected character {sigil!r}", start_line, start_col)

            if self._is_ident_start(ch):
                yield self._emit(Token(TokenType.IDENTIFIER, self._read_identifier(),
                                       start_line, start_col))
                continue

            for op in _OPERATORS:
                if self.source.startswith(op, self.pos):
                    for _ in op:
                        self._advance()
                    yield self._emit(Token(TokenType.OPERATOR, op, start_line, start_col))
                    break
            else:
                raise LexerError(f"Unexpected character {ch!r}", start_line, start_col)

    def tokenize_all(self, include_comments: bool = False, include_newlines: bool = False) -> List[Token]:
        """Convenience method to get all tokens as a list."""
        return list(self.tokenize(include_comments, include_newlines))


def tokenize_source(source: str, filename: str = "<unknown>", **kwargs) -> List[Token]:
    """Tokenize Ruby text and return all tokens."""
    return Lexer(source, filename=filename).tokenize_all(**kwargs)


def find_unbalanced(tokens: List[Token]) -> Optional[Tuple[str, int, int]]:
    """
    Check that brackets and block keywords balance.

    Expects tokens produced with include_newlines=True.
    Returns (message, line, column) for the first problem, or None.
    """
    closers = {')': '(', ']': '[', '}': '{'}
    stack: List[Tuple[str, int, int]] = []
    prev: Optional[Token] = None
    loop_awaiting_do = False

    for tok in tokens:
        if tok.type == TokenType.NEWLINE:
            loop_awaiting_do = False
        elif tok.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE):
            stack.append((tok.value, tok.line, tok.column))
        elif tok.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
            if not stack or stack[-1][0] != closers[tok.value]:
                return (f"Unexpected '{tok.value}'", tok.line, tok.column)
            stack.pop()
        elif tok.type == TokenType.IDENTIFIER and not (prev and prev.type == TokenType.DOT):
            word = tok.value
            if word == 'end':
                if not stack or stack[-1][0] in closers.values():
                    return ("Unexpected 'end'", tok.line, tok.column)
                stack.pop()
            elif word == 'do' and loop_awaiting_do:
                loop_awaiting_do = False
            elif word in BLOCK_OPENERS:
                stack.append((word, tok.line, tok.column))
            elif word in MODIFIER_OPENERS or word == 'for':
                statement_start = prev is None or prev.type in (
                    TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.LPAREN,
                    TokenType.OPERATOR, TokenType.COMMA,
                ) or (prev.type == TokenType.IDENTIFIER and prev.value in ('then', 'else', 'do', 'begin'))
                if statement_start:
                    stack.append((word, tok.line, tok.column))
                    loop_awaiting_do = word in LOOP_OPENERS
        if tok.type != TokenType.EOF:
            prev = tok

    if stack:
        opener, line, column = stack[-1]
        return (f"Unclosed '{opener}'", line, column)
    return None
