"""
S-expression reader for SMT-LIB v2 text.

Tokenizes the input with a fixed table of regular expressions and groups the
tokens into nested lists. Every token and list remembers where it starts
(line, column, character offset) so later stages can report errors with
positional context.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..errors import SmtSyntaxError


# ============================================================================
# TOKENIZER
# ============================================================================

@dataclass(frozen=True)
class Token:
    """Lexical token.

    For ``SYMBOL`` tokens ``value`` is the symbol name without the bars of a
    quoted symbol (``|x|`` and ``x`` denote the same symbol). For ``STRING``
    tokens it is the decoded string contents.
    """
    type: str
    value: str
    line: int
    column: int
    offset: int
    quoted: bool = False


_SYMBOL_CHARS = r"A-Za-z0-9~!@$%^&*_+=<>.?/\-"

_PATTERNS = [
    ("COMMENT", r";[^\n]*"),
    ("WHITESPACE", r"\s+"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("STRING", r'"(?:[^"]|"")*"'),
    ("QUOTED_SYMBOL", r"\|[^|\\]*\|"),
    ("HEXADECIMAL", r"#x[0-9a-fA-F]+"),
    ("BINARY", r"#b[01]+"),
    ("DECIMAL", r"[0-9]+\.[0-9]+"),
    ("NUMERAL", r"[0-9]+"),
    ("KEYWORD", rf":[{_SYMBOL_CHARS}]+"),
    ("SYMBOL", rf"[A-Za-z~!@$%^&*_+=<>.?/\-][{_SYMBOL_CHARS}]*"),
]

_COMPILED = [(name, re.compile(pattern)) for name, pattern in _PATTERNS]


class Tokenizer:
    """Regex-based tokenizer for SMT-LIB v2.

    Token types: LPAREN, RPAREN, NUMERAL, DECIMAL, HEXADECIMAL, BINARY,
    STRING, SYMBOL, KEYWORD. Comments and whitespace are skipped.
    """

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenize entire text"""
        while self.position < len(self.text):
            self._next_token()
        return self.tokens

    def _next_token(self):
        for token_type, regex in _COMPILED:
            match = regex.match(self.text, self.position)
            if not match:
                continue

            raw = match.group(0)
            if token_type not in ("COMMENT", "WHITESPACE"):
                self.tokens.append(self._make_token(token_type, raw))
            self._advance(raw)
            return

        raise SmtSyntaxError(
            f"Unexpected character: {self.text[self.position]!r}",
            self.line,
            self.column,
            self.position,
        )

    def _make_token(self, token_type: str, raw: str) -> Token:
        quoted = False
        value = raw
        if token_type == "QUOTED_SYMBOL":
            token_type, value, quoted = "SYMBOL", raw[1:-1], True
        elif token_type == "STRING":
            value = unescape_string(raw[1:-1].replace('""', '"'), self.line, self.column)
        return Token(token_type, value, self.line, self.column, self.position, quoted)

    def _advance(self, raw: str):
        newlines = raw.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(raw) - raw.rfind("\n")
        else:
            self.column += len(raw)
        self.position += len(raw)


def unescape_string(s: str, line: int = 0, column: int = 0) -> str:
    """Decode the escape sequences of an SMT-LIB string literal.

    Supports ``\\u{d...}`` (one to five hex digits) and ``\\udddd`` from
    SMT-LIB 2.6, and ``\\xHH`` from SMT-LIB 2.5. Any other backslash
    sequence yields the escaped character.
    """
    out = []
    i = 0
    n = len(s)
    while i < n:
        c = s[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= n:
            raise SmtSyntaxError("Invalid escape sequence at end of string", line, column)
        kind = s[i + 1]
        if kind == "u" and i + 2 < n and s[i + 2] == "{":
            end = s.find("}", i + 3)
            if end < 0:
                raise SmtSyntaxError("Unterminated \\u{...} escape", line, column)
            out.append(_code_point(s[i + 3:end], 1, 5, line, column))
            i = end + 1
        elif kind == "u":
            out.append(_code_point(s[i + 2:i + 6], 4, 4, line, column))
            i += 6
        elif kind == "x":
            out.append(_code_point(s[i + 2:i + 4], 2, 2, line, column))
            i += 4
        else:
            out.append(kind)
            i += 2
    return "".join(out)


def _code_point(digits: str, min_len: int, max_len: int, line: int, column: int) -> str:
    if not (min_len <= len(digits) <= max_len) or not re.fullmatch(r"[0-9a-fA-F]+", digits):
        raise SmtSyntaxError(f"Invalid escape sequence digits: {digits!r}", line, column)
    try:
        return chr(int(digits, 16))
    except ValueError:
        raise SmtSyntaxError(f"Code point out of range: {digits!r}", line, column) from None


# ============================================================================
# READER
# ============================================================================

@dataclass
class SList:
    """Parenthesized list of s-expressions."""
    items: List["SExpr"] = field(default_factory=list)
    line: int = 0
    column: int = 0
    offset: int = 0

    def head_symbol(self) -> Optional[str]:
        """Name of the leading symbol, if the list starts with one."""
        if self.items and isinstance(self.items[0], Token) and self.items[0].type == "SYMBOL":
            return self.items[0].value
        return None


SExpr = Union[Token, SList]


def read_sexprs(text: str) -> List[SExpr]:
    """Read all top-level s-expressions in ``text``.

    Raises:
        SmtSyntaxError: On an unexpected character or unbalanced parentheses
    """
    tokens = Tokenizer(text).tokenize()
    stack: List[SList] = []
    top: List[SExpr] = []

    for tok in tokens:
        if tok.type == "LPAREN":
            stack.append(SList([], tok.line, tok.column, tok.offset))
        elif tok.type == "RPAREN":
            if not stack:
                raise SmtSyntaxError("Unbalanced ')'", tok.line, tok.column, tok.offset)
            done = stack.pop()
            (stack[-1].items if stack else top).append(done)
        else:
            (stack[-1].items if stack else top).append(tok)

    if stack:
        opened = stack[-1]
        raise SmtSyntaxError("Unclosed '('", opened.line, opened.column, opened.offset)

    return top


def position_of(expr: SExpr):
    """(line, column, offset) where ``expr`` starts."""
    return expr.line, expr.column, expr.offset
