r"""Tokenizer for eskip route documents.

Token kinds:
- IDENT: route ids, predicate, filter and backend names
- STRING: "double quoted", `\"` and `\\` unescaped, other escapes kept
- REGEXP: /slash delimited/, `\/` and `\\` unescaped, other escapes kept
- NUMBER: -12, 3.14, 1e3 (always parsed as float)
- AND (&&), ARROW (->), STAR, COLON, SEMICOLON, COMMA,
  LPAREN, RPAREN, LANGLE, RANGLE
- EOF

Whitespace and `//` comments running to the end of the line are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from eskip.errors import ParseError


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexical token."""

    kind: str
    value: str  # decoded for STRING and REGEXP, raw text otherwise
    pos: int
    line: int
    column: int


# Token patterns, order matters (first match wins)
_TOKEN_PATTERNS: list[tuple[str, str]] = [
    ("WHITESPACE", r"\s+"),
    ("COMMENT", r"//[^\n]*"),
    ("STRING", r'"(?:[^"\\]|\\.)*"'),
    ("REGEXP", r"/(?:[^/\\]|\\.)*/"),
    ("ARROW", r"->"),
    ("AND", r"&&"),
    ("NUMBER", r"-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("STAR", r"\*"),
    ("COLON", r":"),
    ("SEMICOLON", r";"),
    ("COMMA", r","),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("LANGLE", r"<"),
    ("RANGLE", r">"),
]

_COMPILED_PATTERNS = [(name, re.compile(pat, re.DOTALL)) for name, pat in _TOKEN_PATTERNS]

_SKIPPED = frozenset({"WHITESPACE", "COMMENT"})


def unescape(body: str, delimiter: str) -> str:
    """Remove the escaping of the delimiter and of backslashes."""
    out: list[str] = []
    escaped = False
    for c in body:
        if escaped:
            if c != delimiter and c != "\\":
                out.append("\\")
            out.append(c)
            escaped = False
        elif c == "\\":
            escaped = True
        else:
            out.append(c)
    return "".join(out)


def tokenize(text: str) -> list[Token]:
    """Split eskip text into tokens, ending with an EOF token.

    Raises:
        ParseError: On unterminated literals or unexpected characters.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    line_start = 0

    while pos < len(text):
        for name, pattern in _COMPILED_PATTERNS:
            m = pattern.match(text, pos)
            if m:
                break
        else:
            column = pos - line_start + 1
            c = text[pos]
            if c == '"':
                raise ParseError("unterminated string", line, column)
            if c == "/":
                raise ParseError("unterminated regular expression", line, column)
            raise ParseError(f"unexpected character {c!r}", line, column)

        raw = m.group()
        if name not in _SKIPPED:
            if name == "STRING":
                value = unescape(raw[1:-1], '"')
            elif name == "REGEXP":
                value = unescape(raw[1:-1], "/")
            else:
                value = raw
            tokens.append(Token(name, value, pos, line, pos - line_start + 1))

        newlines = raw.count("\n")
        if newlines:
            line += newlines
            line_start = pos + raw.rindex("\n") + 1
        pos = m.end()

    tokens.append(Token("EOF", "", pos, line, pos - line_start + 1))
    return tokens
