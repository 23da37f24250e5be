"""Small hand-rolled SQL tokenizer.

Produces a flat token list with character offsets and parenthesis depth.
It understands just enough lexical structure (strings, quoted identifiers,
comments, placeholders, operators) to let the clause parser split query
text without a full SQL grammar. It never raises: unknown characters become
OTHER tokens and unterminated strings run to the end of the input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from indexscout.utils.sql_patterns import PLACEHOLDER_PATTERN

_PLACEHOLDER_RE = re.compile(PLACEHOLDER_PATTERN)


class TokenKind(str, Enum):
    WORD = "word"
    QUOTED = "quoted"
    STRING = "string"
    NUMBER = "number"
    PLACEHOLDER = "placeholder"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"
    COMMA = "comma"
    DOT = "dot"
    STAR = "star"
    SEMICOLON = "semicolon"
    OTHER = "other"


@dataclass(frozen=True)
class Token:
    """A lexical token.

    ``depth`` is the parenthesis nesting level the token sits at. An
    opening parenthesis carries the depth outside it; its contents are one
    level deeper; the closing parenthesis is back at the outer level.
    """

    kind: TokenKind
    text: str
    start: int
    end: int
    depth: int = 0

    @property
    def upper(self) -> str:
        return self.text.upper()

    @property
    def is_identifier(self) -> bool:
        return self.kind in (TokenKind.WORD, TokenKind.QUOTED)

    @property
    def name(self) -> str:
        """Identifier text with any quoting removed."""
        if self.kind is TokenKind.QUOTED:
            return self.text[1:-1] if len(self.text) >= 2 else self.text
        return self.text

    def is_keyword(self, *words: str) -> bool:
        return self.kind is TokenKind.WORD and self.text.upper() in words


_TWO_CHAR_OPERATORS = frozenset({"<=", ">=", "<>", "!=", "||", "::", "->", "=>", "==", "!~"})
_ONE_CHAR_OPERATORS = frozenset("=<>+-/%!|&^~")
_QUOTE_CLOSERS = {'"': '"', "`": "`"}
_PUNCTUATION = {
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
    "*": TokenKind.STAR,
    ";": TokenKind.SEMICOLON,
}


def tokenize(sql: str) -> list[Token]:
    """Split SQL text into tokens.

    Args:
        sql: Raw query text.

    Returns:
        Tokens in source order. Comments and whitespace are dropped.
    """
    tokens: list[Token] = []
    depth = 0
    i = 0
    n = len(sql)

    while i < n:
        ch = sql[i]

        if ch.isspace():
            i += 1
            continue

        if sql.startswith("--", i):
            newline = sql.find("\n", i)
            i = n if newline == -1 else newline + 1
            continue

        if sql.startswith("/*", i):
            close = sql.find("*/", i + 2)
            i = n if close == -1 else close + 2
            continue

        start = i

        if ch == "'":
            i = _scan_string(sql, i)
            tokens.append(Token(TokenKind.STRING, sql[start:i], start, i, depth))
            continue

        if ch in _QUOTE_CLOSERS:
            close = sql.find(_QUOTE_CLOSERS[ch], i + 1)
            i = n if close == -1 else close + 1
            tokens.append(Token(TokenKind.QUOTED, sql[start:i], start, i, depth))
            continue

        if ch.isdigit() or (ch == "." and i + 1 < n and sql[i + 1].isdigit()):
            i = _scan_number(sql, i)
            tokens.append(Token(TokenKind.NUMBER, sql[start:i], start, i, depth))
            continue

        if ch.isalpha() or ch == "_":
            i += 1
            while i < n and (sql[i].isalnum() or sql[i] in "_$"):
                i += 1
            tokens.append(Token(TokenKind.WORD, sql[start:i], start, i, depth))
            continue

        placeholder_end = _scan_placeholder(sql, i)
        if placeholder_end:
            i = placeholder_end
            tokens.append(Token(TokenKind.PLACEHOLDER, sql[start:i], start, i, depth))
            continue

        if ch == "(":
            tokens.append(Token(TokenKind.LPAREN, ch, start, i + 1, depth))
            depth += 1
            i += 1
            continue

        if ch == ")":
            depth = max(depth - 1, 0)
            tokens.append(Token(TokenKind.RPAREN, ch, start, i + 1, depth))
            i += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, start, i + 1, depth))
            i += 1
            continue

        if sql[i : i + 2] in _TWO_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, sql[i : i + 2], start, i + 2, depth))
            i += 2
            continue

        kind = TokenKind.OPERATOR if ch in _ONE_CHAR_OPERATORS else TokenKind.OTHER
        tokens.append(Token(kind, ch, start, i + 1, depth))
        i += 1

    return tokens


def matching_paren(tokens: list[Token], index: int) -> int:
    """Return the index of the RPAREN closing ``tokens[index]``.

    Unbalanced input yields the last token index.
    """
    opening = tokens[index]
    for j in range(index + 1, len(tokens)):
        tok = tokens[j]
        if tok.kind is TokenKind.RPAREN and tok.depth == opening.depth:
            return j
    return len(tokens) - 1


def _scan_string(sql: str, i: int) -> int:
    """Scan a single-quoted literal starting at ``i``; '' is an escaped quote."""
    n = len(sql)
    i += 1
    while i < n:
        if sql[i] == "'":
            if i + 1 < n and sql[i + 1] == "'":
                i += 2
                continue
            return i + 1
        if sql[i] == "\\" and i + 1 < n:
            i += 2
            continue
        i += 1
    return n


def _scan_number(sql: str, i: int) -> int:
    n = len(sql)
    seen_dot = False
    while i < n:
        ch = sql[i]
        if ch.isdigit():
            i += 1
        elif ch == "." and not seen_dot:
            seen_dot = True
            i += 1
        elif ch in "eE" and i + 1 < n and (sql[i + 1].isdigit() or sql[i + 1] in "+-"):
            i += 2
        else:
            break
    return i


def _scan_placeholder(sql: str, i: int) -> int:
    """Return the end offset of a bind placeholder at ``i``, or 0 if none."""
    if sql[i] == ":" and i > 0 and sql[i - 1] == ":":
        return 0
    match = _PLACEHOLDER_RE.match(sql, i)
    return match.end() if match else 0
