"""Query extractor: finds field-list declarations and query-string calls in source text."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from indexscout.config import DEFAULT_QUERY_METHODS
from indexscout.models import ExtractedQuery, FieldListDeclaration
from indexscout.utils.sql_patterns import (
    BLOCK_COMMENT_PATTERN,
    COMMENT_PREFIXES,
    FIELD_ATTRIBUTE_PATTERN,
    QUERY_CALL_TEMPLATE,
    STRUCT_DECL_PATTERN,
    STRUCT_FIELD_PATTERN,
)

logger = logging.getLogger(__name__)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}


class QueryExtractor:
    """Extract query strings and pair them with the table fields they refer to.

    Recognises ``struct Name { field: Type, ... }`` declarations and calls of
    the form ``Subject::method("SQL")`` or ``Subject::method!("SQL")``. A
    query is paired with the closest preceding declaration named like its
    subject; declarations without fields never match. Unrecognised text is
    ignored.
    """

    def __init__(self, query_methods: Iterable[str] | None = None) -> None:
        methods = tuple(query_methods or DEFAULT_QUERY_METHODS)
        alternation = "|".join(re.escape(m) for m in sorted(methods, key=len, reverse=True))
        self.query_methods = methods
        self._call_re = re.compile(QUERY_CALL_TEMPLATE.format(methods=alternation), re.DOTALL)
        self._struct_re = re.compile(STRUCT_DECL_PATTERN)
        self._field_re = re.compile(STRUCT_FIELD_PATTERN)
        self._attr_re = re.compile(FIELD_ATTRIBUTE_PATTERN)
        self._block_comment_re = re.compile(BLOCK_COMMENT_PATTERN, re.DOTALL)

    def extract(
        self,
        text: str,
        source_file: str = "",
        fallback: Mapping[str, tuple[str, ...]] | None = None,
    ) -> list[ExtractedQuery]:
        """Extract all queries from a block of source text.

        Args:
            text: Source text to scan.
            source_file: File name recorded on each query.
            fallback: Field lists by name, consulted when no declaration
                in ``text`` precedes a query.

        Returns:
            Queries in source order. Empty when nothing is recognised.
        """
        declarations = self.scan_declarations(text, source_file)
        comments = self._comment_spans(text)
        queries: list[ExtractedQuery] = []

        for match in self._call_re.finditer(text):
            if _is_commented(text, match.start(), comments):
                continue

            subject, method = match.group(1), match.group(2)
            raw = match.group("raw")
            sql = raw if raw is not None else _unescape(match.group("plain") or "")
            if not sql.strip():
                continue

            fields = _closest_fields(declarations, subject, match.start())
            if not fields and fallback:
                fields = tuple(fallback.get(subject, ()))
            if not fields:
                logger.debug("No field list found for %s at %s", subject, source_file or "text")

            queries.append(
                ExtractedQuery(
                    table_name=subject,
                    table_fields=fields,
                    sql_text=sql.strip(),
                    method=method,
                    source_file=source_file,
                    line=line_number(text, match.start()),
                )
            )

        logger.debug(
            "Extracted %d queries and %d declarations from %s",
            len(queries),
            len(declarations),
            source_file or "text",
        )
        return queries

    def scan_declarations(self, text: str, source_file: str = "") -> list[FieldListDeclaration]:
        """Find every struct declaration and its field names."""
        declarations: list[FieldListDeclaration] = []
        comments = self._comment_spans(text)

        for match in self._struct_re.finditer(text):
            if _is_commented(text, match.start(), comments):
                continue
            body_start = match.end()
            body_end = _closing_brace(text, body_start)
            fields = self._parse_fields(text[body_start:body_end])
            declarations.append(
                FieldListDeclaration(
                    name=match.group(1),
                    fields=tuple(fields),
                    position=match.start(),
                    source_file=source_file,
                )
            )

        return declarations

    def _comment_spans(self, text: str) -> list[tuple[int, int]]:
        return [m.span() for m in self._block_comment_re.finditer(text)]

    def _parse_fields(self, body: str) -> list[str]:
        """Extract field names from a struct body (single- or multi-line)."""
        body = self._block_comment_re.sub(" ", body)
        body = re.sub(r"//[^\n]*", " ", body)
        body = self._attr_re.sub(" ", body)

        fields: list[str] = []
        for segment in _split_top_level(body):
            match = self._field_re.match(segment.strip())
            if match and match.group(1) not in fields:
                fields.append(match.group(1))
        return fields


def line_number(text: str, pos: int) -> int:
    """Return the 1-based line number of offset ``pos``."""
    return text.count("\n", 0, pos) + 1


def _closest_fields(
    declarations: list[FieldListDeclaration], subject: str, position: int
) -> tuple[str, ...]:
    """Fields of the latest non-empty declaration named ``subject`` before ``position``."""
    for decl in reversed(declarations):
        if decl.position < position and decl.name == subject and decl.fields:
            return decl.fields
    return ()


def _is_commented(text: str, pos: int, block_comments: list[tuple[int, int]]) -> bool:
    """True when ``pos`` sits inside a block comment or on a commented-out line."""
    if any(start <= pos < end for start, end in block_comments):
        return True
    line_start = text.rfind("\n", 0, pos) + 1
    prefix = text[line_start:pos].lstrip()
    return prefix.startswith(COMMENT_PREFIXES)


def _closing_brace(text: str, start: int) -> int:
    """Offset of the brace closing a body that opens just before ``start``."""
    depth = 1
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return len(text)


def _split_top_level(body: str) -> list[str]:
    """Split on commas and newlines that are not nested in <>, (), [] or {}."""
    segments: list[str] = []
    depth = 0
    current: list[str] = []
    prev = ""
    for ch in body:
        if ch in "<([{":
            depth += 1
        elif ch in ")]}" or (ch == ">" and prev != "-"):
            depth = max(depth - 1, 0)
        if ch in ",\n" and depth == 0:
            segments.append("".join(current))
            current = []
        else:
            current.append(ch)
        prev = ch
    segments.append("".join(current))
    return [s for s in segments if s.strip()]


def _unescape(value: str) -> str:
    """Resolve backslash escapes of a regular (non-raw) string literal."""
    value = re.sub(r"\\\r?\n\s*", "", value)
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), value)
