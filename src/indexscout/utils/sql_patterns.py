"""Regex patterns for scanning annotated source text.

Patterns are stored as raw strings for use with re.compile/re.finditer and
the flags noted next to each one.
"""

from __future__ import annotations

# struct Name {  (generic parameters allowed, body found by brace matching)
STRUCT_DECL_PATTERN = r"\bstruct\s+([A-Za-z_]\w*)\s*(?:<[^{;]*>)?\s*(?:where\s+[^{;]*)?\{"

# One field inside a struct body: optional visibility, then name:
STRUCT_FIELD_PATTERN = r"^(?:pub(?:\s*\([^)]*\))?\s+)?(?:r#)?([A-Za-z_]\w*)\s*:(?!:)"

# Field attributes such as #[sqlx(rename = "...")]
FIELD_ATTRIBUTE_PATTERN = r"#\s*!?\s*\[[^\]]*\]"

# Subject::method("..."), Subject::method!("..."), raw strings r#"..."#.
# Format {methods} with an alternation of call names; use with re.DOTALL.
QUERY_CALL_TEMPLATE = (
    r"\b([A-Za-z_]\w*)\s*::\s*({methods})\s*(!)?\s*\(\s*"
    r"(?:r(?P<hashes>#*)\"(?P<raw>.*?)\"(?P=hashes)|\"(?P<plain>(?:[^\"\\]|\\.)*)\")"
)

# Line prefixes that mark a commented-out call site
COMMENT_PREFIXES = ("//", "/*", "*")

# Block comments spanning any number of lines
BLOCK_COMMENT_PATTERN = r"/\*.*?\*/"

# Positional and named bind parameters: $1, ?, ?1, :name, @name
PLACEHOLDER_PATTERN = r"\$\d+|\?\d*|:[A-Za-z_]\w*|@[A-Za-z_]\w*"

# Leading keywords that start a full statement rather than a WHERE fragment
STATEMENT_KEYWORDS = frozenset({"SELECT", "WITH", "UPDATE", "DELETE", "INSERT"})

# Keywords that open a top-level clause span
CLAUSE_KEYWORDS = frozenset(
    {
        "SELECT",
        "FROM",
        "WHERE",
        "HAVING",
        "LIMIT",
        "OFFSET",
        "RETURNING",
        "UNION",
        "INTERSECT",
        "EXCEPT",
        "WINDOW",
        "SET",
        "VALUES",
        "FETCH",
        "FOR",
    }
)

# Two-word clause keywords: first word -> second word
COMPOUND_CLAUSE_KEYWORDS = {"GROUP": "BY", "ORDER": "BY"}

# Words that may precede JOIN
JOIN_MODIFIERS = frozenset({"INNER", "LEFT", "RIGHT", "FULL", "CROSS", "OUTER", "NATURAL"})

# Words that can never be a table alias
RESERVED_WORDS = frozenset(
    {
        "SELECT",
        "FROM",
        "WHERE",
        "GROUP",
        "ORDER",
        "BY",
        "HAVING",
        "LIMIT",
        "OFFSET",
        "JOIN",
        "INNER",
        "LEFT",
        "RIGHT",
        "FULL",
        "CROSS",
        "OUTER",
        "NATURAL",
        "ON",
        "USING",
        "AND",
        "OR",
        "NOT",
        "IN",
        "EXISTS",
        "AS",
        "UNION",
        "SET",
        "VALUES",
        "RETURNING",
        "WINDOW",
        "FOR",
        "FETCH",
        "LATERAL",
    }
)

# Literal keywords on the right-hand side of a comparison
LITERAL_KEYWORDS = frozenset({"TRUE", "FALSE", "NULL"})
