"""Tests for the SQL tokenizer."""

from __future__ import annotations

from indexscout.parsers.tokenizer import TokenKind, matching_paren, tokenize


def _kinds(sql: str) -> list[TokenKind]:
    return [t.kind for t in tokenize(sql)]


class TestTokenize:
    def test_simple_select(self) -> None:
        tokens = tokenize("SELECT id FROM users WHERE email = $1")
        assert [t.text for t in tokens] == [
            "SELECT",
            "id",
            "FROM",
            "users",
            "WHERE",
            "email",
            "=",
            "$1",
        ]
        assert tokens[-1].kind is TokenKind.PLACEHOLDER
        assert tokens[-2].kind is TokenKind.OPERATOR

    def test_offsets_point_into_source(self) -> None:
        sql = "status IN ($1, $2)"
        for tok in tokenize(sql):
            assert sql[tok.start : tok.end] == tok.text

    def test_empty_and_whitespace(self) -> None:
        assert tokenize("") == []
        assert tokenize("   \n\t ") == []

    def test_string_with_doubled_quote(self) -> None:
        """'' inside a literal does not end the string."""
        tokens = tokenize("title = 'it''s' AND id = 1")
        assert tokens[2].kind is TokenKind.STRING
        assert tokens[2].text == "'it''s'"
        assert tokens[3].is_keyword("AND")

    def test_unterminated_string_runs_to_end(self) -> None:
        tokens = tokenize("title = 'oops AND id = 1")
        assert tokens[-1].kind is TokenKind.STRING
        assert tokens[-1].end == len("title = 'oops AND id = 1")

    def test_quoted_identifiers(self) -> None:
        tokens = tokenize('"Order"."user_id" = `users`.id')
        assert tokens[0].kind is TokenKind.QUOTED
        assert tokens[0].name == "Order"
        assert tokens[0].is_identifier
        assert tokens[4].name == "users"

    def test_comments_are_dropped(self) -> None:
        sql = "SELECT id -- trailing\nFROM /* block */ users"
        assert [t.text for t in tokenize(sql)] == ["SELECT", "id", "FROM", "users"]

    def test_placeholder_styles(self) -> None:
        tokens = tokenize("a = $12 AND b = ? AND c = ?3 AND d = :name AND e = @p")
        placeholders = [t.text for t in tokens if t.kind is TokenKind.PLACEHOLDER]
        assert placeholders == ["$12", "?", "?3", ":name", "@p"]

    def test_cast_is_not_a_placeholder(self) -> None:
        tokens = tokenize("created_at::date = $1")
        assert tokens[1].kind is TokenKind.OPERATOR
        assert tokens[1].text == "::"
        assert tokens[2].text == "date"

    def test_numbers(self) -> None:
        tokens = tokenize("total >= 10.5 AND qty < 1e3 AND rate > .25")
        numbers = [t.text for t in tokens if t.kind is TokenKind.NUMBER]
        assert numbers == ["10.5", "1e3", ".25"]

    def test_two_char_operators(self) -> None:
        ops = [t.text for t in tokenize("a <= 1 AND b >= 2 AND c <> 3 AND d != 4")]
        assert "<=" in ops and ">=" in ops and "<>" in ops and "!=" in ops

    def test_punctuation_kinds(self) -> None:
        assert _kinds("COUNT(*), t.id;") == [
            TokenKind.WORD,
            TokenKind.LPAREN,
            TokenKind.STAR,
            TokenKind.RPAREN,
            TokenKind.COMMA,
            TokenKind.WORD,
            TokenKind.DOT,
            TokenKind.WORD,
            TokenKind.SEMICOLON,
        ]

    def test_unknown_character_is_other(self) -> None:
        tokens = tokenize("a # b")
        assert tokens[1].kind is TokenKind.OTHER


class TestDepth:
    def test_paren_depth(self) -> None:
        tokens = tokenize("a IN (SELECT b FROM (SELECT c) x)")
        by_text = {t.text: t.depth for t in tokens}
        assert by_text["a"] == 0
        assert by_text["b"] == 1
        assert by_text["c"] == 2
        assert by_text["x"] == 1

    def test_parens_carry_outer_depth(self) -> None:
        tokens = tokenize("(x)")
        assert tokens[0].depth == 0
        assert tokens[1].depth == 1
        assert tokens[2].depth == 0

    def test_unbalanced_close_never_negative(self) -> None:
        tokens = tokenize("a)) b")
        assert all(t.depth >= 0 for t in tokens)


class TestMatchingParen:
    def test_finds_closing_paren(self) -> None:
        tokens = tokenize("(a, (b), c) d")
        assert matching_paren(tokens, 0) == 8
        assert tokens[8].text == ")"

    def test_inner_group(self) -> None:
        tokens = tokenize("(a, (b), c)")
        assert matching_paren(tokens, 3) == 5

    def test_unbalanced_returns_last_index(self) -> None:
        tokens = tokenize("(a, (b")
        assert matching_paren(tokens, 0) == len(tokens) - 1


class TestTokenProperties:
    def test_is_keyword_is_case_insensitive(self) -> None:
        tok = tokenize("select")[0]
        assert tok.is_keyword("SELECT")
        assert tok.upper == "SELECT"
        assert not tok.is_keyword("FROM")

    def test_string_is_not_keyword(self) -> None:
        tok = tokenize("'SELECT'")[0]
        assert not tok.is_keyword("SELECT")
        assert not tok.is_identifier
