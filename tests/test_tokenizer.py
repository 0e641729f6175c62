"""Tests for the lenient formula scanner."""

from __future__ import annotations

from kahon.formulas import (
    CellReference,
    CellToken,
    DroppedFragment,
    LParenToken,
    NumberToken,
    OperatorToken,
    RParenToken,
    get_cell_references_from_formula,
    scan_formula,
    tokenize_formula,
)


def _kinds(formula: str) -> list[str]:
    return [t.kind for t in tokenize_formula(formula)]


# ────────────────────────────────────────────────────────────────
# Tokens
# ────────────────────────────────────────────────────────────────


class TestTokenize:
    def test_cell_operator_number(self):
        assert tokenize_formula("A1+2.5") == [
            CellToken(address="A1", row_index=0, column_index=0),
            OperatorToken(op="+"),
            NumberToken(value=2.5),
        ]

    def test_parentheses(self):
        assert _kinds("(A1-A2)/2") == [
            "lparen", "cell", "operator", "cell", "rparen", "operator", "number",
        ]
        tokens = tokenize_formula("()")
        assert isinstance(tokens[0], LParenToken)
        assert isinstance(tokens[1], RParenToken)

    def test_whitespace_ignored(self):
        assert tokenize_formula(" A1 *\tB2 ") == tokenize_formula("A1*B2")

    def test_lowercase_reference_normalized(self):
        token = tokenize_formula("b3")[0]
        assert token.address == "B3"
        assert (token.row_index, token.column_index) == (2, 1)

    def test_number_forms(self):
        assert tokenize_formula(".5") == [NumberToken(value=0.5)]
        assert tokenize_formula("5.") == [NumberToken(value=5.0)]
        assert tokenize_formula("007") == [NumberToken(value=7.0)]

    def test_digits_then_reference(self):
        assert _kinds("2A1") == ["number", "cell"]

    def test_empty(self):
        assert tokenize_formula("") == []
        assert tokenize_formula("   ") == []


# ────────────────────────────────────────────────────────────────
# Dropped fragments
# ────────────────────────────────────────────────────────────────


class TestDroppedFragments:
    def test_function_name_dropped(self):
        scan = scan_formula("SUM(A1)")
        assert [t.kind for t in scan.tokens] == ["lparen", "cell", "rparen"]
        assert scan.dropped == [DroppedFragment("SUM", 0, "invalid_cell_reference")]

    def test_row_zero_is_not_a_reference(self):
        scan = scan_formula("A0+1")
        assert [t.kind for t in scan.tokens] == ["operator", "number"]
        assert scan.dropped[0].reason == "invalid_cell_reference"

    def test_overlong_row_number_dropped(self):
        word = "A" + "1" * 5000
        scan = scan_formula(word + "+2")
        assert [t.kind for t in scan.tokens] == ["operator", "number"]
        assert scan.dropped == [DroppedFragment(word, 0, "invalid_cell_reference")]

    def test_malformed_number_dropped(self):
        scan = scan_formula("1.2.3+A1")
        assert [t.kind for t in scan.tokens] == ["operator", "cell"]
        assert scan.dropped == [DroppedFragment("1.2.3", 0, "invalid_number")]

    def test_lone_dot_dropped(self):
        scan = scan_formula(".")
        assert scan.tokens == []
        assert scan.dropped[0].reason == "invalid_number"

    def test_unknown_characters_merged(self):
        scan = scan_formula("A1,,B1")
        assert _kinds("A1,,B1") == ["cell", "cell"]
        assert scan.dropped == [DroppedFragment(",,", 2, "unknown_character")]

    def test_equals_sign_dropped(self):
        scan = scan_formula("A1 = 5")
        assert [t.kind for t in scan.tokens] == ["cell", "number"]
        assert scan.dropped == [DroppedFragment("=", 3, "unknown_character")]

    def test_non_ascii_letters_dropped(self):
        scan = scan_formula("é1+2")
        assert scan.dropped[0].text == "é"
        assert [t.kind for t in scan.tokens] == ["number", "operator", "number"]

    def test_clean_formula_drops_nothing(self):
        assert scan_formula("(A1+B2)*3").dropped == []


# ────────────────────────────────────────────────────────────────
# References
# ────────────────────────────────────────────────────────────────


class TestCellReferences:
    def test_order_and_duplicates_kept(self):
        refs = get_cell_references_from_formula("A1+a1*B2")
        assert [r.address for r in refs] == ["A1", "A1", "B2"]
        assert refs[2] == CellReference(address="B2", row_index=1, column_index=1)

    def test_no_references(self):
        assert get_cell_references_from_formula("1+2") == []

    def test_invalid_words_not_reported(self):
        assert [r.address for r in get_cell_references_from_formula("SUM(C3)")] == ["C3"]
