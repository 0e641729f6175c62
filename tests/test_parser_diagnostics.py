"""Tests for the strict grammar and formula diagnostics."""

from __future__ import annotations

import pytest
from lark import Tree

from kahon.formulas import (
    FormulaParseError,
    diagnose_formula,
    extract_refs,
    looks_like_formula,
    parse_formula,
)


# ────────────────────────────────────────────────────────────────
# Strict parser
# ────────────────────────────────────────────────────────────────


class TestParseFormula:
    def test_parse_returns_tree(self):
        tree = parse_formula("(A1 - A2) / 2")
        assert isinstance(tree, Tree)
        assert tree.data == "start"

    def test_leading_equals_allowed(self):
        tree = parse_formula("=A1+1")
        assert tree.children[0].data == "add"

    def test_precedence_in_tree(self):
        tree = parse_formula("A1+B1*2")
        add = tree.children[0]
        assert add.data == "add"
        assert add.children[1].data == "mul"

    def test_unary_minus(self):
        assert parse_formula("-A1").children[0].data == "neg"

    @pytest.mark.parametrize("text", ["A1+", "(A1", "A1)", "SUM(A1)", "1.2.3", "A1 B1"])
    def test_malformed_raises(self, text):
        with pytest.raises(FormulaParseError):
            parse_formula(text)

    def test_error_position(self):
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("A1 $ 2")
        assert exc_info.value.position == 3
        assert "position 3" in str(exc_info.value)

    def test_error_position_counts_equals(self):
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("=A1 $ 2")
        assert exc_info.value.position == 4


class TestExtractRefs:
    def test_refs_uppercased_and_unique(self):
        assert extract_refs(parse_formula("a1+B2*A1")) == {"A1", "B2"}

    def test_no_refs(self):
        assert extract_refs(parse_formula("1+2")) == set()


# ────────────────────────────────────────────────────────────────
# Diagnostics
# ────────────────────────────────────────────────────────────────


class TestDiagnoseFormula:
    @pytest.mark.parametrize("text", ["A1+B1", "=A1+B1", "(A1-A2)/2", "-.5*c3"])
    def test_well_formed(self, text):
        assert diagnose_formula(text) == []

    @pytest.mark.parametrize("text", ["", "   ", "=", " = "])
    def test_empty(self, text):
        diags = diagnose_formula(text)
        assert [d.code for d in diags] == ["empty_formula"]
        assert diags[0].position is None

    def test_function_call(self):
        diags = diagnose_formula("SUM(A1)")
        assert [d.code for d in diags] == ["dropped_fragment", "syntax_error"]
        assert diags[0].position == 0
        assert "SUM" in diags[0].message
        assert "invalid cell reference" in diags[0].message

    def test_trailing_operator_is_syntax_only(self):
        diags = diagnose_formula("A1+")
        assert [d.code for d in diags] == ["syntax_error"]

    def test_dropped_position_in_original_text(self):
        diags = diagnose_formula("=A1 = 5")
        dropped = [d for d in diags if d.code == "dropped_fragment"]
        assert len(dropped) == 1
        assert dropped[0].position == 4
        assert "'='" in dropped[0].message


# ────────────────────────────────────────────────────────────────
# Editor input classification
# ────────────────────────────────────────────────────────────────


class TestLooksLikeFormula:
    @pytest.mark.parametrize("text", ["A1+B1", "a1*2", "AB12-3", "(C3)/2"])
    def test_formulas(self, text):
        assert looks_like_formula(text)

    @pytest.mark.parametrize("text", ["A1", "12+3", "Box 12", "SKU-", "hello", ""])
    def test_not_formulas(self, text):
        assert not looks_like_formula(text)
