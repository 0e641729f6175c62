"""Tests for A1-style cell addressing."""

from __future__ import annotations

import pytest

from kahon.formulas import (
    CellPosition,
    column_index_to_letter,
    column_letter_to_index,
    get_cell_address,
    is_valid_cell_address,
    parse_cell_address,
)


# ────────────────────────────────────────────────────────────────
# Column letters
# ────────────────────────────────────────────────────────────────


class TestColumnLetters:
    @pytest.mark.parametrize(
        "index, letters",
        [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_index_to_letter(self, index, letters):
        assert column_index_to_letter(index) == letters

    @pytest.mark.parametrize(
        "letters, index",
        [("A", 0), ("Z", 25), ("AA", 26), ("ZZ", 701), ("AAA", 702)],
    )
    def test_letter_to_index(self, letters, index):
        assert column_letter_to_index(letters) == index

    def test_lowercase_letters_accepted(self):
        assert column_letter_to_index("ab") == 27

    def test_inverse_over_first_thousands(self):
        for i in range(0, 3000):
            assert column_letter_to_index(column_index_to_letter(i)) == i

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            column_index_to_letter(-1)

    @pytest.mark.parametrize("letters", ["", "A1", "Ä", "A B"])
    def test_invalid_letters_rejected(self, letters):
        with pytest.raises(ValueError):
            column_letter_to_index(letters)


# ────────────────────────────────────────────────────────────────
# Addresses
# ────────────────────────────────────────────────────────────────


class TestCellAddress:
    def test_origin(self):
        assert get_cell_address(0, 0) == "A1"

    def test_rows_are_one_based(self):
        assert get_cell_address(11, 1) == "B12"

    def test_wide_column(self):
        assert get_cell_address(9, 26) == "AA10"


class TestParseCellAddress:
    def test_parse_simple(self):
        assert parse_cell_address("A1") == CellPosition(0, 0)

    def test_parse_is_case_insensitive(self):
        pos = parse_cell_address("b12")
        assert pos == (11, 1)
        assert pos.row_index == 11
        assert pos.column_index == 1

    def test_parse_multi_letter(self):
        assert parse_cell_address("AA10") == CellPosition(9, 26)

    @pytest.mark.parametrize("text", ["", "1A", "A", "12", "A1B", "A-1", " A1", "A1\n", "A0", "A00"])
    def test_malformed_returns_none(self, text):
        assert parse_cell_address(text) is None

    def test_overlong_row_number_returns_none(self):
        assert parse_cell_address("A" + "1" * 5000) is None
        assert parse_cell_address("B007") == CellPosition(6, 1)

    def test_address_round_trip(self):
        for row, col in [(0, 0), (4, 3), (99, 27), (1234, 702)]:
            assert parse_cell_address(get_cell_address(row, col)) == (row, col)

    def test_is_valid(self):
        assert is_valid_cell_address("ZZ99")
        assert not is_valid_cell_address("SUM")
