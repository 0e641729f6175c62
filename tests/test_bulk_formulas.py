"""Tests for whole-column bulk formulas."""

from __future__ import annotations

from kahon.bulk_formulas import (
    BulkFormulaResult,
    generate_add_for_all_rows,
    generate_multiply_for_all_rows,
)
from kahon.models import Cell, Row


def _row(row_index: int, values: dict[int, str | None]) -> Row:
    return Row(
        row_index=row_index,
        cells=[Cell(column_index=c, value=v) for c, v in values.items()],
    )


ROWS = [
    _row(0, {0: "2", 1: "3"}),
    _row(1, {0: "x", 1: "3"}),
    _row(2, {0: "4"}),
    _row(3, {0: "1.5", 1: "2kg"}),
    _row(4, {0: "", 1: "1"}),
]


class TestGenerateForAllRows:
    def test_multiply(self):
        assert generate_multiply_for_all_rows(ROWS, 2) == [
            BulkFormulaResult(row_index=0, column_index=2, formula="A1*B1"),
            BulkFormulaResult(row_index=3, column_index=2, formula="A4*B4"),
        ]

    def test_add(self):
        assert [r.formula for r in generate_add_for_all_rows(ROWS, 2)] == ["A1+B1", "A4+B4"]

    def test_not_enough_source_columns(self):
        assert generate_multiply_for_all_rows(ROWS, 1) == []
        assert generate_add_for_all_rows(ROWS, 0) == []

    def test_wider_offset(self):
        rows = [_row(0, {0: "1", 1: "2", 2: "3"}), _row(1, {1: "2", 2: "3"})]
        results = generate_multiply_for_all_rows(rows, 3, source_column_offset=3)
        assert [(r.row_index, r.formula) for r in results] == [(0, "A1*B1*C1")]

    def test_sources_directly_left_of_target(self):
        rows = [_row(0, {0: "x", 1: "2", 2: "3"})]
        assert [r.formula for r in generate_add_for_all_rows(rows, 3)] == ["B1+C1"]

    def test_first_cell_wins_on_duplicate_column(self):
        row = Row(
            row_index=0,
            cells=[
                Cell(column_index=0, value="abc"),
                Cell(column_index=0, value="5"),
                Cell(column_index=1, value="2"),
            ],
        )
        assert generate_multiply_for_all_rows([row], 2) == []

    def test_non_finite_text_is_not_a_source(self):
        rows = [_row(0, {0: "Infinity", 1: "2"})]
        assert generate_add_for_all_rows(rows, 2) == []

    def test_empty_rows(self):
        assert generate_multiply_for_all_rows([], 2) == []

    def test_negative_offset_matches_nothing(self):
        assert generate_multiply_for_all_rows(ROWS, 2, source_column_offset=-1) == []
        assert generate_add_for_all_rows(ROWS, 0, source_column_offset=-3) == []


class TestPlainMappings:
    def test_camel_case_rows(self):
        rows = [
            {
                "rowIndex": 5,
                "cells": [
                    {"columnIndex": 0, "value": "1"},
                    {"columnIndex": 1, "value": "2"},
                ],
            }
        ]
        results = generate_add_for_all_rows(rows, 2)
        assert [(r.row_index, r.formula) for r in results] == [(5, "A6+B6")]

    def test_snake_case_rows(self):
        rows = [
            {
                "row_index": 1,
                "cells": [
                    {"column_index": 1, "value": "3"},
                    {"column_index": 2, "value": "4"},
                ],
            }
        ]
        results = generate_multiply_for_all_rows(rows, 3)
        assert results[0].formula == "B2*C2"
        assert results[0].column_index == 3

    def test_row_without_cells(self):
        assert generate_add_for_all_rows([{"rowIndex": 0}], 2) == []
