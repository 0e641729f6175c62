"""Apply a left-hand quick formula down a whole column.

A row qualifies when each of the ``source_column_offset`` cells directly to
the left of the target column holds a number; other rows are skipped
without error.  Rows may be :class:`kahon.models.Row` objects or plain
mappings using either ``row_index``/``column_index`` or the backend's
``rowIndex``/``columnIndex`` keys.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from pydantic import BaseModel, ConfigDict

from kahon.formatting import is_numeric_value
from kahon.quick_formulas import generate_add_left_formula, generate_multiply_left_formula


class BulkFormulaResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int
    column_index: int
    formula: str


def _field(obj: Any, snake: str, camel: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        if snake in obj:
            return obj[snake]
        return obj.get(camel, default)
    return getattr(obj, snake, default)


def _cell_values(row: Any) -> dict[int, str | None]:
    values: dict[int, str | None] = {}
    for cell in _field(row, "cells", "cells", ()) or ():
        col = _field(cell, "column_index", "columnIndex")
        # First cell wins on duplicate columns, matching a linear find.
        if col is not None and col not in values:
            values[col] = _field(cell, "value", "value")
    return values


def _has_numeric_sources(row: Any, target_column_index: int, source_column_offset: int) -> bool:
    if source_column_offset < 0 or target_column_index - source_column_offset < 0:
        return False
    values = _cell_values(row)
    for col in range(target_column_index - source_column_offset, target_column_index):
        if not is_numeric_value(values.get(col)):
            return False
    return True


def _generate_for_all_rows(
    rows: Iterable[Any],
    target_column_index: int,
    source_column_offset: int,
    generator: Callable[[int, int, int], str],
) -> list[BulkFormulaResult]:
    results: list[BulkFormulaResult] = []
    for row in rows:
        if not _has_numeric_sources(row, target_column_index, source_column_offset):
            continue
        row_index = _field(row, "row_index", "rowIndex")
        results.append(
            BulkFormulaResult(
                row_index=row_index,
                column_index=target_column_index,
                formula=generator(row_index, target_column_index, source_column_offset),
            )
        )
    return results


def generate_multiply_for_all_rows(
    rows: Iterable[Any],
    target_column_index: int,
    source_column_offset: int = 2,
) -> list[BulkFormulaResult]:
    """``B3*C3``-style formulas for every row with numeric source cells."""
    return _generate_for_all_rows(
        rows, target_column_index, source_column_offset, generate_multiply_left_formula
    )


def generate_add_for_all_rows(
    rows: Iterable[Any],
    target_column_index: int,
    source_column_offset: int = 2,
) -> list[BulkFormulaResult]:
    """``B3+C3``-style formulas for every row with numeric source cells."""
    return _generate_for_all_rows(
        rows, target_column_index, source_column_offset, generate_add_left_formula
    )
