"""Quick formulas: templates relative to the selected cell.

Each generator only builds formula text (``"A1+A2+A3"``); evaluation is
left to :func:`kahon.formulas.evaluate_formula`.  Near the top or left edge
of the sheet the generators use as many cells as exist, which may be none.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from kahon.formulas.addresses import get_cell_address


class QuickFormulaType(str, Enum):
    sum_all_above = "sum-all-above"
    sum_above_2 = "sum-above-2"
    subtract_above_2 = "subtract-above-2"
    subtract_all_above = "subtract-all-above"
    multiply_left_2 = "multiply-left-2"
    add_left_2 = "add-left-2"
    multiply_all_rows = "multiply-all-rows"
    add_all_rows = "add-all-rows"


class QuickFormulaOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: QuickFormulaType
    label: str
    description: str
    is_bulk: bool


QUICK_FORMULA_OPTIONS: tuple[QuickFormulaOption, ...] = (
    QuickFormulaOption(
        type=QuickFormulaType.sum_all_above,
        label="Sum All Above",
        description="Add all cells above in this column",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.sum_above_2,
        label="Sum 2 Above",
        description="Add the 2 cells above",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.subtract_above_2,
        label="Subtract 2 Above",
        description="Subtract the 2 cells above",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.subtract_all_above,
        label="Subtract All Above",
        description="Subtract all cells above sequentially",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.multiply_left_2,
        label="Multiply 2 Left",
        description="Multiply the 2 cells to the left",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.add_left_2,
        label="Add 2 Left",
        description="Add the 2 cells to the left",
        is_bulk=False,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.multiply_all_rows,
        label="Multiply All Rows",
        description="Apply multiply formula to all rows in this column",
        is_bulk=True,
    ),
    QuickFormulaOption(
        type=QuickFormulaType.add_all_rows,
        label="Add All Rows",
        description="Apply addition formula to all rows in this column",
        is_bulk=True,
    ),
)

_VERTICAL = frozenset({
    QuickFormulaType.sum_all_above,
    QuickFormulaType.sum_above_2,
    QuickFormulaType.subtract_above_2,
    QuickFormulaType.subtract_all_above,
})
_HORIZONTAL = frozenset({
    QuickFormulaType.multiply_left_2,
    QuickFormulaType.add_left_2,
})


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def _all_above(row_index: int, column_index: int) -> list[str]:
    return [get_cell_address(r, column_index) for r in range(max(row_index, 0))]


def _nearest_above(row_index: int, column_index: int, count: int) -> list[str]:
    """The *count* rows directly above, top-to-bottom."""
    first = max(row_index - count, 0)
    return [get_cell_address(r, column_index) for r in range(first, row_index)]


def _nearest_left(row_index: int, column_index: int, count: int) -> list[str]:
    """The *count* columns directly to the left, left-to-right."""
    first = max(column_index - count, 0)
    return [get_cell_address(row_index, c) for c in range(first, column_index)]


def generate_sum_all_above_formula(row_index: int, column_index: int) -> str:
    """``A1+A2+...`` over every row above; ``""`` on the first row."""
    return "+".join(_all_above(row_index, column_index))


def generate_sum_above_formula(row_index: int, column_index: int, count: int = 2) -> str:
    return "+".join(_nearest_above(row_index, column_index, count))


def generate_subtract_above_formula(row_index: int, column_index: int, count: int = 2) -> str:
    """First minus second minus ... over the *count* rows above."""
    return "-".join(_nearest_above(row_index, column_index, count))


def generate_subtract_all_above_formula(row_index: int, column_index: int) -> str:
    return "-".join(_all_above(row_index, column_index))


def generate_multiply_left_formula(row_index: int, column_index: int, count: int = 2) -> str:
    return "*".join(_nearest_left(row_index, column_index, count))


def generate_add_left_formula(row_index: int, column_index: int, count: int = 2) -> str:
    return "+".join(_nearest_left(row_index, column_index, count))


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def single_cell_options() -> list[QuickFormulaOption]:
    return [opt for opt in QUICK_FORMULA_OPTIONS if not opt.is_bulk]


def bulk_options() -> list[QuickFormulaOption]:
    return [opt for opt in QUICK_FORMULA_OPTIONS if opt.is_bulk]


def is_quick_formula_enabled(
    formula_type: QuickFormulaType | str, row_index: int, column_index: int
) -> bool:
    """Whether a template makes sense for the selected cell.

    Vertical templates need a row above, horizontal ones two columns to the
    left; bulk templates apply wherever rows qualify and are always enabled.
    """
    formula_type = QuickFormulaType(formula_type)
    if formula_type in _VERTICAL:
        return row_index > 0
    if formula_type in _HORIZONTAL:
        return column_index >= 2
    return True


def generate_quick_formula(
    formula_type: QuickFormulaType | str,
    row_index: int,
    column_index: int,
    count: int = 2,
) -> str:
    """Build the formula text for a single-cell template.

    *count* applies to the "2 above" and "2 left" templates.

    Raises:
        ValueError: For bulk templates, which work on whole rows
            (see :mod:`kahon.bulk_formulas`), or an unknown type.
    """
    formula_type = QuickFormulaType(formula_type)
    if formula_type is QuickFormulaType.sum_all_above:
        return generate_sum_all_above_formula(row_index, column_index)
    if formula_type is QuickFormulaType.sum_above_2:
        return generate_sum_above_formula(row_index, column_index, count)
    if formula_type is QuickFormulaType.subtract_above_2:
        return generate_subtract_above_formula(row_index, column_index, count)
    if formula_type is QuickFormulaType.subtract_all_above:
        return generate_subtract_all_above_formula(row_index, column_index)
    if formula_type is QuickFormulaType.multiply_left_2:
        return generate_multiply_left_formula(row_index, column_index, count)
    if formula_type is QuickFormulaType.add_left_2:
        return generate_add_left_formula(row_index, column_index, count)
    raise ValueError(f"{formula_type.value!r} is a bulk formula; use the bulk generators")
