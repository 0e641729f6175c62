"""Display formatting for computed cell values and stored cell text."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum

from kahon.formulas.addresses import column_index_to_letter
from kahon.models import SheetType


class FormatMode(str, Enum):
    """How a computed value is rendered.

    - ``default``: up to 4 decimals, trailing zeros removed
    - ``ceil``: rounded up to a whole number (Kahon sheets; partial boxes
      cannot be sold)
    - ``decimal``: always 2 decimals (Inventory sheets; fractional kilograms)
    """

    default = "default"
    ceil = "ceil"
    decimal = "decimal"


# Wide enough for every finite float at 4 decimal places.
_WIDE = Context(prec=400, rounding=ROUND_HALF_UP)

_HEX_COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}")

# Leading numeric prefix, the way stored cell text is read ("12kg" -> 12).
_NUMERIC_PREFIX_RE = re.compile(r"\s*([+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)")

CELL_COLOR_PALETTE: tuple[str, ...] = (
    "#FFFFFF",  # white (default)
    "#FFE4E1",  # misty rose
    "#FFE4B5",  # moccasin
    "#FFFACD",  # lemon chiffon
    "#E0FFE0",  # light green
    "#E0FFFF",  # light cyan
    "#E6E6FA",  # lavender
    "#FFE4E1",  # light pink
    "#D3D3D3",  # light gray
    "#FFDAB9",  # peach puff
)


def _non_finite(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _quantize(value: float, places: str) -> Decimal:
    # Decimal(float) is exact, so ties round away from zero on the true
    # binary value: 0.125 -> 0.13, 1.005 -> 1.00.
    return Decimal(value).quantize(Decimal(places), context=_WIDE)


def format_cell_number(value: float, mode: FormatMode | str = FormatMode.default) -> str:
    """Render a computed value for display.

    Args:
        value: The numeric result of a formula.
        mode: One of ``default``, ``ceil`` or ``decimal``.

    Returns:
        ``"3"`` for ``2.3`` in ceil mode, ``"2.00"`` for ``2`` in decimal
        mode, ``"2.5"`` for ``2.5000`` in default mode.
    """
    mode = FormatMode(mode)
    value = float(value)
    if not math.isfinite(value):
        return _non_finite(value)
    if value == 0:
        value = 0.0  # no "-0"

    if mode is FormatMode.ceil:
        return str(math.ceil(value))
    if mode is FormatMode.decimal:
        return f"{_quantize(value, '0.01'):f}"

    if value.is_integer():
        return str(int(value))
    rounded = _quantize(value, "0.0001")
    if rounded == 0:
        return "0"
    return f"{rounded.normalize(_WIDE):f}"


def format_mode_for_sheet(sheet_type: SheetType | str) -> FormatMode:
    """Kahon sheets round up, Inventory sheets keep two decimals."""
    if SheetType(sheet_type) is SheetType.KAHON:
        return FormatMode.ceil
    return FormatMode.decimal


def _leading_number(value: str | None) -> float | None:
    if value is None:
        return None
    m = _NUMERIC_PREFIX_RE.match(value)
    if not m:
        return None
    number = float(m.group(1))
    return number if math.isfinite(number) else None


def is_numeric_value(value: str | None) -> bool:
    """Return True if stored cell text starts with a finite number."""
    if value is None or value.strip() == "":
        return False
    return _leading_number(value) is not None


def parse_numeric_value(value: str | None) -> float:
    """Read stored cell text as a number, ``0.0`` when it is not numeric."""
    number = _leading_number(value)
    return 0.0 if number is None else number


def get_default_column_headers(count: int) -> list[str]:
    """Return ``["A", "B", ...]`` for *count* columns."""
    return [column_index_to_letter(i) for i in range(count)]


def is_valid_hex_color(color: str) -> bool:
    """Return True for ``#RRGGBB`` colours."""
    return _HEX_COLOR_RE.fullmatch(color) is not None
