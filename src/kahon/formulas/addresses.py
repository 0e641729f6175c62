"""A1-style cell addressing.

Columns use bijective base-26 lettering (``A`` .. ``Z``, ``AA`` .. ``ZZ``,
``AAA`` ..) and rows are shown 1-based, so position ``(0, 0)`` is ``A1`` and
``(11, 1)`` is ``B12``.
"""

from __future__ import annotations

import re
from typing import NamedTuple

_ADDR_RE = re.compile(r"([A-Z]+)([0-9]+)")


class CellPosition(NamedTuple):
    """Zero-based grid position."""

    row_index: int
    column_index: int


def column_index_to_letter(index: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    result = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def column_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26.

    Lower-case letters are accepted.
    """
    upper = letters.upper()
    if not upper or not all("A" <= ch <= "Z" for ch in upper):
        raise ValueError(f"Invalid column letters: {letters!r}")
    idx = 0
    for ch in upper:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def get_cell_address(row_index: int, column_index: int) -> str:
    """Build cell address from 0-based row/col."""
    return f"{column_index_to_letter(column_index)}{row_index + 1}"


def parse_cell_address(address: str) -> CellPosition | None:
    """Parse ``'A1'`` into ``CellPosition(0, 0)``.

    Returns ``None`` for anything that is not letters followed by digits
    (``"1A"``, ``"A"``, ``"A1B"``, ``""``), for row number 0, and for row
    numbers too long to convert to an int.
    """
    m = _ADDR_RE.fullmatch(address.upper())
    if not m:
        return None
    digits = m.group(2).lstrip("0")
    if not digits:
        return None
    try:
        row_number = int(digits)
    except ValueError:
        # More digits than int() accepts from a string.
        return None
    return CellPosition(row_number - 1, column_letter_to_index(m.group(1)))


def is_valid_cell_address(address: str) -> bool:
    """Return True if *address* parses as a cell address."""
    return parse_cell_address(address) is not None
