"""Error types for formula parsing and sheet evaluation."""

from __future__ import annotations

from typing import Sequence

from kahon.formulas.addresses import get_cell_address


class FormulaError(Exception):
    """Base class for all formula-related errors."""


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression under the strict grammar.

    Attributes:
        position: Character position where the error was detected.
        message: Human-readable description.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        self.message = message
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class CircularReferenceError(FormulaError):
    """Raised when a cell formula depends on itself, directly or indirectly.

    Attributes:
        cycle_path: Positions ``(row_index, column_index)`` forming the cycle,
            first and last entries being the same cell.
    """

    def __init__(self, cycle_path: Sequence[tuple[int, int]]) -> None:
        self.cycle_path = list(cycle_path)
        parts = [get_cell_address(r, c) for r, c in self.cycle_path]
        super().__init__(f"Circular cell reference: {' -> '.join(parts)}")


class InvalidCellAddressError(FormulaError, ValueError):
    """An address string that is not of the form ``letters + digits``.

    Attributes:
        address: The rejected address.
    """

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(f"Invalid cell address: {address!r}")
