"""Memoized cell lookup over a sheet snapshot with staged edits.

:class:`SheetGrid` is the ``CellValueLookup`` the evaluator calls for every
cell reference.  It indexes the last-fetched sheet by ``(row, column)``,
layers unsaved edits over it, evaluates formula cells dependencies first,
caches results until an edit touches them, and detects circular references
instead of recursing until the stack runs out.

It also carries the editing flows of the sheet screen: staging typed
input, quick and bulk formulas, colour changes, and building the save
payload for the backend.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from kahon.bulk_formulas import generate_add_for_all_rows, generate_multiply_for_all_rows
from kahon.formatting import (
    FormatMode,
    format_cell_number,
    format_mode_for_sheet,
    get_default_column_headers,
    is_valid_hex_color,
    parse_numeric_value,
)
from kahon.formulas.addresses import CellPosition, get_cell_address, parse_cell_address
from kahon.formulas.errors import CircularReferenceError, FormulaError, InvalidCellAddressError
from kahon.formulas.evaluator import evaluate_formula
from kahon.formulas.parser import looks_like_formula
from kahon.formulas.tokenizer import get_cell_references_from_formula
from kahon.logging.events import (
    CIRCULAR_REFERENCE,
    FORMULA_EVAL_FAILED,
    EventType,
    emit_error,
    emit_info,
    emit_warning,
)
from kahon.models import (
    Cell,
    CellCreate,
    CellUpdate,
    PendingCellChange,
    Row,
    SavePayload,
    Sheet,
)
from kahon.quick_formulas import QuickFormulaType, generate_quick_formula

logger = logging.getLogger(__name__)

_BULK_TYPES = frozenset({QuickFormulaType.multiply_all_rows, QuickFormulaType.add_all_rows})

# Sentinel: keep the colour already staged or stored for a cell.
_KEEP = object()


def _references(formula: str) -> list[CellPosition]:
    return [
        CellPosition(ref.row_index, ref.column_index)
        for ref in get_cell_references_from_formula(formula)
    ]


def position_of(address: str) -> CellPosition:
    """Parse *address*, raising :class:`InvalidCellAddressError` if malformed."""
    pos = parse_cell_address(address)
    if pos is None:
        raise InvalidCellAddressError(address)
    return pos


def load_sheet(path: Path | str) -> Sheet:
    """Read a sheet snapshot from a ``.json`` or YAML file.

    Raises:
        ValueError: If the document is not a mapping.
        pydantic.ValidationError: If it does not describe a sheet.
    """
    path = Path(path)
    text = path.read_text()
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a sheet mapping")
    return Sheet.model_validate(data)


class SheetGrid:
    """Cell lookup and edit staging for one sheet.

    Usage::

        grid = SheetGrid(sheet)
        total = evaluate_formula("A1+B1", grid)
        grid.stage_edit(2, 3, "B3*C3")
        payload = grid.build_save_payload()

    Parameters
    ----------
    sheet : Sheet
        Snapshot as fetched from the backend.  Never mutated.
    format_mode : FormatMode | str | None
        Display mode for computed values; derived from the sheet type
        (Kahon: ceil, Inventory: decimal) when omitted.
    quick_formula_count : int
        Operand count for the "2 above" / "2 left" quick formulas.
    bulk_source_offset : int
        Source columns required to the left of the target by bulk formulas.
    default_columns : int
        Column count used by :meth:`to_frame`.
    """

    def __init__(
        self,
        sheet: Sheet,
        *,
        format_mode: FormatMode | str | None = None,
        quick_formula_count: int = 2,
        bulk_source_offset: int = 2,
        default_columns: int = 10,
    ) -> None:
        self._sheet = sheet
        self._format_mode = (
            FormatMode(format_mode) if format_mode else format_mode_for_sheet(sheet.type)
        )
        self._quick_formula_count = quick_formula_count
        self._bulk_source_offset = bulk_source_offset
        self._default_columns = default_columns

        # First occurrence wins for duplicate row or column indices.
        self._rows: dict[int, Row] = {}
        self._cells: dict[CellPosition, Cell] = {}
        for row in sheet.rows:
            if row.row_index in self._rows:
                continue
            self._rows[row.row_index] = row
            for cell in row.cells:
                self._cells.setdefault(CellPosition(row.row_index, cell.column_index), cell)

        self._pending: dict[tuple[str, int], PendingCellChange] = {}
        self._cache: dict[CellPosition, float] = {}
        self._dependents: dict[CellPosition, set[CellPosition]] = {}
        self._in_progress: list[CellPosition] = []

    @classmethod
    def from_config(cls, sheet: Sheet, config: dict[str, Any]) -> SheetGrid:
        """Build a grid using the options of a loaded ``kahon.yaml``.

        Raises:
            ValueError: If a count option is negative or not an integer.
        """
        counts: dict[str, int] = {}
        for key, default in (
            ("quick_formula_count", 2),
            ("bulk_source_offset", 2),
            ("default_columns", 10),
        ):
            counts[key] = int(config.get(key, default))
            if counts[key] < 0:
                raise ValueError(f"{key} must be >= 0, got {counts[key]}")
        return cls(sheet, format_mode=config.get("format_mode"), **counts)

    @property
    def sheet(self) -> Sheet:
        return self._sheet

    @property
    def format_mode(self) -> FormatMode:
        return self._format_mode

    @property
    def pending_changes(self) -> list[PendingCellChange]:
        return list(self._pending.values())

    @property
    def has_changes(self) -> bool:
        return bool(self._pending)

    # ------------------------------------------------------------------
    # CellValueLookup
    # ------------------------------------------------------------------

    def __call__(self, row_index: int, column_index: int) -> float:
        return self.cell_value(row_index, column_index)

    def cell_value(self, row_index: int, column_index: int) -> float:
        """Numeric value of a cell; 0 when the cell is empty or missing.

        Raises:
            CircularReferenceError: If the cell's formula depends on itself.
        """
        pos = CellPosition(row_index, column_index)
        self._check_cycle(pos)
        if pos not in self._cache and not self._in_progress:
            self._warm([pos])
        return self._lookup(pos)

    def resolve(self, address: str) -> float:
        """:meth:`cell_value` by address, e.g. ``grid.resolve("B3")``."""
        pos = position_of(address)
        return self.cell_value(pos.row_index, pos.column_index)

    def _lookup(self, pos: CellPosition) -> float:
        if pos in self._cache:
            return self._cache[pos]

        source = self._source(pos)
        if source is None:
            return 0.0
        value, formula = source
        if formula:
            result = self._evaluate_at(pos, formula)
            for ref in _references(formula):
                self._dependents.setdefault(ref, set()).add(pos)
        else:
            result = parse_numeric_value(value)
        self._cache[pos] = result
        return result

    def _source(self, pos: CellPosition) -> tuple[str | None, str | None] | None:
        """(value, formula) for a position: staged edit first, then the snapshot."""
        row = self._rows.get(pos.row_index)
        if row is None:
            return None
        pending = self._pending.get((row.key, pos.column_index))
        if pending is not None:
            return pending.value, pending.formula
        cell = self._cells.get(pos)
        if cell is None:
            return None
        return cell.value, cell.formula

    def _formula_at(self, pos: CellPosition) -> str | None:
        source = self._source(pos)
        return source[1] if source is not None else None

    def _warm(self, roots: list[CellPosition]) -> None:
        """Cache the formula cells under *roots*, dependencies first.

        Walks references with an explicit stack so long chains such as a
        running total do not recurse once per row.  Cells that sit on a
        cycle, or that reach a position already being evaluated, are left
        uncached; evaluating them afterwards raises the cycle error.
        """
        deps: dict[CellPosition, list[CellPosition]] = {}
        on_path: set[CellPosition] = set()
        done: set[CellPosition] = set()
        failed: set[CellPosition] = set()
        stack: list[tuple[CellPosition, CellPosition | None, bool]] = [
            (root, None, False) for root in reversed(roots)
        ]
        while stack:
            pos, parent, finishing = stack.pop()
            if finishing:
                on_path.discard(pos)
                done.add(pos)
                if pos in failed or any(dep in failed for dep in deps[pos]):
                    failed.add(pos)
                    continue
                try:
                    self._lookup(pos)
                except CircularReferenceError:
                    failed.add(pos)
                continue
            if pos in on_path or pos in self._in_progress:
                if parent is not None:
                    failed.add(parent)
                continue
            if pos in done or pos in self._cache:
                continue
            formula = self._formula_at(pos)
            if not formula:
                continue
            deps[pos] = _references(formula)
            on_path.add(pos)
            stack.append((pos, parent, True))
            stack.extend((dep, pos, False) for dep in reversed(deps[pos]))

    def _check_cycle(self, pos: CellPosition) -> None:
        if pos in self._in_progress:
            start = self._in_progress.index(pos)
            cycle = self._in_progress[start:] + [pos]
            logger.debug("circular reference through %s", get_cell_address(*pos))
            raise CircularReferenceError(cycle)

    def _evaluate_at(self, pos: CellPosition, formula: str) -> float:
        """Evaluate *formula* as the content of *pos*, guarding against cycles."""
        self._check_cycle(pos)
        self._in_progress.append(pos)
        try:
            return evaluate_formula(formula, self.cell_value)
        finally:
            self._in_progress.pop()

    def _evaluate_candidate(self, pos: CellPosition, formula: str) -> float:
        """Evaluate text about to be staged at *pos*.

        Cached values that read *pos* predate the edit, so they are dropped
        first; those cells then reach *pos* through the in-progress stack.
        """
        self._invalidate_from(pos)
        self._check_cycle(pos)
        self._in_progress.append(pos)
        try:
            self._warm(_references(formula))
            return evaluate_formula(formula, self.cell_value)
        finally:
            self._in_progress.pop()

    def invalidate(self) -> None:
        """Clear every cached value."""
        self._cache.clear()
        self._dependents.clear()

    def _invalidate_from(self, pos: CellPosition) -> None:
        """Drop the cached value of *pos* and of every cell that reads it."""
        stack = [pos]
        seen: set[CellPosition] = set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            self._cache.pop(current, None)
            stack.extend(self._dependents.pop(current, ()))

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def display_value(self, row_index: int, column_index: int) -> str:
        """Text shown in a cell.

        Formula cells show their formatted result; if evaluation fails the
        stored value is shown, or ``"Error"`` when there is none.
        """
        pos = CellPosition(row_index, column_index)
        source = self._source(pos)
        if source is None:
            return ""
        value, formula = source
        if not formula:
            return value or ""
        try:
            result = self.cell_value(row_index, column_index)
        except CircularReferenceError as exc:
            emit_error(
                EventType.circular_reference,
                str(exc),
                {"address": get_cell_address(*pos), "formula": formula},
                error_code=CIRCULAR_REFERENCE,
            )
            return value or "Error"
        except RecursionError:
            emit_error(
                EventType.formula_fallback,
                "Formula nested too deeply to evaluate",
                {"address": get_cell_address(*pos), "formula": formula},
                error_code=FORMULA_EVAL_FAILED,
            )
            return value or "Error"
        return format_cell_number(result, self._format_mode)

    def display_rows(self) -> list[Row]:
        """Rows ordered by index with staged edits merged into their cells."""
        rows: list[Row] = []
        for row in sorted(self._sheet.rows, key=lambda r: r.row_index):
            cells: list[Cell] = []
            seen: set[int] = set()
            for cell in row.cells:
                pending = self._pending.get((row.key, cell.column_index))
                if pending is not None and cell.column_index not in seen:
                    cell = cell.model_copy(
                        update={
                            "value": pending.value,
                            "formula": pending.formula,
                            "color": pending.color,
                            "is_calculated": bool(pending.formula),
                        }
                    )
                cells.append(cell)
                seen.add(cell.column_index)
            for (row_key, column_index), change in self._pending.items():
                if row_key != row.key or column_index in seen:
                    continue
                cells.append(
                    Cell(
                        column_index=column_index,
                        value=change.value,
                        formula=change.formula,
                        color=change.color,
                        is_calculated=bool(change.formula),
                        row_id=row.id,
                    )
                )
                seen.add(column_index)
            rows.append(row.model_copy(update={"cells": cells}))
        return rows

    def to_frame(self, column_count: int | None = None) -> pl.DataFrame:
        """Display values as a DataFrame: ``row_index`` then one column per letter."""
        headers = get_default_column_headers(column_count or self._default_columns)
        data: dict[str, list[Any]] = {"row_index": []}
        for header in headers:
            data[header] = []
        for row_index in sorted(self._rows):
            data["row_index"].append(row_index)
            for column_index, header in enumerate(headers):
                data[header].append(self.display_value(row_index, column_index))
        schema = {"row_index": pl.Int64, **{h: pl.Utf8 for h in headers}}
        return pl.DataFrame(data, schema=schema)

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def _require_row(self, row_index: int) -> Row:
        row = self._rows.get(row_index)
        if row is None:
            raise ValueError(f"No row at index {row_index}")
        return row

    def _stage(
        self,
        row: Row,
        column_index: int,
        value: str | None,
        formula: str | None,
        color: Any = _KEEP,
    ) -> PendingCellChange:
        key = (row.key, column_index)
        cell = self._cells.get(CellPosition(row.row_index, column_index))
        if color is _KEEP:
            existing = self._pending.get(key)
            if existing is not None:
                color = existing.color
            else:
                color = cell.color if cell is not None else None
        change = PendingCellChange(
            cell_id=cell.id if cell is not None else None,
            row_id=row.key,
            column_index=column_index,
            value=value,
            formula=formula,
            color=color,
        )
        self._pending[key] = change
        for other in self._rows.values():
            if other.key == row.key:
                self._invalidate_from(CellPosition(other.row_index, column_index))
        return change

    def stage_edit(self, row_index: int, column_index: int, text: str | None) -> PendingCellChange:
        """Stage what the user typed into a cell.

        Empty input clears the cell.  Input that looks like a formula is
        evaluated and staged with its formatted result; if evaluation fails
        (a circular reference) the raw text is staged as a plain value.

        Raises:
            ValueError: If there is no row at *row_index*.
        """
        row = self._require_row(row_index)
        text = (text or "").strip()
        if not text:
            return self._stage(row, column_index, None, None)
        if not looks_like_formula(text):
            return self._stage(row, column_index, text, None)

        pos = CellPosition(row_index, column_index)
        try:
            result = self._evaluate_candidate(pos, text)
        except (FormulaError, RecursionError) as exc:
            emit_warning(
                EventType.formula_fallback,
                f"Stored formula text as a value: {exc}",
                {"address": get_cell_address(*pos), "formula": text},
                error_code=FORMULA_EVAL_FAILED,
            )
            return self._stage(row, column_index, text, None)
        return self._stage(row, column_index, format_cell_number(result, self._format_mode), text)

    def set_color(self, row_index: int, column_index: int, color: str | None) -> PendingCellChange:
        """Stage a background colour, keeping the cell's value and formula.

        Raises:
            ValueError: If *color* is not ``#RRGGBB`` or ``None``, or there
                is no row at *row_index*.
        """
        if color is not None and not is_valid_hex_color(color):
            raise ValueError(f"Invalid colour: {color!r}")
        row = self._require_row(row_index)
        existing = self._pending.get((row.key, column_index))
        if existing is not None:
            value, formula = existing.value, existing.formula
        else:
            cell = self._cells.get(CellPosition(row_index, column_index))
            value = cell.value if cell is not None else None
            formula = cell.formula if cell is not None else None
        return self._stage(row, column_index, value, formula, color)

    def apply_quick_formula(
        self,
        formula_type: QuickFormulaType | str,
        row_index: int,
        column_index: int,
    ) -> list[PendingCellChange]:
        """Generate, evaluate and stage a quick formula at the selected cell.

        Bulk types fill the selected column on every qualifying row.
        Returns the staged changes; a template with no operands or one that
        cannot be evaluated stages nothing.

        Raises:
            ValueError: For an unknown type, or a single-cell type with no
                row at *row_index*.
        """
        formula_type = QuickFormulaType(formula_type)
        if formula_type in _BULK_TYPES:
            return self._apply_bulk(formula_type, column_index)

        row = self._require_row(row_index)
        formula = generate_quick_formula(
            formula_type, row_index, column_index, self._quick_formula_count
        )
        if not formula:
            return []
        pos = CellPosition(row_index, column_index)
        try:
            result = self._evaluate_candidate(pos, formula)
        except (FormulaError, RecursionError) as exc:
            emit_warning(
                EventType.formula_fallback,
                f"Quick formula not applied: {exc}",
                {"address": get_cell_address(*pos), "formula": formula},
                error_code=FORMULA_EVAL_FAILED,
            )
            return []
        change = self._stage(row, column_index, format_cell_number(result, self._format_mode), formula)
        emit_info(
            EventType.quick_formula_applied,
            f"{formula_type.value} at {get_cell_address(*pos)}",
            {"type": formula_type.value, "address": get_cell_address(*pos), "formula": formula},
        )
        return [change]

    def _apply_bulk(self, formula_type: QuickFormulaType, column_index: int) -> list[PendingCellChange]:
        generate = (
            generate_multiply_for_all_rows
            if formula_type is QuickFormulaType.multiply_all_rows
            else generate_add_for_all_rows
        )
        results = generate(self.display_rows(), column_index, self._bulk_source_offset)
        staged: list[PendingCellChange] = []
        skipped = 0
        for result in results:
            row = self._rows[result.row_index]
            pos = CellPosition(result.row_index, result.column_index)
            try:
                value = self._evaluate_candidate(pos, result.formula)
            except (FormulaError, RecursionError):
                skipped += 1
                continue
            staged.append(
                self._stage(
                    row,
                    result.column_index,
                    format_cell_number(value, self._format_mode),
                    result.formula,
                )
            )
        emit_info(
            EventType.bulk_formula_applied,
            f"{formula_type.value} staged {len(staged)} cells",
            {
                "type": formula_type.value,
                "column_index": column_index,
                "staged": len(staged),
                "skipped": skipped,
            },
        )
        return staged

    def discard_changes(self) -> None:
        """Drop every staged edit."""
        count = len(self._pending)
        self._pending.clear()
        self.invalidate()
        if count:
            emit_info(EventType.changes_discarded, f"Discarded {count} staged edits", {"count": count})

    def build_save_payload(self) -> SavePayload:
        """Split staged edits into updates of existing cells and new cells."""
        payload = SavePayload()
        for change in self._pending.values():
            if change.cell_id:
                payload.updates.append(
                    CellUpdate(
                        id=change.cell_id,
                        value=change.value or None,
                        formula=change.formula or None,
                        color=change.color or None,
                        is_calculated=bool(change.formula),
                    )
                )
            else:
                payload.creates.append(
                    CellCreate(
                        row_id=change.row_id,
                        column_index=change.column_index,
                        value=change.value or None,
                        formula=change.formula or None,
                        color=change.color or None,
                        is_calculated=bool(change.formula),
                    )
                )
        return payload
