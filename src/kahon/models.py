"""Sheet entities as delivered by the backend, plus staged-edit payloads.

Field names are snake_case in Python; the backend's camelCase JSON keys
(``rowIndex``, ``columnIndex``, ``isCalculated`` ...) are accepted as
aliases and produced by ``model_dump(by_alias=True)``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SheetType(str, Enum):
    KAHON = "KAHON"
    INVENTORY = "INVENTORY"


class _SheetModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Cell(_SheetModel):
    id: Optional[str] = None
    column_index: int = Field(ge=0)
    value: Optional[str] = None
    formula: Optional[str] = None
    color: Optional[str] = None
    is_calculated: bool = False
    row_id: Optional[str] = None


class Row(_SheetModel):
    id: Optional[str] = None
    row_index: int = Field(ge=0)
    is_item_row: bool = False
    item_name: Optional[str] = None
    cells: list[Cell] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Identifier used for staged edits; falls back to the row index."""
        return self.id or f"row-{self.row_index}"


class Sheet(_SheetModel):
    id: Optional[str] = None
    type: SheetType = SheetType.INVENTORY
    cashier_id: Optional[str] = None
    rows: list[Row] = Field(default_factory=list)


class PendingCellChange(_SheetModel):
    """An unsaved edit layered over the last-fetched sheet."""

    cell_id: Optional[str] = None  # None: the cell does not exist yet
    row_id: str
    column_index: int
    value: Optional[str] = None
    formula: Optional[str] = None
    color: Optional[str] = None


class CellUpdate(_SheetModel):
    id: str
    value: Optional[str] = None
    formula: Optional[str] = None
    color: Optional[str] = None
    is_calculated: bool = False


class CellCreate(_SheetModel):
    row_id: str
    column_index: int
    value: Optional[str] = None
    formula: Optional[str] = None
    color: Optional[str] = None
    is_calculated: bool = False


class SavePayload(_SheetModel):
    """Bodies for the backend's batch edit and batch create cell endpoints."""

    updates: list[CellUpdate] = Field(default_factory=list)
    creates: list[CellCreate] = Field(default_factory=list)
