"""Shared fixtures for kahon tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from kahon.models import Sheet


# ────────────────────────────────────────────────────────────────
# Event log
# ────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _no_event_sink(monkeypatch):
    """Start every test with logging disabled; restore afterwards."""
    import kahon.logging.events as mod

    monkeypatch.setattr(mod, "_sink", None)


@pytest.fixture
def event_log(tmp_path: Path, monkeypatch):
    """Route emitted events to a sink under tmp_path and return it."""
    import kahon.logging.events as mod
    from kahon.logging.sink import EventSink

    sink = EventSink(tmp_path / "logs")
    monkeypatch.setattr(mod, "_sink", sink)
    return sink


# ────────────────────────────────────────────────────────────────
# Sheets
# ────────────────────────────────────────────────────────────────


def _inventory_data() -> dict[str, Any]:
    """A small Inventory sheet, in the backend's camelCase shape.

    Layout (values / formulas)::

            A     B      C
        1   10    5      =A1*B1   (stored "50")
        2   4     2.5    =A2*B2   (stored "10")
        3                =C1+C2
    """
    return {
        "id": "sheet-1",
        "type": "INVENTORY",
        "cashierId": "cashier-7",
        "rows": [
            {
                "id": "r0",
                "rowIndex": 0,
                "cells": [
                    {"id": "c00", "columnIndex": 0, "value": "10"},
                    {"id": "c01", "columnIndex": 1, "value": "5"},
                    {"id": "c02", "columnIndex": 2, "value": "50", "formula": "A1*B1", "isCalculated": True},
                ],
            },
            {
                "id": "r1",
                "rowIndex": 1,
                "cells": [
                    {"id": "c10", "columnIndex": 0, "value": "4"},
                    {"id": "c11", "columnIndex": 1, "value": "2.5"},
                    {"id": "c12", "columnIndex": 2, "value": "10", "formula": "A2*B2", "isCalculated": True},
                ],
            },
            {
                "id": "r2",
                "rowIndex": 2,
                "cells": [
                    {"id": "c22", "columnIndex": 2, "formula": "C1+C2", "isCalculated": True},
                ],
            },
        ],
    }


@pytest.fixture
def inventory_data() -> dict[str, Any]:
    return _inventory_data()


@pytest.fixture
def inventory_sheet() -> Sheet:
    return Sheet.model_validate(_inventory_data())


@pytest.fixture
def cyclic_sheet() -> Sheet:
    """A1 -> B1 -> A1, plus a self-referencing C1 and a plain D1."""
    return Sheet.model_validate(
        {
            "type": "KAHON",
            "rows": [
                {
                    "id": "r0",
                    "rowIndex": 0,
                    "cells": [
                        {"id": "a", "columnIndex": 0, "formula": "B1"},
                        {"id": "b", "columnIndex": 1, "value": "7", "formula": "A1+1"},
                        {"id": "c", "columnIndex": 2, "formula": "C1*2"},
                        {"id": "d", "columnIndex": 3, "value": "3"},
                    ],
                }
            ],
        }
    )


@pytest.fixture
def sheet_file(tmp_path: Path) -> Path:
    path = tmp_path / "sheet.json"
    path.write_text(json.dumps(_inventory_data()))
    return path
