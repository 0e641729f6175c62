"""Command-line interface for kahon."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from kahon import __version__


@click.group()
@click.version_option(version=__version__, prog_name="kahon")
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding kahon.yaml; events are logged under it.",
)
@click.pass_context
def main(ctx: click.Context, project_dir: Path | None) -> None:
    """kahon -- evaluate and build Kahon/Inventory sheet formulas."""
    import yaml

    from kahon.config import load_config

    try:
        ctx.obj = load_config(project_dir or Path.cwd())
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e))
    if project_dir is not None:
        from kahon.logging import set_project_dir

        set_project_dir(project_dir)


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse_cells(items: tuple[str, ...]) -> dict[tuple[int, int], float]:
    from kahon.sheet_grid import position_of
    from kahon.formulas import InvalidCellAddressError

    cells: dict[tuple[int, int], float] = {}
    for item in items:
        if "=" not in item:
            raise click.ClickException(f"Invalid --cell format: {item!r}. Use A1=5.")
        addr, raw = item.split("=", 1)
        try:
            pos = position_of(addr.strip())
            cells[pos] = float(raw)
        except InvalidCellAddressError as e:
            raise click.ClickException(str(e))
        except ValueError:
            raise click.ClickException(f"Invalid number for {addr.strip()}: {raw!r}")
    return cells


def _load_grid(path: str, config: dict[str, Any]):
    import yaml
    from pydantic import ValidationError

    from kahon.sheet_grid import SheetGrid, load_sheet

    try:
        return SheetGrid.from_config(load_sheet(path), config)
    except (ValueError, ValidationError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot load sheet {path}: {e}")


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--cell", "cells", multiple=True, help="Cell value as ADDRESS=NUMBER, e.g. A1=5.")
@click.option("--sheet", "sheet_path", default=None, type=click.Path(exists=True, dir_okay=False), help="Resolve cells from a sheet snapshot (YAML or JSON).")
@click.option("--mode", type=click.Choice(["default", "ceil", "decimal"]), default=None, help="Output format (default: sheet type, else default).")
@click.pass_obj
def eval_cmd(config: dict[str, Any], formula: str, cells: tuple[str, ...], sheet_path: str | None, mode: str | None) -> None:
    """Evaluate FORMULA and print the formatted result."""
    from kahon.formatting import format_cell_number
    from kahon.formulas import CircularReferenceError, evaluate_formula

    if sheet_path and cells:
        raise click.ClickException("--cell cannot be combined with --sheet")

    if sheet_path:
        grid = _load_grid(sheet_path, config)
        lookup = grid
        mode = mode or grid.format_mode.value
    else:
        values = _parse_cells(cells)

        def lookup(row_index: int, column_index: int) -> float:
            return values.get((row_index, column_index), 0.0)

    try:
        result = evaluate_formula(formula, lookup)
    except CircularReferenceError as e:
        raise click.ClickException(str(e))
    click.echo(format_cell_number(result, mode or "default"))


# ---------------------------------------------------------------------------
# Address
# ---------------------------------------------------------------------------


@main.command()
@click.argument("address", required=False)
@click.option("--row", "row_index", type=click.IntRange(min=0), default=None, help="0-based row.")
@click.option("--col", "column_index", type=click.IntRange(min=0), default=None, help="0-based column.")
def address(address: str | None, row_index: int | None, column_index: int | None) -> None:
    """Convert between ADDRESS (e.g. B12) and 0-based --row/--col."""
    from kahon.formulas import get_cell_address, parse_cell_address

    if address is not None:
        pos = parse_cell_address(address)
        if pos is None:
            raise click.ClickException(f"Invalid cell address: {address!r}")
        click.echo(f"row={pos.row_index} col={pos.column_index}")
        return
    if row_index is None or column_index is None:
        raise click.ClickException("Give an ADDRESS or both --row and --col")
    click.echo(get_cell_address(row_index, column_index))


# ---------------------------------------------------------------------------
# Quick formulas
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula_type", metavar="TYPE")
@click.argument("address")
@click.option("--count", type=click.IntRange(min=1), default=None, help="Operands for the '2 above' / '2 left' templates.")
@click.pass_obj
def quick(config: dict[str, Any], formula_type: str, address: str, count: int | None) -> None:
    """Print the quick formula TYPE for the cell at ADDRESS."""
    from kahon.formulas import parse_cell_address
    from kahon.quick_formulas import generate_quick_formula

    pos = parse_cell_address(address)
    if pos is None:
        raise click.ClickException(f"Invalid cell address: {address!r}")
    try:
        formula = generate_quick_formula(
            formula_type,
            pos.row_index,
            pos.column_index,
            count or int(config.get("quick_formula_count", 2)),
        )
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(formula)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def formulas(as_json: bool) -> None:
    """List the quick formula catalog."""
    from kahon.quick_formulas import QUICK_FORMULA_OPTIONS

    if as_json:
        click.echo(json.dumps([opt.model_dump(mode="json") for opt in QUICK_FORMULA_OPTIONS], indent=2))
        return
    for opt in QUICK_FORMULA_OPTIONS:
        scope = "bulk" if opt.is_bulk else "cell"
        click.echo(f"{opt.type.value:<20} {scope:<5} {opt.description}")


# ---------------------------------------------------------------------------
# Check
# ---------------------------------------------------------------------------


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, formula: str, as_json: bool) -> None:
    """Report problems in FORMULA; exits 1 when any are found."""
    from kahon.formulas import diagnose_formula
    from kahon.logging import EventType, emit_warning
    from kahon.logging.events import MALFORMED_FORMULA

    diagnostics = diagnose_formula(formula)
    if as_json:
        click.echo(json.dumps([d._asdict() for d in diagnostics], indent=2))
    elif not diagnostics:
        click.echo("OK")
    else:
        for d in diagnostics:
            where = f" at {d.position}" if d.position is not None else ""
            click.echo(f"{d.code}{where}: {d.message}")

    if diagnostics:
        emit_warning(
            EventType.formula_diagnostics,
            f"{len(diagnostics)} problem(s) in formula",
            {"formula": formula, "codes": [d.code for d in diagnostics]},
            error_code=MALFORMED_FORMULA,
        )
        ctx.exit(1)


# ---------------------------------------------------------------------------
# Sheet
# ---------------------------------------------------------------------------


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--csv", "csv_path", default=None, type=click.Path(dir_okay=False), help="Write display values to a CSV file.")
@click.option("--columns", type=click.IntRange(min=1), default=None, help="Number of columns (default from kahon.yaml).")
@click.pass_obj
def sheet(config: dict[str, Any], path: str, csv_path: str | None, columns: int | None) -> None:
    """Evaluate a sheet snapshot at PATH and show its display values."""
    grid = _load_grid(path, config)
    frame = grid.to_frame(columns)
    if csv_path:
        frame.write_csv(csv_path)
        click.echo(f"Wrote {frame.height} rows to {csv_path}")
        return
    for record in frame.iter_rows(named=True):
        cells = [f"{k}={v}" for k, v in record.items() if k != "row_index" and v != ""]
        click.echo(f"{record['row_index'] + 1}: {' '.join(cells)}")
