"""Command line entrypoint for solarsetup.

Commands:

* ``check``: evaluate a setup file and print statistics plus diagnostics.
* ``init``/``add``/``rename``/``set``/``assign``/``clone``/``remove``: edit a
  setup file component by component.
* ``derate``: temperature-adjusted string Voc/Pmax per array.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from solarsetup import __version__
from solarsetup.core.config import ConfigError, load_setup, write_setup
from solarsetup.core.debug import NullDebugCollector, build_debug_collector
from solarsetup.core.inventory import Inventory
from solarsetup.core.models import ComponentType, Setup, ValidationError, component_to_dict
from solarsetup.engine import evaluate
from solarsetup.pv.derate import derate_arrays
from solarsetup.pv.temperature import cell_temperature
from solarsetup.report import evaluation_to_dict, render_text

app = typer.Typer(add_completion=False, help="Off-grid solar setup checker")

_TYPE_ALIASES = {
    "panel": ComponentType.PANEL,
    "array": ComponentType.ARRAY,
    "mppt": ComponentType.MPPT,
    "battery": ComponentType.BATTERY,
    "inverter": ComponentType.INVERTER,
}


def _exit_with_error(msg: str) -> None:
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(code=1)


def _load(config: Path) -> Setup:
    try:
        return load_setup(config)
    except ConfigError as exc:
        _exit_with_error(str(exc))


def _save(config: Path, setup: Setup) -> None:
    try:
        write_setup(config, setup)
    except ConfigError as exc:
        _exit_with_error(str(exc))


def _parse_kind(raw: str) -> ComponentType:
    kind = _TYPE_ALIASES.get(raw.strip().lower())
    if kind is not None:
        return kind
    try:
        return ComponentType(raw)
    except ValueError:
        _exit_with_error(f"Unknown component type {raw!r}; choose from {sorted(_TYPE_ALIASES)}")


def _edit(config: Path, action) -> None:
    """Load, apply ``action(inventory)``, and save only if it succeeded."""

    inventory = Inventory.from_setup(_load(config))
    try:
        result = action(inventory)
    except KeyError as exc:
        _exit_with_error(f"No component with id {exc.args[0]}")
    except ValidationError as exc:
        _exit_with_error(str(exc))
    _save(config, inventory.setup())
    for comp in result if isinstance(result, list) else [result]:
        typer.echo(f"{comp.id}\t{comp.type.value}\t{comp.name}")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def version_callback(
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit"
    ),
):
    """Off-grid solar setup checker."""


@app.command()
def check(
    config: Path = typer.Argument(..., help="Setup YAML/JSON file"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text or json"),
    output: Optional[Path] = typer.Option(None, help="Write the report here instead of stdout"),
    debug: Optional[Path] = typer.Option(None, help="Write debug events to this path (.json or .jsonl)"),
    strict: bool = typer.Option(False, "--strict", help="Exit with code 1 when any error is reported"),
):
    """Evaluate a setup and print statistics plus compatibility notes."""

    if format not in {"text", "json"}:
        _exit_with_error("format must be text or json")
    setup = _load(config)

    collector = build_debug_collector(debug) if debug else NullDebugCollector()
    try:
        evaluation = evaluate(setup, debug=collector)
    finally:
        if debug:
            collector.close()

    if format == "json":
        rendered = json.dumps(evaluation_to_dict(setup, evaluation), indent=2)
    else:
        rendered = render_text(setup, evaluation)

    if output:
        output.write_text(rendered)
        typer.echo(f"Wrote {output}")
    else:
        typer.echo(rendered.rstrip("\n"))

    if strict and evaluation.has_errors:
        raise typer.Exit(code=1)


@app.command()
def init(
    config: Path = typer.Argument(..., help="Setup file to create (.yaml/.yml/.json)"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write an empty setup with default assumptions."""

    if config.exists() and not force:
        _exit_with_error(f"{config} already exists; use --force to overwrite")
    _save(config, Setup())
    typer.echo(f"Wrote {config}")


@app.command()
def add(
    config: Path = typer.Argument(..., help="Setup YAML/JSON file"),
    kind: str = typer.Argument(..., help="panel, array, mppt, battery or inverter"),
    quantity: int = typer.Option(1, "--quantity", "-n", min=1, help="How many to add"),
):
    """Add components with default (empty) properties."""

    component_type = _parse_kind(kind)
    _edit(config, lambda inv: inv.add(component_type, quantity))


@app.command()
def rename(config: Path, component_id: str, name: str):
    """Rename a component."""

    _edit(config, lambda inv: inv.rename(component_id, name))


@app.command("set")
def set_property(config: Path, component_id: str, key: str, value: str):
    """Set one property of a component."""

    _edit(config, lambda inv: inv.set_property(component_id, key, value))


@app.command()
def assign(
    config: Path = typer.Argument(..., help="Setup YAML/JSON file"),
    array_id: str = typer.Argument(..., help="Array configuration id"),
    panel: Optional[str] = typer.Option(None, help="Panel id the array is built from"),
    mppt: Optional[str] = typer.Option(None, help="Charge controller id the array feeds"),
):
    """Point an array at its panel and/or charge controller."""

    _edit(config, lambda inv: inv.assign(array_id, panel_id=panel, mppt_id=mppt))


@app.command()
def clone(config: Path, component_id: str):
    """Duplicate a component; cloned arrays start unassigned."""

    _edit(config, lambda inv: inv.clone(component_id))


@app.command()
def remove(config: Path, component_id: str):
    """Remove a component and clear array references to it."""

    _edit(config, lambda inv: inv.remove(component_id))


@app.command("list")
def list_components(config: Path):
    """List components with their properties."""

    setup = _load(config)
    for comp in setup.components:
        data = component_to_dict(comp)
        props = ", ".join(f"{k}={v}" for k, v in data["properties"].items() if v != "")
        typer.echo(f"{comp.id}\t{comp.type.value}\t{comp.name}\t{props}")


@app.command()
def derate(
    config: Path = typer.Argument(..., help="Setup YAML/JSON file"),
    cell_temp: Optional[float] = typer.Option(None, help="Cell temperature in °C"),
    temp_air: Optional[float] = typer.Option(None, help="Ambient temperature in °C (estimates cell temperature)"),
    poa: float = typer.Option(1000.0, help="Plane-of-array irradiance W/m2 used with --temp-air"),
    wind: float = typer.Option(1.0, help="Wind speed m/s used with --temp-air"),
    mounting: str = typer.Option("open_rack_glass_glass", help="SAPM mounting used with --temp-air"),
):
    """Show string Voc/Pmax adjusted to a cell temperature."""

    if cell_temp is None and temp_air is None:
        _exit_with_error("pass --cell-temp or --temp-air")
    setup = _load(config)
    if cell_temp is None:
        try:
            cell_temp = cell_temperature(poa, temp_air, wind, mounting=mounting)
        except ValueError as exc:
            _exit_with_error(str(exc))
    table = derate_arrays(setup, cell_temp)
    if table.empty:
        typer.echo("No arrays with a selected panel.")
        return
    typer.echo(table.round(2).to_string(index=False))


def main() -> None:  # pragma: no cover - thin wrapper for console_script
    app()


__all__ = ["app", "main"]


if __name__ == "__main__":  # pragma: no cover
    main()
