# src/cartkeeper/cli.py
"""
CartKeeper Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`.

Features
--------
- **Session Replay**: Run a scripted register session (JSON) against the
  checkpoint history on a virtual clock, so debounced auto-saves happen
  exactly when the script says time has passed.
- **Rich Rendering**: Step log, checkpoint timeline (cursor marked) and the
  final cart with totals.
- **JSON Output**: `--json` prints the final cart and history for tooling.

Usage
-----
    # Replay a session script
    $ cartkeeper run samples/session.json

    # Override auto-save for the run
    $ cartkeeper run samples/session.json --threshold 500
    $ cartkeeper run samples/session.json --no-autosave --json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cartkeeper import __version__
from cartkeeper.core.cart import line_quantity, parse_amount
from cartkeeper.core.contracts.session import SessionScript
from cartkeeper.pipelines.session_replay import ReplayResult, run_script

# Ensure env vars (like CARTKEEPER_AUTOSAVE_THRESHOLD_MS) are loaded before any logic runs
load_dotenv()

# Initialize Typer app and Rich console
app = typer.Typer(
    help="CartKeeper: cart checkpoints with undo/redo and debounced auto-save.",
    rich_markup_mode="markdown",
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers: Loading & Rendering
# --------------------------------------------------------------------------- #


def _load_script(path: Path) -> SessionScript:
    """Read and validate a session script file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return SessionScript.model_validate(data)


def _render_steps(result: ReplayResult) -> None:
    table = Table(title=f"Session: {result['name']}", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("t (ms)", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Outcome")
    table.add_column("Checkpoints", justify="right")

    for out in result["outcomes"]:
        style = "" if out.applied else "yellow"
        table.add_row(
            str(out.index + 1),
            f"{out.clock_ms:.0f}",
            out.op,
            f"[{style}]{out.detail}[/{style}]" if style else out.detail,
            str(out.checkpoints),
        )
    console.print(table)


def _render_history(result: ReplayResult) -> None:
    svc = result["service"]
    cursor = svc.history_cursor()
    table = Table(title=f"History ({len(svc.get_all_saved_states())}/{svc.history_capacity})")
    table.add_column("", width=2)
    table.add_column("#", justify="right")
    table.add_column("Label")
    table.add_column("Units", justify="right")

    for i, snap in enumerate(svc.get_all_saved_states()):
        marker = "▶" if i == cursor else ""
        table.add_row(marker, str(i), snap.label, str(snap.item_count()))
    console.print(table)


def _render_cart(result: ReplayResult) -> None:
    svc = result["service"]
    totals = result["editor"].totals()
    lines = [
        f" • {item.get('name') or item.get('id')} x{line_quantity(item)}"
        f" @ {parse_amount(item.get('price')):.2f}"
        for item in svc.get_cart_items()
    ] or [" (empty)"]
    vouchers = [f" • voucher {v.get('id')} -{parse_amount(v.get('value')):.2f}"
                for v in svc.get_applied_instruments() if isinstance(v, dict)]
    body = "\n".join(
        [
            *lines,
            *vouchers,
            "",
            f"Subtotal: {totals.subtotal:.2f}   Discount: {totals.voucher_discount:.2f}"
            f"   [bold]Total: {totals.total:.2f}[/bold]",
            f"Undo: {'yes' if svc.can_undo() else 'no'}   Redo: {'yes' if svc.can_redo() else 'no'}"
            f"   Auto-saves: {result['auto_saves']}",
        ]
    )
    console.print(Panel(body, title="Live cart", border_style="green"))


def _as_json(result: ReplayResult) -> dict[str, Any]:
    svc = result["service"]
    return {
        "name": result["name"],
        "items": svc.get_cart_items(),
        "applied_instruments": svc.get_applied_instruments(),
        "totals": result["editor"].totals().model_dump(),
        "cursor": svc.history_cursor(),
        "can_undo": svc.can_undo(),
        "can_redo": svc.can_redo(),
        "auto_saves": result["auto_saves"],
        "history": [snap.to_dict() for snap in svc.get_all_saved_states()],
        "steps": [
            {"op": o.op, "detail": o.detail, "applied": o.applied, "clock_ms": o.clock_ms}
            for o in result["outcomes"]
        ],
    }


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def run(
    script_file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to a session script (JSON).",
        ),
    ],
    threshold: Annotated[
        int | None,
        typer.Option(
            "--threshold",
            "-t",
            min=0,
            help="Override the auto-save threshold (ms).",
        ),
    ] = None,
    no_autosave: Annotated[
        bool,
        typer.Option(
            "--no-autosave",
            help="Disable auto-save for this run (explicit saves only).",
        ),
    ] = False,
    settle: Annotated[
        bool,
        typer.Option(
            "--settle/--no-settle",
            help="Let a trailing pending auto-save fire after the last step.",
        ),
    ] = True,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the final state as JSON instead of tables."),
    ] = False,
) -> None:
    """
    Replay a scripted cart session and show the resulting checkpoint history.
    """
    try:
        script = _load_script(script_file)
    except (ValidationError, json.JSONDecodeError) as e:
        console.print(f"[bold red]❌ Invalid session script:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    overrides: dict[str, Any] = {}
    if threshold is not None:
        overrides["autosave_threshold_ms"] = threshold
    if no_autosave:
        overrides["autosave_enabled"] = False
    if overrides:
        script = script.model_copy(update=overrides)

    result = run_script(script, settle=settle)

    if as_json:
        typer.echo(json.dumps(_as_json(result), indent=2, default=str))
        return

    console.print(
        Panel.fit(
            f"[bold cyan]CartKeeper {__version__}[/bold cyan]\nReplaying: [u]{script_file.name}[/u]",
            border_style="cyan",
        )
    )
    _render_steps(result)
    _render_history(result)
    _render_cart(result)


@app.command()  # type: ignore[misc]
def version() -> None:
    """Print the CartKeeper version."""
    console.print(__version__)


if __name__ == "__main__":
    app()
