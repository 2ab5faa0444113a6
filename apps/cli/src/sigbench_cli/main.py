from __future__ import annotations
import json
import pathlib
from typing import Optional

import typer

from sigbench import presets
from sigbench.environment import collect_environment, snapshot_json
from sigbench.errors import SummaryError
from sigbench.summary import format_summary, summarize_csv
from .runners import matrix

app = typer.Typer(add_completion=False, help="Signature benchmark-matrix harness")

app.command(name="matrix")(matrix.main)


@app.command()
def summary(csv_path: pathlib.Path = typer.Argument(..., metavar="CSV", help="A run-<id>.csv file.")):
    """Print mean avg_ns and throughput per (operation, param set, message size)."""
    try:
        rows = summarize_csv(csv_path)
    except SummaryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(format_summary(rows))


@app.command(name="presets")
def list_presets():
    """List algorithm presets usable with `matrix --preset`."""
    for name, preset in presets.registry.list().items():
        line = f"- {name}: {preset.algorithm_name} [{preset.library_name}] {','.join(preset.param_sets)}"
        if preset.notes:
            line += f" ({preset.notes})"
        typer.echo(line)


@app.command(name="probe-env")
def probe_env(
    compiler_name: str = typer.Option("compiler", "--compiler-name", envvar="COMPILER_NAME"),
    turbo_state: Optional[str] = typer.Option(None, "--turbo-state", envvar="TURBO_STATE"),
) -> None:
    """Print the environment snapshot that would be attached to a run."""
    snapshot = collect_environment(compiler_name=compiler_name, turbo_state=turbo_state)
    typer.echo(json.dumps(snapshot_json(snapshot), indent=2))

def app_main():
    app()

if __name__ == "__main__":
    app_main()
