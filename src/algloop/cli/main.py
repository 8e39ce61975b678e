from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import cast

import numpy as np
import typer
from numpy.typing import NDArray

from algloop.diagnostics import (
    DiagnosticEvent,
    DiagnosticOptions,
    DiagnosticRecorder,
    sort_diagnostics,
)
from algloop.solver import (
    DenseMatrix,
    LinearSolveResult,
    ResultStatus,
    SolverConfigError,
    build_solver_config_snapshot,
    extrapolate,
    load_solver_defaults,
    solve_linear_system,
)

app = typer.Typer(help="Algebraic equation system solver CLI")

_EXIT_INPUT_ERROR = 1
_EXIT_SOLVE_FAILED = 2
_OUTPUT_FORMATS: tuple[str, ...] = ("text", "json")
_DEFAULTS_OPTION = typer.Option(
    None,
    "--defaults",
    help="Path to a solver defaults YAML artifact",
)


@app.command()
def config(defaults: Path | None = _DEFAULTS_OPTION) -> None:
    """Print the effective solver defaults snapshot as JSON."""
    try:
        solver_defaults = load_solver_defaults(defaults)
    except SolverConfigError as exc:
        typer.echo(f"config error: {exc}")
        raise typer.Exit(code=_EXIT_INPUT_ERROR) from exc
    snapshot = build_solver_config_snapshot(defaults=solver_defaults)
    typer.echo(json.dumps(snapshot, sort_keys=True, indent=2))


@app.command("solve-linear")
def solve_linear(
    system_file: Path,
    system_id: str = typer.Option("linear_0", "--id", help="System identifier"),
    verbose: bool = typer.Option(False, "--verbose", help="Include debug diagnostics"),
    format: str = typer.Option(
        "text",
        "--format",
        help="Output format: text|json",
        show_default=True,
    ),
) -> None:
    """Solve a dense linear system read from a JSON file."""
    if format not in _OUTPUT_FORMATS:
        raise typer.BadParameter(f"unsupported format '{format}'; expected text or json")
    try:
        matrix, rhs = _load_linear_system(system_file)
    except (OSError, ValueError) as exc:
        typer.echo(f"input error: {exc}")
        raise typer.Exit(code=_EXIT_INPUT_ERROR) from exc

    recorder = DiagnosticRecorder(DiagnosticOptions(verbose=verbose, debug=verbose))
    result = solve_linear_system(matrix, rhs, system_id=system_id, diagnostics=recorder)
    if format == "json":
        typer.echo(_linear_result_json(result))
    else:
        _print_linear_result(result)
    raise typer.Exit(code=0 if result.status is ResultStatus.SUCCESS else _EXIT_SOLVE_FAILED)


@app.command("extrapolate")
def extrapolate_value(
    time: float = typer.Option(..., "--time", help="Time to predict at"),
    time1: float = typer.Option(..., "--time1", help="Time of the latest sample"),
    time2: float = typer.Option(..., "--time2", help="Time of the earlier sample"),
    old1: float = typer.Option(..., "--old1", help="Latest sample value"),
    old2: float = typer.Option(..., "--old2", help="Earlier sample value"),
    value: float = typer.Option(..., "--value", help="Current value"),
) -> None:
    """Linearly extrapolate a value from two time samples."""
    predicted = extrapolate(value, old1, old2, time=time, time1=time1, time2=time2)
    typer.echo(_format_float(predicted))


def _load_linear_system(path: Path) -> tuple[DenseMatrix, NDArray[np.float64]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("linear system file must hold a JSON object")
    raw = cast(dict[str, object], payload)
    rows = raw.get("matrix")
    rhs = raw.get("rhs")
    if not isinstance(rows, list) or not isinstance(rhs, list):
        raise ValueError("linear system file needs 'matrix' and 'rhs' lists")
    matrix = DenseMatrix.from_rows(rows)
    return matrix, np.asarray(rhs, dtype=np.float64)


def _print_linear_result(result: LinearSolveResult) -> None:
    _print_diagnostics(result.diagnostics)
    typer.echo(f"status={result.status.value} cond_ind={_format_float(result.cond_ind)}")
    if result.x is not None:
        for index, value in enumerate(result.x.tolist()):
            typer.echo(f"x[{index}]={_format_float(value)}")
    elif result.failure_message is not None:
        typer.echo(f"failure {result.failure_code}: {result.failure_message}")


def _linear_result_json(result: LinearSolveResult) -> str:
    payload = {
        "system_id": result.system_id,
        "status": result.status.value,
        "x": None if result.x is None else [float(value) for value in result.x.tolist()],
        "pivot_index": result.pivot_index,
        "illegal_argument": result.illegal_argument,
        "cond_ind": None if not np.isfinite(result.cond_ind) else result.cond_ind,
        "failure_code": result.failure_code,
        "diagnostics": [
            event.model_dump(mode="json") for event in sort_diagnostics(result.diagnostics)
        ],
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def _print_diagnostics(diagnostics: Sequence[DiagnosticEvent]) -> None:
    for event in sort_diagnostics(diagnostics):
        typer.echo(f"{event.severity.value} {event.code} {event.system_id}: {event.message}")


def _format_float(value: float) -> str:
    return f"{float(value):.12g}"


def main() -> None:
    app()
