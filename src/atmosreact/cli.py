"""Command-line entrypoints for atmosreact."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Annotated, Any, Dict, List

import typer

from atmosreact.constants import AtmosConstants, load_constants
from atmosreact.models import GasMixture
from atmosreact.persistence import sqlite_store
from atmosreact.reactors import DEFAULT_MAX_ITERATIONS, ReactionEngine

app = typer.Typer(add_completion=False)


def _parse_mixtures(data: Any) -> List[GasMixture]:
    if isinstance(data, list):
        return [GasMixture.from_mapping(item) for item in data]
    return [GasMixture.from_mapping(data)]


def _load_engine(constants_file: Path | None, max_iterations: int) -> ReactionEngine:
    constants = load_constants(constants_file) if constants_file else AtmosConstants()
    return ReactionEngine(constants, max_iterations=max_iterations)


def _persist(
    project_file: Path,
    engine: ReactionEngine,
    mixtures: List[GasMixture],
    ticks: List[int],
    driver: Dict[str, Any],
    manifest: Dict[str, Any],
    duration_ms: int,
) -> int:
    connection = sqlite_store.connect(project_file)
    try:
        sqlite_store.ensure_schema(connection)
        project_id = sqlite_store.create_project(
            connection,
            name="Reaction run",
            notes="Autogenerated from the atmosreact CLI.",
        )
        run_id = sqlite_store.save_run(
            connection,
            project_id=project_id,
            constants=engine.constants.to_dict(),
            initial=mixtures[0].to_dict(),
            driver=driver,
            manifest=manifest,
            duration_ms=duration_ms,
        )
        sqlite_store.save_trajectory(connection, run_id, mixtures, ticks)
    finally:
        connection.close()
    return run_id


@app.command()
def react(
    mixture_file: Annotated[
        Path, typer.Argument(help="JSON file with one mixture or a list of mixtures.")
    ],
    ticks: Annotated[
        int | None,
        typer.Option(min=0, help="Number of ticks to run; omit to run to a fixed point."),
    ] = None,
    constants_file: Annotated[
        Path | None, typer.Option("--constants", help="JSON file overriding tuning constants.")
    ] = None,
    max_iterations: Annotated[
        int, typer.Option(min=1, help="Tick cap when running to a fixed point.")
    ] = DEFAULT_MAX_ITERATIONS,
    output: Annotated[Path | None, typer.Option(help="Path to save output JSON.")] = None,
    project_file: Annotated[
        Path | None,
        typer.Option(help="Optional SQLite project file to persist trajectories."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """React gas mixtures for a number of ticks or until nothing changes."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    with open(mixture_file, "r") as f:
        data = json.load(f)
    mixtures = _parse_mixtures(data)
    engine = _load_engine(constants_file, max_iterations)

    results = []
    for initial in mixtures:
        started = time.perf_counter()
        if ticks is not None:
            trajectory = engine.react_several(initial, ticks)
            stored = [initial, *trajectory]
            stored_ticks = list(range(ticks + 1))
            driver = {"mode": "several", "ticks": ticks}
            entry = {
                "initial": initial.to_dict(),
                "ticks": [m.to_dict() for m in trajectory],
            }
        else:
            report = engine.react_until_done_report(initial)
            stored = [initial, report.mixture]
            stored_ticks = [0, report.iterations]
            driver = {"mode": "until_done", "max_iterations": max_iterations}
            entry = {
                "initial": initial.to_dict(),
                "final": report.mixture.to_dict(),
                "iterations": report.iterations,
                "converged": report.converged,
            }
        duration_ms = int((time.perf_counter() - started) * 1000.0)

        if project_file is not None:
            entry["run_id"] = _persist(
                project_file,
                engine,
                stored,
                stored_ticks,
                driver,
                manifest={k: v for k, v in entry.items() if k in ("iterations", "converged")},
                duration_ms=duration_ms,
            )
        results.append(entry)

    payload: Any = results if isinstance(data, list) else results[0]
    json_output = json.dumps(payload, indent=2)
    typer.echo(json_output)

    if output:
        with open(output, "w") as f:
            f.write(json_output)


@app.command()
def show_constants(
    constants_file: Annotated[
        Path | None, typer.Option("--constants", help="JSON file overriding tuning constants.")
    ] = None,
) -> None:
    """Print the active tuning constants as JSON."""
    constants = load_constants(constants_file) if constants_file else AtmosConstants()
    typer.echo(json.dumps(constants.to_dict(), indent=2))
