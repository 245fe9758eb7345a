"""SQLite persistence helpers for reaction trajectories."""

from __future__ import annotations

import json
import sqlite3
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Sequence

from atmosreact.models import GASES, GasMixture, GasVector

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS project (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL,
  created_utc TEXT,
  notes TEXT
);
CREATE TABLE IF NOT EXISTS run (
  id INTEGER PRIMARY KEY,
  project_id INTEGER REFERENCES project(id),
  constants JSON,
  initial JSON,
  driver JSON,
  manifest JSON,
  started TEXT,
  duration_ms INTEGER
);
CREATE TABLE IF NOT EXISTS profile (
  run_id INTEGER REFERENCES run(id),
  x REAL,
  var TEXT,
  value REAL,
  unit TEXT,
  PRIMARY KEY (run_id, x, var)
);
"""

MOLE_UNIT = "mol"
TRAJECTORY_UNITS = {"temperature": "K", "volume": "L"}


def connect(project_file: str | Path) -> sqlite3.Connection:
    """Open a project file, creating missing parent directories.

    Foreign keys are switched on so profiles cannot outlive their run.
    """
    path = Path(project_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    connection.execute("PRAGMA foreign_keys = ON;")
    return connection


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create the project, run and profile tables if they are missing."""
    with connection:
        connection.executescript(SCHEMA_SQL)


def create_project(
    connection: sqlite3.Connection,
    name: str,
    notes: str | None = None,
    created_utc: str | None = None,
) -> int:
    """Insert a project grouping related reaction runs; returns its row ID."""
    with connection:
        cursor = connection.execute(
            "INSERT INTO project (name, created_utc, notes) VALUES (?, ?, ?)",
            (name, created_utc or _timestamp(), notes),
        )
    return int(cursor.lastrowid)


def save_run(
    connection: sqlite3.Connection,
    project_id: int,
    constants: Mapping[str, object],
    initial: Mapping[str, object],
    driver: Mapping[str, object],
    manifest: Mapping[str, object],
    started_utc: str | None = None,
    duration_ms: int | None = None,
) -> int:
    """Record the constants block, starting mixture and driver of a run.

    ``driver`` names the tick driver (``several`` or ``until_done``) and its
    arguments; ``manifest`` carries driver results such as the iteration
    count. Returns the run ID.
    """
    with connection:
        cursor = connection.execute(
            "INSERT INTO run (project_id, constants, initial, driver, manifest, started, duration_ms)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                project_id,
                _to_json(constants),
                _to_json(initial),
                _to_json(driver),
                _to_json(manifest),
                started_utc or _timestamp(),
                duration_ms,
            ),
        )
    return int(cursor.lastrowid)


def mixture_rows(run_id: int, tick: float, mixture: GasMixture) -> list[tuple[object, ...]]:
    """Profile rows for one mixture: temperature, volume and every species."""
    rows: list[tuple[object, ...]] = [
        (run_id, float(tick), var, float(getattr(mixture, var)), unit)
        for var, unit in TRAJECTORY_UNITS.items()
    ]
    rows.extend(
        (run_id, float(tick), gas.value, mixture[gas], MOLE_UNIT) for gas in GASES
    )
    return rows


def save_trajectory(
    connection: sqlite3.Connection,
    run_id: int,
    mixtures: Sequence[GasMixture],
    ticks: Sequence[float] | None = None,
) -> None:
    """Store each mixture of a run against its tick number.

    Without ``ticks`` the mixtures are taken to be consecutive, starting at
    tick 0.
    """
    if ticks is None:
        ticks = range(len(mixtures))
    elif len(ticks) != len(mixtures):
        raise ValueError(f"Got {len(ticks)} ticks for {len(mixtures)} mixtures")
    rows: list[tuple[object, ...]] = []
    for tick, mixture in zip(ticks, mixtures):
        rows.extend(mixture_rows(run_id, tick, mixture))
    with connection:
        connection.executemany(
            "INSERT INTO profile (run_id, x, var, value, unit) VALUES (?, ?, ?, ?, ?)",
            rows,
        )


def load_trajectory(connection: sqlite3.Connection, run_id: int) -> list[GasMixture]:
    """Rebuild the mixtures stored by :func:`save_trajectory`, ordered by tick."""
    rows = connection.execute(
        "SELECT x, var, value FROM profile WHERE run_id = ? ORDER BY x", (run_id,)
    ).fetchall()
    ticks: dict[float, dict[str, float]] = defaultdict(dict)
    for x_value, variable, value in rows:
        ticks[x_value][variable] = value

    mixtures = []
    for x_value in sorted(ticks):
        values = ticks[x_value]
        gases = GasVector.from_mapping({gas: values.get(gas.value, 0.0) for gas in GASES})
        mixtures.append(GasMixture(gases, values["volume"], values["temperature"]))
    return mixtures


def load_ticks(connection: sqlite3.Connection, run_id: int) -> list[float]:
    """Tick numbers stored for a run, in ascending order."""
    rows = connection.execute(
        "SELECT DISTINCT x FROM profile WHERE run_id = ? ORDER BY x", (run_id,)
    ).fetchall()
    return [x_value for (x_value,) in rows]


def _to_json(payload: Mapping[str, object]) -> str:
    return json.dumps(payload, sort_keys=True)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
