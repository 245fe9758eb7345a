"""Persistence helpers for atmosreact."""

from atmosreact.persistence.sqlite_store import (
    connect,
    create_project,
    ensure_schema,
    load_ticks,
    load_trajectory,
    mixture_rows,
    save_run,
    save_trajectory,
)

__all__ = [
    "connect",
    "create_project",
    "ensure_schema",
    "load_ticks",
    "load_trajectory",
    "mixture_rows",
    "save_run",
    "save_trajectory",
]
