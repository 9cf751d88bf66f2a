from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from typing import Any, Iterable

from .runtime import utc_now


def _resolve_db_path(db_path: str) -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (Docker creates one for a missing
    bind-mounted file), the DB file is placed inside it.
    """
    p = os.path.abspath(db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "vgr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create tables if they do not exist."""
    with connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              container TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              started_at TEXT NOT NULL,
              finished_at TEXT NOT NULL,
              outcome TEXT NOT NULL, -- resolved|aborted
              attempts INTEGER NOT NULL,
              members TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(db_path: str, level: str, message: str, container: str | None = None) -> None:
    with connect(db_path) as conn:
        conn.execute(
            "INSERT INTO events (ts, level, container, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level.upper(), container, message),
        )


@dataclass(frozen=True)
class RunRow:
    id: int
    started_at: str
    finished_at: str
    outcome: str
    attempts: int
    members: str


def _rows_to_dataclass(rows: Iterable[sqlite3.Row], cls: Any) -> list[Any]:
    out: list[Any] = []
    for r in rows:
        out.append(cls(**dict(r)))
    return out


def record_run(db_path: str, started_at: str, outcome: str, attempts: int, members: list[str]) -> RunRow:
    with connect(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO runs (started_at, finished_at, outcome, attempts, members)
            VALUES (?, ?, ?, ?, ?)
            """,
            (started_at, utc_now(), outcome, attempts, ",".join(members)),
        )
        row = conn.execute("SELECT * FROM runs WHERE id=?", (cur.lastrowid,)).fetchone()
        return RunRow(**dict(row))


def latest_runs(db_path: str, limit: int = 20) -> list[RunRow]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM runs ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return _rows_to_dataclass(rows, RunRow)


def latest_events(db_path: str, limit: int = 100) -> list[dict[str, Any]]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
