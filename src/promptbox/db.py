"""DB connection: local SQLite file with WAL mode."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


def connect(db_path: Path) -> sqlite3.Connection:
    """Open a local SQLite connection at db_path.

    Creates the parent directory if missing and enables WAL mode and
    foreign key enforcement.  A 0-byte database file is rejected up front
    with a clear message instead of an opaque "disk I/O error" on PRAGMA.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists() and db_path.stat().st_size == 0:
        msg = (
            f"SQLite DB is empty (0 bytes): {db_path}\n"
            f"Fix: rm {db_path}* && promptbox import <backup.jsonl>"
        )
        raise sqlite3.OperationalError(msg)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.OperationalError as exc:
        conn.close()
        raise sqlite3.OperationalError(
            f"Failed to open DB {db_path}: may be corrupt.\n"
            f"Original error: {exc}"
        ) from exc
    return conn
