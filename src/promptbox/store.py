"""SQLite-backed prompt store with a string key/value metadata table.

    store = PromptStore.open(Path(".promptbox/prompts.db"))
    store.bulk_upsert_prompts([Prompt("a", "A", "x")])
    store.set_meta("data_version", "2026-...")

Prompts keep their insertion order: an upsert of an existing id updates the
row in place (ON CONFLICT DO UPDATE) so its rowid, and therefore its position
in list_prompts(), does not move.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import TYPE_CHECKING

from promptbox.db import connect
from promptbox.models import Prompt

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

# Structural version of the Prompt record shape; stamped into export headers.
SCHEMA_VERSION = 1

logger = logging.getLogger("promptbox.store")

_UPSERT_SQL = (
    "INSERT INTO prompts(id, title, content, description, category, tags) "
    "VALUES (?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(id) DO UPDATE SET "
    "title = excluded.title, content = excluded.content, "
    "description = excluded.description, category = excluded.category, "
    "tags = excluded.tags"
)


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS prompts (
            id TEXT PRIMARY KEY CHECK (length(id) > 0),
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            description TEXT,
            category TEXT,
            tags TEXT NOT NULL DEFAULT '[]'   -- JSON string array
        );

        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
    """)
    conn.commit()


def _row_params(p: Prompt) -> tuple[str, str, str, str | None, str | None, str]:
    return (p.id, p.title, p.content, p.description, p.category, json.dumps(p.tags))


def _from_row(row: tuple) -> Prompt:
    pid, title, content, description, category, tags = row
    return Prompt(
        id=pid,
        title=title,
        content=content,
        description=description,
        category=category,
        tags=json.loads(tags or "[]"),
    )


class PromptStore:
    """Prompt records plus a metadata side table in one SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        _ensure_schema(conn)

    @classmethod
    def open(cls, db_path: Path) -> PromptStore:
        return cls(connect(db_path))

    @classmethod
    def in_memory(cls) -> PromptStore:
        return cls(sqlite3.connect(":memory:"))

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> PromptStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Prompts: read
    # ------------------------------------------------------------------

    def list_prompts(self) -> list[Prompt]:
        """All prompts in insertion order."""
        rows = self.conn.execute(
            "SELECT id, title, content, description, category, tags FROM prompts ORDER BY rowid"
        ).fetchall()
        return [_from_row(r) for r in rows]

    def get_prompt(self, prompt_id: str) -> Prompt | None:
        row = self.conn.execute(
            "SELECT id, title, content, description, category, tags FROM prompts WHERE id = ?",
            (prompt_id,),
        ).fetchone()
        return _from_row(row) if row else None

    def count_prompts(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM prompts").fetchone()[0])

    def list_categories(self) -> list[tuple[str, int]]:
        """(category, count) pairs sorted by name; uncategorized prompts are left out."""
        rows = self.conn.execute(
            "SELECT category, COUNT(*) FROM prompts WHERE category IS NOT NULL "
            "GROUP BY category ORDER BY category"
        ).fetchall()
        return [(c, int(n)) for c, n in rows]

    def list_tags(self) -> list[tuple[str, int]]:
        """(tag, count) pairs sorted by tag."""
        rows = self.conn.execute(
            "SELECT j.value, COUNT(*) FROM prompts, json_each(prompts.tags) AS j "
            "GROUP BY j.value ORDER BY j.value"
        ).fetchall()
        return [(t, int(n)) for t, n in rows]

    # ------------------------------------------------------------------
    # Prompts: write
    # ------------------------------------------------------------------

    def upsert_prompt(self, prompt: Prompt) -> None:
        with self.conn:
            self.conn.execute(_UPSERT_SQL, _row_params(prompt))

    def bulk_upsert_prompts(self, prompts: Iterable[Prompt], *, replace: bool = False) -> int:
        """Upsert all prompts in a single transaction. Returns the number written.

        With replace=True every existing prompt is deleted first, inside the
        same transaction.  Any failure rolls back the whole batch and the
        sqlite3.Error propagates.
        """
        n = 0
        with self.conn:
            if replace:
                self.conn.execute("DELETE FROM prompts")
            for p in prompts:
                self.conn.execute(_UPSERT_SQL, _row_params(p))
                n += 1
        logger.debug("bulk upsert committed: %d prompts (replace=%s)", n, replace)
        return n

    def delete_prompt(self, prompt_id: str) -> bool:
        with self.conn:
            cur = self.conn.execute("DELETE FROM prompts WHERE id = ?", (prompt_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_meta(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        """Set a metadata value; committed before returning."""
        with self.conn:
            self.conn.execute(
                "INSERT INTO meta(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
