"""Data models for the prompt store and its JSONL backup format."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def utc_now_rfc3339() -> str:
    """Current time as a timezone-aware RFC 3339 string."""
    return datetime.now(UTC).isoformat()


def _check_utf8(key: str, value: str) -> None:
    """JSON allows lone surrogate escapes (\\ud800); SQLite and UTF-8 files do not."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        msg = f"'{key}' is not valid UTF-8 text: {exc.reason} at position {exc.start}"
        raise ValueError(msg) from exc


def _optional_str(d: dict[str, Any], key: str) -> str | None:
    value = d.get(key)
    if value is not None and not isinstance(value, str):
        msg = f"'{key}' must be a string or null"
        raise ValueError(msg)
    if value is not None:
        _check_utf8(key, value)
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class Prompt:
    """A named, tagged text record."""

    id: str
    title: str
    content: str
    description: str | None = None
    category: str | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Any) -> Prompt:
        """Build a Prompt from a decoded JSON object. Raises ValueError on bad shape."""
        if not isinstance(d, dict):
            msg = f"expected a JSON object, got {type(d).__name__}"
            raise ValueError(msg)
        for key in ("id", "title", "content"):
            if key not in d:
                msg = f"missing field '{key}'"
                raise ValueError(msg)
            if not isinstance(d[key], str):
                msg = f"'{key}' must be a string"
                raise ValueError(msg)
            _check_utf8(key, d[key])
        if not d["id"]:
            msg = "'id' must not be empty"
            raise ValueError(msg)

        tags = d.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            msg = "'tags' must be a list of strings"
            raise ValueError(msg)
        for t in tags:
            _check_utf8("tags", t)

        return cls(
            id=d["id"],
            title=d["title"],
            content=d["content"],
            description=_optional_str(d, "description"),
            category=_optional_str(d, "category"),
            tags=list(tags),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
        }

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on id, title, description, category and tags."""
        needle = query.strip().lower()
        if not needle:
            return True
        haystack = [self.id, self.title, self.description or "", self.category or "", *self.tags]
        return any(needle in s.lower() for s in haystack)


@dataclass
class ExportHeader:
    """Provenance line written first in every export: {"_meta": {...}}."""

    version: str
    count: int
    exported_at: str
    schema_version: int

    @classmethod
    def from_meta(cls, meta: Any) -> ExportHeader:
        """Validate the object stored under "_meta". Raises ValueError on bad shape."""
        if not isinstance(meta, dict):
            msg = "'_meta' must be a JSON object"
            raise ValueError(msg)
        for key in ("version", "exported_at"):
            if not isinstance(meta.get(key), str):
                msg = f"'_meta.{key}' must be a string"
                raise ValueError(msg)
        for key in ("count", "schema_version"):
            value = meta.get(key)
            if not _is_int(value) or value < 0:
                msg = f"'_meta.{key}' must be a non-negative integer"
                raise ValueError(msg)
        return cls(
            version=meta["version"],
            count=meta["count"],
            exported_at=meta["exported_at"],
            schema_version=meta["schema_version"],
        )

    def to_line_obj(self) -> dict[str, Any]:
        return {
            "_meta": {
                "version": self.version,
                "count": self.count,
                "exported_at": self.exported_at,
                "schema_version": self.schema_version,
            },
        }
