"""Prompt store: SQLite as the working copy, JSONL files as backups.

Layout:
    .promptbox/
        prompts.db        # SQLite: prompts + meta(key, value)
        prompts.jsonl     # default export target

prompts.jsonl line types:
    {"_meta": {"version":..., "count":N, "exported_at":..., "schema_version":1}}  # header (line 1, optional)
    {"id":..., "title":..., "content":..., "description":..., "category":..., "tags":[...]}

Every successful export or import sets meta["data_version"] to the current
RFC 3339 timestamp, so readers can tell when the store last changed.
"""

from promptbox.config import PromptboxConfig, init_config, load_config
from promptbox.jsonl import (
    JsonlError,
    JsonlHeaderError,
    JsonlIOError,
    JsonlParseError,
    export_jsonl,
    import_jsonl,
)
from promptbox.models import ExportHeader, Prompt
from promptbox.store import SCHEMA_VERSION, PromptStore

__all__ = [
    "SCHEMA_VERSION",
    "ExportHeader",
    "JsonlError",
    "JsonlHeaderError",
    "JsonlIOError",
    "JsonlParseError",
    "Prompt",
    "PromptStore",
    "PromptboxConfig",
    "export_jsonl",
    "import_jsonl",
    "init_config",
    "load_config",
]
