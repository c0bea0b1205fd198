"""JSONL export/import for backup and recovery.

File layout (UTF-8, one compact JSON object per line; a leading BOM is
tolerated on import):

    {"_meta": {"version": ..., "count": N, "exported_at": ..., "schema_version": 1}}
    {"id": ..., "title": ..., "content": ..., "description": ..., "category": ..., "tags": [...]}
    ...

Export writes <dest>.tmp in the destination directory, fsyncs it, then renames
it over the destination, so the destination is either the old file or the
complete new one.  Import parses every line before touching the store and then
loads all prompts in one transaction.  Both advance the "data_version" marker
in the store's meta table only after the primary effect has succeeded.

Windows: Path.replace() refuses to overwrite a destination that is open in
another process.  In that case the destination is unlinked and the rename
retried, which leaves a short window where neither file is in place.  If the
retry fails, <dest>.tmp is kept as the surviving copy.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from promptbox.models import ExportHeader, Prompt, utc_now_rfc3339
from promptbox.store import SCHEMA_VERSION

if TYPE_CHECKING:
    from promptbox.store import PromptStore

DATA_VERSION_KEY = "data_version"
META_KEY = "_meta"

logger = logging.getLogger("promptbox.jsonl")


class JsonlError(Exception):
    """Base class for export/import failures."""


class JsonlIOError(JsonlError):
    """Filesystem failure; .path names the file or directory involved."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class JsonlParseError(JsonlError):
    """Undecodable line; .line_num is 1-based."""

    def __init__(self, message: str, line_num: int) -> None:
        super().__init__(message)
        self.line_num = line_num


class JsonlHeaderError(JsonlParseError):
    """A first line with a top-level "_meta" key whose fields are malformed."""


# ---------------------------------------------------------------------------
# Data version marker
# ---------------------------------------------------------------------------


def get_data_version(store: PromptStore) -> str:
    """Current data version, or now if none has been recorded (nothing is written)."""
    return store.get_meta(DATA_VERSION_KEY) or utc_now_rfc3339()


def update_data_version(store: PromptStore) -> str:
    version = utc_now_rfc3339()
    store.set_meta(DATA_VERSION_KEY, version)
    return version


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def _temp_path(path: Path) -> Path:
    return path.with_name(path.name + ".tmp")


def _replace(tmp: Path, path: Path) -> None:
    """Rename tmp over path.

    Once the Windows fallback has removed path, tmp is the only complete copy:
    a failed retry raises JsonlIOError naming tmp and leaves it in place.
    """
    try:
        tmp.replace(path)
    except PermissionError:
        if sys.platform != "win32" or not path.exists():
            raise
        logger.debug("destination busy, removing before rename: %s", path)
        path.unlink()
        try:
            tmp.replace(path)
        except OSError as exc:
            msg = f"Removed {path} but failed to rename {tmp} over it: {exc}; the new export is kept at {tmp}"
            raise JsonlIOError(msg, tmp) from exc


def export_jsonl(store: PromptStore, path: Path | str) -> int:
    """Write every prompt to path behind a metadata header. Returns the prompt count."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Failed to create directory {path.parent}: {exc}"
        raise JsonlIOError(msg, path.parent) from exc

    prompts = store.list_prompts()
    header = ExportHeader(
        version=get_data_version(store),
        count=len(prompts),
        exported_at=utc_now_rfc3339(),
        schema_version=SCHEMA_VERSION,
    )

    tmp = _temp_path(path)
    try:
        f = tmp.open("w", encoding="utf-8", newline="\n")
    except OSError as exc:
        msg = f"Failed to create temp file {tmp}: {exc}"
        raise JsonlIOError(msg, tmp) from exc

    try:
        with f:
            f.write(_dumps(header.to_line_obj()) + "\n")
            for p in prompts:
                f.write(_dumps(p.to_dict()) + "\n")
            f.flush()
            os.fsync(f.fileno())
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink()
        msg = f"Failed to write temp file {tmp}: {exc}"
        raise JsonlIOError(msg, tmp) from exc

    try:
        _replace(tmp, path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp.unlink()
        msg = f"Failed to rename {tmp} to {path}: {exc}"
        raise JsonlIOError(msg, path) from exc

    update_data_version(store)
    logger.info("exported %d prompts to %s", len(prompts), path)
    return len(prompts)


def _dumps(obj: dict[str, Any]) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def _parse_header(obj: Any, line_num: int) -> ExportHeader | None:
    """Return the header if obj is an object with a top-level "_meta" key, else None."""
    if not isinstance(obj, dict) or META_KEY not in obj:
        return None
    try:
        return ExportHeader.from_meta(obj[META_KEY])
    except ValueError as exc:
        msg = f"Failed to parse JSONL metadata at line {line_num}: {exc}"
        raise JsonlHeaderError(msg, line_num) from exc


def _decode(line: str, line_num: int) -> Any:
    try:
        return json.loads(line)
    except json.JSONDecodeError as exc:
        msg = f"Failed to parse JSON at line {line_num}: {exc}"
        raise JsonlParseError(msg, line_num) from exc


def read_jsonl(path: Path | str) -> tuple[ExportHeader | None, list[Prompt]]:
    """Parse a backup file without touching any store.

    Blank lines are skipped.  Only the first non-blank line can be a header,
    and only when it decodes to an object with a top-level "_meta" key; a
    prompt whose content merely mentions "_meta" is still a prompt.
    """
    path = Path(path)
    header: ExportHeader | None = None
    prompts: list[Prompt] = []
    saw_first = False

    try:
        f = path.open(encoding="utf-8-sig")
    except OSError as exc:
        msg = f"Failed to open JSONL file {path}: {exc}"
        raise JsonlIOError(msg, path) from exc

    with f:
        line_num = 0
        try:
            for raw in f:
                line_num += 1
                line = raw.strip()
                if not line:
                    continue
                obj = _decode(line, line_num)

                if not saw_first:
                    saw_first = True
                    header = _parse_header(obj, line_num)
                    if header is not None:
                        logger.debug("header at line %d: %s", line_num, header)
                        continue

                try:
                    prompts.append(Prompt.from_dict(obj))
                except ValueError as exc:
                    msg = f"Failed to parse prompt at line {line_num}: {exc}"
                    raise JsonlParseError(msg, line_num) from exc
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Failed to read line {line_num + 1} of {path}: {exc}"
            raise JsonlIOError(msg, path) from exc

    if header is not None:
        if header.count != len(prompts):
            logger.warning(
                "%s: header count %d does not match %d prompt lines", path, header.count, len(prompts)
            )
        if header.schema_version > SCHEMA_VERSION:
            logger.warning(
                "%s: schema_version %d is newer than supported %d",
                path, header.schema_version, SCHEMA_VERSION,
            )
    return header, prompts


def import_jsonl(store: PromptStore, path: Path | str, *, replace: bool = False) -> int:
    """Load every prompt in path into the store in one transaction. Returns the prompt count.

    Prompts are upserted by id; prompts already in the store but absent from
    the file are kept unless replace=True, which deletes them in the same
    transaction.  A malformed line aborts before the store is touched.
    """
    _, prompts = read_jsonl(path)
    store.bulk_upsert_prompts(prompts, replace=replace)
    update_data_version(store)
    logger.info("imported %d prompts from %s", len(prompts), path)
    return len(prompts)


def read_header(path: Path | str) -> ExportHeader | None:
    """Header of a backup file, or None if its first non-blank line is not one."""
    path = Path(path)
    try:
        with path.open(encoding="utf-8-sig") as f:
            for line_num, raw in enumerate(f, start=1):
                line = raw.strip()
                if line:
                    return _parse_header(_decode(line, line_num), line_num)
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Failed to read JSONL file {path}: {exc}"
        raise JsonlIOError(msg, path) from exc
    return None
