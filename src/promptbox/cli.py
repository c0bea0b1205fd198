"""promptbox CLI: prompt store backed by SQLite with JSONL backups.

Commands:
    promptbox init [NAME]           create promptbox.toml + .promptbox/
    promptbox add ID TITLE CONTENT  add or overwrite a prompt
    promptbox list                  table of prompts
    promptbox show ID               dump one prompt
    promptbox search QUERY          substring search over id/title/description/category/tags
    promptbox categories            category counts
    promptbox tags                  tag counts
    promptbox export [PATH]         atomic JSONL backup
    promptbox import PATH           load a JSONL backup in one transaction
    promptbox status                store and backup summary

Every read command takes --json and prints {"ok": true, ...}; failures print
{"ok": false, "error": <code>, "message": ...} and exit 1.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from promptbox.config import PromptboxConfig, init_config, load_config
from promptbox.jsonl import (
    DATA_VERSION_KEY,
    JsonlError,
    JsonlHeaderError,
    JsonlIOError,
    JsonlParseError,
    export_jsonl,
    import_jsonl,
    read_header,
)
from promptbox.models import Prompt
from promptbox.store import SCHEMA_VERSION, PromptStore

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("promptbox.cli")

json_option = click.option("--json", "use_json", is_flag=True, help="Print a JSON envelope")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _echo_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps({"ok": True, **payload}, ensure_ascii=False))


def _fail(use_json: bool, code: str, message: str) -> NoReturn:
    if use_json:
        click.echo(json.dumps({"ok": False, "error": code, "message": message}, ensure_ascii=False))
        raise SystemExit(1)
    raise click.ClickException(message)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, JsonlHeaderError):
        return "header_error"
    if isinstance(exc, JsonlParseError):
        return "parse_error"
    if isinstance(exc, JsonlIOError):
        return "io_error"
    return "store_error"


def _load_cfg(use_json: bool, root: Path | None = None) -> PromptboxConfig:
    try:
        return load_config(root)
    except Exception as exc:
        _fail(use_json, "config_error", str(exc))


@contextlib.contextmanager
def _open_store(use_json: bool, root: Path | None = None) -> Iterator[tuple[PromptboxConfig, PromptStore]]:
    """Yield (config, store); map export/import and SQLite errors to CLI failures."""
    cfg = _load_cfg(use_json, root)
    try:
        store = PromptStore.open(cfg.db_path)
    except sqlite3.Error as exc:
        _fail(use_json, "store_error", str(exc))
    with store:
        try:
            yield cfg, store
        except (JsonlError, sqlite3.Error) as exc:
            logger.debug("command failed", exc_info=True)
            _fail(use_json, _error_code(exc), str(exc))


def _render_details(p: Prompt) -> str:
    tags = ", ".join(p.tags) if p.tags else "none"
    return "\n".join([
        f"{p.title} ({p.id})",
        p.description or "No description provided.",
        f"Category: {p.category or 'uncategorized'}",
        f"Tags: {tags}",
        "-" * 72,
        p.content,
    ])


def _print_table(prompts: list[Prompt], title: str) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Category", style="dim")
    table.add_column("Tags", style="dim")
    for p in prompts:
        table.add_row(p.id, p.title, p.category or "", ", ".join(p.tags))
    Console().print(table)


def _print_counts(rows: list[tuple[str, int]], label: str) -> None:
    from rich.console import Console
    from rich.table import Table

    table = Table(show_header=True, header_style="bold")
    table.add_column(label, no_wrap=True)
    table.add_column("Prompts", justify="right")
    for name, n in rows:
        table.add_row(name, str(n))
    Console().print(table)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="promptbox")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr")
def cli(verbose: bool) -> None:
    """promptbox: curated prompt store."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(message)s",
    )


# ---------------------------------------------------------------------------
# promptbox init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
def init(name: str | None, root: str) -> None:
    """Create promptbox.toml and the data directory in the current project."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("promptbox.toml already exists: skipping init")

    _load_cfg(False, root_path).ensure_dirs()
    with _open_store(False, root_path) as (cfg, store):
        n = store.count_prompts()
    click.echo(f"Data dir : {cfg.data_dir}")
    click.echo(f"Prompts  : {n}")


# ---------------------------------------------------------------------------
# promptbox add
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("prompt_id")
@click.argument("title")
@click.argument("content")
@click.option("--description", "-d", default=None)
@click.option("--category", "-c", default=None)
@click.option("--tag", "-t", "tags", multiple=True, help="Repeatable")
def add(
    prompt_id: str,
    title: str,
    content: str,
    description: str | None,
    category: str | None,
    tags: tuple[str, ...],
) -> None:
    """Add a prompt, overwriting any prompt with the same ID."""
    if not prompt_id:
        raise click.BadParameter("must not be empty", param_hint="PROMPT_ID")
    prompt = Prompt(
        id=prompt_id,
        title=title,
        content=content,
        description=description,
        category=category,
        tags=list(tags),
    )
    with _open_store(False) as (_, store):
        existed = store.get_prompt(prompt_id) is not None
        store.upsert_prompt(prompt)
    click.echo(f"{'Updated' if existed else 'Added'} [{prompt_id}]")


# ---------------------------------------------------------------------------
# promptbox list / show / search
# ---------------------------------------------------------------------------


@cli.command("list")
@click.option("--category", "-c", default=None, help="Only prompts in this category")
@json_option
def list_cmd(category: str | None, use_json: bool) -> None:
    """List all prompts."""
    with _open_store(use_json) as (cfg, store):
        prompts = store.list_prompts()
    if category is not None:
        prompts = [p for p in prompts if p.category == category]

    if use_json:
        _echo_json({"count": len(prompts), "prompts": [p.to_dict() for p in prompts]})
        return
    if not prompts:
        click.echo("No prompts.")
        return
    _print_table(prompts, f"{cfg.name}: {len(prompts)} prompts")


@cli.command()
@click.argument("prompt_id")
@json_option
def show(prompt_id: str, use_json: bool) -> None:
    """Show one prompt in full."""
    with _open_store(use_json) as (_, store):
        prompt = store.get_prompt(prompt_id)
    if prompt is None:
        _fail(use_json, "not_found", f"Prompt not found: {prompt_id}")
    if use_json:
        _echo_json({"prompt": prompt.to_dict()})
        return
    click.echo(_render_details(prompt))


@cli.command()
@click.argument("query")
@json_option
def search(query: str, use_json: bool) -> None:
    """Case-insensitive substring search, sorted by title."""
    with _open_store(use_json) as (_, store):
        prompts = store.list_prompts()
    matches = sorted((p for p in prompts if p.matches(query)), key=lambda p: p.title.lower())

    if use_json:
        _echo_json({"query": query, "count": len(matches), "prompts": [p.to_dict() for p in matches]})
        return
    if not matches:
        click.echo(f'No prompts matched "{query}".')
        return
    _print_table(matches, f'{len(matches)} matches for "{query}"')


# ---------------------------------------------------------------------------
# promptbox categories / tags
# ---------------------------------------------------------------------------


@cli.command()
@json_option
def categories(use_json: bool) -> None:
    """List categories with prompt counts."""
    with _open_store(use_json) as (_, store):
        rows = store.list_categories()
    if use_json:
        _echo_json({"categories": [{"name": c, "count": n} for c, n in rows]})
        return
    if not rows:
        click.echo("No categories.")
        return
    _print_counts(rows, "Category")


@cli.command()
@json_option
def tags(use_json: bool) -> None:
    """List tags with prompt counts."""
    with _open_store(use_json) as (_, store):
        rows = store.list_tags()
    if use_json:
        _echo_json({"tags": [{"name": t, "count": n} for t, n in rows]})
        return
    if not rows:
        click.echo("No tags.")
        return
    _print_counts(rows, "Tag")


# ---------------------------------------------------------------------------
# promptbox export / import
# ---------------------------------------------------------------------------


@cli.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@json_option
def export_cmd(path: Path | None, use_json: bool) -> None:
    """Write all prompts to a JSONL backup (default: configured export_path)."""
    with _open_store(use_json) as (cfg, store):
        dest = path or cfg.export_path
        n = export_jsonl(store, dest)
        version = store.get_meta(DATA_VERSION_KEY)

    if use_json:
        _echo_json({"exported": n, "path": str(dest), "data_version": version})
        return
    click.echo(f"Exported {n} prompts to {dest}")


@cli.command("import")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--replace", is_flag=True, help="Delete prompts missing from the file")
@json_option
def import_cmd(path: Path, replace: bool, use_json: bool) -> None:
    """Load a JSONL backup into the store in a single transaction."""
    with _open_store(use_json) as (_, store):
        n = import_jsonl(store, path, replace=replace)
        version = store.get_meta(DATA_VERSION_KEY)

    if use_json:
        _echo_json({"imported": n, "path": str(path), "replace": replace, "data_version": version})
        return
    click.echo(f"Imported {n} prompts from {path}")


# ---------------------------------------------------------------------------
# promptbox status
# ---------------------------------------------------------------------------


@cli.command()
@json_option
def status(use_json: bool) -> None:
    """Show prompt count, data version and the state of the default backup."""
    with _open_store(use_json) as (cfg, store):
        n = store.count_prompts()
        version = store.get_meta(DATA_VERSION_KEY)
        header = read_header(cfg.export_path) if cfg.export_path.exists() else None

    if use_json:
        _echo_json({
            "name": cfg.name,
            "prompts": n,
            "data_version": version,
            "schema_version": SCHEMA_VERSION,
            "db_path": str(cfg.db_path),
            "export_path": str(cfg.export_path),
            "export": None if header is None else {
                "version": header.version,
                "count": header.count,
                "exported_at": header.exported_at,
                "schema_version": header.schema_version,
            },
        })
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"promptbox: {cfg.name}", show_header=True, header_style="bold")
    table.add_column("Metric", style="dim", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("Config", str(cfg.config_path))
    table.add_row("Database", str(cfg.db_path))
    table.add_row("Prompts", str(n))
    table.add_row("Data version", version or "[dim]never exported/imported[/dim]")
    table.add_row("Schema version", str(SCHEMA_VERSION))
    if header is not None:
        table.add_row("Backup", f"{cfg.export_path}  ({header.count} prompts)")
        table.add_row("  Exported at", header.exported_at)
    elif cfg.export_path.exists():
        table.add_row("Backup", f"{cfg.export_path}  [yellow](no header)[/yellow]")
    else:
        table.add_row("Backup", "[red]missing[/red]")
    Console().print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
