"""PromptboxConfig: project-local config for the prompt store.

Default layout (all relative to the project root):

    promptbox.toml        # project config (git-tracked)
    .env                  # optional: PROMPTBOX_DATA_DIR
    .promptbox/
        prompts.db        # SQLite store (add to .gitignore)
        prompts.jsonl     # default export/backup file (git-tracked)
        .gitignore        # auto-written: ignores *.db*, *.tmp

promptbox.toml example:

    [promptbox]
    name = "my-prompts"
    # data_dir = ".promptbox"                   # default
    # export_path = ".promptbox/prompts.jsonl"  # default
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "promptbox.toml"
_DEFAULT_DATA_DIR = ".promptbox"
_DEFAULT_EXPORT_NAME = "prompts.jsonl"
_GITIGNORE_CONTENT = "*.db*\n*.tmp\n"


@dataclass
class PromptboxConfig:
    """Resolved configuration for a prompt store project."""

    root: Path                      # directory that contains promptbox.toml
    name: str = ""
    data_dir: Path = field(default_factory=Path)
    export_path: Path = field(default_factory=Path)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    @property
    def db_path(self) -> Path:
        return self.data_dir / "prompts.db"

    def ensure_dirs(self) -> None:
        """Create data_dir if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        gitignore = self.data_dir / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(_GITIGNORE_CONTENT)


def _load_env(root: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE .env file."""
    env_file = root / ".env"
    if not env_file.exists():
        return {}
    env: dict[str, str] = {}
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            k, _, v = line.partition("=")
            env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def load_config(root: Path | str | None = None) -> PromptboxConfig:
    """Load promptbox.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    section = raw.get("promptbox", {})
    env = _load_env(root_path)

    data_rel = env.get("PROMPTBOX_DATA_DIR") or str(section.get("data_dir", _DEFAULT_DATA_DIR))
    data_dir = root_path / data_rel
    export_rel = section.get("export_path")
    export_path = root_path / export_rel if export_rel else data_dir / _DEFAULT_EXPORT_NAME

    return PromptboxConfig(
        root=root_path,
        name=section.get("name", root_path.name),
        data_dir=data_dir,
        export_path=export_path,
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for promptbox.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default promptbox.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"promptbox.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[promptbox]
name = "{project_name}"
# data_dir = ".promptbox"                   # default; or set PROMPTBOX_DATA_DIR in .env
# export_path = ".promptbox/prompts.jsonl"  # default target of `promptbox export`
"""
    config_path.write_text(content)
    return config_path
