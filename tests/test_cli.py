from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from promptbox.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    r = CliRunner()
    result = r.invoke(cli, ["init", "demo"])
    assert result.exit_code == 0, result.output
    return r


def _json(result):
    return json.loads(result.output)


def _add_samples(runner):
    for args in (
        ["add", "a", "Alpha", "first body", "-c", "dev", "-t", "review", "-t", "code"],
        ["add", "b", "Beta", "second body", "-d", "about beta", "-c", "writing", "-t", "draft"],
        ["add", "c", "Gamma", "third body", "-t", "code"],
    ):
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output


def test_init_creates_config_and_data_dir(runner, tmp_path):
    assert (tmp_path / "promptbox.toml").exists()
    assert (tmp_path / ".promptbox").is_dir()

    result = runner.invoke(cli, ["init"])
    assert result.exit_code == 0
    assert "already exists" in result.output


def test_add_and_show(runner):
    _add_samples(runner)
    result = runner.invoke(cli, ["add", "a", "Alpha 2", "new body"])
    assert result.exit_code == 0
    assert "Updated [a]" in result.output

    result = runner.invoke(cli, ["show", "b"])
    assert result.exit_code == 0
    assert "Beta (b)" in result.output
    assert "Category: writing" in result.output
    assert "second body" in result.output

    data = _json(runner.invoke(cli, ["show", "a", "--json"]))
    assert data["ok"] is True
    assert data["prompt"]["title"] == "Alpha 2"


def test_show_missing(runner):
    result = runner.invoke(cli, ["show", "nope", "--json"])
    assert result.exit_code == 1
    assert _json(result) == {"ok": False, "error": "not_found", "message": "Prompt not found: nope"}

    result = runner.invoke(cli, ["show", "nope"])
    assert result.exit_code == 1


def test_list_search_categories_tags(runner):
    _add_samples(runner)

    data = _json(runner.invoke(cli, ["list", "--json"]))
    assert [p["id"] for p in data["prompts"]] == ["a", "b", "c"]

    data = _json(runner.invoke(cli, ["list", "--category", "dev", "--json"]))
    assert data["count"] == 1

    result = runner.invoke(cli, ["list"])
    assert result.exit_code == 0
    assert "Alpha" in result.output

    data = _json(runner.invoke(cli, ["search", "CODE", "--json"]))
    assert [p["id"] for p in data["prompts"]] == ["a", "c"]

    result = runner.invoke(cli, ["search", "zzz"])
    assert 'No prompts matched "zzz"' in result.output

    data = _json(runner.invoke(cli, ["categories", "--json"]))
    assert data["categories"] == [{"name": "dev", "count": 1}, {"name": "writing", "count": 1}]

    data = _json(runner.invoke(cli, ["tags", "--json"]))
    assert {"name": "code", "count": 2} in data["tags"]


def test_export_import_roundtrip(runner, tmp_path):
    _add_samples(runner)

    data = _json(runner.invoke(cli, ["export", "--json"]))
    assert data["exported"] == 3
    backup = tmp_path / ".promptbox" / "prompts.jsonl"
    assert Path(data["path"]).resolve() == backup.resolve()
    assert backup.exists()

    runner.invoke(cli, ["add", "extra", "Extra", "not in backup"])

    data = _json(runner.invoke(cli, ["import", str(backup), "--json"]))
    assert data["imported"] == 3
    assert data["replace"] is False
    assert _json(runner.invoke(cli, ["list", "--json"]))["count"] == 4

    result = runner.invoke(cli, ["import", str(backup), "--replace"])
    assert result.exit_code == 0
    assert "Imported 3 prompts" in result.output
    assert _json(runner.invoke(cli, ["list", "--json"]))["count"] == 3


def test_export_to_explicit_path(runner, tmp_path):
    _add_samples(runner)
    dest = tmp_path / "out" / "backup.jsonl"
    result = runner.invoke(cli, ["export", str(dest)])
    assert result.exit_code == 0
    assert f"Exported 3 prompts to {dest}" in result.output
    assert len(dest.read_text().splitlines()) == 4


def test_import_parse_error_envelope(runner, tmp_path):
    bad = tmp_path / "bad.jsonl"
    bad.write_text('{"id": "a", "title": "A", "content": "x"}\nnot json\n')

    result = runner.invoke(cli, ["import", str(bad), "--json"])
    assert result.exit_code == 1
    data = _json(result)
    assert data["ok"] is False
    assert data["error"] == "parse_error"
    assert "line 2" in data["message"]
    assert _json(runner.invoke(cli, ["list", "--json"]))["count"] == 0


def test_import_header_error_and_missing_file(runner, tmp_path):
    bad = tmp_path / "bad.jsonl"
    bad.write_text('{"_meta": {"version": 1}}\n')
    data = _json(runner.invoke(cli, ["import", str(bad), "--json"]))
    assert data["error"] == "header_error"

    data = _json(runner.invoke(cli, ["import", str(tmp_path / "missing.jsonl"), "--json"]))
    assert data["error"] == "io_error"

    result = runner.invoke(cli, ["import", str(tmp_path / "missing.jsonl")])
    assert result.exit_code == 1
    assert "Failed to open JSONL file" in result.output


def test_status(runner):
    data = _json(runner.invoke(cli, ["status", "--json"]))
    assert data["name"] == "demo"
    assert data["prompts"] == 0
    assert data["data_version"] is None
    assert data["export"] is None

    _add_samples(runner)
    runner.invoke(cli, ["export"])
    data = _json(runner.invoke(cli, ["status", "--json"]))
    assert data["prompts"] == 3
    assert data["data_version"] is not None
    assert data["export"]["count"] == 3

    result = runner.invoke(cli, ["status"])
    assert result.exit_code == 0
    assert "Prompts" in result.output


def test_import_lone_surrogate_envelope(runner, tmp_path):
    bad = tmp_path / "bad.jsonl"
    bad.write_text('{"id":"a","title":"A","content":"\\ud800"}\n', encoding="utf-8")

    result = runner.invoke(cli, ["import", str(bad), "--json"])
    assert result.exit_code == 1
    data = _json(result)
    assert data["error"] == "parse_error"
    assert "line 1" in data["message"]
    assert _json(runner.invoke(cli, ["status", "--json"]))["data_version"] is None


def test_init_malformed_config_is_click_error(tmp_path):
    (tmp_path / "promptbox.toml").write_text("[promptbox\nname = \n")

    result = CliRunner().invoke(cli, ["init", "--dir", str(tmp_path)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Error:" in result.output


def test_init_empty_database_is_click_error(tmp_path):
    db = tmp_path / ".promptbox" / "prompts.db"
    db.parent.mkdir()
    db.touch()

    result = CliRunner().invoke(cli, ["init", "--dir", str(tmp_path)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "0 bytes" in result.output
