from __future__ import annotations

import sqlite3

import pytest

from promptbox.models import Prompt
from promptbox.store import PromptStore


def test_bulk_upsert_and_list_preserves_order(store, sample_prompts):
    assert store.bulk_upsert_prompts(sample_prompts) == 3
    assert store.list_prompts() == sample_prompts
    assert store.count_prompts() == 3


def test_upsert_same_id_overwrites_in_place(store, sample_prompts):
    store.bulk_upsert_prompts(sample_prompts)
    store.upsert_prompt(Prompt("a", "A2", "x2", tags=["new"]))

    prompts = store.list_prompts()
    assert [p.id for p in prompts] == ["a", "b", "c"]
    assert prompts[0] == Prompt("a", "A2", "x2", tags=["new"])
    assert store.count_prompts() == 3


def test_bulk_upsert_rolls_back_whole_batch(store):
    store.upsert_prompt(Prompt("keep", "Keep", "k"))
    # Empty id violates the CHECK constraint after the first row was written
    batch = [Prompt("new", "New", "n"), Prompt("", "Bad", "b")]

    with pytest.raises(sqlite3.IntegrityError):
        store.bulk_upsert_prompts(batch)

    assert [p.id for p in store.list_prompts()] == ["keep"]


def test_bulk_upsert_replace_deletes_missing(store, sample_prompts):
    store.bulk_upsert_prompts(sample_prompts)
    store.bulk_upsert_prompts([Prompt("z", "Z", "z")], replace=True)
    assert [p.id for p in store.list_prompts()] == ["z"]


def test_bulk_upsert_replace_rolls_back_delete(store, sample_prompts):
    store.bulk_upsert_prompts(sample_prompts)
    with pytest.raises(sqlite3.IntegrityError):
        store.bulk_upsert_prompts([Prompt("", "Bad", "b")], replace=True)
    assert store.list_prompts() == sample_prompts


def test_get_and_delete_prompt(store, sample_prompts):
    store.bulk_upsert_prompts(sample_prompts)
    assert store.get_prompt("b") == sample_prompts[1]
    assert store.get_prompt("missing") is None
    assert store.delete_prompt("b") is True
    assert store.delete_prompt("b") is False
    assert store.get_prompt("b") is None


def test_meta_get_set(store):
    assert store.get_meta("data_version") is None
    store.set_meta("data_version", "one")
    store.set_meta("data_version", "two")
    assert store.get_meta("data_version") == "two"


def test_categories_and_tags(store, sample_prompts):
    store.bulk_upsert_prompts([*sample_prompts, Prompt("d", "D", "z", category="dev", tags=["code"])])
    assert store.list_categories() == [("dev", 2), ("writing", 1)]
    assert store.list_tags() == [("code", 2), ("draft", 1), ("review", 1)]


def test_open_persists_across_connections(tmp_path, sample_prompts):
    db_path = tmp_path / "nested" / "prompts.db"
    with PromptStore.open(db_path) as s:
        s.bulk_upsert_prompts(sample_prompts)
        s.set_meta("data_version", "v1")

    with PromptStore.open(db_path) as s:
        assert s.list_prompts() == sample_prompts
        assert s.get_meta("data_version") == "v1"


def test_open_rejects_empty_db_file(tmp_path):
    db_path = tmp_path / "prompts.db"
    db_path.touch()
    with pytest.raises(sqlite3.OperationalError, match="0 bytes"):
        PromptStore.open(db_path)
