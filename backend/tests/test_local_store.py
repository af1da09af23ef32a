"""Tests for the local key/value store."""

import json

from app.services.local_store import LocalStore


def test_in_memory_get_set_delete():
    store = LocalStore()
    assert store.get("user_1") is None

    store.set("user_1", {"external_id": "1"})
    assert store.get("user_1") == {"external_id": "1"}

    store.delete("user_1")
    assert store.get("user_1") is None
    store.delete("user_1")


def test_persists_to_file(tmp_path):
    path = tmp_path / "store" / "local.json"
    store = LocalStore(path)
    store.set("roadmaps_1", {"roadmap_1": {"subject": "Python"}})
    assert path.exists()

    reopened = LocalStore(path)
    assert reopened.get("roadmaps_1") == {"roadmap_1": {"subject": "Python"}}


def test_unreadable_file_starts_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{not json", encoding="utf-8")

    store = LocalStore(path)
    assert store.get("anything") is None
    store.set("user_1", {"ok": True})
    assert json.loads(path.read_text(encoding="utf-8")) == {"user_1": '{"ok": true}'}


def test_corrupt_entry_reads_as_missing(tmp_path):
    path = tmp_path / "local.json"
    path.write_text(json.dumps({"history_1": "[{broken", "user_1": '{"a": 1}'}), encoding="utf-8")

    store = LocalStore(path)
    assert store.get("history_1") is None
    assert store.get("user_1") == {"a": 1}


def test_non_object_file_starts_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text('["not", "a", "store"]', encoding="utf-8")

    store = LocalStore(path)
    assert store.path == path
    assert store.get("0") is None


def test_every_write_reaches_the_file(tmp_path):
    path = tmp_path / "local.json"
    store = LocalStore(path)

    store.set("user_1", {"a": 1})
    store.set("user_2", {"b": 2})
    store.delete("user_1")

    assert json.loads(path.read_text(encoding="utf-8")) == {"user_2": '{"b": 2}'}
    assert not (tmp_path / "local.json.tmp").exists()
