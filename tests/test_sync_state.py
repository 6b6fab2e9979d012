"""Tests for the base snapshot persistence layer.

Covers:
- load returns an empty list when no base is stored
- save creates the file atomically and creates state_dir
- save/load round-trip preserves records and order
- meta reports count, hash and saved_at
- content_hash is stable across key order
- invalid base files raise ValueError
- clear removes the file
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from reference_manager.sync.state import BaseStore

from factories import build_item

# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


class TestBaseStoreLoad:
    """Tests for BaseStore.load()."""

    def test_load_returns_empty_list_when_file_missing(self, tmp_path: Path):
        """load() returns [] when no base has been stored."""
        store = BaseStore(tmp_path / "nonexistent")
        assert store.load("default") == []
        assert store.exists("default") is False

    def test_load_invalid_json_raises(self, tmp_path: Path):
        """A corrupt base file raises ValueError naming the file."""
        (tmp_path / "base_lib.json").write_text("{not json", encoding="utf-8")
        store = BaseStore(tmp_path)

        with pytest.raises(ValueError, match="Invalid base file"):
            store.load("lib")

    def test_load_without_items_raises(self, tmp_path: Path):
        """A base file without an items list raises ValueError."""
        (tmp_path / "base_lib.json").write_text(
            json.dumps({"version": 1}), encoding="utf-8"
        )
        store = BaseStore(tmp_path)

        with pytest.raises(ValueError, match="'items' list"):
            store.load("lib")


class TestBaseStoreSave:
    """Tests for BaseStore.save()."""

    def test_save_creates_file(self, tmp_path: Path):
        """save() writes base_{library}.json under state_dir."""
        state_dir = tmp_path / ".reference_manager"
        store = BaseStore(state_dir)
        store.save("demo", [build_item("a")])

        path = state_dir / "base_demo.json"
        assert path.is_file()
        assert store.exists("demo") is True

    def test_save_creates_state_dir_if_needed(self, tmp_path: Path):
        """save() creates nested state directories."""
        state_dir = tmp_path / "nested" / "deep" / ".reference_manager"
        BaseStore(state_dir).save("x", [])
        assert state_dir.is_dir()

    def test_round_trip(self, tmp_path: Path):
        """Records come back equal and in the same order."""
        records = [build_item("b"), build_item("a", note="ü")]
        store = BaseStore(tmp_path)
        store.save("lib", records)

        assert store.load("lib") == records

    def test_document_layout(self, tmp_path: Path):
        """The file records version, library name and content hash."""
        records = [build_item("a")]
        store = BaseStore(tmp_path)
        store.save("lib", records)

        document = json.loads(
            (tmp_path / "base_lib.json").read_text(encoding="utf-8")
        )
        assert document["version"] == 1
        assert document["library"] == "lib"
        assert document["hash"] == BaseStore.content_hash(records)
        assert "T" in document["saved_at"]

    def test_save_leaves_no_temp_files(self, tmp_path: Path):
        """Only the target file remains after an atomic save."""
        store = BaseStore(tmp_path)
        store.save("lib", [build_item("a")])
        store.save("lib", [build_item("b")])

        assert sorted(p.name for p in tmp_path.iterdir()) == ["base_lib.json"]
        assert store.load("lib") == [build_item("b")]

    def test_libraries_are_separate(self, tmp_path: Path):
        store = BaseStore(tmp_path)
        store.save("one", [build_item("a")])
        store.save("two", [build_item("b"), build_item("c")])

        assert len(store.load("one")) == 1
        assert len(store.load("two")) == 2


# ---------------------------------------------------------------------------
# Meta / clear
# ---------------------------------------------------------------------------


class TestBaseStoreMeta:
    """Tests for BaseStore.meta() and clear()."""

    def test_meta_absent(self, tmp_path: Path):
        assert BaseStore(tmp_path).meta("lib") is None

    def test_meta_after_save(self, tmp_path: Path):
        records = [build_item("a"), build_item("b")]
        store = BaseStore(tmp_path)
        store.save("lib", records)

        meta = store.meta("lib")

        assert meta["count"] == 2
        assert meta["hash"] == BaseStore.content_hash(records)
        assert meta["saved_at"] is not None

    def test_clear(self, tmp_path: Path):
        store = BaseStore(tmp_path)
        store.save("lib", [])
        store.clear("lib")

        assert store.exists("lib") is False

    def test_clear_missing_is_noop(self, tmp_path: Path):
        BaseStore(tmp_path).clear("never-saved")


# ---------------------------------------------------------------------------
# content_hash
# ---------------------------------------------------------------------------


class TestContentHash:
    """Tests for BaseStore.content_hash()."""

    def test_consistent(self):
        records = [build_item("a")]
        assert BaseStore.content_hash(records) == BaseStore.content_hash(
            [build_item("a")]
        )

    def test_key_order_ignored(self):
        """Hash does not depend on dict key order."""
        a = [{"id": "x", "title": "T"}]
        b = [{"title": "T", "id": "x"}]
        assert BaseStore.content_hash(a) == BaseStore.content_hash(b)

    def test_record_order_matters(self):
        a = [{"id": "x"}, {"id": "y"}]
        b = [{"id": "y"}, {"id": "x"}]
        assert BaseStore.content_hash(a) != BaseStore.content_hash(b)

    def test_hex_digest(self):
        digest = BaseStore.content_hash([])
        assert len(digest) == 64
        int(digest, 16)
