"""
Tests for high-score qualification and persistence.
"""

import json

import pytest

from kube_tetris.engine.config_loader import load_config
from kube_tetris.engine.high_scores import HighScoreEntry, HighScoreStore, insert_entry, qualifies


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def store(config, tmp_path):
    return HighScoreStore(path=tmp_path / "scores.json", config=config)


def entry(name, score, level=1):
    return HighScoreEntry(name=name, score=score, level=level, date="2026-01-01")


class TestQualification:
    """Test table ordering rules."""

    def test_table_not_full(self):
        assert qualifies([], 0)
        assert qualifies([entry("a", 500)], 10, max_entries=2)

    def test_full_table(self):
        table = [entry("a", 500), entry("b", 300)]

        assert qualifies(table, 301, max_entries=2)
        assert not qualifies(table, 300, max_entries=2)

    def test_insert_sorts_and_truncates(self):
        table = [entry("a", 500), entry("b", 300)]

        updated = insert_entry(table, entry("c", 400), max_entries=2)

        assert [e.name for e in updated] == ["a", "c"]
        assert [e.name for e in table] == ["a", "b"]

    def test_ties_keep_earlier_entry_first(self):
        updated = insert_entry([entry("a", 500)], entry("b", 500))

        assert [e.name for e in updated] == ["a", "b"]


class TestHighScoreStore:
    """Test JSON persistence."""

    def test_missing_file_is_empty(self, store):
        assert store.load() == []

    def test_record_and_load(self, store):
        store.record("ada", 1200, 2, date="2026-03-01")
        store.record("lin", 3400, 4, date="2026-03-02")

        table = store.load()

        assert [e.name for e in table] == ["lin", "ada"]
        assert table[0] == HighScoreEntry(name="lin", score=3400, level=4, date="2026-03-02")

    def test_file_layout(self, store):
        store.record("ada", 1200, 2, date="2026-03-01")

        with open(store.path, "r") as f:
            data = json.load(f)

        assert data == {
            "kubetetris-highscores": [
                {"name": "ada", "score": 1200, "level": 2, "date": "2026-03-01"}
            ]
        }

    def test_keeps_top_ten(self, store):
        for i in range(12):
            store.record(f"p{i}", i * 100, 1, date="2026-03-01")

        table = store.load()

        assert len(table) == 10
        assert table[0].score == 1100
        assert table[-1].score == 200

    def test_other_keys_preserved(self, store):
        store.path.write_text(json.dumps({"settings": {"sound": False}}))

        store.record("ada", 100, 1)

        with open(store.path, "r") as f:
            data = json.load(f)
        assert data["settings"] == {"sound": False}
        assert len(data["kubetetris-highscores"]) == 1

    def test_corrupt_file(self, store):
        store.path.write_text("{not json")

        with pytest.raises(ValueError):
            store.load()

    def test_save_refuses_corrupt_file(self, store):
        """Saving over an unreadable file raises like load() and keeps its contents."""
        store.path.write_text("{not json")

        with pytest.raises(ValueError):
            store.save([entry("ada", 100)])

        assert store.path.read_text() == "{not json"

    def test_save_refuses_non_object_file(self, store):
        store.path.write_text("[1, 2, 3]")

        with pytest.raises(ValueError):
            store.save([entry("ada", 100)])

        assert store.path.read_text() == "[1, 2, 3]"

    def test_creates_parent_directories(self, config, tmp_path):
        store = HighScoreStore(path=tmp_path / "nested" / "dir" / "scores.json", config=config)

        store.record("ada", 100, 1)

        assert store.path.exists()
