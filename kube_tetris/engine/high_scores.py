"""
High Scores
===========

Local high-score table persisted as JSON under a fixed key.

File format:
    {"kubetetris-highscores": [{"name": ..., "score": ..., "level": ..., "date": ...}, ...]}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from kube_tetris.engine.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighScoreEntry:
    """One row of the high-score table."""
    name: str
    score: int
    level: int
    date: str

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "HighScoreEntry":
        return HighScoreEntry(
            name=str(data["name"]),
            score=int(data["score"]),
            level=int(data.get("level", 1)),
            date=str(data.get("date", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def qualifies(entries: List[HighScoreEntry], score: int, max_entries: int = 10) -> bool:
    """True if score would enter a table holding these entries."""
    return len(entries) < max_entries or score > entries[-1].score


def insert_entry(
    entries: List[HighScoreEntry],
    entry: HighScoreEntry,
    max_entries: int = 10
) -> List[HighScoreEntry]:
    """
    Insert an entry, sort best first and truncate.

    Returns:
        A new list; the input is not modified.
    """
    table = list(entries) + [entry]
    # Stable sort keeps earlier entries ahead on ties
    table.sort(key=lambda e: e.score, reverse=True)
    return table[:max_entries]


class HighScoreStore:
    """JSON-file backed persistence for the high-score table."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize store.

        Args:
            path: JSON file to read and write. Uses config path if None.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._key = config.high_scores.storage_key
        self._max_entries = config.high_scores.max_entries
        if path is None:
            path = os.path.expanduser(config.high_scores.path)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def load(self) -> List[HighScoreEntry]:
        """
        Read the table, best first.

        A missing file is an empty table.

        Raises:
            ValueError: If the file exists but does not hold a valid table.
        """
        if not self._path.exists():
            return []
        with open(self._path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Corrupt high score file {self._path}: {e}") from e
        raw_entries = data.get(self._key, []) if isinstance(data, dict) else None
        if not isinstance(raw_entries, list):
            raise ValueError(f"High score file {self._path} has no '{self._key}' list")
        entries = [HighScoreEntry.from_dict(item) for item in raw_entries]
        entries.sort(key=lambda e: e.score, reverse=True)
        return entries[:self._max_entries]

    def save(self, entries: List[HighScoreEntry]) -> None:
        """
        Write the table, keeping any other keys already in the file.

        Raises:
            ValueError: If the existing file is not a JSON object. It is left
                untouched.
        """
        data: Dict[str, Any] = {}
        if self._path.exists():
            with open(self._path, "r") as f:
                try:
                    data = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Corrupt high score file {self._path}: {e}") from e
            if not isinstance(data, dict):
                raise ValueError(f"High score file {self._path} does not hold a JSON object")
        data[self._key] = [entry.to_dict() for entry in entries[:self._max_entries]]

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w") as f:
            json.dump(data, f, indent=2)
        logger.info("Saved %d high scores to %s", len(entries[:self._max_entries]), self._path)

    def record(self, name: str, score: int, level: int, date: Optional[str] = None) -> List[HighScoreEntry]:
        """Load, insert a new entry, save and return the updated table."""
        if date is None:
            date = datetime.now().strftime("%Y-%m-%d")
        entry = HighScoreEntry(name=name, score=score, level=level, date=date)
        table = insert_entry(self.load(), entry, self._max_entries)
        self.save(table)
        return table
