"""
RNG - Piece Spawner
===================

Produces randomized piece instances from the catalog. All randomness flows
through one injectable random.Random so sequences are reproducible.
"""

from __future__ import annotations

import random
from typing import List, Optional

from kube_tetris.engine.catalog import PieceCatalog, PieceCategory
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.pieces import Piece, Pod, Upgrade


class Spawner:
    """
    Weighted category draw followed by a uniform kind draw.

    The category split defaults to 5:1 pod:upgrade. Within a category each
    kind is equally likely, and each resource dimension is then sampled
    independently from the kind's discrete option list.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        catalog: Optional[PieceCatalog] = None,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize spawner.

        Args:
            config: Game configuration. Uses default if None.
            catalog: Piece catalog. Built from config if None.
            seed: Random seed for reproducibility. Ignored if rng is given.
            rng: Random source to draw from (for injecting a fixed sequence).
        """
        if config is None:
            config = get_config()

        self._config = config
        self._catalog = catalog if catalog is not None else PieceCatalog(config)
        self._rng = rng if rng is not None else random.Random(seed)
        self._next_uid: int = 0

        self._spawn_col = config.board.spawn_col
        self._spawn_row = config.board.spawn_row

    @property
    def catalog(self) -> PieceCatalog:
        return self._catalog

    @property
    def rng(self) -> random.Random:
        return self._rng

    @property
    def spawned_count(self) -> int:
        """Number of pieces produced since the last reset."""
        return self._next_uid

    def _weighted_category(self) -> PieceCategory:
        """Choose a category weighted by config weights."""
        weights = self._config.spawner
        total = weights.pod_weight + weights.upgrade_weight
        r = self._rng.random() * total
        if r < weights.pod_weight:
            return PieceCategory.POD
        return PieceCategory.UPGRADE

    def _take_uid(self) -> int:
        uid = self._next_uid
        self._next_uid += 1
        return uid

    def spawn(self) -> Piece:
        """
        Create a fresh piece at the spawn position.

        Returns:
            A new Pod or Upgrade; the caller owns inserting it into the board.
        """
        category = self._weighted_category()
        if category is PieceCategory.POD:
            return self.spawn_pod()
        return self.spawn_upgrade()

    def spawn_pod(self) -> Pod:
        """Create a pod of a uniformly chosen kind."""
        kinds = self._catalog.list_pod_kinds()
        kind = kinds[self._rng.randrange(len(kinds))]
        return Pod(
            kind=kind,
            demand=kind.sample_demand(self._rng),
            uid=self._take_uid(),
            col=self._spawn_col,
            row=self._spawn_row,
        )

    def spawn_upgrade(self) -> Upgrade:
        """Create an upgrade of a uniformly chosen kind."""
        kinds = self._catalog.list_upgrade_kinds()
        kind = kinds[self._rng.randrange(len(kinds))]
        return Upgrade(
            kind=kind,
            grant=kind.sample_grant(self._rng),
            uid=self._take_uid(),
            col=self._spawn_col,
            row=self._spawn_row,
        )

    def spawn_many(self, count: int) -> List[Piece]:
        """Spawn several pieces in sequence."""
        return [self.spawn() for _ in range(count)]

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset the uid counter and optionally reseed.

        Args:
            seed: New random seed. Keeps current generator state if None.
        """
        if seed is not None:
            self._rng = random.Random(seed)
        self._next_uid = 0
