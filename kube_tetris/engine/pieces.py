"""
Pieces
======

Runtime piece instances. A piece is either a Pod (consumes node capacity)
or an Upgrade (grants node capacity); both occupy a single grid cell.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from kube_tetris.engine.catalog import PieceCategory, PodKind, PodRole, UpgradeKind
from kube_tetris.engine.resources import Resources


# Pieces never rotate into multi-cell shapes
SINGLE_CELL: Tuple[Tuple[int, int], ...] = ((0, 0),)


@dataclass
class Pod:
    """A workload descending toward a node."""
    kind: PodKind
    demand: Resources
    uid: int
    col: int
    row: int

    @property
    def category(self) -> PieceCategory:
        return PieceCategory.POD

    @property
    def role(self) -> PodRole:
        return self.kind.role

    @property
    def kind_id(self) -> int:
        return self.kind.kind_id

    @property
    def footprint(self) -> Tuple[Tuple[int, int], ...]:
        """Occupied (d_col, d_row) offsets relative to the piece position."""
        return SINGLE_CELL

    def label(self) -> str:
        return f"{self.role.value} pod"

    def __repr__(self) -> str:
        return f"Pod(uid={self.uid}, {self.role.value}, col={self.col}, row={self.row})"


@dataclass
class Upgrade:
    """A capacity upgrade descending toward a node."""
    kind: UpgradeKind
    grant: Resources
    uid: int
    col: int
    row: int

    @property
    def category(self) -> PieceCategory:
        return PieceCategory.UPGRADE

    @property
    def kind_id(self) -> int:
        return self.kind.kind_id

    @property
    def footprint(self) -> Tuple[Tuple[int, int], ...]:
        return SINGLE_CELL

    def label(self) -> str:
        return self.kind.description

    def __repr__(self) -> str:
        return f"Upgrade(uid={self.uid}, {self.kind.name}, col={self.col}, row={self.row})"


Piece = Union[Pod, Upgrade]


@dataclass(frozen=True)
class PlacedPod:
    """Record of a pod committed to a node."""
    uid: int
    role: PodRole
    demand: Resources
