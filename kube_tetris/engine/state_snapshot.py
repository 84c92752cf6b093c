"""
State Snapshot
==============

Packs game state into fixed-size numpy arrays. Snapshots are the read-only
view handed to renderers and agents; they never alias engine state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from kube_tetris.engine.board import Board
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.ledger import NodeLedger
from kube_tetris.engine.pieces import Piece, Pod
from kube_tetris.engine.resources import DIMENSIONS


@dataclass
class GameSnapshot:
    """Complete game state snapshot."""
    # Lifecycle
    state: str
    score: int
    level: int
    tick_interval_ms: int

    # Board
    cells: np.ndarray                 # (H, W) int8 cell codes
    column_heights: np.ndarray        # (W,) int32

    # Pieces (-1 kind id when absent)
    current_kind_id: int
    current_is_pod: bool
    current_col: int
    current_row: int
    current_resources: np.ndarray     # (4,) float32 demand or grant
    next_kind_id: int
    next_resources: np.ndarray        # (4,) float32

    # Nodes
    node_used: np.ndarray             # (N, 4) float32
    node_total: np.ndarray            # (N, 4) float32
    node_specialization: np.ndarray   # (N,) int16 index into the specialization set
    node_pod_count: np.ndarray        # (N,) int32

    active_constraints: Tuple[str, ...] = ()
    termination_reason: str = ""
    termination_message: str = ""

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        return {
            "score": np.array(self.score, dtype=np.int64),
            "level": np.array(self.level, dtype=np.int32),
            "cells": self.cells,
            "column_heights": self.column_heights,
            "current_kind_id": np.array(self.current_kind_id, dtype=np.int32),
            "current_col": np.array(self.current_col, dtype=np.int32),
            "current_row": np.array(self.current_row, dtype=np.int32),
            "current_resources": self.current_resources,
            "next_kind_id": np.array(self.next_kind_id, dtype=np.int32),
            "next_resources": self.next_resources,
            "node_used": self.node_used,
            "node_total": self.node_total,
            "node_specialization": self.node_specialization,
            "node_pod_count": self.node_pod_count,
        }


def _piece_resources(piece: Optional[Piece]) -> np.ndarray:
    if piece is None:
        return np.zeros(len(DIMENSIONS), dtype=np.float32)
    values = piece.demand if isinstance(piece, Pod) else piece.grant
    return np.array(values.as_tuple(), dtype=np.float32)


class SnapshotBuilder:
    """Builds game state snapshots."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._specializations = config.nodes.specializations

    def build(
        self,
        board: Board,
        ledger: NodeLedger,
        current: Optional[Piece],
        upcoming: Optional[Piece],
        state: str,
        score: int,
        level: int,
        active_constraints: Tuple[str, ...] = (),
        termination_reason: str = "",
        termination_message: str = "",
    ) -> GameSnapshot:
        """Build a snapshot from current game state."""
        specialization_ids = np.array(
            [self._specializations.index(node.specialization) for node in ledger],
            dtype=np.int16,
        )
        pod_counts = np.array([len(node.pods) for node in ledger], dtype=np.int32)

        return GameSnapshot(
            state=state,
            score=score,
            level=level,
            tick_interval_ms=self._config.board.tick_interval_ms,
            cells=board.occupancy(),
            column_heights=board.column_heights(),
            current_kind_id=current.kind_id if current is not None else -1,
            current_is_pod=isinstance(current, Pod),
            current_col=current.col if current is not None else -1,
            current_row=current.row if current is not None else -1,
            current_resources=_piece_resources(current),
            next_kind_id=upcoming.kind_id if upcoming is not None else -1,
            next_resources=_piece_resources(upcoming),
            node_used=ledger.used_matrix(),
            node_total=ledger.total_matrix(),
            node_specialization=specialization_ids,
            node_pod_count=pod_counts,
            active_constraints=tuple(active_constraints),
            termination_reason=termination_reason,
            termination_message=termination_message,
        )
