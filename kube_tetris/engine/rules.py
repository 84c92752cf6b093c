"""
Game Rules
==========

Spawn validity and the two terminal conditions: resource exhaustion on a
node and board overflow at spawn.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from kube_tetris.engine.board import Board
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.pieces import Piece, Pod

REASON_RESOURCE_EXHAUSTION = "resource_exhaustion"
REASON_BOARD_OVERFLOW = "board_overflow"


@dataclass
class TerminationResult:
    """Result of termination check."""
    terminated: bool
    reason: str         # Machine-readable code, empty when not terminated
    message: str        # Text shown to the player

    @staticmethod
    def none() -> "TerminationResult":
        return TerminationResult(False, "", "")

    @staticmethod
    def game_over(reason: str, message: str) -> "TerminationResult":
        return TerminationResult(True, reason, message)


class TerminationRules:
    """
    Builds terminal results.

    - Resource exhaustion: a pod does not fit on the node it reached
    - Board overflow: the promoted piece has no valid spawn cell
    """

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config

    def resource_exhaustion(self, node_index: int, pod: Pod) -> TerminationResult:
        """Game over naming the node and the pod role that did not fit."""
        return TerminationResult.game_over(
            REASON_RESOURCE_EXHAUSTION,
            f"Node {node_index} ran out of resources! "
            f"No space for the new {pod.role.value} pod.",
        )

    def check_spawn(self, board: Board, piece: Piece) -> TerminationResult:
        """Game over if the piece cannot occupy its spawn cell."""
        if board.is_valid_position(piece, piece.col, piece.row):
            return TerminationResult.none()
        return TerminationResult.game_over(
            REASON_BOARD_OVERFLOW,
            "Board is full! No space for new drops.",
        )
