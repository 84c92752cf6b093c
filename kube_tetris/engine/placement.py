"""
Placement Engine
================

The state transition run when a piece reaches its landing target: apply
the piece's effect, score it, clear completed rows and evaluate the
load-balance bonus, in that order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from kube_tetris.engine.board import Board, LandingTarget
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.constraints import ConstraintSet
from kube_tetris.engine.ledger import NodeLedger
from kube_tetris.engine.pieces import Piece, Pod, Upgrade
from kube_tetris.engine.rules import TerminationResult, TerminationRules
from kube_tetris.engine.scoring import ScoreEvent, ScoreTracker

logger = logging.getLogger(__name__)


class PlacementEffect(str, Enum):
    POD_PLACED = "pod-placed"
    CAPACITY_GRANTED = "capacity-granted"
    LANDED = "landed"               # Came to rest on the stack, no resource effect
    REJECTED = "rejected"           # Pod did not fit: terminal


@dataclass
class PlacementOutcome:
    """Result of a single placement."""
    effect: PlacementEffect
    target: LandingTarget
    piece: Piece
    score_events: List[ScoreEvent] = field(default_factory=list)
    lines_cleared: int = 0
    constraints_met: int = 0
    dependencies_met: Optional[float] = None    # Pods on nodes only
    termination: TerminationResult = field(default_factory=TerminationResult.none)

    @property
    def score_delta(self) -> int:
        return sum(event.points for event in self.score_events)

    @property
    def rejected(self) -> bool:
        return self.effect is PlacementEffect.REJECTED


class PlacementEngine:
    """
    Applies landed pieces to the board and ledger.

    Only successful pod placements earn placement and load-balance points;
    any committed placement may complete rows and earn line-clear points.
    """

    def __init__(
        self,
        board: Board,
        ledger: NodeLedger,
        scorer: ScoreTracker,
        constraints: ConstraintSet,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize placement engine.

        Args:
            board: The board pieces land on.
            ledger: Node capacity ledger.
            scorer: Score tracker instance.
            constraints: Active constraint set.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._board = board
        self._ledger = ledger
        self._scorer = scorer
        self._constraints = constraints
        self._rules = TerminationRules(config)

    def place(self, piece: Piece) -> PlacementOutcome:
        """
        Resolve and apply a piece at its current column and row.

        Returns:
            PlacementOutcome. A REJECTED outcome leaves board, ledger and
            score untouched and carries the terminal result.
        """
        target = self._board.resolve_landing_target(piece.col, piece.row)

        if target.is_node:
            if isinstance(piece, Upgrade):
                outcome = self._apply_upgrade(piece, target)
            else:
                outcome = self._apply_pod(piece, target)
                if outcome.rejected:
                    logger.debug("Rejected %r on node %d", piece, target.node_index)
                    return outcome
        else:
            self._board.occupy(piece, target.row)
            outcome = PlacementOutcome(effect=PlacementEffect.LANDED, target=target, piece=piece)

        outcome.lines_cleared = self._board.clear_full_rows()
        outcome.score_events.extend(self._scorer.apply_line_clears(outcome.lines_cleared))

        if outcome.effect is PlacementEffect.POD_PLACED:
            balance = self._scorer.apply_load_balance(self._ledger.compute_loads())
            if balance is not None:
                outcome.score_events.append(balance)

        self._scorer.refresh_level()

        logger.debug(
            "Placement %s at row %d: +%d points, %d lines",
            outcome.effect.value, target.row, outcome.score_delta, outcome.lines_cleared
        )
        return outcome

    def _apply_upgrade(self, upgrade: Upgrade, target: LandingTarget) -> PlacementOutcome:
        node = self._ledger[target.node_index]
        self._ledger.grant_capacity(node, upgrade.grant)
        upgrade.row = target.row
        return PlacementOutcome(
            effect=PlacementEffect.CAPACITY_GRANTED,
            target=target,
            piece=upgrade,
        )

    def _apply_pod(self, pod: Pod, target: LandingTarget) -> PlacementOutcome:
        node = self._ledger[target.node_index]
        if not self._ledger.can_accept(node, pod.demand):
            return PlacementOutcome(
                effect=PlacementEffect.REJECTED,
                target=target,
                piece=pod,
                termination=self._rules.resource_exhaustion(node.index, pod),
            )

        # Anti-affinity counts the pods hosted before this one
        constraints_met = self._constraints.count_satisfied(pod, node)
        self._ledger.consume(node, pod)
        pod.row = target.row

        # Scored against the ledger after consumption, before any rows clear
        event = self._scorer.apply_placement(
            pod, node, self._ledger.utilizations(), constraints_met
        )
        return PlacementOutcome(
            effect=PlacementEffect.POD_PLACED,
            target=target,
            piece=pod,
            score_events=[event],
            constraints_met=constraints_met,
            dependencies_met=self._ledger.dependency_satisfaction(pod),
        )
