"""
Scoring System
==============

Placement, line-clear and load-balance scoring, plus level progression.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.ledger import Node
from kube_tetris.engine.pieces import Pod


class ScoreKind(str, Enum):
    PLACEMENT = "placement"
    LINE_CLEAR = "line_clear"
    LOAD_BALANCE = "load_balance"


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    kind: ScoreKind
    points: int
    level: int                  # Level multiplier applied
    detail: str = ""

    def __repr__(self) -> str:
        return f"ScoreEvent({self.kind.value}={self.points} @L{self.level})"


class ScoreTracker:
    """
    Tracks score and level.

    Level is floor(score / points_per_level) + 1. It is recomputed after the
    placement score and once more when the placement completes, so line-clear
    and load-balance bonuses from one placement share a single level.
    Score never decreases.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rules = config.scoring
        self._score: int = 0
        self._level: int = 1
        self._placements: int = 0
        self._lines_cleared: int = 0

    @property
    def score(self) -> int:
        """Current total score."""
        return self._score

    @property
    def level(self) -> int:
        """Current level (starts at 1)."""
        return self._level

    @property
    def placements(self) -> int:
        """Number of scored pod placements."""
        return self._placements

    @property
    def lines_cleared(self) -> int:
        return self._lines_cleared

    def level_for(self, score: int) -> int:
        return score // self._rules.points_per_level + 1

    def refresh_level(self) -> int:
        """Recompute the level from the current score."""
        self._level = self.level_for(self._score)
        return self._level

    def placement_points(
        self,
        pod: Pod,
        node: Node,
        utilizations: Sequence[float],
        constraints_met: int
    ) -> int:
        """
        Points for a successful pod placement before the level multiplier.

        Args:
            pod: The pod that was placed.
            node: The node it was placed on (already including the pod).
            utilizations: Per-node compute+memory utilization after placement.
            constraints_met: Active constraints the pod satisfied.
        """
        rules = self._rules
        points = rules.base_points

        if node.specialization == pod.kind.preferred_node:
            points += rules.preferred_node_bonus

        loads = np.asarray(utilizations, dtype=np.float64)
        if loads.size:
            max_load = float(loads.max())
            min_load = float(loads.min())
            avg_load = float(loads.mean())

            # Nothing overloaded
            if max_load < rules.headroom_max_utilization:
                points += rules.headroom_bonus

            if avg_load > rules.balance_min_average and max_load - min_load < rules.balance_max_spread:
                points += rules.balance_bonus

        points += constraints_met * rules.constraint_bonus
        return points

    def apply_placement(
        self,
        pod: Pod,
        node: Node,
        utilizations: Sequence[float],
        constraints_met: int
    ) -> ScoreEvent:
        """Score a successful pod placement at the current level."""
        level = self._level
        points = self.placement_points(pod, node, utilizations, constraints_met) * level
        self._score += points
        self.refresh_level()
        self._placements += 1
        return ScoreEvent(
            kind=ScoreKind.PLACEMENT,
            points=points,
            level=level,
            detail=f"{pod.label()} on {node.name}",
        )

    def apply_line_clears(self, rows: int) -> List[ScoreEvent]:
        """
        One fixed bonus per cleared row.

        Every row uses the level as it stands before the sweep; call
        refresh_level() once the placement is complete.
        """
        level = self._level
        events = []
        for _ in range(rows):
            points = self._rules.line_clear_bonus * level
            self._score += points
            self._lines_cleared += 1
            events.append(ScoreEvent(kind=ScoreKind.LINE_CLEAR, points=points, level=level))
        return events

    def apply_load_balance(self, compute_loads: Sequence[float]) -> Optional[ScoreEvent]:
        """
        Flat bonus when per-node compute loads have low population variance.

        Returns:
            The event, or None if the spread is too wide.
        """
        loads = np.asarray(compute_loads, dtype=np.float64)
        if loads.size == 0:
            return None
        variance = float(np.var(loads))
        if variance >= self._rules.load_balance_max_variance:
            return None
        level = self._level
        points = self._rules.load_balance_bonus * level
        self._score += points
        return ScoreEvent(
            kind=ScoreKind.LOAD_BALANCE,
            points=points,
            level=level,
            detail=f"variance={variance:.3f}",
        )

    def reset(self) -> None:
        """Reset score and level."""
        self._score = 0
        self._level = 1
        self._placements = 0
        self._lines_cleared = 0
