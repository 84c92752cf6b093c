"""
Cluster Constraints
===================

A small rotating set of scheduling rules. Each active rule a pod satisfies
earns a scoring bonus; no rule ever blocks a placement.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import List, Optional, Sequence

from kube_tetris.engine.config_loader import ConstraintConfig, GameConfig, get_config
from kube_tetris.engine.ledger import Node
from kube_tetris.engine.pieces import Pod


class ConstraintKind(str, Enum):
    RESOURCE_LIMIT = "resource-limit"
    ANTI_AFFINITY = "anti-affinity"
    NODE_SELECTOR = "node-selector"


class Constraint:
    """A constraint definition and its evaluation rule."""

    def __init__(self, config: ConstraintConfig):
        self.config = config
        self.kind = ConstraintKind(config.type)

    @property
    def description(self) -> str:
        return self.config.description

    def is_satisfied_by(self, pod: Pod, node: Node) -> bool:
        """
        Evaluate the rule for a pod about to land on a node.

        The node must not yet include the pod; anti-affinity counts the pods
        already hosted.
        """
        if self.kind is ConstraintKind.RESOURCE_LIMIT:
            return (pod.demand.compute <= self.config.compute_limit
                    and pod.demand.memory <= self.config.memory_limit)
        if self.kind is ConstraintKind.ANTI_AFFINITY:
            if pod.role.value != self.config.target_role:
                return True
            return node.count_role(pod.role) <= self.config.max_same_role
        # node-selector never blocks anything
        return True

    def __repr__(self) -> str:
        return f"Constraint({self.kind.value}: {self.description})"


class ConstraintSet:
    """
    The currently active constraints.

    rotate() draws between min_active and max_active definitions, keeping at
    most one per kind.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None
    ):
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else random.Random()
        self._definitions: List[Constraint] = [
            Constraint(definition) for definition in config.constraints.definitions
        ]
        self._active: List[Constraint] = []

    @property
    def definitions(self) -> List[Constraint]:
        return list(self._definitions)

    @property
    def active(self) -> List[Constraint]:
        return list(self._active)

    def set_active(self, constraints: Sequence[Constraint]) -> None:
        self._active = list(constraints)

    def clear(self) -> None:
        self._active = []

    def rotate(self) -> List[Constraint]:
        """Draw a new active set and return it."""
        self._active = []
        if not self._definitions:
            return []
        limits = self._config.constraints
        draws = self._rng.randint(limits.min_active, limits.max_active)
        for _ in range(draws):
            candidate = self._definitions[self._rng.randrange(len(self._definitions))]
            if all(c.kind is not candidate.kind for c in self._active):
                self._active.append(candidate)
        return self.active

    def count_satisfied(self, pod: Pod, node: Node) -> int:
        """Number of active constraints the pod satisfies on this node."""
        return sum(1 for constraint in self._active if constraint.is_satisfied_by(pod, node))
