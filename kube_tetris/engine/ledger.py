"""
Node Ledger
===========

Per-node capacity accounting across the four resource dimensions.

Invariant: for every node and dimension, used <= total. The only mutations
are consume() (guarded by can_accept()) and grant_capacity() (which only
ever grows totals), so the invariant holds at all times.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from kube_tetris.engine.catalog import PodRole, sample_value
from kube_tetris.engine.config_loader import GameConfig, get_config
from kube_tetris.engine.pieces import PlacedPod, Pod
from kube_tetris.engine.resources import DIMENSIONS, Dimension, Resources

logger = logging.getLogger(__name__)

# Status thresholds on the busiest dimension, in percent
STATUS_CRITICAL_PERCENT = 80
STATUS_WARNING_PERCENT = 60


@dataclass
class Node:
    """A bottom-row bucket with finite capacity and a specialization tag."""
    index: int
    specialization: str
    total: Dict[Dimension, float]
    used: Dict[Dimension, float] = field(
        default_factory=lambda: {dimension: 0.0 for dimension in DIMENSIONS}
    )
    pods: List[PlacedPod] = field(default_factory=list)

    @property
    def name(self) -> str:
        return f"node-{self.index}"

    @property
    def total_resources(self) -> Resources:
        return Resources(**{d.value: v for d, v in self.total.items()})

    @property
    def used_resources(self) -> Resources:
        return Resources(**{d.value: v for d, v in self.used.items()})

    def free(self, dimension: Dimension) -> float:
        return self.total[dimension] - self.used[dimension]

    def utilization(self) -> float:
        """Combined compute and memory utilization in [0, 1]."""
        total = self.total[Dimension.COMPUTE] + self.total[Dimension.MEMORY]
        used = self.used[Dimension.COMPUTE] + self.used[Dimension.MEMORY]
        return used / total if total > 0 else 0.0

    def compute_load(self) -> float:
        """Fraction of compute in use."""
        total = self.total[Dimension.COMPUTE]
        return self.used[Dimension.COMPUTE] / total if total > 0 else 0.0

    def count_role(self, role: PodRole) -> int:
        """Number of hosted pods with the given role."""
        return sum(1 for pod in self.pods if pod.role == role)


@dataclass(frozen=True)
class NodeStatus:
    """Human-readable load summary for one node."""
    index: int
    percent: Dict[Dimension, int]
    level: str          # "healthy", "warning" or "critical"

    @property
    def peak_percent(self) -> int:
        return max(self.percent.values())


class NodeLedger:
    """
    Owns the nodes of a board and all capacity changes made to them.

    Node totals are sampled once per initialize() from the discrete capacity
    tiers in config; accelerator totals may be zero.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize ledger and sample node capacities.

        Args:
            config: Game configuration. Uses default if None.
            rng: Random source for capacity sampling.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._nodes: List[Node] = []
        self.initialize(rng if rng is not None else random.Random())

    def initialize(self, rng: random.Random) -> None:
        """Replace all nodes with fresh, empty ones."""
        nodes_config = self._config.nodes
        self._nodes = []
        for index in range(self._config.num_nodes):
            total = {
                dimension: sample_value(rng, nodes_config.capacity_options[dimension])
                for dimension in DIMENSIONS
            }
            self._nodes.append(Node(
                index=index,
                specialization=nodes_config.specialization_for(index),
                total=total,
            ))

    @property
    def nodes(self) -> List[Node]:
        return self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Node:
        if 0 <= index < len(self._nodes):
            return self._nodes[index]
        raise IndexError(f"Node {index} out of range [0, {len(self._nodes)})")

    def __iter__(self):
        return iter(self._nodes)

    # ------------------------------------------------------------------
    # Capacity operations
    # ------------------------------------------------------------------

    def can_accept(self, node: Node, demand: Resources) -> bool:
        """True if adding demand keeps used <= total in every dimension."""
        for dimension, value in demand.items():
            if node.used[dimension] + value > node.total[dimension]:
                return False
        return True

    def consume(self, node: Node, pod: Pod) -> None:
        """
        Commit a pod's demand to a node.

        Raises:
            ValueError: If the node cannot accept the demand. The node is
                left untouched.
        """
        if not self.can_accept(node, pod.demand):
            raise ValueError(
                f"{node.name} cannot accept {pod.label()} {pod.demand.as_dict()}"
            )
        for dimension, value in pod.demand.items():
            node.used[dimension] += value
        node.pods.append(PlacedPod(uid=pod.uid, role=pod.role, demand=pod.demand))
        logger.debug("Placed %r on %s", pod, node.name)

    def grant_capacity(self, node: Node, delta: Resources) -> None:
        """
        Grow node totals by a capacity delta.

        Raises:
            ValueError: If any dimension of the delta is negative.
        """
        for dimension, value in delta.items():
            if value < 0:
                raise ValueError(f"Capacity grants cannot be negative ({dimension.value}={value})")
        for dimension, value in delta.nonzero().items():
            node.total[dimension] += value
        logger.debug("Granted %s to %s", delta.nonzero(), node.name)

    # ------------------------------------------------------------------
    # Cluster queries
    # ------------------------------------------------------------------

    def utilizations(self) -> np.ndarray:
        """Per-node combined compute+memory utilization."""
        return np.array([node.utilization() for node in self._nodes], dtype=np.float64)

    def compute_loads(self) -> np.ndarray:
        """Per-node fraction of compute in use."""
        return np.array([node.compute_load() for node in self._nodes], dtype=np.float64)

    def used_matrix(self) -> np.ndarray:
        """(num_nodes, 4) array of used capacity in canonical dimension order."""
        return np.array(
            [[node.used[d] for d in DIMENSIONS] for node in self._nodes],
            dtype=np.float32,
        ).reshape(len(self._nodes), len(DIMENSIONS))

    def total_matrix(self) -> np.ndarray:
        """(num_nodes, 4) array of total capacity in canonical dimension order."""
        return np.array(
            [[node.total[d] for d in DIMENSIONS] for node in self._nodes],
            dtype=np.float32,
        ).reshape(len(self._nodes), len(DIMENSIONS))

    def check_invariant(self) -> bool:
        """True if used <= total everywhere."""
        return all(
            node.used[dimension] <= node.total[dimension]
            for node in self._nodes
            for dimension in DIMENSIONS
        )

    def node_status(self) -> List[NodeStatus]:
        """Percent used per dimension and a traffic-light level for each node."""
        statuses = []
        for node in self._nodes:
            percent = {}
            for dimension in DIMENSIONS:
                total = node.total[dimension]
                # Nodes without an accelerator report 0%
                percent[dimension] = round(node.used[dimension] / total * 100) if total > 0 else 0
            peak = max(percent.values())
            if peak > STATUS_CRITICAL_PERCENT:
                level = "critical"
            elif peak > STATUS_WARNING_PERCENT:
                level = "warning"
            else:
                level = "healthy"
            statuses.append(NodeStatus(index=node.index, percent=percent, level=level))
        return statuses

    def dependency_satisfaction(self, pod: Pod) -> float:
        """
        Fraction of the pod's dependency roles hosted anywhere in the cluster.

        Returns 1.0 for pods without dependencies. Informational only; it does
        not contribute to score.
        """
        dependencies = pod.kind.dependencies
        if not dependencies:
            return 1.0
        hosted = {placed.role for node in self._nodes for placed in node.pods}
        met = sum(1 for dependency in dependencies if dependency in hosted)
        return met / len(dependencies)
