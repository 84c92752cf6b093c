"""
Piece Catalog
=============

Provides convenient access to pod and upgrade kind definitions loaded from config.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

from kube_tetris.engine.config_loader import (
    GameConfig,
    Options,
    PodConfig,
    UpgradeConfig,
    get_config,
)
from kube_tetris.engine.resources import DIMENSIONS, Dimension, Resources


class PieceCategory(str, Enum):
    """What a piece does when it reaches a node."""
    POD = "pod"             # Consumes node capacity
    UPGRADE = "upgrade"     # Grants node capacity


class PodRole(str, Enum):
    """Service role of a pod kind."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    DATABASE = "database"
    CACHE = "cache"
    MONITOR = "monitor"
    ML_TASK = "ml-task"


def sample_value(rng: random.Random, options: Sequence[float]) -> float:
    """
    Pick one value uniformly from a discrete option list.

    Options model quantized capacity tiers, so repeated entries weight the
    draw. An empty list yields 0 and a single option is returned as is.
    """
    if not options:
        return 0.0
    if len(options) == 1:
        return options[0]
    return options[rng.randrange(len(options))]


def sample_resources(rng: random.Random, option_map: Dict[Dimension, Options]) -> Resources:
    """Sample every dimension independently from its option list."""
    values = {
        dimension.value: sample_value(rng, option_map.get(dimension, ()))
        for dimension in DIMENSIONS
    }
    return Resources(**values)


@dataclass(frozen=True)
class PodKind:
    """
    Runtime representation of a pod kind.

    Wraps PodConfig with a typed role and a sampler for concrete demand.
    """
    kind_id: int
    config: PodConfig

    @property
    def category(self) -> PieceCategory:
        return PieceCategory.POD

    @property
    def role(self) -> PodRole:
        return PodRole(self.config.role)

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def color(self) -> str:
        return self.config.color

    @property
    def preferred_node(self) -> str:
        return self.config.preferred_node

    @property
    def dependencies(self) -> Tuple[PodRole, ...]:
        return tuple(PodRole(d) for d in self.config.dependencies)

    @property
    def demand_options(self) -> Dict[Dimension, Options]:
        return self.config.demand_options

    @property
    def max_demand(self) -> Resources:
        """Largest demand this kind can sample in each dimension."""
        return Resources(**{
            dimension.value: max(self.demand_options.get(dimension) or (0.0,))
            for dimension in DIMENSIONS
        })

    def sample_demand(self, rng: random.Random) -> Resources:
        return sample_resources(rng, self.demand_options)

    def __repr__(self) -> str:
        return f"PodKind({self.kind_id}: {self.role.value})"


@dataclass(frozen=True)
class UpgradeKind:
    """Runtime representation of a resource upgrade kind."""
    kind_id: int
    config: UpgradeConfig

    @property
    def category(self) -> PieceCategory:
        return PieceCategory.UPGRADE

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def symbol(self) -> str:
        return self.config.symbol

    @property
    def color(self) -> str:
        return self.config.color

    @property
    def description(self) -> str:
        return self.config.description

    @property
    def grant_options(self) -> Dict[Dimension, Options]:
        return self.config.grant_options

    def sample_grant(self, rng: random.Random) -> Resources:
        """Sample a grant; dimensions the kind does not touch stay zero."""
        return sample_resources(rng, self.grant_options)

    def __repr__(self) -> str:
        return f"UpgradeKind({self.kind_id}: {self.name})"


PieceKind = Union[PodKind, UpgradeKind]


class PieceCatalog:
    """
    Collection of all pod and upgrade kinds.

    Kind ids are stable: pods first in config order, then upgrades.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.

        Raises:
            ValueError: If a pod role is not a known PodRole.
        """
        if config is None:
            config = get_config()

        self._config = config
        for pod_config in config.pods:
            try:
                PodRole(pod_config.role)
            except ValueError:
                raise ValueError(f"Unknown pod role in config: {pod_config.role!r}") from None

        self._pods: Tuple[PodKind, ...] = tuple(
            PodKind(kind_id=i, config=pod_config)
            for i, pod_config in enumerate(config.pods)
        )
        offset = len(self._pods)
        self._upgrades: Tuple[UpgradeKind, ...] = tuple(
            UpgradeKind(kind_id=offset + i, config=upgrade_config)
            for i, upgrade_config in enumerate(config.upgrades)
        )
        self._all: Tuple[PieceKind, ...] = self._pods + self._upgrades

    def __len__(self) -> int:
        """Total number of kinds."""
        return len(self._all)

    def __getitem__(self, kind_id: int) -> PieceKind:
        """Get a kind by id."""
        if 0 <= kind_id < len(self._all):
            return self._all[kind_id]
        raise IndexError(f"Kind ID {kind_id} out of range [0, {len(self._all)})")

    def __iter__(self):
        return iter(self._all)

    def list_pod_kinds(self) -> Tuple[PodKind, ...]:
        """All pod kinds in config order."""
        return self._pods

    def list_upgrade_kinds(self) -> Tuple[UpgradeKind, ...]:
        """All upgrade kinds in config order."""
        return self._upgrades

    def get_pod(self, role: Union[str, PodRole]) -> PodKind:
        """Get a pod kind by role."""
        role = PodRole(role)
        for kind in self._pods:
            if kind.role is role:
                return kind
        raise KeyError(f"No pod kind for role {role.value!r}")

    def get_upgrade(self, name: str) -> UpgradeKind:
        """Get an upgrade kind by name (case-insensitive)."""
        name_lower = name.lower()
        for kind in self._upgrades:
            if kind.name.lower() == name_lower:
                return kind
        raise KeyError(f"No upgrade kind named {name!r}")
