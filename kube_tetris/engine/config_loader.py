"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from kube_tetris.engine.resources import DIMENSIONS, Dimension


# Discrete option list for one dimension, e.g. (4, 8, 16, 32)
Options = Tuple[float, ...]


@dataclass(frozen=True)
class BoardConfig:
    """Board geometry and timing."""
    width: int                  # Columns, also the number of nodes
    height: int                 # Rows including the node row
    tick_interval_ms: int       # Gravity interval (constant, not level dependent)
    spawn_row: int              # Row new pieces start on

    @property
    def node_row(self) -> int:
        """Index of the permanent node row."""
        return self.height - 1

    @property
    def spawn_col(self) -> int:
        """Column new pieces start on (horizontal center)."""
        return self.width // 2


@dataclass(frozen=True)
class NodesConfig:
    """Node specializations and capacity tiers."""
    specializations: Tuple[str, ...]
    capacity_options: Dict[Dimension, Options]

    def specialization_for(self, node_index: int) -> str:
        """Specialization tag for a node (labels rotate through the set)."""
        return self.specializations[node_index % len(self.specializations)]


@dataclass(frozen=True)
class PodConfig:
    """Configuration for a single pod kind."""
    role: str
    symbol: str
    color: str
    preferred_node: str
    dependencies: Tuple[str, ...]
    demand_options: Dict[Dimension, Options]


@dataclass(frozen=True)
class UpgradeConfig:
    """Configuration for a single resource upgrade kind."""
    name: str
    symbol: str
    color: str
    description: str
    grant_options: Dict[Dimension, Options]


@dataclass(frozen=True)
class SpawnerConfig:
    """Relative weights of the two piece categories."""
    pod_weight: int
    upgrade_weight: int

    @property
    def pod_probability(self) -> float:
        return self.pod_weight / (self.pod_weight + self.upgrade_weight)


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring parameters."""
    base_points: int
    preferred_node_bonus: int
    headroom_bonus: int
    headroom_max_utilization: float
    balance_bonus: int
    balance_min_average: float
    balance_max_spread: float
    constraint_bonus: int
    line_clear_bonus: int
    load_balance_bonus: int
    load_balance_max_variance: float
    points_per_level: int


@dataclass(frozen=True)
class ConstraintConfig:
    """A constraint definition that can be drawn into the active set."""
    type: str
    description: str
    compute_limit: float = 0.0     # resource-limit
    memory_limit: float = 0.0      # resource-limit
    target_role: str = ""          # anti-affinity
    max_same_role: int = 2         # anti-affinity
    selector: str = ""             # node-selector


@dataclass(frozen=True)
class ConstraintsConfig:
    """Constraint rotation parameters."""
    min_active: int
    max_active: int
    definitions: Tuple[ConstraintConfig, ...]


@dataclass(frozen=True)
class HighScoreConfig:
    """High score table persistence."""
    max_entries: int
    storage_key: str
    path: str


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    nodes: NodesConfig
    spawner: SpawnerConfig
    pods: Tuple[PodConfig, ...]
    upgrades: Tuple[UpgradeConfig, ...]
    scoring: ScoringConfig
    constraints: ConstraintsConfig
    high_scores: HighScoreConfig

    @property
    def num_nodes(self) -> int:
        """One node per board column."""
        return self.board.width

    @property
    def num_piece_kinds(self) -> int:
        """Total number of pod and upgrade kinds."""
        return len(self.pods) + len(self.upgrades)

    def get_pod(self, role: str) -> PodConfig:
        """Get pod config by role name."""
        for pod in self.pods:
            if pod.role == role:
                return pod
        raise ValueError(f"Invalid pod role: {role}")


CONSTRAINT_TYPES = ("resource-limit", "anti-affinity", "node-selector")


def _parse_options(values: List, where: str) -> Options:
    """Parse a discrete option list from YAML."""
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"{where} must be a list of values, got {values!r}")
    return tuple(float(v) for v in values)


def _parse_option_map(data: Optional[dict], where: str) -> Dict[Dimension, Options]:
    """Parse a {dimension: [options]} mapping, accepting dimension aliases."""
    result: Dict[Dimension, Options] = {}
    for name, values in (data or {}).items():
        dimension = Dimension.parse(name)
        result[dimension] = _parse_options(values, f"{where}.{dimension.value}")
    return result


def _parse_pod(pod_data: dict) -> PodConfig:
    """Parse a single pod kind from YAML."""
    role = str(pod_data["role"])
    return PodConfig(
        role=role,
        symbol=str(pod_data["symbol"]),
        color=str(pod_data.get("color", "#ffffff")),
        preferred_node=str(pod_data["preferred_node"]),
        dependencies=tuple(str(d) for d in pod_data.get("dependencies") or ()),
        demand_options=_parse_option_map(pod_data["demand"], f"pods.{role}.demand"),
    )


def _parse_upgrade(upgrade_data: dict) -> UpgradeConfig:
    """Parse a single upgrade kind from YAML."""
    name = str(upgrade_data["name"])
    return UpgradeConfig(
        name=name,
        symbol=str(upgrade_data["symbol"]),
        color=str(upgrade_data.get("color", "#ffffff")),
        description=str(upgrade_data.get("description", name)),
        grant_options=_parse_option_map(upgrade_data["grant"], f"upgrades.{name}.grant"),
    )


def _parse_constraint(constraint_data: dict) -> ConstraintConfig:
    """Parse a constraint definition from YAML."""
    return ConstraintConfig(
        type=str(constraint_data["type"]),
        description=str(constraint_data.get("description", constraint_data["type"])),
        compute_limit=float(constraint_data.get("compute", constraint_data.get("cpu", 0.0))),
        memory_limit=float(constraint_data.get("memory", constraint_data.get("ram", 0.0))),
        target_role=str(constraint_data.get("target", "")),
        max_same_role=int(constraint_data.get("max_same_role", 2)),
        selector=str(constraint_data.get("selector", "")),
    )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    board = config.board
    if board.width < 1:
        raise ValueError(f"board.width must be positive, got {board.width}")
    # Need at least one playable row above the node row
    if board.height < 2:
        raise ValueError(f"board.height must be at least 2, got {board.height}")
    if not 0 <= board.spawn_row < board.node_row:
        raise ValueError(
            f"board.spawn_row ({board.spawn_row}) must be in [0, {board.node_row})"
        )

    if not config.nodes.specializations:
        raise ValueError("nodes.specializations must not be empty")
    for dimension in DIMENSIONS:
        options = config.nodes.capacity_options.get(dimension)
        if not options:
            raise ValueError(f"nodes.capacity_options.{dimension.value} must not be empty")
        if any(v < 0 for v in options):
            raise ValueError(f"nodes.capacity_options.{dimension.value} contains a negative value")
    # Utilization ratios divide by these totals
    for dimension in (Dimension.COMPUTE, Dimension.MEMORY):
        if min(config.nodes.capacity_options[dimension]) <= 0:
            raise ValueError(f"nodes.capacity_options.{dimension.value} must be strictly positive")

    if not config.pods:
        raise ValueError("At least one pod kind is required")
    roles = [pod.role for pod in config.pods]
    if len(set(roles)) != len(roles):
        raise ValueError(f"Duplicate pod roles: {roles}")
    for pod in config.pods:
        if pod.preferred_node not in config.nodes.specializations:
            raise ValueError(
                f"Pod '{pod.role}' prefers unknown specialization '{pod.preferred_node}'"
            )
        for dependency in pod.dependencies:
            if dependency not in roles:
                raise ValueError(f"Pod '{pod.role}' depends on unknown role '{dependency}'")
        for dimension, options in pod.demand_options.items():
            if any(v < 0 for v in options):
                raise ValueError(f"Pod '{pod.role}' has negative {dimension.value} demand")

    for upgrade in config.upgrades:
        if not upgrade.grant_options:
            raise ValueError(f"Upgrade '{upgrade.name}' grants nothing")
        for dimension, options in upgrade.grant_options.items():
            if any(v < 0 for v in options):
                raise ValueError(f"Upgrade '{upgrade.name}' has negative {dimension.value} grant")

    spawner = config.spawner
    if spawner.pod_weight < 0 or spawner.upgrade_weight < 0:
        raise ValueError("spawner weights must be non-negative")
    if spawner.pod_weight + spawner.upgrade_weight == 0:
        raise ValueError("spawner weights must not both be zero")
    if spawner.upgrade_weight > 0 and not config.upgrades:
        raise ValueError("spawner.upgrade_weight is set but no upgrade kinds are defined")

    if config.scoring.points_per_level <= 0:
        raise ValueError("scoring.points_per_level must be positive")

    constraints = config.constraints
    for definition in constraints.definitions:
        if definition.type not in CONSTRAINT_TYPES:
            raise ValueError(
                f"Unknown constraint type '{definition.type}', expected one of {CONSTRAINT_TYPES}"
            )
        if definition.type == "anti-affinity" and definition.target_role not in roles:
            raise ValueError(f"anti-affinity targets unknown role '{definition.target_role}'")
    if not 0 <= constraints.min_active <= constraints.max_active:
        raise ValueError(
            f"constraints.min_active ({constraints.min_active}) must be in "
            f"[0, max_active ({constraints.max_active})]"
        )

    if config.high_scores.max_entries < 1:
        raise ValueError("high_scores.max_entries must be positive")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    board_data = raw["board"]
    board = BoardConfig(
        width=int(board_data["width"]),
        height=int(board_data["height"]),
        tick_interval_ms=int(board_data.get("tick_interval_ms", 1000)),
        spawn_row=int(board_data.get("spawn_row", 0)),
    )

    nodes_data = raw["nodes"]
    nodes = NodesConfig(
        specializations=tuple(str(s) for s in nodes_data["specializations"]),
        capacity_options=_parse_option_map(nodes_data["capacity_options"], "nodes.capacity_options"),
    )

    spawner_data = raw.get("spawner", {})
    spawner = SpawnerConfig(
        pod_weight=int(spawner_data.get("pod_weight", 5)),
        upgrade_weight=int(spawner_data.get("upgrade_weight", 1)),
    )

    pods = tuple(_parse_pod(p) for p in raw["pods"])
    upgrades = tuple(_parse_upgrade(u) for u in raw.get("upgrades") or ())

    scoring_data = raw["scoring"]
    scoring = ScoringConfig(
        base_points=int(scoring_data["base_points"]),
        preferred_node_bonus=int(scoring_data["preferred_node_bonus"]),
        headroom_bonus=int(scoring_data["headroom_bonus"]),
        headroom_max_utilization=float(scoring_data.get("headroom_max_utilization", 0.9)),
        balance_bonus=int(scoring_data["balance_bonus"]),
        balance_min_average=float(scoring_data.get("balance_min_average", 0.3)),
        balance_max_spread=float(scoring_data.get("balance_max_spread", 0.3)),
        constraint_bonus=int(scoring_data["constraint_bonus"]),
        line_clear_bonus=int(scoring_data["line_clear_bonus"]),
        load_balance_bonus=int(scoring_data["load_balance_bonus"]),
        load_balance_max_variance=float(scoring_data.get("load_balance_max_variance", 0.1)),
        points_per_level=int(scoring_data.get("points_per_level", 1000)),
    )

    # Constraints section is optional; without it no constraint is ever active
    constraints_data = raw.get("constraints", {})
    constraints = ConstraintsConfig(
        min_active=int(constraints_data.get("min_active", 1)),
        max_active=int(constraints_data.get("max_active", 3)),
        definitions=tuple(
            _parse_constraint(c) for c in constraints_data.get("definitions") or ()
        ),
    )

    hs_data = raw.get("high_scores", {})
    high_scores = HighScoreConfig(
        max_entries=int(hs_data.get("max_entries", 10)),
        storage_key=str(hs_data.get("storage_key", "kubetetris-highscores")),
        path=str(hs_data.get("path", "~/.kube_tetris/highscores.json")),
    )

    config = GameConfig(
        board=board,
        nodes=nodes,
        spawner=spawner,
        pods=pods,
        upgrades=upgrades,
        scoring=scoring,
        constraints=constraints,
        high_scores=high_scores,
    )

    _validate_config(config)
    return config


# Module-level cache; GameConfig is immutable so sharing it is safe
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
