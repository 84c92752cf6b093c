"""
Resources
=========

The four resource dimensions tracked by the cluster and a fixed-shape
vector holding one value per dimension.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Mapping, Tuple, Union


class Dimension(str, Enum):
    """A resource dimension of a node."""
    COMPUTE = "compute"
    MEMORY = "memory"
    STORAGE = "storage"
    ACCELERATOR = "accelerator"

    @classmethod
    def parse(cls, name: Union[str, "Dimension"]) -> "Dimension":
        """
        Resolve a dimension from its name or a short alias.

        Accepts the canonical names as well as cpu/ram/ssd/gpu.

        Raises:
            ValueError: If the name is unknown.
        """
        if isinstance(name, Dimension):
            return name
        key = str(name).strip().lower()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown resource dimension: {name!r}") from None


_ALIASES: Dict[str, Dimension] = {
    "cpu": Dimension.COMPUTE,
    "ram": Dimension.MEMORY,
    "ssd": Dimension.STORAGE,
    "gpu": Dimension.ACCELERATOR,
}

# Canonical ordering used for arrays and iteration
DIMENSIONS: Tuple[Dimension, ...] = (
    Dimension.COMPUTE,
    Dimension.MEMORY,
    Dimension.STORAGE,
    Dimension.ACCELERATOR,
)


@dataclass(frozen=True)
class Resources:
    """
    One value per resource dimension.

    Used both for pod demand and for upgrade capacity grants. Dimensions an
    upgrade does not touch are zero.
    """
    compute: float = 0.0
    memory: float = 0.0
    storage: float = 0.0
    accelerator: float = 0.0

    @classmethod
    def from_mapping(cls, values: Mapping[Union[str, Dimension], float]) -> "Resources":
        """Build from a mapping keyed by dimension (names or aliases)."""
        kwargs: Dict[str, float] = {}
        for name, value in values.items():
            kwargs[Dimension.parse(name).value] = float(value)
        return cls(**kwargs)

    def get(self, dimension: Dimension) -> float:
        return getattr(self, dimension.value)

    def items(self) -> Iterator[Tuple[Dimension, float]]:
        for dimension in DIMENSIONS:
            yield dimension, self.get(dimension)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.compute, self.memory, self.storage, self.accelerator)

    def as_dict(self) -> Dict[str, float]:
        return {dimension.value: value for dimension, value in self.items()}

    def nonzero(self) -> Dict[Dimension, float]:
        """Only the dimensions with a non-zero value."""
        return {dimension: value for dimension, value in self.items() if value}
