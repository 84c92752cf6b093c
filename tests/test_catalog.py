"""
Tests for the piece catalog and option sampling.
"""

import random

import pytest

from kube_tetris.engine.catalog import (
    PieceCatalog,
    PieceCategory,
    PodRole,
    sample_resources,
    sample_value,
)
from kube_tetris.engine.config_loader import load_config
from kube_tetris.engine.resources import Dimension, Resources


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def catalog(config):
    return PieceCatalog(config)


class TestSampling:
    """Test discrete option sampling."""

    def test_empty_options_yield_zero(self):
        assert sample_value(random.Random(0), ()) == 0.0

    def test_single_option_consumes_no_randomness(self):
        """A one-element list is returned without drawing."""
        rng = random.Random(7)
        state = rng.getstate()

        assert sample_value(rng, (16.0,)) == 16.0
        assert rng.getstate() == state

    def test_values_come_from_options(self):
        rng = random.Random(3)
        options = (1.0, 2.0, 4.0)

        for _ in range(100):
            assert sample_value(rng, options) in options

    def test_same_seed_same_value(self):
        options = (0.5, 1.0, 2.0, 4.0, 8.0)

        first = [sample_value(random.Random(11), options) for _ in range(5)]
        second = [sample_value(random.Random(11), options) for _ in range(5)]

        assert first == second

    def test_missing_dimensions_are_zero(self):
        resources = sample_resources(random.Random(0), {Dimension.MEMORY: (8.0,)})

        assert resources == Resources(memory=8.0)


class TestPieceCatalog:
    """Test catalog construction and lookup."""

    def test_kind_ids_pods_then_upgrades(self, catalog, config):
        """Pods take the first ids, upgrades follow."""
        assert len(catalog) == len(config.pods) + len(config.upgrades)

        for kind_id, kind in enumerate(catalog):
            assert kind.kind_id == kind_id
            assert catalog[kind_id] is kind

        pods = catalog.list_pod_kinds()
        assert all(k.category is PieceCategory.POD for k in pods)
        assert all(k.category is PieceCategory.UPGRADE for k in catalog.list_upgrade_kinds())
        assert catalog.list_upgrade_kinds()[0].kind_id == len(pods)

    def test_get_pod_by_role(self, catalog):
        kind = catalog.get_pod("ml-task")

        assert kind.role is PodRole.ML_TASK
        assert kind.preferred_node == "GPU"
        assert catalog.get_pod(PodRole.DATABASE).preferred_node == "SSD"

    def test_dependencies_are_typed(self, catalog):
        assert catalog.get_pod("backend").dependencies == (PodRole.DATABASE, PodRole.CACHE)
        assert catalog.get_pod("cache").dependencies == ()

    def test_get_upgrade_case_insensitive(self, catalog):
        assert catalog.get_upgrade("RAM").description == "RAM Upgrade"

        with pytest.raises(KeyError):
            catalog.get_upgrade("fpga")

    def test_invalid_kind_id(self, catalog):
        with pytest.raises(IndexError):
            catalog[len(catalog)]

    def test_max_demand(self, catalog):
        """Largest sampled value per dimension."""
        assert catalog.get_pod("backend").max_demand == Resources(
            compute=4, memory=12, storage=30, accelerator=1
        )

    def test_demand_within_options(self, catalog):
        rng = random.Random(5)

        for kind in catalog.list_pod_kinds():
            for _ in range(20):
                demand = kind.sample_demand(rng)
                for dimension, value in demand.items():
                    assert value in kind.demand_options[dimension]

    def test_upgrade_grants_single_dimension(self, catalog):
        """Upgrades only touch the dimension they are named for."""
        rng = random.Random(5)
        grant = catalog.get_upgrade("ram").sample_grant(rng)

        assert set(grant.nonzero()) == {Dimension.MEMORY}
        assert grant.memory in (2.0, 4.0, 8.0)


class TestResources:
    """Test the resource vector."""

    def test_aliases(self):
        assert Dimension.parse("cpu") is Dimension.COMPUTE
        assert Dimension.parse("GPU") is Dimension.ACCELERATOR
        assert Dimension.parse("memory") is Dimension.MEMORY

        with pytest.raises(ValueError):
            Dimension.parse("bandwidth")

    def test_from_mapping(self):
        resources = Resources.from_mapping({"ram": 8, Dimension.COMPUTE: 2})

        assert resources == Resources(compute=2, memory=8)
        assert resources.nonzero() == {Dimension.COMPUTE: 2.0, Dimension.MEMORY: 8.0}
        assert resources.as_tuple() == (2.0, 8.0, 0.0, 0.0)
