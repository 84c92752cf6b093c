"""
Tests for node capacity accounting.
"""

import random

import pytest

from kube_tetris.engine.catalog import PieceCatalog, PodRole
from kube_tetris.engine.config_loader import load_config
from kube_tetris.engine.ledger import NodeLedger
from kube_tetris.engine.pieces import Pod
from kube_tetris.engine.resources import DIMENSIONS, Dimension, Resources
from kube_tetris.engine.rng import Spawner


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def catalog(config):
    return PieceCatalog(config)


@pytest.fixture
def ledger(config):
    return NodeLedger(config, rng=random.Random(0))


def set_totals(node, compute=8.0, memory=32.0, storage=128.0, accelerator=0.0):
    node.total[Dimension.COMPUTE] = compute
    node.total[Dimension.MEMORY] = memory
    node.total[Dimension.STORAGE] = storage
    node.total[Dimension.ACCELERATOR] = accelerator


def make_pod(catalog, role="backend", uid=0, **demand):
    return Pod(kind=catalog.get_pod(role), demand=Resources(**demand), uid=uid, col=0, row=0)


class TestInitialization:
    """Test node creation."""

    def test_one_node_per_column(self, ledger, config):
        assert len(ledger) == config.board.width
        assert [node.index for node in ledger] == list(range(config.board.width))

    def test_capacities_from_tiers(self, ledger, config):
        for node in ledger:
            for dimension in DIMENSIONS:
                assert node.total[dimension] in config.nodes.capacity_options[dimension]
                assert node.used[dimension] == 0.0
            assert node.pods == []

    def test_specializations(self, ledger):
        assert [node.specialization for node in ledger] == [
            "GPU", "SSD", "RAM", "CPU", "NET", "STOR", "COMP", "EDGE"
        ]

    def test_same_seed_same_capacities(self, config):
        a = NodeLedger(config, rng=random.Random(5))
        b = NodeLedger(config, rng=random.Random(5))

        assert (a.total_matrix() == b.total_matrix()).all()

    def test_index_out_of_range(self, ledger):
        with pytest.raises(IndexError):
            ledger[len(ledger)]


class TestCapacity:
    """Test consume and grant."""

    def test_exact_fit_accepted(self, ledger, catalog):
        """used + demand == total is within capacity."""
        node = ledger[0]
        set_totals(node, compute=8)

        assert ledger.can_accept(node, Resources(compute=8))
        ledger.consume(node, make_pod(catalog, compute=8))

        assert node.used[Dimension.COMPUTE] == 8
        assert ledger.check_invariant()

    def test_over_capacity_rejected(self, ledger, catalog):
        node = ledger[0]
        set_totals(node, compute=8)
        ledger.consume(node, make_pod(catalog, compute=6))

        assert not ledger.can_accept(node, Resources(compute=3))
        with pytest.raises(ValueError):
            ledger.consume(node, make_pod(catalog, uid=1, compute=3))

        assert node.used[Dimension.COMPUTE] == 6
        assert len(node.pods) == 1

    def test_any_dimension_can_reject(self, ledger):
        node = ledger[1]
        set_totals(node, accelerator=0)

        assert not ledger.can_accept(node, Resources(accelerator=1))

    def test_consume_records_pod(self, ledger, catalog):
        node = ledger[2]
        set_totals(node)
        pod = make_pod(catalog, role="cache", uid=7, compute=1, memory=8)

        ledger.consume(node, pod)

        assert node.pods[0].uid == 7
        assert node.count_role(pod.role) == 1
        assert node.used_resources == Resources(compute=1, memory=8)

    def test_count_role_by_pod_role(self, ledger, catalog):
        node = ledger[0]
        set_totals(node)
        for uid, role in enumerate(["database", "database", "cache"]):
            ledger.consume(node, make_pod(catalog, role=role, uid=uid, compute=1))

        assert node.count_role(PodRole.DATABASE) == 2
        assert node.count_role(PodRole.CACHE) == 1
        assert node.count_role(PodRole.ML_TASK) == 0

    def test_grant_grows_total_only(self, ledger):
        node = ledger[2]
        set_totals(node, memory=32)

        ledger.grant_capacity(node, Resources(memory=8))

        assert node.total[Dimension.MEMORY] == 40
        assert node.used[Dimension.MEMORY] == 0

    def test_negative_grant_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.grant_capacity(ledger[0], Resources(compute=-2))

    def test_invariant_under_random_play(self, config, ledger):
        """Guarded consumes and grants never break used <= total."""
        spawner = Spawner(config, seed=17)
        rng = random.Random(17)

        for piece in spawner.spawn_many(500):
            node = ledger[rng.randrange(len(ledger))]
            if isinstance(piece, Pod):
                if ledger.can_accept(node, piece.demand):
                    ledger.consume(node, piece)
            else:
                ledger.grant_capacity(node, piece.grant)
            assert ledger.check_invariant()


class TestClusterQueries:
    """Test utilization and status views."""

    def test_utilization_combines_compute_and_memory(self, ledger, catalog):
        node = ledger[0]
        set_totals(node, compute=8, memory=32)
        ledger.consume(node, make_pod(catalog, compute=2, memory=8))

        assert node.utilization() == pytest.approx(10 / 40)
        assert node.compute_load() == pytest.approx(0.25)
        assert ledger.utilizations()[0] == pytest.approx(0.25)

    def test_matrices(self, ledger, config):
        assert ledger.used_matrix().shape == (config.num_nodes, 4)
        assert ledger.total_matrix().shape == (config.num_nodes, 4)
        assert ledger.used_matrix().sum() == 0

    def test_node_status_levels(self, ledger, catalog):
        for node in ledger:
            set_totals(node, compute=10, memory=100)
        ledger.consume(ledger[0], make_pod(catalog, compute=9))
        ledger.consume(ledger[1], make_pod(catalog, uid=1, compute=7))

        statuses = ledger.node_status()

        assert statuses[0].level == "critical"
        assert statuses[0].peak_percent == 90
        assert statuses[1].level == "warning"
        assert statuses[2].level == "healthy"
        # No accelerator reports zero percent
        assert statuses[0].percent[Dimension.ACCELERATOR] == 0

    def test_dependency_satisfaction(self, ledger, catalog):
        for node in ledger:
            set_totals(node, compute=64, memory=128)
        backend = make_pod(catalog, role="backend", uid=1, compute=1)

        assert ledger.dependency_satisfaction(backend) == 0.0

        ledger.consume(ledger[3], make_pod(catalog, role="database", uid=2, compute=2))
        assert ledger.dependency_satisfaction(backend) == pytest.approx(0.5)

        ledger.consume(ledger[5], make_pod(catalog, role="cache", uid=3, compute=1))
        assert ledger.dependency_satisfaction(backend) == 1.0

    def test_no_dependencies_fully_satisfied(self, ledger, catalog):
        assert ledger.dependency_satisfaction(make_pod(catalog, role="monitor")) == 1.0
