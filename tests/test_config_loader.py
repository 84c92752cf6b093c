"""
Tests for configuration loading and validation.
"""

import os

import pytest
import yaml

from kube_tetris.engine.config_loader import get_config, load_config, reload_config
from kube_tetris.engine.resources import DIMENSIONS, Dimension


DEFAULT_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "kube_tetris",
    "game_config.yaml",
)


@pytest.fixture
def raw_config():
    with open(DEFAULT_PATH, "r") as f:
        return yaml.safe_load(f)


def write_config(tmp_path, raw):
    path = tmp_path / "game_config.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(raw, f)
    return str(path)


class TestDefaultConfig:
    """Test the shipped game_config.yaml."""

    def test_board_geometry(self):
        """Default board is 8 columns by 6 rows with nodes on the last row."""
        config = load_config()

        assert config.board.width == 8
        assert config.board.height == 6
        assert config.board.node_row == 5
        assert config.board.spawn_col == 4
        assert config.num_nodes == 8

    def test_all_dimensions_have_capacity_tiers(self):
        """Every dimension has a capacity option list."""
        config = load_config()

        for dimension in DIMENSIONS:
            assert config.nodes.capacity_options[dimension]
        assert 0.0 in config.nodes.capacity_options[Dimension.ACCELERATOR]

    def test_pod_roles(self):
        """The six service roles are defined in order."""
        config = load_config()

        roles = [pod.role for pod in config.pods]
        assert roles == ["frontend", "backend", "database", "cache", "monitor", "ml-task"]

    def test_scoring_constants(self):
        """Scoring defaults match the documented rules."""
        scoring = load_config().scoring

        assert scoring.base_points == 100
        assert scoring.preferred_node_bonus == 200
        assert scoring.headroom_bonus == 150
        assert scoring.line_clear_bonus == 400
        assert scoring.points_per_level == 1000

    def test_specializations_rotate(self):
        """Specialization labels wrap around the set."""
        nodes = load_config().nodes

        assert nodes.specialization_for(0) == "GPU"
        assert nodes.specialization_for(7) == "EDGE"
        assert nodes.specialization_for(8) == "GPU"

    def test_pod_probability(self):
        """5:1 weights give a pod five times out of six."""
        spawner = load_config().spawner

        assert spawner.pod_probability == pytest.approx(5 / 6)

    def test_get_config_is_cached(self):
        """get_config returns the same instance until reloaded."""
        first = get_config()
        assert get_config() is first

        reloaded = reload_config()
        assert reloaded is not first
        assert get_config() is reloaded


class TestConfigValidation:
    """Test that invalid configurations are rejected."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_dimension_aliases(self, tmp_path, raw_config):
        """cpu/ram/ssd/gpu are accepted as dimension names."""
        raw_config["upgrades"][0]["grant"] = {"ram": [4]}
        config = load_config(write_config(tmp_path, raw_config))

        assert config.upgrades[0].grant_options == {Dimension.MEMORY: (4.0,)}

    def test_unknown_dimension(self, tmp_path, raw_config):
        raw_config["pods"][0]["demand"]["bandwidth"] = [1]

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_zero_width(self, tmp_path, raw_config):
        raw_config["board"]["width"] = 0

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_board_needs_a_playable_row(self, tmp_path, raw_config):
        raw_config["board"]["height"] = 1

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_unknown_preferred_node(self, tmp_path, raw_config):
        raw_config["pods"][0]["preferred_node"] = "QUANTUM"

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_unknown_dependency(self, tmp_path, raw_config):
        raw_config["pods"][0]["dependencies"] = ["mainframe"]

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_negative_demand(self, tmp_path, raw_config):
        raw_config["pods"][0]["demand"]["compute"] = [-1]

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_zero_compute_capacity_tier(self, tmp_path, raw_config):
        """Utilization divides by compute and memory totals."""
        raw_config["nodes"]["capacity_options"]["compute"] = [0, 4]

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_unknown_constraint_type(self, tmp_path, raw_config):
        raw_config["constraints"]["definitions"].append({"type": "taint"})

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_constraint_bounds(self, tmp_path, raw_config):
        raw_config["constraints"]["min_active"] = 3
        raw_config["constraints"]["max_active"] = 1

        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, raw_config))

    def test_constraints_section_optional(self, tmp_path, raw_config):
        del raw_config["constraints"]
        config = load_config(write_config(tmp_path, raw_config))

        assert config.constraints.definitions == ()
