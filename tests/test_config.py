"""Tests for run configuration models."""

import json

import pytest
from pydantic import ValidationError

from vtsim.models import ReplicationConfig, SimulationConfig, load_config, save_config


class TestSimulationConfig:
    def test_defaults(self):
        config = SimulationConfig()
        assert config.start_time == 0.0
        assert config.until is None
        assert config.random_seed == 42
        assert config.record_trace is False
        assert config.duration is None

    def test_duration(self):
        config = SimulationConfig(start_time=10, until=70)
        assert config.duration == 60

    def test_horizon_must_follow_start(self):
        """A horizon at or before the start time is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            SimulationConfig(start_time=10, until=10)
        assert "Run horizon" in str(exc_info.value)

    def test_unknown_fields_rejected(self):
        """Typos in config files are caught."""
        with pytest.raises(ValidationError):
            SimulationConfig(random_sed=1)


class TestReplicationConfig:
    def test_defaults(self):
        config = ReplicationConfig()
        assert config.replications == 10
        assert config.max_workers is None
        assert isinstance(config.simulation, SimulationConfig)

    def test_at_least_one_replication(self):
        with pytest.raises(ValidationError):
            ReplicationConfig(replications=0)

    def test_nested_simulation_config(self):
        config = ReplicationConfig.model_validate(
            {"replications": 3, "simulation": {"until": 100, "record_trace": True}}
        )
        assert config.simulation.until == 100
        assert config.simulation.record_trace


class TestConfigFiles:
    def test_save_and_load(self, tmp_path):
        """Configs survive a trip through a JSON file."""
        path = tmp_path / "configs" / "run.json"
        config = SimulationConfig(until=480, random_seed=7)
        save_config(config, str(path))

        assert json.loads(path.read_text())["random_seed"] == 7
        assert load_config(str(path)) == config

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.json"))

    def test_load_invalid_file(self, tmp_path):
        """Files that do not match the schema fail validation."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"start_time": 5, "until": 1}))
        with pytest.raises(ValidationError):
            load_config(str(path))
