"""Tests for logging setup."""

import pytest
from loguru import logger

from vtsim.core import Environment, spawn
from vtsim.models import SimulationConfig
from vtsim.utils.logging import configure_logging, configure_logging_from


def stopper(env):
    yield env.timeout(3)
    env.exit("done")


@pytest.fixture
def messages():
    """Collect formatted log lines; silence vtsim again afterwards."""
    lines = []
    yield lines
    logger.remove()
    logger.disable("vtsim")


class TestLogging:
    def test_silent_by_default(self, messages):
        """Library records are dropped until logging is configured."""
        logger.remove()
        logger.add(messages.append, level="TRACE", format="{message}")

        env = Environment()
        spawn(env, stopper)
        env.run()

        assert not any("Simulation stopped" in m for m in messages)

    def test_configure_logging_enables_output(self, messages):
        """configure_logging installs a handler showing component and virtual time."""
        configure_logging("DEBUG", sink=messages.append)

        env = Environment()
        spawn(env, stopper)
        env.run()

        stopped = [m for m in messages if "Simulation stopped" in m]
        assert len(stopped) == 1
        assert "t=3" in stopped[0]
        assert "Environment" in stopped[0]

    def test_level_filters(self, messages):
        """Records below the configured level are dropped."""
        configure_logging("INFO", sink=messages.append)

        env = Environment()
        spawn(env, stopper)
        env.run()

        assert not any("Simulation stopped" in m for m in messages)

    def test_reconfigure_does_not_duplicate(self, messages):
        """Calling configure_logging twice keeps a single handler."""
        configure_logging("DEBUG", sink=messages.append)
        configure_logging("DEBUG", sink=messages.append)

        env = Environment()
        spawn(env, stopper)
        env.run()

        assert len([m for m in messages if "Simulation stopped" in m]) == 1

    def test_explicit_logger_handle(self, messages):
        """An Environment can be given its own logger handle."""
        configure_logging("DEBUG", sink=messages.append)

        env = Environment(logger=logger.bind(component="bank-run-1"))
        spawn(env, stopper)
        env.run()

        assert any("bank-run-1" in m for m in messages)

    def test_level_from_config(self, messages):
        """A SimulationConfig's log_level selects the handler level."""
        configure_logging_from(SimulationConfig(log_level="debug"), sink=messages.append)

        env = Environment()
        spawn(env, stopper)
        env.run()

        assert any("Simulation stopped" in m for m in messages)
