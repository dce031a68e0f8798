"""Shared fixtures."""

import pytest

from vtsim.core import Environment
from vtsim.simulation.trace import EventTrace


@pytest.fixture
def env():
    """A fresh environment starting at time 0."""
    return Environment(seed=42)


@pytest.fixture
def traced_env():
    """An environment recording every event to a trace."""
    return Environment(seed=42, trace=EventTrace())
