"""Enumerations and pydantic configuration models for vtsim"""

from vtsim.models.enums import EventState, TraceEventType
from vtsim.models.config import (
    ReplicationConfig,
    SimulationConfig,
    load_config,
    save_config,
)

__all__ = [
    # Enums
    "EventState",
    "TraceEventType",
    # Config
    "ReplicationConfig",
    "SimulationConfig",
    "load_config",
    "save_config",
]
