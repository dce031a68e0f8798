"""vtsim: process-oriented discrete-event simulation in virtual time.

Processes are generators that yield events; an Environment advances a
virtual clock through a queue of events and resumes processes as the
events they wait for are processed. Shared Resource, Container and Store
primitives model contention.
"""

__version__ = "0.1.0"

from loguru import logger

from vtsim.exceptions import (
    EmptySchedule,
    Interrupt,
    ProtocolError,
    SimulationError,
    StopSimulation,
)
from vtsim.models import EventState, ReplicationConfig, SimulationConfig
from vtsim.core import (
    AllOf,
    AnyOf,
    Condition,
    ConditionValue,
    Environment,
    Event,
    Process,
    Timeout,
    run,
    spawn,
)
from vtsim.resources import Container, Resource, Store
from vtsim.simulation import EventTrace, run_replications

# Library code stays silent unless the application opts in
logger.disable("vtsim")

__all__ = [
    # Engine
    "Environment",
    "Event",
    "Timeout",
    "Process",
    "Condition",
    "ConditionValue",
    "AllOf",
    "AnyOf",
    "EventState",
    "spawn",
    "run",
    # Primitives
    "Resource",
    "Container",
    "Store",
    # Errors
    "SimulationError",
    "ProtocolError",
    "StopSimulation",
    "Interrupt",
    "EmptySchedule",
    # Run tooling
    "SimulationConfig",
    "ReplicationConfig",
    "EventTrace",
    "run_replications",
]
