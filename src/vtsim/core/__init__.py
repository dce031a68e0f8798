"""Scheduler, events and processes."""

from vtsim.core.events import AllOf, AnyOf, Condition, ConditionValue, Event, Timeout
from vtsim.core.process import Interruption, Process
from vtsim.core.environment import Environment, run, spawn

__all__ = [
    "AllOf",
    "AnyOf",
    "Condition",
    "ConditionValue",
    "Environment",
    "Event",
    "Interruption",
    "Process",
    "Timeout",
    "run",
    "spawn",
]
