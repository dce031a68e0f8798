"""Run-level tooling: event traces and replications."""

from vtsim.simulation.trace import EventTrace, TraceRecord
from vtsim.simulation.replication import (
    replication_configs,
    replication_seeds,
    run_replications,
)

__all__ = [
    "EventTrace",
    "TraceRecord",
    "replication_configs",
    "replication_seeds",
    "run_replications",
]
