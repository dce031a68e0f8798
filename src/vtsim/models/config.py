"""Run configuration models.

A SimulationConfig describes one run of a model: where the virtual clock
starts, where it stops, which seed drives the random stream and how
verbose logging is. A ReplicationConfig wraps it for batches of
independent runs.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SimulationConfig(BaseModel):
    """Global simulation control parameters."""

    # Time
    start_time: float = Field(
        0.0,
        description="Virtual time at which the environment starts"
    )
    until: Optional[float] = Field(
        None,
        description="Run horizon in virtual time (None = until no events remain)"
    )
    random_seed: int = Field(
        42,
        description="RNG seed for reproducible stochastic events"
    )

    # Output control
    log_level: str = Field(
        "INFO",
        description="Logging verbosity (TRACE, DEBUG, INFO, WARNING)"
    )
    record_trace: bool = Field(
        False,
        description="Record every processed event to an EventTrace"
    )

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def horizon_after_start(self) -> "SimulationConfig":
        """Validate that the run horizon lies after the start time."""
        if self.until is not None and self.until <= self.start_time:
            raise ValueError(
                f"Run horizon ({self.until}) must be after "
                f"start time ({self.start_time})"
            )
        return self

    @property
    def duration(self) -> Optional[float]:
        """Length of the run in virtual time units."""
        if self.until is None:
            return None
        return self.until - self.start_time


class ReplicationConfig(BaseModel):
    """Parameters for a batch of independent replications."""

    replications: int = Field(
        10,
        ge=1,
        description="Number of independent runs"
    )
    base_seed: int = Field(
        12345,
        ge=0,
        description="Entropy from which per-replication seeds are spawned"
    )
    max_workers: Optional[int] = Field(
        None,
        ge=1,
        description="Worker processes (None or 1 = run serially in-process)"
    )
    simulation: SimulationConfig = Field(
        default_factory=SimulationConfig,
        description="Settings shared by every replication"
    )

    model_config = {"extra": "forbid"}


def load_config(path: str) -> SimulationConfig:
    """Load and validate a simulation config from a JSON file.

    Args:
        path: Path to config JSON file

    Returns:
        Validated SimulationConfig instance

    Raises:
        FileNotFoundError: If file doesn't exist
        ValidationError: If JSON doesn't match schema
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(file_path) as f:
        data = json.load(f)

    return SimulationConfig.model_validate(data)


def save_config(config: BaseModel, path: str, indent: int = 2) -> None:
    """Save a config model to a JSON file."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "w") as f:
        f.write(config.model_dump_json(indent=indent))
