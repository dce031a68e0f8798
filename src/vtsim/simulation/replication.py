"""Independent replications of a model.

A model is any picklable callable taking a SimulationConfig and returning
a result. Each replication gets its own seed, spawned from the batch's
base seed with numpy's SeedSequence, so seeds are statistically
independent and the batch is reproducible from a single number.

Usage:
    results = run_replications(run_sandwich_shop, ReplicationConfig(replications=20))
"""

from concurrent.futures import ProcessPoolExecutor
from typing import Callable, TypeVar

import numpy as np
from loguru import logger

from vtsim.models.config import ReplicationConfig, SimulationConfig

T = TypeVar("T")


def replication_seeds(base_seed: int, n: int) -> list[int]:
    """Derive ``n`` independent 32-bit seeds from ``base_seed``."""
    children = np.random.SeedSequence(base_seed).spawn(n)
    return [int(child.generate_state(1, dtype=np.uint32)[0]) for child in children]


def replication_configs(config: ReplicationConfig) -> list[SimulationConfig]:
    """One SimulationConfig per replication, differing only in seed."""
    seeds = replication_seeds(config.base_seed, config.replications)
    return [
        config.simulation.model_copy(update={"random_seed": seed})
        for seed in seeds
    ]


def run_replications(model: Callable[[SimulationConfig], T], config: ReplicationConfig) -> list[T]:
    """Run ``config.replications`` independent runs of ``model``.

    Runs serially in-process unless ``config.max_workers`` is greater than
    one, in which case replications are spread over a process pool.
    Results are returned in replication order either way.

    Args:
        model: Callable building and running one simulation from a config
        config: Batch settings

    Returns:
        One result per replication
    """
    log = logger.bind(component="Replications")
    configs = replication_configs(config)
    workers = config.max_workers or 1

    log.info(
        "Running {} replications (base seed {}, workers={})",
        len(configs),
        config.base_seed,
        workers,
    )

    if workers == 1:
        return [model(c) for c in configs]

    with ProcessPoolExecutor(max_workers=min(workers, len(configs))) as pool:
        return list(pool.map(model, configs))
