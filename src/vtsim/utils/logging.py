"""Logging setup for applications embedding vtsim.

The library only ever logs through bound loguru handles and stays silent
until an application opts in:

    from vtsim.utils.logging import configure_logging
    configure_logging("DEBUG")
"""

import sys
from typing import Any

from loguru import logger

from vtsim.models.config import SimulationConfig

LOG_FORMAT = (
    "{time:HH:mm:ss} | {level: <8} | t={extra[sim_time]} | "
    "{extra[component]} | {message}"
)


def configure_logging(level: str = "INFO", sink: Any = sys.stderr) -> int:
    """Enable vtsim logging with a single handler.

    Removes any previously installed handlers, so calling it twice does
    not duplicate output.

    Args:
        level: Minimum level to emit
        sink: Anything loguru accepts as a sink (stream, path, callable)

    Returns:
        Handler id, usable with ``logger.remove()``
    """
    logger.remove()
    logger.configure(extra={"component": "vtsim", "sim_time": "-"})
    handler_id = logger.add(sink, level=level.upper(), format=LOG_FORMAT)
    logger.enable("vtsim")
    return handler_id


def configure_logging_from(config: SimulationConfig, sink: Any = sys.stderr) -> int:
    """Enable vtsim logging at the level a SimulationConfig asks for."""
    return configure_logging(config.log_level, sink)
