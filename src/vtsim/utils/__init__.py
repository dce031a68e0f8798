"""Utilities."""

from vtsim.utils.logging import configure_logging, configure_logging_from

__all__ = ["configure_logging", "configure_logging_from"]
