"""
Logging helpers for the sidekick engine.
"""

import logging

logger = logging.getLogger("statblock-sidekick")


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for scripts and notebooks using the engine.

    The library itself never installs handlers.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level)
    logger.setLevel(level)
