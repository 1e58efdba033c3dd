from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - stdlib logging only; uvicorn already configures the handlers.
    - This sets the level for the `educonnect.*` logger hierarchy.
    - Set `EDUCONNECT_LOG_LEVEL=DEBUG` to see every authorization decision.
    """

    normalized = level.upper()
    logger = logging.getLogger("educonnect")
    logger.setLevel(normalized)
    # Child loggers under educonnect.* inherit this level.
    logger.propagate = True
