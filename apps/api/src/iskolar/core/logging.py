"""
Logging Configuration

One stdout handler for the API process and its background scheduler.
Modules log through logging.getLogger(__name__); the level comes from
LOG_LEVEL.
"""

import logging
import sys

from iskolar.core.config import settings


def configure_logging() -> None:
    """
    Configure logging for the whole app.
    Call this once at startup (FastAPI lifespan or a script entry point).
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
