"""
Logging setup.

Call *configure_logging* once at startup; everything else just does
``logger = logging.getLogger(__name__)``.
"""
import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the ``app`` logger tree (idempotent)."""
    global _configured

    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    app_logger = logging.getLogger("app")
    app_logger.setLevel(log_level)

    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app_logger.addHandler(handler)
    app_logger.propagate = False
    _configured = True
