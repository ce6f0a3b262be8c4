import logging
import os

_CONFIGURED = False


def configure_logging() -> None:
    """Configure structured logging defaults for the application and operator scripts."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("stripe").setLevel(logging.WARNING)
    _CONFIGURED = True
