"""
Logging configuration for the storefront service.

Every module asks for its own child of the ``storefront`` logger; the level
comes from ``LOG_LEVEL``.
"""
import logging
import sys

from storefront.utils.settings import LOG_LEVEL

logger = logging.getLogger("storefront")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance.

    ``storefront.services.cart_service`` and ``services.cart_service`` end up
    as the same child, so callers can simply pass ``__name__``.
    """
    if not name:
        return logger
    if name == "storefront" or name.startswith("storefront."):
        return logging.getLogger(name)
    return logging.getLogger(f"storefront.{name}")
