import logging
from typing import Optional

from fastpaillier.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s:%(lineno)d] %(message)s"


class PackageHandler(logging.StreamHandler):
    """Stream handler installed by :func:`configure_logging`."""

    def __init__(self):
        super().__init__()
        self.setFormatter(logging.Formatter(LOG_FORMAT))


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a single stream handler to the package logger (idempotent)."""
    logger = logging.getLogger("fastpaillier")
    logger.setLevel(level or get_settings().log_level)
    if not any(isinstance(h, PackageHandler) for h in logger.handlers):
        logger.addHandler(PackageHandler())
    return logger
