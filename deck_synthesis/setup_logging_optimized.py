import logging
import os
from typing import Optional


def setup_logging(level: Optional[str] = None) -> None:
    """Minimal logging setup shared by every pipeline stage.

    - Level comes from the argument, else LOG_LEVEL, else INFO
    - Ensures a basic StreamHandler is attached once
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return a module logger after ensuring logging is initialized."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
