from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = "WARNING"


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr so stdout stays reserved for command output."""
    name = (level or os.getenv("PHPBU_LOG_LEVEL", DEFAULT_LEVEL)).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
