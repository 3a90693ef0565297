from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from .configuration import BackupConfig, CheckConfig

LOG = logging.getLogger(__name__)

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([BKMG]?)B?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "B": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}

# strftime directives are matched by any run of characters
_DIRECTIVE = re.compile(r"%[a-zA-Z%]")


class CleanupError(Exception):
    """Raised when a cleanup is misconfigured or cannot remove files."""


def parse_size(value: str) -> int:
    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid size '{value}'")
    return int(float(match.group(1)) * _SIZE_UNITS[match.group(2).upper()])


def run_check(check: CheckConfig, target: Path) -> Optional[str]:
    """Return a failure message, or None when the check passes."""
    if check.type.lower() != "sizemin":
        return f"unknown check type '{check.type}'"
    minimum = parse_size(check.value)
    actual = target.stat().st_size if target.exists() else 0
    if actual < minimum:
        return f"size {actual}B is below minimum {minimum}B"
    return None


def matching_backups(backup: BackupConfig) -> List[Path]:
    """Files in the target directory that were produced by this backup, newest first."""
    directory = backup.target.dirname
    if not directory.is_dir():
        return []
    parts = _DIRECTIVE.split(backup.target.filename)
    pattern = re.compile("^" + ".+".join(re.escape(part) for part in parts) + "$")
    files = [child for child in directory.iterdir() if child.is_file() and pattern.match(child.name)]
    return sorted(files, key=lambda child: child.stat().st_mtime, reverse=True)


def run_cleanup(backup: BackupConfig, now: Optional[datetime] = None) -> List[Path]:
    cleanup = backup.cleanup
    if cleanup is None:
        return []

    files = matching_backups(backup)
    if cleanup.type == "quantity":
        amount = _int_option(cleanup.options, "amount")
        expired = files[amount:]
    else:
        days = _int_option(cleanup.options, "older")
        cutoff = (now or datetime.now()) - timedelta(days=days)
        expired = [child for child in files if datetime.fromtimestamp(child.stat().st_mtime) < cutoff]

    for child in expired:
        LOG.info("Removing expired backup %s", child)
        try:
            child.unlink(missing_ok=True)
        except OSError as exc:
            raise CleanupError(f"Could not remove {child}: {exc}") from exc
    return expired


def _int_option(options: dict, name: str) -> int:
    try:
        value = int(options[name])
    except (KeyError, ValueError) as exc:
        raise CleanupError(f"Cleanup option '{name}' must be an integer") from exc
    if value < 0:
        raise CleanupError(f"Cleanup option '{name}' must not be negative")
    return value
