from __future__ import annotations

import re
from typing import Tuple

VERSION = "6.0.0"

_RELEASE_PATTERN = re.compile(r"^v?(\d+(?:\.\d+)*)(.*)$")


def version_string() -> str:
    return f"phpbu {VERSION} by Sebastian Feldmann and contributors."


def _version_key(version: str) -> Tuple[Tuple[int, ...], int, str]:
    match = _RELEASE_PATTERN.match(version.strip())
    if not match:
        return (), 0, version.strip()
    release = tuple(int(part) for part in match.group(1).split("."))
    # trailing zeros do not change ordering: 1.2 == 1.2.0
    while release and release[-1] == 0:
        release = release[:-1]
    suffix = match.group(2).lstrip("-.")
    # a pre-release sorts before its release
    return release, 0 if suffix else 1, suffix


def is_newer(candidate: str, current: str = VERSION) -> bool:
    """Return True when ``candidate`` is a later release than ``current``."""
    return _version_key(candidate) > _version_key(current)
