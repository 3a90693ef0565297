"""phpbu backup tool bootstrap package."""

from __future__ import annotations

from .cmd import Cmd, main  # noqa: F401
from .version import VERSION  # noqa: F401
