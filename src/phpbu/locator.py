from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

LOG = logging.getLogger(__name__)

DEFAULT_FILENAMES: Sequence[str] = ("phpbu.xml", "phpbu.xml.dist")


def locate_configuration(explicit: Optional[str], cwd: Optional[Path] = None) -> Optional[Path]:
    """Resolve the configuration file to use, or None when nothing matches.

    An explicit file wins, an explicit directory is searched for the default
    file names, and without an explicit argument the working directory is
    searched instead. An explicit path that is neither a file nor a directory
    stays unresolved.
    """
    if explicit is not None:
        if not explicit:
            return None
        candidate = Path(explicit).expanduser()
        if not candidate.is_absolute() and cwd is not None:
            candidate = cwd / candidate
        if candidate.is_file():
            return candidate.resolve()
        if candidate.is_dir():
            return _search_directory(candidate)
        LOG.debug("Configuration argument %s is neither file nor directory", explicit)
        return None

    return _search_directory(cwd if cwd is not None else Path.cwd())


def _search_directory(directory: Path) -> Optional[Path]:
    for filename in DEFAULT_FILENAMES:
        candidate = directory / filename
        if candidate.exists():
            LOG.debug("Using configuration %s", candidate)
            return candidate.resolve()
    return None
