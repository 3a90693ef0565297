from __future__ import annotations

import logging
import tarfile
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from .configuration import BackupConfig

LOG = logging.getLogger(__name__)

_TAR_MODES = {
    None: "w",
    "gzip": "w:gz",
    "bzip2": "w:bz2",
    "xz": "w:xz",
}


class BackupError(Exception):
    """Raised by sources when a backup cannot be created."""


class Source(Protocol):
    def backup(self, target: Path) -> Path:
        ...


class TarSource:
    """Archives a file or directory into the backup target."""

    def __init__(self, path: str, compress: Optional[str] = None) -> None:
        self._path = Path(path)
        self._mode = _TAR_MODES[compress]

    def backup(self, target: Path) -> Path:
        if not self._path.exists():
            raise BackupError(f"Source path does not exist: {self._path}")
        LOG.info("Creating archive %s", target)
        try:
            with tarfile.open(target, self._mode) as tar:
                tar.add(self._path, arcname=self._path.name)
        except (OSError, tarfile.TarError) as exc:
            target.unlink(missing_ok=True)
            raise BackupError(f"Failed to create archive {target}: {exc}") from exc
        return target


def _create_tar(backup: BackupConfig) -> Source:
    path = backup.source.options.get("path")
    if not path:
        raise BackupError(f"Source 'tar' of backup '{backup.name}' requires a 'path' option")
    return TarSource(path, backup.target.compress)


SourceFactory = Callable[[BackupConfig], Source]

_REGISTRY: Dict[str, SourceFactory] = {
    "tar": _create_tar,
}


def register_source(name: str, factory: SourceFactory) -> None:
    _REGISTRY[name.lower()] = factory


def create_source(backup: BackupConfig) -> Source:
    factory = _REGISTRY.get(backup.source.type.lower())
    if factory is None:
        raise BackupError(f"No source registered for '{backup.source.type}'.")
    return factory(backup)
