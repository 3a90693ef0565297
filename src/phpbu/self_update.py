from __future__ import annotations

import errno
import logging
import os
import shutil
import sys
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, TextIO

import requests

from .exit_codes import ExitCode
from .version import VERSION, is_newer

LOG = logging.getLogger(__name__)

DEFAULT_VERSION_URL = "https://phar.phpbu.de/latest-version-of/phpbu"
DEFAULT_DOWNLOAD_URL = "https://phar.phpbu.de/phpbu.pyz"
DEFAULT_TIMEOUT = 30.0
ARCHIVE_SUFFIX = ".pyz"
# pip writes Windows console launchers as executables with an appended zip
LAUNCHER_SUFFIX = ".exe"
ENTRY_POINT = "__main__.py"


class NetworkError(Exception):
    """Raised when an update endpoint returns no data."""


class ArchiveInvalid(Exception):
    """Raised when a downloaded archive fails verification."""


class UpdateState(Enum):
    IDLE = "idle"
    VERSION_CHECK = "version-check"
    UP_TO_DATE = "up-to-date"
    DOWNLOAD_NEEDED = "download-needed"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    INSTALLED = "installed"
    ROLLED_BACK = "rolled-back"
    FAILED = "failed"


@dataclass
class UpgradeCandidate:
    remote_version: str
    payload: bytes
    temp_path: Path


def running_archive(argv0: Optional[str] = None) -> Optional[Path]:
    """Path of the zipapp we are executed from, or None when running from a source install."""
    path = Path(argv0 if argv0 is not None else sys.argv[0])
    if path.suffix.lower() == LAUNCHER_SUFFIX or not path.is_file() or not zipfile.is_zipfile(path):
        return None
    return path.resolve()


def http_timeout() -> float:
    value = os.getenv("PHPBU_HTTP_TIMEOUT")
    if value is None:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError(f"PHPBU_HTTP_TIMEOUT must be a number of seconds, got '{value}'") from exc
    if timeout <= 0:
        raise ValueError(f"PHPBU_HTTP_TIMEOUT must be positive, got '{value}'")
    return timeout


def current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class SelfUpdater:
    """Checks for, downloads, verifies and installs a newer phpbu archive.

    Every step moves forward on success or ends the attempt; nothing is
    retried. The running archive is only replaced once the download has been
    verified, and the temporary file never outlives a failed attempt.
    """

    def __init__(
        self,
        executable: Path,
        out: Optional[TextIO] = None,
        session: Optional[requests.Session] = None,
        version_url: Optional[str] = None,
        download_url: Optional[str] = None,
        timeout: Optional[float] = None,
        workdir: Optional[Path] = None,
        current_version: str = VERSION,
    ) -> None:
        self.executable = executable
        self.current_version = current_version
        self._out = out if out is not None else sys.stdout
        self._session = session if session is not None else _build_session()
        self._version_url = version_url or os.getenv("PHPBU_VERSION_URL", DEFAULT_VERSION_URL)
        self._download_url = download_url or os.getenv("PHPBU_DOWNLOAD_URL", DEFAULT_DOWNLOAD_URL)
        self._timeout = timeout if timeout is not None else http_timeout()
        self._workdir = workdir
        self.state = UpdateState.IDLE
        self.history: List[UpdateState] = [UpdateState.IDLE]

    # Entry points -------------------------------------------------------------
    def version_check(self) -> ExitCode:
        try:
            latest = self._check()
        except NetworkError as exc:
            return self._fail(str(exc))

        if self.state is UpdateState.DOWNLOAD_NEEDED:
            self._write("You are not using the latest version of phpbu.")
            self._write(f'Use "phpbu --self-upgrade" to install phpbu {latest}')
        else:
            self._write("You are using the latest version of phpbu.")
        return ExitCode.SUCCESS

    def upgrade(self) -> ExitCode:
        try:
            latest = self._check()
        except NetworkError as exc:
            return self._fail(str(exc))

        if self.state is UpdateState.UP_TO_DATE:
            self._write("You already have the latest version of phpbu installed.")
            return ExitCode.SUCCESS

        self._out.write("Updating the phpbu archive ... ")
        try:
            candidate = self._download(latest)
        except NetworkError as exc:
            self._transition(UpdateState.FAILED)
            self._write(" failed")
            self._write(str(exc))
            return ExitCode.EXCEPTION

        try:
            self._verify(candidate)
            self._install(candidate)
        except ArchiveInvalid as exc:
            self._rollback(candidate)
            self._write("failed")
            self._write(str(exc))
            return ExitCode.EXCEPTION

        self._write("done")
        return ExitCode.SUCCESS

    # States -------------------------------------------------------------------
    def _check(self) -> str:
        self._transition(UpdateState.VERSION_CHECK)
        latest = self._fetch(self._version_url).decode("utf-8", "ignore").strip()
        if not latest:
            raise NetworkError("Network-Error: Could not check latest version.")
        LOG.debug("Latest version %s, running %s", latest, self.current_version)
        if is_newer(latest, self.current_version):
            self._transition(UpdateState.DOWNLOAD_NEEDED)
        else:
            self._transition(UpdateState.UP_TO_DATE)
        return latest

    def _download(self, remote_version: str) -> UpgradeCandidate:
        self._transition(UpdateState.DOWNLOADING)
        payload = self._fetch(self._download_url)
        if not payload:
            raise NetworkError("Could not reach phpbu update site")

        temp_path = self._temp_path()
        try:
            temp_path.write_bytes(payload)
            temp_path.chmod(0o777 & ~current_umask())
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise NetworkError(f"Could not store download at {temp_path}: {exc}") from exc
        return UpgradeCandidate(remote_version=remote_version, payload=payload, temp_path=temp_path)

    def _verify(self, candidate: UpgradeCandidate) -> None:
        self._transition(UpdateState.VERIFYING)
        try:
            with zipfile.ZipFile(candidate.temp_path) as archive:
                broken = archive.testzip()
                names = archive.namelist()
        except Exception as exc:  # noqa: BLE001
            raise ArchiveInvalid(f"Downloaded file is not a valid phpbu archive: {exc}") from exc
        if broken is not None:
            raise ArchiveInvalid(f"Downloaded archive is corrupt: bad entry {broken}")
        if ENTRY_POINT not in names:
            raise ArchiveInvalid(f"Downloaded archive has no {ENTRY_POINT} entry point")

    def _install(self, candidate: UpgradeCandidate) -> None:
        try:
            try:
                os.replace(candidate.temp_path, self.executable)
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                self._install_across_devices(candidate)
        except OSError as exc:
            raise ArchiveInvalid(f"Could not replace {self.executable}: {exc}") from exc
        LOG.info("Installed phpbu %s at %s", candidate.remote_version, self.executable)
        self._transition(UpdateState.INSTALLED)

    def _install_across_devices(self, candidate: UpgradeCandidate) -> None:
        # rename only works within one filesystem, so stage a copy beside the executable
        staged = self.executable.parent / candidate.temp_path.name
        LOG.debug("Staging %s at %s for a cross-device install", candidate.temp_path, staged)
        try:
            shutil.copy2(candidate.temp_path, staged)
            os.replace(staged, self.executable)
        except OSError:
            staged.unlink(missing_ok=True)
            raise
        candidate.temp_path.unlink(missing_ok=True)

    def _rollback(self, candidate: UpgradeCandidate) -> None:
        candidate.temp_path.unlink(missing_ok=True)
        self._transition(UpdateState.ROLLED_BACK)

    def _fail(self, message: str) -> ExitCode:
        self._transition(UpdateState.FAILED)
        self._write(message)
        return ExitCode.EXCEPTION

    # Helpers ------------------------------------------------------------------
    def _fetch(self, url: str) -> bytes:
        # errors are reported by the caller as "no data"
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            LOG.debug("Request to %s failed: %s", url, exc)
            return b""
        if response.status_code >= 400:
            LOG.debug("Request to %s failed: %s", url, response.status_code)
            return b""
        return response.content or b""

    def _temp_path(self) -> Path:
        name = self.executable.name
        stem = name[: -len(ARCHIVE_SUFFIX)] if name.endswith(ARCHIVE_SUFFIX) else name
        directory = self._workdir if self._workdir is not None else Path.cwd()
        return directory / f"{stem}-temp{ARCHIVE_SUFFIX}"

    def _transition(self, state: UpdateState) -> None:
        LOG.debug("Self-update %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _write(self, text: str) -> None:
        self._out.write(text + "\n")


def _build_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": f"phpbu/{VERSION}"})
    return session
