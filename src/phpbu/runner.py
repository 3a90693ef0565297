from __future__ import annotations

import logging
import runpy
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .cleanup import CleanupError, run_check, run_cleanup
from .configuration import BackupConfig, Configuration
from .loader import ConfigurationError
from .sources import BackupError, Source, create_source

LOG = logging.getLogger(__name__)

SourceFactory = Callable[[BackupConfig], Source]


@dataclass
class BackupResult:
    name: str
    status: str
    started_at: datetime
    completed_at: datetime
    target: Optional[Path] = None
    errors: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in ("success", "simulated")


@dataclass
class Result:
    backups: List[BackupResult] = field(default_factory=list)

    def was_successful(self) -> bool:
        return all(backup.success for backup in self.backups)

    def error_count(self) -> int:
        return sum(len(backup.errors) for backup in self.backups)

    def failure_count(self) -> int:
        return sum(1 for backup in self.backups if not backup.success)


class Runner:
    """Executes the configured backups and reports to the attached loggers."""

    def __init__(self, source_factory: SourceFactory = create_source) -> None:
        self._source_factory = source_factory

    def run(self, configuration: Configuration) -> Result:
        loggers = configuration.loggers
        backups = list(self._select_backups(configuration))
        self._run_bootstrap(configuration)

        for logger in loggers:
            logger.run_start(configuration)

        result = Result()
        for backup in backups:
            for logger in loggers:
                logger.backup_start(backup)
            backup_result = self._run_backup(configuration, backup)
            result.backups.append(backup_result)
            for logger in loggers:
                logger.backup_end(backup, backup_result.status)
            if not backup_result.success and backup.stop_on_failure:
                LOG.warning("Backup %s failed, skipping remaining backups", backup.name)
                break

        for logger in loggers:
            logger.run_end(result)
        return result

    def _select_backups(self, configuration: Configuration) -> Iterable[BackupConfig]:
        if configuration.limit:
            missing = set(configuration.limit) - {backup.name for backup in configuration.backups}
            if missing:
                missing_str = ", ".join(sorted(missing))
                raise ConfigurationError(f"Unknown backup(s) requested: {missing_str}")
        return [backup for backup in configuration.backups if configuration.is_backup_active(backup.name)]

    def _run_bootstrap(self, configuration: Configuration) -> None:
        if not configuration.bootstrap:
            return
        bootstrap = Path(configuration.bootstrap)
        if not bootstrap.is_file():
            raise ConfigurationError(f"Bootstrap file not found: {bootstrap}")
        LOG.debug("Running bootstrap file %s", bootstrap)
        runpy.run_path(str(bootstrap), run_name="__phpbu_bootstrap__")

    def _run_backup(self, configuration: Configuration, backup: BackupConfig) -> BackupResult:
        started_at = datetime.now()
        target = backup.target.dirname / started_at.strftime(backup.target.filename)
        result = BackupResult(
            name=backup.name,
            status="success",
            started_at=started_at,
            completed_at=started_at,
            target=target,
        )

        if configuration.is_simulation():
            self._debug(configuration, f"would create {target} from {backup.source.type} source")
            result.status = "simulated"
            result.completed_at = datetime.now()
            return result

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            source = self._source_factory(backup)
            source.backup(target)
        except BackupError as exc:
            result.status = "failed"
            result.errors.append(str(exc))
        except Exception as exc:  # noqa: BLE001
            LOG.debug("Backup %s raised", backup.name, exc_info=True)
            result.status = "failed"
            result.errors.append(f"{type(exc).__name__}: {exc}")
        else:
            self._check(configuration, backup, target, result)
            self._cleanup(configuration, backup, result)

        result.completed_at = datetime.now()
        return result

    def _check(self, configuration: Configuration, backup: BackupConfig, target: Path, result: BackupResult) -> None:
        for check in backup.checks:
            try:
                message = run_check(check, target)
            except ValueError as exc:
                message = str(exc)
            if message:
                result.status = "failed"
                result.failures.append(message)
                for logger in configuration.loggers:
                    logger.check_failed(backup, message)

    def _cleanup(self, configuration: Configuration, backup: BackupConfig, result: BackupResult) -> None:
        try:
            removed = run_cleanup(backup)
        except CleanupError as exc:
            result.status = "failed"
            result.failures.append(str(exc))
            return
        for path in removed:
            self._debug(configuration, f"removed {path}")

    @staticmethod
    def _debug(configuration: Configuration, message: str) -> None:
        for logger in configuration.loggers:
            logger.debug(message)
