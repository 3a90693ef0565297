from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator


class Logger(Protocol):
    """Output sink notified by the runner."""

    def run_start(self, configuration: "Configuration") -> None:
        ...

    def backup_start(self, backup: "BackupConfig") -> None:
        ...

    def backup_end(self, backup: "BackupConfig", status: str) -> None:
        ...

    def check_failed(self, backup: "BackupConfig", message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...

    def run_end(self, result: Any) -> None:
        ...


# --- Backups -----------------------------------------------------------------


class SourceConfig(BaseModel):
    type: str
    options: Dict[str, str] = Field(default_factory=dict)


class TargetConfig(BaseModel):
    dirname: Path
    filename: str
    compress: Optional[Literal["gzip", "bzip2", "xz"]] = None

    @field_validator("compress", mode="before")
    @classmethod
    def _empty_compress(cls, value: Any) -> Any:
        return value or None


class CheckConfig(BaseModel):
    type: str
    value: str


class CleanupConfig(BaseModel):
    type: Literal["quantity", "outdated"]
    options: Dict[str, str] = Field(default_factory=dict)


class BackupConfig(BaseModel):
    name: str
    stop_on_failure: bool = False
    source: SourceConfig
    target: TargetConfig
    checks: List[CheckConfig] = Field(default_factory=list)
    cleanup: Optional[CleanupConfig] = None


# --- Application -------------------------------------------------------------


class Configuration(BaseModel):
    """Validated application settings, adjusted by command-line overrides."""

    model_config = ConfigDict(validate_assignment=True)

    filename: Optional[Path] = None
    verbose: bool = False
    colors: bool = False
    debug: bool = False
    simulate: bool = False
    bootstrap: Optional[str] = None
    limit: List[str] = Field(default_factory=list)
    backups: List[BackupConfig] = Field(default_factory=list)

    _loggers: List[Logger] = PrivateAttr(default_factory=list)

    @field_validator("backups")
    @classmethod
    def _unique_names(cls, value: List[BackupConfig]) -> List[BackupConfig]:
        seen = set()
        for backup in value:
            if backup.name in seen:
                raise ValueError(f"Duplicate backup name '{backup.name}'.")
            seen.add(backup.name)
        return value

    def set_verbose(self, value: Any) -> None:
        self.verbose = bool(value)

    def set_colors(self, value: Any) -> None:
        self.colors = bool(value)

    def set_debug(self, value: Any) -> None:
        self.debug = bool(value)

    def set_simulate(self, value: Any) -> None:
        self.simulate = bool(value)

    def set_bootstrap(self, value: str) -> None:
        self.bootstrap = str(value)

    def set_limit(self, value: Iterable[str]) -> None:
        self.limit = list(value)

    def add_logger(self, logger: Logger) -> None:
        self._loggers.append(logger)

    @property
    def loggers(self) -> List[Logger]:
        return list(self._loggers)

    def is_simulation(self) -> bool:
        return self.simulate

    def is_backup_active(self, name: str) -> bool:
        return not self.limit or name in self.limit
