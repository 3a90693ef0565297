from __future__ import annotations

from typing import TYPE_CHECKING, Optional, TextIO

from rich.console import Console

if TYPE_CHECKING:  # pragma: no cover
    from .configuration import BackupConfig, Configuration
    from .runner import Result

SUCCESS_STYLE = "black on green"
FAILURE_STYLE = "white on red"
NOTICE_STYLE = "black on yellow"


class PrinterCli:
    """Writes human readable progress and the final summary to the console."""

    def __init__(self, verbose: bool = False, colors: bool = False, debug: bool = False, stream: Optional[TextIO] = None) -> None:
        self.verbose = verbose
        self.colors = colors
        self.debug_enabled = debug
        # --colors forces styling even when stdout is not a terminal
        self.console = Console(
            file=stream,
            force_terminal=True if colors else None,
            color_system="standard" if colors else None,
            no_color=not colors,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )

    def run_start(self, configuration: "Configuration") -> None:
        if self.verbose and configuration.filename:
            self._write(f"Configuration read from {configuration.filename}")
            self._write("")
        if configuration.is_simulation():
            self._write("Simulation mode: no backups will be written.", NOTICE_STYLE)

    def backup_start(self, backup: "BackupConfig") -> None:
        if self.verbose:
            self._write(f"backup: [{backup.source.type}] {backup.name}")

    def backup_end(self, backup: "BackupConfig", status: str) -> None:
        if self.verbose:
            self._write(f"  {status}")

    def check_failed(self, backup: "BackupConfig", message: str) -> None:
        self._write(f"check failed for {backup.name}: {message}", FAILURE_STYLE)

    def debug(self, message: str) -> None:
        if self.debug_enabled:
            self._write(message)

    def run_end(self, result: "Result") -> None:
        total = len(result.backups)
        if result.was_successful():
            self._write(f"OK ({total} backup{'s' if total != 1 else ''})", SUCCESS_STYLE)
            return
        for backup in result.backups:
            for error in backup.errors:
                self._write(f"{backup.name}: {error}")
        summary = f"FAILURE! backups: {total}, failed: {result.failure_count()}, errors: {result.error_count()}"
        self._write(summary, FAILURE_STYLE)

    def _write(self, text: str, style: Optional[str] = None) -> None:
        self.console.print(text, style=style if self.colors else None)
