from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence, TextIO

from .args import ArgumentError, parse_options
from .assembler import create_configuration
from .bootstrap import Bootstrap, Terminal, translate_options
from .configuration import Configuration
from .exit_codes import ExitCode, exit_status
from .locator import locate_configuration
from .logger import configure_logging, get_logger
from .runner import Result, Runner
from .self_update import SelfUpdater, running_archive

LOG = get_logger(__name__)

RunnerFactory = Callable[[], Runner]
UpdaterFactory = Callable[[Bootstrap], SelfUpdater]


def _default_updater(context: Bootstrap) -> SelfUpdater:
    executable = running_archive() or Path(sys.argv[0]).resolve()
    return SelfUpdater(executable, out=context.out)


class Cmd:
    """Command line entry point: arguments, configuration, then the runner."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        packaged: Optional[bool] = None,
        cwd: Optional[Path] = None,
        runner_factory: RunnerFactory = Runner,
        updater_factory: UpdaterFactory = _default_updater,
    ) -> None:
        self.context = Bootstrap(
            packaged=running_archive() is not None if packaged is None else packaged,
            out=out if out is not None else sys.stdout,
        )
        self._cwd = cwd
        self._runner_factory = runner_factory
        self._updater_factory = updater_factory

    def run(self, argv: Sequence[str]) -> int:
        context = self.context
        try:
            tokens = parse_options(argv, packaged=context.packaged)
        except ArgumentError as exc:
            return context.print_error(str(exc), hint=True)

        translation = translate_options(tokens)
        context.overrides = translation.overrides
        if translation.terminal is not None:
            return self._handle_terminal(translation.terminal)

        path = locate_configuration(context.overrides.configuration, self._cwd or Path.cwd())
        if path is None:
            context.print_logo()
            context.print_help()
            return ExitCode.EXCEPTION

        try:
            context.print_version_string()
            configuration = create_configuration(path, context.overrides, stream=context.out)
            self._prepare_environment(configuration)
            result: Result = self._runner_factory().run(configuration)
            return exit_status(result)
        except Exception as exc:  # noqa: BLE001
            LOG.debug("Backup run aborted", exc_info=True)
            context.write(str(exc))
            return ExitCode.EXCEPTION

    def _handle_terminal(self, terminal: Terminal) -> int:
        context = self.context
        if terminal is Terminal.HELP:
            context.print_help()
            return ExitCode.SUCCESS
        context.print_version_string()
        if terminal is Terminal.VERSION:
            return ExitCode.SUCCESS

        try:
            updater = self._updater_factory(context)
            if terminal is Terminal.VERSION_CHECK:
                return updater.version_check()
            return updater.upgrade()
        except Exception as exc:  # noqa: BLE001
            LOG.debug("Self-update aborted", exc_info=True)
            context.write(str(exc))
            return ExitCode.EXCEPTION

    def _prepare_environment(self, configuration: Configuration) -> None:
        if configuration.debug:
            logging.getLogger().setLevel(logging.DEBUG)
        include_path = self.context.overrides.include_path
        if include_path:
            for entry in reversed(include_path.split(os.pathsep)):
                if entry and entry not in sys.path:
                    sys.path.insert(0, entry)


def main(argv: Optional[Sequence[str]] = None) -> None:
    configure_logging()
    sys.exit(Cmd().run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    main()
