from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, TextIO

from .args import OptionToken
from .exit_codes import ExitCode
from .version import version_string

LOGO = r"""             __          __
      ____  / /_  ____  / /_  __  __
     / __ \/ __ \/ __ \/ __ \/ / / /
    / /_/ / / / / /_/ / /_/ / /_/ /
   / .___/_/ /_/ .___/_.___/\__,_/
  /_/         /_/
"""

HELP = """Usage: phpbu [option]

  --bootstrap=<file>       A Python file that is executed before the backup.
  --configuration=<file>   A phpbu config file or a directory containing one.
  --colors                 Use colors in output.
  --debug                  Display debugging information during backup generation.
  --include-path=<path(s)> Prepend to the Python import path.
  --limit=<subset>         Limit backup execution to a subset.
  --simulate               Perform a trial run with no changes made.
  -h, --help               Print this usage information.
  -v, --verbose            Output more verbose information.
  -V, --version            Output version information and exit.
"""

PACKAGED_HELP = """  --version-check          Check whether phpbu is the latest version.
  --self-upgrade           Upgrade phpbu to the latest version.
"""


class Terminal(Enum):
    HELP = "help"
    VERSION = "version"
    SELF_UPGRADE = "self-upgrade"
    VERSION_CHECK = "version-check"


_TERMINALS = {terminal.value: terminal for terminal in Terminal}


@dataclass(frozen=True)
class OverrideRecord:
    """Settings given on the command line; they take precedence over the config file."""

    bootstrap: Optional[str] = None
    colors: Optional[bool] = None
    configuration: Optional[str] = None
    debug: Optional[bool] = None
    include_path: Optional[str] = None
    limit: Optional[str] = None
    simulate: Optional[bool] = None
    verbose: Optional[bool] = None

    def get(self, key: str) -> Any:
        return getattr(self, _attribute(key))


OVERRIDE_KEYS = ("bootstrap", "colors", "configuration", "debug", "include-path", "limit", "simulate", "verbose")


def _attribute(key: str) -> str:
    if key not in OVERRIDE_KEYS:
        raise KeyError(key)
    return key.replace("-", "_")


@dataclass(frozen=True)
class Translation:
    overrides: OverrideRecord
    terminal: Optional[Terminal] = None


def translate_options(tokens: Iterable[OptionToken]) -> Translation:
    """Fold option tokens into an override record.

    Processing stops at the first help, version or self-maintenance option;
    options before it are kept, the rest are never looked at. Names that are
    not recognized are skipped.
    """
    values: Dict[str, Any] = {}
    terminal: Optional[Terminal] = None

    for token in tokens:
        if token.name in _TERMINALS:
            terminal = _TERMINALS[token.name]
            break
        if token.name == "verbose":
            values["verbose"] = True
        elif token.name in OVERRIDE_KEYS:
            values[_attribute(token.name)] = token.value

    return Translation(overrides=OverrideRecord(**values), terminal=terminal)


@dataclass
class Bootstrap:
    """Per-run state shared by the bootstrap steps."""

    packaged: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    version_printed: bool = False
    overrides: OverrideRecord = field(default_factory=OverrideRecord)

    def write(self, text: str = "") -> None:
        self.out.write(text + "\n")

    def print_version_string(self) -> None:
        if self.version_printed:
            return
        self.write(version_string())
        self.write()
        self.version_printed = True

    def print_logo(self) -> None:
        self.write(LOGO)

    def print_help(self) -> None:
        self.print_version_string()
        self.out.write(HELP)
        if self.packaged:
            self.out.write(PACKAGED_HELP)

    def print_error(self, message: str, hint: bool = False) -> ExitCode:
        suffix = ', use "phpbu -h" for help' if hint else ""
        self.print_version_string()
        self.write(message + suffix)
        return ExitCode.EXCEPTION
