from __future__ import annotations

import argparse
from typing import Any, List, NamedTuple, NoReturn, Optional, Sequence, Union

TOKENS_DEST = "tokens"


class ArgumentError(Exception):
    """Raised when the command line cannot be tokenized."""


class OptionToken(NamedTuple):
    name: str
    value: Union[str, bool, None]


class _TokenAction(argparse.Action):
    """Record every option occurrence in command-line order."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: Optional[str] = None,
    ) -> None:
        tokens: List[OptionToken] = getattr(namespace, TOKENS_DEST)
        if self.nargs == 0:
            value: Union[str, bool, None] = True
        else:
            value = values
        tokens.append(OptionToken(self.dest, value))


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise ArgumentError(message)


def build_parser(packaged: bool = False) -> argparse.ArgumentParser:
    parser = _Parser(prog="phpbu", add_help=False, allow_abbrev=False)

    def _value(*flags: str, dest: str) -> None:
        parser.add_argument(*flags, dest=dest, action=_TokenAction, default=argparse.SUPPRESS)

    def _flag(*flags: str, dest: str) -> None:
        parser.add_argument(*flags, dest=dest, action=_TokenAction, nargs=0, default=argparse.SUPPRESS)

    _value("--bootstrap", dest="bootstrap")
    _flag("--colors", dest="colors")
    _value("--configuration", dest="configuration")
    _flag("--debug", dest="debug")
    _value("--include-path", dest="include-path")
    _value("--limit", dest="limit")
    _flag("--simulate", dest="simulate")
    _flag("-h", "--help", dest="help")
    # verbose is a presence flag; a trailing value is swallowed and ignored
    parser.add_argument(
        "-v", "--verbose", dest="verbose", action=_TokenAction, nargs="?", default=argparse.SUPPRESS
    )
    _flag("-V", "--version", dest="version")
    if packaged:
        _flag("--self-upgrade", dest="self-upgrade")
        _flag("--version-check", dest="version-check")
    return parser


def parse_options(argv: Sequence[str], packaged: bool = False) -> List[OptionToken]:
    """Tokenize ``argv`` (without the program name) into ordered option tokens."""
    parser = build_parser(packaged)
    namespace = argparse.Namespace(**{TOKENS_DEST: []})
    parser.parse_args(list(argv), namespace=namespace)
    return list(getattr(namespace, TOKENS_DEST))
