from __future__ import annotations

from enum import IntEnum
from typing import Protocol


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    EXCEPTION = 2


class RunOutcome(Protocol):
    def was_successful(self) -> bool:
        ...

    def error_count(self) -> int:
        ...


def exit_status(result: RunOutcome) -> ExitCode:
    """Map a finished backup run to the process exit status."""
    if result.was_successful():
        return ExitCode.SUCCESS
    if result.error_count() > 0:
        return ExitCode.EXCEPTION
    return ExitCode.FAILURE
