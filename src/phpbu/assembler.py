from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO

from .bootstrap import OverrideRecord
from .configuration import Configuration
from .loader import create_loader
from .printer import PrinterCli

LOG = logging.getLogger(__name__)

Setter = Callable[[Configuration, Any], None]

# command line arguments overrule the config file settings
OVERRIDE_SETTERS: Dict[str, Setter] = {
    "verbose": Configuration.set_verbose,
    "colors": Configuration.set_colors,
    "debug": Configuration.set_debug,
    "simulate": Configuration.set_simulate,
    "bootstrap": Configuration.set_bootstrap,
}


def apply_overrides(configuration: Configuration, overrides: OverrideRecord) -> None:
    for key, setter in OVERRIDE_SETTERS.items():
        value = overrides.get(key)
        if value:
            LOG.debug("Command line overrides %s=%r", key, value)
            setter(configuration, value)
    configuration.set_limit(parse_limit(overrides.limit))


def parse_limit(value: Optional[str]) -> List[str]:
    return value.split(",") if value else []


def create_configuration(path: Path, overrides: OverrideRecord, stream: Optional[TextIO] = None) -> Configuration:
    """Load ``path`` and apply the command line overrides on top of it."""
    configuration = create_loader(path).load()
    apply_overrides(configuration, overrides)
    configuration.add_logger(
        PrinterCli(
            configuration.verbose,
            configuration.colors,
            configuration.debug or configuration.is_simulation(),
            stream=stream,
        )
    )
    return configuration
