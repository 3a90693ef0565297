from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from xml.etree import ElementTree as ET

import yaml
from pydantic import ValidationError

from .configuration import Configuration

LOG = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or is invalid."""


class Loader:
    """Turns a configuration document into a :class:`Configuration`."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Configuration:
        if not self.path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.path}")

        raw = self._read()
        try:
            configuration = Configuration.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration {self.path}: {exc}") from exc

        configuration.filename = self.path
        self._resolve_paths(configuration)
        LOG.debug("Loaded %d backup(s) from %s", len(configuration.backups), self.path)
        return configuration

    def _read(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _resolve_paths(self, configuration: Configuration) -> None:
        base = self.path.parent
        if configuration.bootstrap:
            configuration.bootstrap = str(_relative_to(base, configuration.bootstrap))
        for backup in configuration.backups:
            backup.target.dirname = _relative_to(base, str(backup.target.dirname))
            if "path" in backup.source.options:
                backup.source.options["path"] = str(_relative_to(base, backup.source.options["path"]))


class JsonLoader(Loader):
    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in {self.path}: {exc}") from exc
        return _require_mapping(raw, self.path)


class YamlLoader(Loader):
    def _read(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {self.path}: {exc}") from exc
        return _require_mapping(raw, self.path)


class XmlLoader(Loader):
    def _read(self) -> Dict[str, Any]:
        try:
            root = ET.parse(self.path).getroot()
        except ET.ParseError as exc:
            raise ConfigurationError(f"Invalid XML in {self.path}: {exc}") from exc
        if root.tag != "phpbu":
            raise ConfigurationError(f"Root element must be <phpbu>, found <{root.tag}>")

        raw: Dict[str, Any] = {}
        for flag in ("verbose", "colors", "debug"):
            if flag in root.attrib:
                raw[flag] = _as_bool(root.attrib[flag])
        if root.attrib.get("bootstrap"):
            raw["bootstrap"] = root.attrib["bootstrap"]

        backups = root.find("backups")
        raw["backups"] = [_parse_backup(node) for node in backups.findall("backup")] if backups is not None else []
        return raw


def _parse_backup(node: ET.Element) -> Dict[str, Any]:
    source = node.find("source")
    target = node.find("target")
    if source is None or target is None:
        raise ConfigurationError(f"Backup '{node.get('name', '')}' requires a source and a target")

    backup: Dict[str, Any] = {
        "name": node.get("name", ""),
        "stop_on_failure": _as_bool(node.get("stopOnFailure", "false")),
        "source": {"type": source.get("type", ""), "options": _parse_options(source)},
        "target": {
            "dirname": target.get("dirname", ""),
            "filename": target.get("filename", ""),
            "compress": target.get("compress"),
        },
        "checks": [{"type": check.get("type", ""), "value": check.get("value", "")} for check in node.findall("check")],
    }
    cleanup = node.find("cleanup")
    if cleanup is not None:
        backup["cleanup"] = {"type": cleanup.get("type", ""), "options": _parse_options(cleanup)}
    return backup


def _parse_options(node: ET.Element) -> Dict[str, str]:
    return {option.get("name", ""): option.get("value", "") for option in node.findall("option")}


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


def _relative_to(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path


def _require_mapping(raw: Any, path: Path) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration {path} must contain a mapping at top level")
    return raw


_LOADERS: Dict[str, type] = {
    ".json": JsonLoader,
    ".yml": YamlLoader,
    ".yaml": YamlLoader,
}


def create_loader(path: Path) -> Loader:
    """Pick a loader by file extension, ignoring a trailing ``.dist``."""
    suffixes: List[str] = [suffix.lower() for suffix in path.suffixes]
    if suffixes and suffixes[-1] == ".dist":
        suffixes = suffixes[:-1]
    extension = suffixes[-1] if suffixes else ""
    return _LOADERS.get(extension, XmlLoader)(path)
