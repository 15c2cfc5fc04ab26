"""
Sectioned key/value configuration sources.

Lookups never raise: a missing section or key, or a value that does not parse
as the requested type, returns the caller's default.
"""

from __future__ import annotations

import configparser
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ruletrader.exceptions import ConfigurationError
from ruletrader.logging import get_logger

logger = get_logger("config")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigSource(ABC):
    @abstractmethod
    def get_raw(self, section: str, key: str) -> Any | None:
        """Return the stored value or None when absent."""

    @abstractmethod
    def sections(self) -> list[str]: ...

    def has(self, section: str, key: str) -> bool:
        return self.get_raw(section, key) is not None

    def get_string(self, section: str, key: str, default: str | None = None) -> str | None:
        value = self.get_raw(section, key)
        if value is None:
            return default
        return str(value).strip()

    def get_int(self, section: str, key: str, default: int = 0) -> int:
        value = self.get_raw(section, key)
        if value is None or isinstance(value, bool):
            return default
        try:
            return int(str(value).strip())
        except ValueError:
            logger.debug(f"[{section}] {key}={value!r} is not an int, using {default}")
            return default

    def get_double(self, section: str, key: str, default: float = 0.0) -> float:
        value = self.get_raw(section, key)
        if value is None or isinstance(value, bool):
            return default
        try:
            return float(str(value).strip())
        except ValueError:
            logger.debug(f"[{section}] {key}={value!r} is not a number, using {default}")
            return default

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        value = self.get_raw(section, key)
        if isinstance(value, bool):
            return value
        if value is None:
            return default
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        return default


class DictConfigSource(ConfigSource):
    def __init__(self, data: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self.data: dict[str, dict[str, Any]] = {
            str(name): dict(values or {}) for name, values in (data or {}).items()
        }

    def get_raw(self, section: str, key: str) -> Any | None:
        return self.data.get(section, {}).get(key)

    def sections(self) -> list[str]:
        return list(self.data)

    def section(self, name: str) -> dict[str, Any]:
        return dict(self.data.get(name, {}))


class FileConfigSource(DictConfigSource):
    """YAML (top-level mappings are sections) or INI (``.ini``/``.cfg``) file."""

    INI_SUFFIXES = {".ini", ".cfg"}
    YAML_SUFFIXES = {".yaml", ".yml"}

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise ConfigurationError(
                f"Config file not found: {self.path}", {"path": str(self.path)}
            )
        suffix = self.path.suffix.lower()
        if suffix in self.INI_SUFFIXES:
            data = self._load_ini(self.path)
        else:
            data = self._load_yaml(self.path)
        super().__init__(data)
        logger.debug(f"Loaded config {self.path} with sections {self.sections()}")

    @staticmethod
    def _load_yaml(path: Path) -> dict[str, dict[str, Any]]:
        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path}: top level must be a mapping", {"path": str(path)})
        return {str(k): v for k, v in raw.items() if isinstance(v, dict)}

    @staticmethod
    def _load_ini(path: Path) -> dict[str, dict[str, Any]]:
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # keep key case
        try:
            parser.read(path)
        except configparser.Error as e:
            raise ConfigurationError(f"Invalid INI in {path}: {e}", {"path": str(path)}) from e
        return {name: dict(parser.items(name)) for name in parser.sections()}
