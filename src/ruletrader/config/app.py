from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")


class DataConfig(BaseModel):
    data_dir: Path = Field(default=Path("data"), description="Directory holding <CODE>.csv files")


class AppConfig(BaseModel):
    """Process-wide settings that are not specific to one backtest."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    data: DataConfig = Field(default_factory=DataConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> AppConfig:
        config_dict: dict[str, Any] = {}
        if config_path and config_path.exists():
            with open(config_path) as f:
                raw = yaml.safe_load(f) or {}
            config_dict = {k: v for k, v in raw.items() if k in cls.model_fields}

        if log_level := os.getenv("LOG_LEVEL"):
            config_dict.setdefault("logging", {})["level"] = log_level.upper()
        if data_dir := os.getenv("RULETRADER_DATA_DIR"):
            config_dict.setdefault("data", {})["data_dir"] = data_dir

        return cls(**config_dict)


# Singleton instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration, loading it from ``RULETRADER_CONFIG`` on first use."""
    global _config
    if _config is None:
        path = os.getenv("RULETRADER_CONFIG")
        _config = AppConfig.load(Path(path) if path else None)
    return _config


def set_config(config: AppConfig | None) -> None:
    global _config
    _config = config


def reload_config() -> AppConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
