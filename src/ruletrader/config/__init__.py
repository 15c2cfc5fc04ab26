from ruletrader.config.app import (
    AppConfig,
    DataConfig,
    LoggingConfig,
    LogLevel,
    get_config,
    reload_config,
    set_config,
)
from ruletrader.config.settings import (
    BacktestSettings,
    StrategySettings,
    build_strategy,
    load_backtest_settings,
    load_strategy,
    load_strategy_settings,
)
from ruletrader.config.sources import ConfigSource, DictConfigSource, FileConfigSource

__all__ = [
    "AppConfig",
    "BacktestSettings",
    "ConfigSource",
    "DataConfig",
    "DictConfigSource",
    "FileConfigSource",
    "LogLevel",
    "LoggingConfig",
    "StrategySettings",
    "build_strategy",
    "get_config",
    "load_backtest_settings",
    "load_strategy",
    "load_strategy_settings",
    "reload_config",
    "set_config",
]
