"""
Typed backtest and strategy settings read from a ConfigSource.

Values come from the ``[backtest]`` and ``[strategy]`` sections. Pydantic
validation failures surface as ConfigMissingError / ConfigInvalidError naming
the offending key.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, NoReturn

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from ruletrader.backtest.engine import BacktestConfig
from ruletrader.backtest.universe import parse_codes
from ruletrader.config.sources import ConfigSource
from ruletrader.exceptions import (
    ConfigInvalidError,
    ConfigMissingError,
    RuleParseError,
    UniverseError,
)
from ruletrader.logging import get_logger
from ruletrader.rules.ast import Rule
from ruletrader.rules.parser import parse_rule
from ruletrader.strategy.base import Strategy

logger = get_logger("config")

BACKTEST_SECTION = "backtest"
STRATEGY_SECTION = "strategy"


class BacktestSettings(BaseModel):
    start_date: date
    end_date: date
    initial_capital: float = Field(default=100_000.0, gt=0)
    commission_per_trade: float = Field(default=0.0, ge=0)
    commission_pct: float = Field(default=0.0, ge=0)
    slippage_pct: float = Field(default=0.0, ge=0)
    allow_shorting: bool = False
    risk_free_rate: float = Field(default=0.05, ge=0, lt=1)
    exchange: str = Field(min_length=1)
    codes: list[str] = Field(min_length=1)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_iso_date(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return datetime.strptime(v.strip(), "%Y-%m-%d").date()
            except ValueError:
                raise ValueError(f"expected YYYY-MM-DD, got {v!r}") from None
        return v

    @field_validator("exchange")
    @classmethod
    def normalize_exchange(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("codes", mode="before")
    @classmethod
    def split_codes(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return parse_codes(v)
            except UniverseError as e:
                raise ValueError(e.message) from None
        return v

    @field_validator("end_date")
    @classmethod
    def check_after_start(cls, v: date, info: ValidationInfo) -> date:
        start = info.data.get("start_date")
        if start is not None and v <= start:
            raise ValueError("end_date must be after start_date")
        return v

    def to_backtest_config(self) -> BacktestConfig:
        return BacktestConfig(
            initial_capital=self.initial_capital,
            commission_flat=self.commission_per_trade,
            commission_pct=self.commission_pct,
            slippage_pct=self.slippage_pct,
            allow_shorting=self.allow_shorting,
            risk_free_rate=self.risk_free_rate,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class StrategySettings(BaseModel):
    name: str = "Unnamed"
    description: str = ""
    entry_long: str = Field(min_length=1)
    exit_long: str = Field(min_length=1)
    entry_short: str | None = None
    exit_short: str | None = None
    position_size: float = Field(default=0.25, gt=0, le=1)
    stop_loss: float = Field(default=0.0, ge=0)
    take_profit: float = Field(default=0.0, ge=0)
    max_positions: int = Field(default=1, ge=1)


def _raise_config_error(section: str, err: ValidationError) -> NoReturn:
    first = err.errors()[0]
    key = ".".join(str(p) for p in first["loc"]) or "(section)"
    if first["type"] == "missing":
        raise ConfigMissingError(section, key) from None
    raise ConfigInvalidError(section, key, first["msg"]) from None


def _collect(source: ConfigSource, section: str, fields: dict[str, str]) -> dict[str, Any]:
    # fields maps key -> getter kind; absent keys are left to model defaults
    getters = {
        "str": source.get_string,
        "float": source.get_double,
        "int": source.get_int,
        "bool": source.get_bool,
    }
    raw: dict[str, Any] = {}
    for key, kind in fields.items():
        if source.has(section, key):
            raw[key] = getters[kind](section, key, None)
    return raw


def load_backtest_settings(
    source: ConfigSource,
    codes: str | None = None,
    exchange: str | None = None,
) -> BacktestSettings:
    """Read ``[backtest]``; ``codes``/``exchange`` override the file when given."""
    raw = _collect(
        source,
        BACKTEST_SECTION,
        {
            "start_date": "str",
            "end_date": "str",
            "exchange": "str",
            "initial_capital": "float",
            "commission_per_trade": "float",
            "commission_pct": "float",
            "slippage_pct": "float",
            "risk_free_rate": "float",
            "allow_shorting": "bool",
        },
    )
    # Unparseable numbers fall back to the model default
    raw = {k: v for k, v in raw.items() if v is not None}

    code_text = codes or source.get_string(BACKTEST_SECTION, "codes") or source.get_string(
        BACKTEST_SECTION, "code"
    )
    if code_text is not None:
        raw["codes"] = code_text
    if exchange:
        raw["exchange"] = exchange

    try:
        return BacktestSettings(**raw)
    except ValidationError as e:
        _raise_config_error(BACKTEST_SECTION, e)


def load_strategy_settings(source: ConfigSource) -> StrategySettings:
    raw = _collect(
        source,
        STRATEGY_SECTION,
        {
            "name": "str",
            "description": "str",
            "entry_long": "str",
            "exit_long": "str",
            "entry_short": "str",
            "exit_short": "str",
            "position_size": "float",
            "stop_loss": "float",
            "take_profit": "float",
            "max_positions": "int",
        },
    )
    raw = {k: v for k, v in raw.items() if v is not None and v != ""}
    try:
        return StrategySettings(**raw)
    except ValidationError as e:
        _raise_config_error(STRATEGY_SECTION, e)


def _parse_named(name: str, text: str) -> Rule:
    try:
        return parse_rule(text)
    except RuleParseError as e:
        e.details.update({"rule": name, "text": text})
        logger.error(f"Failed to parse {name}: {e.message}")
        raise


def build_strategy(settings: StrategySettings) -> Strategy:
    """Parse every rule in ``settings``; any parse failure raises RuleParseError."""
    return Strategy(
        name=settings.name,
        description=settings.description,
        entry_long=_parse_named("entry_long", settings.entry_long),
        exit_long=_parse_named("exit_long", settings.exit_long),
        entry_short=(
            _parse_named("entry_short", settings.entry_short) if settings.entry_short else None
        ),
        exit_short=(
            _parse_named("exit_short", settings.exit_short) if settings.exit_short else None
        ),
        position_size=settings.position_size,
        stop_loss_pct=settings.stop_loss,
        take_profit_pct=settings.take_profit,
        max_positions=settings.max_positions,
    )


def load_strategy(source: ConfigSource) -> Strategy:
    return build_strategy(load_strategy_settings(source))
