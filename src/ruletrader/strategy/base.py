from __future__ import annotations

from dataclasses import dataclass

from ruletrader.exceptions import RuleInvalidError
from ruletrader.indicators.base import IndicatorSpec
from ruletrader.rules.ast import Rule, collect_indicator_specs


@dataclass(frozen=True)
class Strategy:
    """
    A rule-based strategy: entry/exit rules plus sizing and risk settings.

    Long rules are required; short rules are optional and only used when the
    backtest allows shorting. Percentages are whole-number percents (5.0 = 5%).
    """

    name: str
    entry_long: Rule
    exit_long: Rule
    entry_short: Rule | None = None
    exit_short: Rule | None = None
    description: str = ""
    position_size: float = 0.25
    stop_loss_pct: float = 0.0
    take_profit_pct: float = 0.0
    max_positions: int = 1

    def __post_init__(self) -> None:
        for name in ("entry_long", "exit_long"):
            if getattr(self, name) is None:
                raise RuleInvalidError(f"{self.name}: {name} rule is required", {"rule": name})
        if not 0.0 < self.position_size <= 1.0:
            raise RuleInvalidError(
                f"{self.name}: position_size must be in (0, 1], got {self.position_size}",
                {"position_size": self.position_size},
            )
        if self.max_positions < 1:
            raise RuleInvalidError(
                f"{self.name}: max_positions must be at least 1, got {self.max_positions}",
                {"max_positions": self.max_positions},
            )
        if self.stop_loss_pct < 0 or self.take_profit_pct < 0:
            raise RuleInvalidError(
                f"{self.name}: stop-loss and take-profit percentages cannot be negative",
                {"stop_loss_pct": self.stop_loss_pct, "take_profit_pct": self.take_profit_pct},
            )

    @property
    def supports_short(self) -> bool:
        return self.entry_short is not None

    def rules(self) -> tuple[Rule | None, ...]:
        return (self.entry_long, self.exit_long, self.entry_short, self.exit_short)

    def indicator_specs(self) -> list[IndicatorSpec]:
        """Every indicator any rule references, in first-seen order."""
        return collect_indicator_specs(self.rules())
