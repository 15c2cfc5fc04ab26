from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

import pandas as pd

TRADE_COLUMNS = [
    "code",
    "exchange",
    "entry_date",
    "entry_price",
    "exit_date",
    "exit_price",
    "quantity",
    "pnl",
]


@dataclass(frozen=True)
class Position:
    """An open holding. Positive quantity is long, negative is short.

    ``stop_loss`` and ``take_profit`` are absolute price levels; 0 disables them.
    """

    code: str
    exchange: str
    quantity: int
    entry_price: float
    entry_date: date
    stop_loss: float = 0.0
    take_profit: float = 0.0

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0

    def market_value(self, price: float) -> float:
        return abs(self.quantity) * price

    def unrealized_pnl(self, price: float) -> float:
        return self.quantity * (price - self.entry_price)

    def should_stop_loss(self, price: float) -> bool:
        if self.stop_loss <= 0.0:
            return False
        return price <= self.stop_loss if self.is_long else price >= self.stop_loss

    def should_take_profit(self, price: float) -> bool:
        if self.take_profit <= 0.0:
            return False
        return price >= self.take_profit if self.is_long else price <= self.take_profit


@dataclass(frozen=True)
class ClosedTrade:
    code: str
    exchange: str
    quantity: int
    entry_price: float
    exit_price: float
    entry_date: date
    exit_date: date
    pnl: float

    @property
    def duration_days(self) -> int:
        return (self.exit_date - self.entry_date).days


@dataclass(frozen=True)
class EquityPoint:
    date: date
    equity: float


class Portfolio:
    """
    Cash, open positions (at most one per code), the closed-trade ledger and
    the equity curve for a single run.

    Only the execution functions mutate cash and positions; the backtest
    driver appends equity points.
    """

    def __init__(self, initial_capital: float) -> None:
        self.initial_capital = float(initial_capital)
        self.cash = float(initial_capital)
        self.positions: dict[str, Position] = {}
        self.trades: list[ClosedTrade] = []
        self.equity_curve: list[EquityPoint] = []

    # --- positions ---

    def has_position(self, code: str) -> bool:
        return code in self.positions

    def get_position(self, code: str) -> Position | None:
        return self.positions.get(code)

    def add_position(self, position: Position) -> None:
        # Re-entry replaces the previous holding for the code wholesale
        self.positions[position.code] = position

    def remove_position(self, code: str) -> Position | None:
        return self.positions.pop(code, None)

    @property
    def position_count(self) -> int:
        return len(self.positions)

    # --- ledgers ---

    def record_trade(self, trade: ClosedTrade) -> None:
        self.trades.append(trade)

    def record_equity(self, when: date, equity: float) -> None:
        self.equity_curve.append(EquityPoint(when, equity))

    def total_equity(self, prices: Mapping[str, float]) -> float:
        """Cash plus ``|qty| * price`` for every position that has a price."""
        total = self.cash
        for code, pos in self.positions.items():
            price = prices.get(code)
            if price is not None:
                total += pos.market_value(price)
        return total

    # --- views ---

    def to_trades_dataframe(self) -> pd.DataFrame:
        if not self.trades:
            return pd.DataFrame(columns=TRADE_COLUMNS)
        rows = [
            {
                "code": t.code,
                "exchange": t.exchange,
                "entry_date": pd.Timestamp(t.entry_date),
                "entry_price": t.entry_price,
                "exit_date": pd.Timestamp(t.exit_date),
                "exit_price": t.exit_price,
                "quantity": t.quantity,
                "pnl": t.pnl,
            }
            for t in self.trades
        ]
        return pd.DataFrame(rows, columns=TRADE_COLUMNS)

    def to_equity_series(self) -> pd.Series:
        if not self.equity_curve:
            return pd.Series(dtype=float, name="equity")
        return pd.Series(
            [p.equity for p in self.equity_curve],
            index=pd.DatetimeIndex([pd.Timestamp(p.date) for p in self.equity_curve], name="Date"),
            name="equity",
        )
