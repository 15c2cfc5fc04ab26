from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

import pandas as pd

from ruletrader.dataflow.bars import PriceBar, bars_from_dataframe, validate_ohlc
from ruletrader.exceptions import DataError
from ruletrader.logging import get_logger

logger = get_logger("data")


def qualified_symbol(code: str, exchange: str = "") -> str:
    return f"{code}.{exchange}" if exchange else code


def _as_iso(d: date | str | None) -> str | None:
    if d is None or isinstance(d, str):
        return d
    return d.isoformat()


class HistoricalDataSource(ABC):
    @abstractmethod
    def get_daily_bars(self, symbol: str, start: str | None, end: str | None) -> pd.DataFrame:
        """Return DataFrame with at least ['Open','High','Low','Close','Volume'] indexed by date."""

    def fetch_bars(
        self,
        code: str,
        exchange: str = "",
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> list[PriceBar] | None:
        """Load bars for one code as PriceBar objects.

        Missing or unusable data is not fatal: the failure is logged and None
        is returned so callers can skip the code.
        """
        symbol = qualified_symbol(code, exchange)
        try:
            df = self.get_daily_bars(symbol, _as_iso(start), _as_iso(end))
            if df is None or df.empty:
                logger.info(f"{symbol}: no bars between {start} and {end}")
                return None
            df.index = pd.to_datetime(df.index)
            validate_ohlc(df, symbol)
        except (DataError, OSError, ValueError, KeyError) as e:
            logger.warning(f"Skipping {symbol}: {e}")
            return None
        return bars_from_dataframe(df, code=code, exchange=exchange)
