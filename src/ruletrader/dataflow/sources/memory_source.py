from __future__ import annotations

import pandas as pd

from ruletrader.dataflow.base import HistoricalDataSource
from ruletrader.dataflow.sources.csv_source import slice_dates


class InMemoryDataSource(HistoricalDataSource):
    """Serves pre-built frames keyed by symbol (``CODE`` or ``CODE.EXCHANGE``)."""

    def __init__(self, frames: dict[str, pd.DataFrame] | None = None) -> None:
        self.frames: dict[str, pd.DataFrame] = {}
        for symbol, df in (frames or {}).items():
            self.add(symbol, df)

    def add(self, symbol: str, df: pd.DataFrame) -> None:
        frame = df.copy()
        frame.index = pd.to_datetime(frame.index)
        self.frames[symbol.upper()] = frame.sort_index()

    def get_daily_bars(
        self, symbol: str, start: str | None = None, end: str | None = None
    ) -> pd.DataFrame:
        key = symbol.upper()
        if key not in self.frames and "." in key:
            key = key.rsplit(".", 1)[0]
        df = self.frames.get(key)
        if df is None:
            return pd.DataFrame()
        return slice_dates(df.copy(), start, end)
