from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from ruletrader.dataflow.base import HistoricalDataSource
from ruletrader.exceptions import NoDataError
from ruletrader.logging import get_logger

logger = get_logger("data")

_COLUMN_ALIASES = {
    "date": "Date",
    "open": "Open",
    "high": "High",
    "low": "Low",
    "close": "Close",
    "volume": "Volume",
}


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    renames = {c: _COLUMN_ALIASES.get(str(c).strip().lower(), c) for c in df.columns}
    return df.rename(columns=renames)


def slice_dates(df: pd.DataFrame, start: str | None, end: str | None) -> pd.DataFrame:
    if start:
        df = df.loc[df.index >= pd.Timestamp(start)]
    if end:
        df = df.loc[df.index <= pd.Timestamp(end)]
    return df


@dataclass
class CsvDataSource(HistoricalDataSource):
    """Daily bars from ``<CODE>.<EXCHANGE>.csv`` (or ``<CODE>.csv``) files in one directory."""

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def path_for(self, symbol: str) -> Path | None:
        candidates = [symbol.upper()]
        if "." in symbol:
            candidates.append(symbol.rsplit(".", 1)[0].upper())
        for name in candidates:
            path = self.directory / f"{name}.csv"
            if path.exists():
                return path
        return None

    def get_daily_bars(
        self, symbol: str, start: str | None = None, end: str | None = None
    ) -> pd.DataFrame:
        path = self.path_for(symbol)
        if path is None:
            raise NoDataError(f"{symbol}: no CSV file in {self.directory}", {"symbol": symbol})

        logger.debug(f"Reading {symbol} from {path}")
        df = _normalize_columns(pd.read_csv(path))
        if "Date" not in df.columns:
            raise NoDataError(f"{path.name}: missing Date column", {"symbol": symbol})
        df["Date"] = pd.to_datetime(df["Date"])
        df = df.set_index("Date").sort_index()
        return slice_dates(df, start, end)
