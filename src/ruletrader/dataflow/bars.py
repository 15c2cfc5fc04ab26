from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np
import pandas as pd

from ruletrader.exceptions import DataError
from ruletrader.logging import get_logger

logger = get_logger("data")

OHLC_COLUMNS = ["Open", "High", "Low", "Close"]
BAR_COLUMNS = [*OHLC_COLUMNS, "Volume"]


@dataclass(frozen=True)
class PriceBar:
    code: str
    exchange: str
    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


def _warn(msg: str) -> None:
    logger.warning(msg)


def validate_ohlc(df: pd.DataFrame, symbol: str) -> pd.DataFrame:
    """Reject frames the engine cannot trust; warn on suspicious but usable data."""
    if df.empty:
        raise DataError(f"{symbol}: empty DataFrame", {"symbol": symbol})

    if not isinstance(df.index, pd.DatetimeIndex):
        raise DataError(f"{symbol}: index must be DatetimeIndex, got {type(df.index)}")
    if not df.index.is_monotonic_increasing:
        raise DataError(f"{symbol}: DatetimeIndex is not sorted ascending")
    if df.index.has_duplicates:
        dupes = df.index[df.index.duplicated()].unique()
        raise DataError(
            f"{symbol}: duplicate dates found ({len(dupes)})",
            {"symbol": symbol, "first": str(dupes[0].date())},
        )

    missing = [c for c in OHLC_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"{symbol}: missing required columns: {missing}")

    nan_ct = int(df[OHLC_COLUMNS].isna().sum().sum())
    if nan_ct > 0:
        raise DataError(f"{symbol}: NaNs in OHLC ({nan_ct})")

    o = df["Open"].astype(float).to_numpy()
    h = df["High"].astype(float).to_numpy()
    low = df["Low"].astype(float).to_numpy()
    c = df["Close"].astype(float).to_numpy()
    if bool((h < np.maximum(o, c)).any()) or bool((low > np.minimum(o, c)).any()):
        raise DataError(f"{symbol}: invalid OHLC bounds")

    for col in OHLC_COLUMNS:
        if (df[col] <= 0).any():
            _warn(f"{symbol}: non-positive values found in {col}")
    if "Volume" in df.columns and (df["Volume"] < 0).any():
        _warn(f"{symbol}: negative Volume values found")

    return df


def bars_from_dataframe(df: pd.DataFrame, code: str, exchange: str = "") -> list[PriceBar]:
    """Convert an OHLCV frame indexed by date into an ordered list of bars.

    A missing Volume column is read as zero volume.
    """
    frame = df.copy()
    frame.index = pd.to_datetime(frame.index)
    frame = frame.sort_index()
    volume = (
        frame["Volume"].fillna(0).astype("int64")
        if "Volume" in frame.columns
        else pd.Series(0, index=frame.index, dtype="int64")
    )
    return [
        PriceBar(
            code=code,
            exchange=exchange,
            date=ts.date(),
            open=float(row.Open),
            high=float(row.High),
            low=float(row.Low),
            close=float(row.Close),
            volume=int(vol),
        )
        for ts, row, vol in zip(frame.index, frame[OHLC_COLUMNS].itertuples(), volume)
    ]


def bars_to_dataframe(bars: Sequence[PriceBar]) -> pd.DataFrame:
    if not bars:
        return pd.DataFrame(columns=BAR_COLUMNS, index=pd.DatetimeIndex([], name="Date"))
    df = pd.DataFrame(
        {
            "Open": [b.open for b in bars],
            "High": [b.high for b in bars],
            "Low": [b.low for b in bars],
            "Close": [b.close for b in bars],
            "Volume": [b.volume for b in bars],
        },
        index=pd.DatetimeIndex([pd.Timestamp(b.date) for b in bars], name="Date"),
    )
    return df
