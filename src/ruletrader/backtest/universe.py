from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ruletrader.dataflow.bars import PriceBar
from ruletrader.dataflow.base import HistoricalDataSource
from ruletrader.exceptions import (
    AllCodesFailedError,
    DuplicateCodeError,
    EmptyCodeTokenError,
    InsufficientDataError,
    NoDataError,
)
from ruletrader.logging import get_logger

logger = get_logger("universe")

MIN_BARS = 30


@dataclass(frozen=True)
class SkippedCode:
    code: str
    bar_count: int
    reason: str


@dataclass
class Universe:
    exchange: str
    codes: list[str]
    bars: dict[str, list[PriceBar]] = field(default_factory=dict)
    skipped: list[SkippedCode] = field(default_factory=list)


def parse_codes(text: str) -> list[str]:
    """Split a comma-separated code list into trimmed, upper-cased codes.

    Empty entries and duplicates are errors.
    """
    if text is None or not text.strip():
        raise EmptyCodeTokenError(0)
    codes: list[str] = []
    for position, token in enumerate(text.split(",")):
        code = token.strip().upper()
        if not code:
            raise EmptyCodeTokenError(position)
        if code in codes:
            raise DuplicateCodeError(code)
        codes.append(code)
    return codes


def require_bars(
    code: str, bars: list[PriceBar] | None, min_bars: int = MIN_BARS
) -> list[PriceBar]:
    """Return ``bars`` if there are at least ``min_bars`` of them, else raise."""
    count = len(bars) if bars else 0
    if count == 0:
        raise NoDataError("no data", {"code": code})
    if count < min_bars:
        raise InsufficientDataError(
            f"{count} bars, minimum {min_bars} required",
            {"code": code, "bars": count, "min_bars": min_bars},
        )
    return bars


def validate_universe(
    source: HistoricalDataSource,
    codes: list[str],
    exchange: str,
    start: date | str | None = None,
    end: date | str | None = None,
    min_bars: int = MIN_BARS,
) -> Universe:
    """Fetch every code and keep those with at least ``min_bars`` bars."""
    universe = Universe(exchange=exchange, codes=[])
    for code in codes:
        bars = source.fetch_bars(code, exchange, start, end)
        try:
            universe.bars[code] = require_bars(code, bars, min_bars)
        except (NoDataError, InsufficientDataError) as e:
            logger.warning(f"Skipping {code}.{exchange}: {e.message}")
            universe.skipped.append(SkippedCode(code, len(bars) if bars else 0, e.message))
            continue
        universe.codes.append(code)

    if not universe.codes:
        raise AllCodesFailedError(
            f"No valid codes in universe ({len(codes)} requested)",
            {"skipped": [s.code for s in universe.skipped]},
        )
    logger.info(f"Universe {exchange}: {len(universe.codes)} of {len(codes)} codes usable")
    return universe
