from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from ruletrader.dataflow.bars import PriceBar
from ruletrader.indicators.base import IndicatorSeries, IndicatorSpec
from ruletrader.indicators.engine import compute_indicators


@dataclass
class InstrumentData:
    """Bars and pre-computed indicators for one code, plus a date -> bar index map."""

    code: str
    exchange: str
    bars: list[PriceBar]
    indicators: dict[str, IndicatorSeries] = field(default_factory=dict)
    date_index: dict[date, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.date_index:
            self.date_index = {bar.date: i for i, bar in enumerate(self.bars)}

    def index_of(self, when: date) -> int | None:
        return self.date_index.get(when)

    @property
    def first_date(self) -> date | None:
        return self.bars[0].date if self.bars else None

    @property
    def last_date(self) -> date | None:
        return self.bars[-1].date if self.bars else None


def build_instrument_data(
    bars: Sequence[PriceBar],
    specs: Iterable[IndicatorSpec],
    code: str | None = None,
    exchange: str | None = None,
) -> InstrumentData | None:
    if not bars:
        return None
    return InstrumentData(
        code=code if code is not None else bars[0].code,
        exchange=exchange if exchange is not None else bars[0].exchange,
        bars=list(bars),
        indicators=compute_indicators(bars, specs),
    )


def build_unified_timeline(instruments: Iterable[InstrumentData]) -> list[date]:
    """Sorted union of every instrument's bar dates, without duplicates."""
    dates: set[date] = set()
    for inst in instruments:
        dates.update(inst.date_index)
    return sorted(dates)
