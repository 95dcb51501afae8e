# stats.py
"""Aggregate performance metrics over a trade collection.

Everything here is a pure function of its arguments: no module state, no I/O.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional
import datetime
import math

from models import TradeRecord, parse_number


class Period(str, Enum):
    ALL = "all"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class TradeStats:
    total_trades: int = 0
    win_rate: float = 0.0
    total_profit: float = 0.0

    def as_dict(self) -> dict:
        return {
            "totalTrades": self.total_trades,
            "winRate": self.win_rate,
            "totalProfit": self.total_profit,
        }


def _record_date(record: TradeRecord) -> Optional[datetime.date]:
    try:
        return datetime.date.fromisoformat(record.date)
    except (TypeError, ValueError):
        return None


def in_period(day: datetime.date, period: Period, today: datetime.date) -> bool:
    if period == Period.ALL:
        return True
    if period == Period.DAY:
        return day == today
    if period == Period.WEEK:
        return day.isocalendar()[:2] == today.isocalendar()[:2]
    if period == Period.MONTH:
        return (day.year, day.month) == (today.year, today.month)
    if period == Period.YEAR:
        return day.year == today.year
    raise ValueError(f"Unknown period {period!r}")


def filter_by_period(
    records: Iterable[TradeRecord],
    period=Period.ALL,
    today: Optional[datetime.date] = None,
) -> List[TradeRecord]:
    period = Period(period)
    if period == Period.ALL:
        return list(records)
    today = today or datetime.date.today()
    selected = []
    for r in records:
        day = _record_date(r)
        # undated records only count towards "all"
        if day is not None and in_period(day, period, today):
            selected.append(r)
    return selected


def _value(record: TradeRecord) -> float:
    return parse_number(record.result) or 0.0


def count_winners(records: Iterable[TradeRecord]) -> int:
    return sum(1 for r in records if _value(r) > 0)


def compute_stats(
    records: Iterable[TradeRecord],
    period=Period.ALL,
    today: Optional[datetime.date] = None,
) -> TradeStats:
    scoped = filter_by_period(records, period, today)
    total = len(scoped)
    if total == 0:
        return TradeStats()

    profit = math.fsum(_value(r) for r in scoped)
    wins = count_winners(scoped)
    return TradeStats(
        total_trades=total,
        win_rate=round(wins / total * 100, 2),
        total_profit=round(profit, 2),
    )
