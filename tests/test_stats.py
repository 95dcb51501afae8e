"""Tests for the statistics engine."""

import datetime

import pytest

from stats import Period, TradeStats, compute_stats, count_winners, filter_by_period

TODAY = datetime.date(2024, 5, 15)  # Wednesday, ISO week 20


class TestComputeStats:

    def test_empty_collection(self):
        stats = compute_stats([])
        assert stats == TradeStats(total_trades=0, win_rate=0, total_profit=0.0)
        assert stats.as_dict() == {"totalTrades": 0, "winRate": 0, "totalProfit": 0.00}

    def test_mixed_results(self, make_record):
        records = [make_record("100"), make_record("-50"), make_record("0")]
        assert compute_stats(records).as_dict() == {
            "totalTrades": 3,
            "winRate": 33.33,
            "totalProfit": 50.00,
        }

    def test_unparseable_result_contributes_zero(self, make_record):
        records = [make_record("abc"), make_record("10"), make_record("")]
        stats = compute_stats(records)
        assert stats.total_trades == 3
        assert stats.total_profit == 10.0
        assert stats.win_rate == 33.33

    def test_profit_accumulated_before_rounding(self, make_record):
        records = [make_record("33.333") for _ in range(3)]
        assert compute_stats(records).total_profit == 100.0

    def test_float_noise_rounded_away(self, make_record):
        records = [make_record("0.1"), make_record("0.2")]
        assert compute_stats(records).total_profit == 0.3

    @pytest.mark.parametrize("results", [
        ["1"],
        ["-1"],
        ["5", "-5", "5", "0", "-0.01"],
        ["0", "0"],
        ["12.5", "3", "7"],
    ])
    def test_win_rate_bounded(self, make_record, results):
        stats = compute_stats([make_record(r) for r in results])
        assert 0 <= stats.win_rate <= 100
        assert stats.total_trades == len(results)

    def test_idempotent(self, make_record):
        records = [make_record("100"), make_record("-50")]
        assert compute_stats(records, "all") == compute_stats(records, "all")
        assert [r.result for r in records] == ["100", "-50"]

    def test_accepts_period_strings(self, make_record):
        records = [make_record("10", date="2024-05-15")]
        assert compute_stats(records, "day", today=TODAY).total_trades == 1

    def test_unknown_period(self, make_record):
        with pytest.raises(ValueError):
            compute_stats([make_record()], "decade", today=TODAY)


class TestFilterByPeriod:

    @pytest.fixture
    def records(self, make_record):
        return [
            make_record("10", date="2024-05-15"),   # today
            make_record("20", date="2024-05-13"),   # Monday of this week
            make_record("30", date="2024-05-01"),   # earlier this month
            make_record("40", date="2024-01-10"),   # earlier this year
            make_record("50", date="2023-12-31"),   # last year
            make_record("60", date=""),             # undated legacy entry
        ]

    @pytest.mark.parametrize("period, expected", [
        (Period.ALL, 6),
        (Period.DAY, 1),
        (Period.WEEK, 2),
        (Period.MONTH, 3),
        (Period.YEAR, 4),
    ])
    def test_window_sizes(self, records, period, expected):
        assert len(filter_by_period(records, period, today=TODAY)) == expected

    def test_week_spans_year_boundary(self, make_record):
        # 2024-12-30 (Mon) and 2025-01-01 (Wed) share ISO week 1 of 2025
        records = [make_record(date="2024-12-30"), make_record(date="2024-12-29")]
        selected = filter_by_period(records, Period.WEEK, today=datetime.date(2025, 1, 1))
        assert [r.date for r in selected] == ["2024-12-30"]

    def test_stats_respect_window(self, records):
        stats = compute_stats(records, Period.MONTH, today=TODAY)
        assert stats.total_trades == 3
        assert stats.total_profit == 60.0
        assert stats.win_rate == 100.0

    def test_preserves_order(self, records):
        selected = filter_by_period(records, Period.YEAR, today=TODAY)
        assert [r.result for r in selected] == ["10", "20", "30", "40"]


def test_count_winners(make_record):
    records = [make_record("1"), make_record("0"), make_record("-1"), make_record("2.5")]
    assert count_winners(records) == 2
