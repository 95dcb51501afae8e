"""Tests for the Telegram reply formatting helpers."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from errors import ValidationError
from handlers.trades import (
    SCREENSHOTS,
    SCREENSHOTS_PROMPT,
    format_profile,
    format_stats,
    format_trade_line,
    get_trade_conversation,
    parse_period,
    screenshots_reprompt,
)
from models import Profile
from stats import Period, TradeStats


def test_format_stats():
    text = format_stats(TradeStats(total_trades=3, win_rate=33.33, total_profit=50.0), "month")
    assert "this month" in text
    assert "Trades: 3" in text
    assert "Win rate: 33.33%" in text
    assert "Profit/Loss: $50.00" in text


def test_format_empty_stats():
    text = format_stats(TradeStats())
    assert "all time" in text
    assert "Win rate: 0.00%" in text


def test_format_trade_line(make_record):
    line = format_trade_line(make_record("-20.5", id=7, pair="GBPUSD"))
    assert line == "#7 2024-05-15 GBPUSD long result:-20.50 (win)"


def test_format_profile():
    text = format_profile(Profile(start_date="2024-01-01"))
    assert "Name: Trader" in text
    assert "Email: -" in text
    assert "Account size: 10000.00" in text


@pytest.mark.parametrize("args, expected", [
    ([], Period.ALL),
    (["day"], Period.DAY),
    (["WEEK"], Period.WEEK),
    (["year", "extra"], Period.YEAR),
])
def test_parse_period(args, expected):
    assert parse_period(args) == expected


def test_parse_period_rejects_unknown():
    with pytest.raises(ValidationError):
        parse_period(["decade"])


def test_screenshots_state_reprompts_on_other_text():
    update = MagicMock()
    update.message.reply_text = AsyncMock()
    state = asyncio.run(screenshots_reprompt(update, MagicMock()))
    assert state == SCREENSHOTS
    update.message.reply_text.assert_awaited_once_with(SCREENSHOTS_PROMPT)


def test_screenshots_state_has_text_fallback():
    conv = get_trade_conversation()
    callbacks = [h.callback for h in conv.states[SCREENSHOTS]]
    assert callbacks[-1] is screenshots_reprompt
