"""Shared fixtures for journal tests."""

import pytest

from db import KeyValueStore
from models import Direction, Emotion, ResultType, TradeRecord
from store import TradeStore


class FailingKV:
    """Key-value store whose writes always fail."""

    def __init__(self):
        self.attempts = []

    def get(self, key):
        return None

    def set(self, key, value):
        self.attempts.append(key)
        return {"success": False, "error": "disk full"}


@pytest.fixture
def kv(tmp_path):
    store = KeyValueStore(f"sqlite:///{tmp_path / 'journal.db'}")
    store.init_db()
    yield store
    store.dispose()


@pytest.fixture
def failing_kv():
    return FailingKV()


@pytest.fixture
def fake_renderer():
    return lambda f: f"rendered:{f}"


@pytest.fixture
def store(kv, fake_renderer):
    s = TradeStore(kv, renderer=fake_renderer)
    s.load_all()
    return s


@pytest.fixture
def raw_trade():
    """Valid form input; tests override single fields."""
    def _make(**overrides):
        raw = {
            "pair": "EURUSD",
            "date": "2024-05-15",
            "time": "09:30",
            "direction": "long",
            "risk": "50",
            "result": "100",
            "result_type": "auto",
            "risk_reward": "2",
            "emotion": "neutral",
            "notes": "",
            "screenshots": [],
        }
        raw.update(overrides)
        return raw
    return _make


@pytest.fixture
def make_record():
    counter = iter(range(1, 10_000))

    def _make(result="100", date="2024-05-15", **overrides):
        fields = dict(
            id=next(counter),
            pair="EURUSD",
            date=date,
            time="09:30",
            direction=Direction.LONG,
            risk="50",
            result=result,
            result_type=ResultType.WIN,
            emotion=Emotion.NEUTRAL,
        )
        fields.update(overrides)
        return TradeRecord(**fields)
    return _make
