# store.py
"""In-memory trade collection and profile, mirrored to a key-value store.

Every mutating method writes the affected document back before returning.
If that write fails the change stays in memory and PersistenceError is
raised so the caller can warn that it is not yet durable.
"""
from dataclasses import replace
from typing import Callable, Optional
import datetime
import json
import logging

from errors import PersistenceError
from models import Profile, TradeRecord, new_trade_id, normalize
from stats import Period, TradeStats, compute_stats, count_winners
from utils.attachments import render

TRADES_KEY = "trades"
PROFILE_KEY = "userProfile"

logger = logging.getLogger(__name__)


class TradeStore:
    def __init__(self, kv, renderer: Callable[[object], str] = render, tz=None):
        self.kv = kv
        self.renderer = renderer
        self.tz = tz
        self._trades = []
        self._profile = Profile(start_date=self._now().date().isoformat())

    def _now(self) -> datetime.datetime:
        if self.tz is None:
            return datetime.datetime.now()
        return datetime.datetime.now(self.tz)

    # accessors

    @property
    def trades(self) -> tuple:
        return tuple(self._trades)

    @property
    def profile(self) -> Profile:
        return replace(self._profile)

    def recent(self, limit: int = 3) -> list:
        return self._trades[:limit]

    def winners(self) -> int:
        return count_winners(self._trades)

    # loading

    def _read_json(self, key: str):
        text = self.kv.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed {key!r} document: {e}")
            return None

    def _load_trades(self) -> list:
        data = self._read_json(TRADES_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning(f"Ignoring {TRADES_KEY!r}: expected a list, got {type(data).__name__}")
            return []
        records = []
        for entry in data:
            if not isinstance(entry, dict):
                logger.warning(f"Dropping malformed trade entry {entry!r}")
                continue
            try:
                records.append(TradeRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed trade entry {entry.get('id')!r}: {e}")
        return records

    def load_all(self):
        """Replace in-memory state with what the key-value store holds."""
        self._trades = self._load_trades()

        today = self._now().date()
        self._profile = Profile(start_date=today.isoformat())
        if self.kv.get(PROFILE_KEY) is None:
            # first run: pin the start date
            try:
                self._persist_profile()
            except PersistenceError as e:
                logger.warning(f"Default profile not saved: {e}")
        else:
            # a malformed document is left in place, never overwritten here
            data = self._read_json(PROFILE_KEY)
            if data is not None:
                try:
                    self._profile = Profile.from_dict(data, today=today)
                except (TypeError, ValueError) as e:
                    logger.warning(f"Ignoring malformed {PROFILE_KEY!r} document: {e}")

        logger.info(f"Loaded {len(self._trades)} trades for {self._profile.name}")

    # persistence

    def _write(self, key: str, payload):
        res = self.kv.set(key, json.dumps(payload))
        if not res.get("success"):
            logger.warning(f"Failed to persist {key!r}: {res.get('error')}")
            raise PersistenceError(f"Could not save {key}: {res.get('error')}")

    def _persist_trades(self):
        self._write(TRADES_KEY, [t.to_dict() for t in self._trades])

    def _persist_profile(self):
        self._write(PROFILE_KEY, self._profile.to_dict())

    # mutations

    def add_trade(self, raw: dict) -> TradeRecord:
        """Validate, normalize and prepend a trade, then persist.

        ValidationError and RenderError propagate before anything changes.
        """
        record = normalize(raw, self.renderer, at=self._now())
        taken = {t.id for t in self._trades}
        while record.id in taken:
            record = replace(record, id=new_trade_id())
        self._trades.insert(0, record)
        logger.info(f"Added trade {record.id} {record.pair} {record.result_type.value} {record.result}")
        self._persist_trades()
        return record

    def delete_trade(self, trade_id) -> bool:
        before = len(self._trades)
        self._trades = [t for t in self._trades if t.id != trade_id]
        if len(self._trades) == before:
            logger.debug(f"Delete ignored, no trade {trade_id}")
            return False
        logger.info(f"Deleted trade {trade_id}")
        self._persist_trades()
        return True

    def clear_trades(self) -> int:
        count = len(self._trades)
        self._trades = []
        logger.info(f"Cleared {count} trades")
        self._persist_trades()
        return count

    def update_profile(self, partial: dict) -> Profile:
        self._profile = self._profile.merged(partial)
        self._persist_profile()
        return self.profile

    # statistics

    def compute_stats(self, period=Period.ALL, today: Optional[datetime.date] = None) -> TradeStats:
        return compute_stats(self._trades, period, today or self._now().date())
