# models.py
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional
import datetime
import math
import re
import time

from errors import ValidationError

Base = declarative_base()

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")

DEFAULT_PROFILE_NAME = "Trader"
DEFAULT_ACCOUNT_SIZE = 10000.0


def now():
    return datetime.datetime.now(datetime.timezone.utc)


class KeyValue(Base):
    __tablename__ = "kv_store"
    key = Column(String, primary_key=True)          # "trades", "userProfile"
    value = Column(Text, nullable=False)            # JSON document
    updated_at = Column(DateTime, default=now, onupdate=now)


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


class Emotion(str, Enum):
    NEUTRAL = "neutral"
    FEAR = "fear"
    GREED = "greed"
    IMPATIENCE = "impatience"
    CONFIDENCE = "confidence"


class ResultType(str, Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"

    @classmethod
    def parse(cls, value) -> "ResultType":
        text = str(value).strip().lower()
        if text == "be":
            return cls.BREAKEVEN
        return cls(text)


AUTO = "auto"


def parse_number(value) -> Optional[float]:
    """Parse ``value`` as a finite real number, or return None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _as_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_iso_date(value) -> bool:
    if not isinstance(value, str) or not DATE_RE.match(value):
        return False
    try:
        datetime.date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_clock_time(value) -> bool:
    if not isinstance(value, str) or not TIME_RE.match(value):
        return False
    try:
        datetime.datetime.strptime(value, "%H:%M")
    except ValueError:
        return False
    return True


_last_id = 0


def new_trade_id() -> int:
    # microseconds since epoch, bumped when the clock has not moved on
    global _last_id
    candidate = time.time_ns() // 1000
    if candidate <= _last_id:
        candidate = _last_id + 1
    _last_id = candidate
    return candidate


@dataclass(frozen=True)
class TradeRecord:
    id: int
    pair: str
    date: str
    time: str
    direction: Direction
    risk: str
    result: str
    result_type: ResultType
    risk_reward: str = ""
    emotion: Emotion = Emotion.NEUTRAL
    notes: str = ""
    screenshot_refs: tuple = ()

    @property
    def result_value(self) -> float:
        return parse_number(self.result) or 0.0

    @property
    def risk_value(self) -> float:
        return parse_number(self.risk) or 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pair": self.pair,
            "date": self.date,
            "time": self.time,
            "direction": self.direction.value,
            "risk": self.risk,
            "result": self.result,
            "resultType": self.result_type.value,
            "riskReward": self.risk_reward,
            "emotion": self.emotion.value,
            "notes": self.notes,
            "screenshotRefs": list(self.screenshot_refs),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TradeRecord":
        """Rebuild a record from its persisted form.

        Raises KeyError, TypeError or ValueError on entries that cannot be
        interpreted. Older clients wrote ``be`` for breakeven and kept
        attachments under ``screenshotUrls``; both are accepted.
        """
        refs = data.get("screenshotRefs")
        if refs is None:
            refs = data.get("screenshotUrls") or []
        if isinstance(refs, str):
            raise TypeError("screenshotRefs must be a list")
        pair = _as_text(data["pair"])
        if not pair:
            raise ValueError("empty pair")
        return cls(
            id=int(data["id"]),
            pair=pair,
            date=_as_text(data.get("date")),
            time=_as_text(data.get("time")),
            direction=Direction(_as_text(data.get("direction", "long")).lower()),
            risk=_as_text(data.get("risk")),
            result=_as_text(data.get("result")),
            result_type=(
                ResultType.parse(data["resultType"]) if data.get("resultType")
                else infer_result_type(data.get("result"))
            ),
            risk_reward=_as_text(data.get("riskReward")),
            emotion=Emotion(_as_text(data.get("emotion") or "neutral").lower()),
            notes=data.get("notes") or "",
            screenshot_refs=tuple(str(r) for r in refs),
        )


def _choice(raw: dict, key: str, enum_cls, default):
    value = raw.get(key)
    if value is None or _as_text(value) == "":
        return default
    try:
        return enum_cls(_as_text(value).lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(key, f"must be one of: {allowed}")


def _requested_result_type(raw: dict):
    value = raw.get("result_type")
    if value is None or _as_text(value) == "" or _as_text(value).lower() == AUTO:
        return AUTO
    try:
        return ResultType.parse(value)
    except ValueError:
        raise ValidationError("result_type", "must be auto, win, loss or breakeven")


def validate(raw: dict) -> None:
    """Check raw form input; raise ValidationError on the first bad field."""
    if not _as_text(raw.get("pair")):
        raise ValidationError("pair", "is required")

    date = raw.get("date")
    if date not in (None, "") and not is_iso_date(date):
        raise ValidationError("date", "must be a date in YYYY-MM-DD format")

    clock = raw.get("time")
    if clock not in (None, "") and not is_clock_time(clock):
        raise ValidationError("time", "must be a time in HH:MM format")

    for key in ("risk", "result"):
        if parse_number(raw.get(key)) is None:
            raise ValidationError(key, "must be a number")

    if _as_text(raw.get("risk_reward")) and parse_number(raw.get("risk_reward")) is None:
        raise ValidationError("risk_reward", "must be a number")

    _choice(raw, "direction", Direction, Direction.LONG)
    _choice(raw, "emotion", Emotion, Emotion.NEUTRAL)
    _requested_result_type(raw)


def infer_result_type(result) -> ResultType:
    value = parse_number(result) or 0.0
    if value > 0:
        return ResultType.WIN
    if value < 0:
        return ResultType.LOSS
    return ResultType.BREAKEVEN


def normalize(
    raw: dict,
    renderer: Callable[[object], str],
    at: Optional[datetime.datetime] = None,
) -> TradeRecord:
    validate(raw)
    at = at or datetime.datetime.now()

    requested = _requested_result_type(raw)
    result_type = infer_result_type(raw.get("result")) if requested == AUTO else requested

    # a RenderError here aborts before any record exists
    refs = tuple(renderer(f) for f in (raw.get("screenshots") or ()))

    return TradeRecord(
        id=new_trade_id(),
        pair=_as_text(raw.get("pair")).upper(),
        date=_as_text(raw.get("date")) or at.date().isoformat(),
        time=_as_text(raw.get("time")) or at.strftime("%H:%M"),
        direction=_choice(raw, "direction", Direction, Direction.LONG),
        risk=_as_text(raw.get("risk")),
        result=_as_text(raw.get("result")),
        result_type=result_type,
        risk_reward=_as_text(raw.get("risk_reward")),
        emotion=_choice(raw, "emotion", Emotion, Emotion.NEUTRAL),
        notes=raw.get("notes") or "",
        screenshot_refs=refs,
    )


PROFILE_FIELDS = ("name", "email", "account_size", "start_date")


@dataclass
class Profile:
    name: str = DEFAULT_PROFILE_NAME
    email: str = ""
    account_size: float = DEFAULT_ACCOUNT_SIZE
    start_date: str = field(default_factory=lambda: datetime.date.today().isoformat())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "accountSize": self.account_size,
            "startDate": self.start_date,
        }

    @classmethod
    def from_dict(cls, data: dict, today: Optional[datetime.date] = None) -> "Profile":
        """Rebuild a profile, replacing unusable fields with their defaults.

        Older clients stored ``accountSize: null`` after the field was
        cleared; that keeps the rest of the profile.
        """
        if not isinstance(data, dict):
            raise TypeError("profile must be an object")
        start_date = data.get("startDate")
        if not is_iso_date(start_date):
            start_date = (today or datetime.date.today()).isoformat()
        account_size = parse_number(data.get("accountSize"))
        if account_size is None or account_size <= 0:
            account_size = DEFAULT_ACCOUNT_SIZE
        return cls(
            name=str(data.get("name") or DEFAULT_PROFILE_NAME),
            email=str(data.get("email") or ""),
            account_size=account_size,
            start_date=start_date,
        )

    def merged(self, partial: dict) -> "Profile":
        """Return a copy with ``partial`` applied, validating every field."""
        unknown = set(partial) - set(PROFILE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not a profile field")
        updates = {}
        if "name" in partial:
            updates["name"] = _as_text(partial["name"]) or DEFAULT_PROFILE_NAME
        if "email" in partial:
            updates["email"] = _as_text(partial["email"])
        if "account_size" in partial:
            size = parse_number(partial["account_size"])
            if size is None or size <= 0:
                raise ValidationError("account_size", "must be a positive number")
            updates["account_size"] = size
        if "start_date" in partial:
            if not is_iso_date(partial["start_date"]):
                raise ValidationError("start_date", "must be a date in YYYY-MM-DD format")
            updates["start_date"] = partial["start_date"]
        return replace(self, **updates)
