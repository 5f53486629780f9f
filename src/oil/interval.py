"""
Recurrence rules for tracked events.

An ``Interval`` is either ``FromLastCompletion`` (a fixed delta counted from the
previous trigger or completion) or ``Periodic`` (a calendar slot: daily,
weekly, monthly, annual). All types here are immutable values.

The compact text syntax understood by ``parse_interval``:

    every 3d | every 2w | every 1h30m | every 45m
    daily 15:00
    weekly mon 09:00
    monthly 15 12:00
    annual 12-24 18:00      (also: annually, yearly)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional, Tuple, Union

from dateutil import tz
from dateutil.relativedelta import relativedelta

from oil.errors import UnsupportedRecurrence
from oil.shared import to_local

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

TIME_FORMATS = (
    "%H:%M:%S",
    "%H.%M.%S",
    "%H:%M",
    "%H.%M",
    "%H %M",
)


def _check_time(at):
    if not isinstance(at, time):
        raise ValueError(f"expected a datetime.time, got {at!r}")


def _check_month_day(month: int, day: int):
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not 1 <= day <= 31:
        raise ValueError(f"day must be between 1 and 31, got {day}")


def _hm(at: time) -> str:
    return at.strftime("%H:%M")


# ─── Time deltas ─────────────────────────────────────────────


@dataclass(frozen=True)
class Days:
    n: int

    def __post_init__(self):
        if self.n < 0:
            raise ValueError(f"number of days must be non-negative, got {self.n}")

    def to_timedelta(self) -> timedelta:
        return timedelta(days=self.n)

    def apply_to(self, dt: datetime) -> datetime:
        # calendar days: the local wall-clock time is kept across DST changes
        return to_local(dt) + relativedelta(days=self.n)

    def __str__(self):
        return f"{self.n} days"


@dataclass(frozen=True)
class HoursMinutes:
    hours: int
    minutes: int

    def __post_init__(self):
        if self.hours < 0 or self.minutes < 0:
            raise ValueError(
                f"hours and minutes must be non-negative, got {self.hours}h{self.minutes}m"
            )

    def to_timedelta(self) -> timedelta:
        return timedelta(hours=self.hours, minutes=self.minutes)

    def apply_to(self, dt: datetime) -> datetime:
        # elapsed time, independent of the local utc offset
        return to_local(to_local(dt).astimezone(tz.UTC) + self.to_timedelta())

    def __str__(self):
        s = ""
        if self.hours:
            s += f"{self.hours}h"
        if self.minutes:
            s += f"{self.minutes}m"
        return s


TimeDelta = Union[Days, HoursMinutes]


# ─── Time periods ─────────────────────────────────────────────


@dataclass(frozen=True)
class Annual:
    month: int
    day: int
    at: time

    def __post_init__(self):
        _check_month_day(self.month, self.day)
        _check_time(self.at)

    def duration_heuristic(self) -> Optional[timedelta]:
        return timedelta(days=365)

    def describe(self) -> str:
        return f"triggers annually on {self.month}.{self.day}. at {_hm(self.at)}"


@dataclass(frozen=True)
class Monthly:
    day: int
    at: time

    def __post_init__(self):
        _check_month_day(1, self.day)
        _check_time(self.at)

    def duration_heuristic(self) -> Optional[timedelta]:
        return timedelta(days=30)

    def describe(self) -> str:
        return f"triggers monthly on {self.day}. at {_hm(self.at)}"


@dataclass(frozen=True)
class Weekly:
    weekday: int  # Monday == 0, as in date.weekday()
    at: time

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be between 0 and 6, got {self.weekday}")
        _check_time(self.at)

    def duration_heuristic(self) -> Optional[timedelta]:
        return timedelta(days=7)

    def describe(self) -> str:
        return f"triggers weekly on {WEEKDAYS[self.weekday]} at {_hm(self.at)}"


@dataclass(frozen=True)
class Daily:
    at: time

    def __post_init__(self):
        _check_time(self.at)

    def duration_heuristic(self) -> Optional[timedelta]:
        return timedelta(days=1)

    def describe(self) -> str:
        return f"triggers daily at {_hm(self.at)}"


@dataclass(frozen=True)
class MultiAnnual:
    """Several (month, day) dates per year. Declared, but never scheduled."""

    days: Tuple[Tuple[int, int], ...]

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(tuple(d) for d in self.days))
        for month, day in self.days:
            _check_month_day(month, day)

    def duration_heuristic(self) -> Optional[timedelta]:
        return None

    def describe(self) -> str:
        dates = ", ".join(f"{m}.{d}." for m, d in self.days)
        return f"triggers multi-annually on {dates}"


TimePeriod = Union[Annual, Monthly, Weekly, Daily, MultiAnnual]


# ─── Intervals ─────────────────────────────────────────────


@dataclass(frozen=True)
class FromLastCompletion:
    delta: TimeDelta

    @property
    def is_periodic(self) -> bool:
        return False

    def duration_heuristic(self) -> Optional[timedelta]:
        return self.delta.to_timedelta()

    def describe(self) -> str:
        return f"triggers {self.delta} after previous completion"


@dataclass(frozen=True)
class Periodic:
    period: TimePeriod

    @property
    def is_periodic(self) -> bool:
        return True

    def duration_heuristic(self) -> Optional[timedelta]:
        return self.period.duration_heuristic()

    def describe(self) -> str:
        return self.period.describe()


Interval = Union[FromLastCompletion, Periodic]


# ─── Text syntax ─────────────────────────────────────────────

DELTA_PATTERN = re.compile(r"(?:(\d+)w)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?")


def parse_time(s: str) -> time:
    """Parse a time of day such as '15:00', '9.30' or '07 45'."""
    s = s.strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"cannot parse a time of day from {s!r}")


def parse_weekday(s: str) -> int:
    s = s.strip().lower()
    if len(s) >= 2:
        for idx, name in enumerate(WEEKDAYS):
            if name.lower().startswith(s):
                return idx
    raise ValueError(f"cannot parse a weekday from {s!r}")


def parse_delta(s: str) -> TimeDelta:
    """Parse '3d', '2w', '1h30m' or '45m'."""
    s = s.strip().lower()
    match = DELTA_PATTERN.fullmatch(s)
    if not s or not match:
        raise ValueError(f"Invalid duration format: '{s}'")
    weeks, days, hours, minutes = [int(x) if x else 0 for x in match.groups()]
    has_days = match.group(1) is not None or match.group(2) is not None
    has_hm = match.group(3) is not None or match.group(4) is not None
    if has_days and has_hm:
        raise ValueError(f"use either days or hours and minutes, not both: '{s}'")
    if has_days:
        return Days(weeks * 7 + days)
    return HoursMinutes(hours, minutes)


def _int(s: str, what: str) -> int:
    try:
        return int(s)
    except ValueError:
        raise ValueError(f"cannot parse {what} from {s!r}") from None


def parse_interval(text: str) -> Interval:
    tokens = text.strip().split()
    if not tokens:
        raise ValueError("empty recurrence")
    kind, args = tokens[0].lower(), tokens[1:]

    def need(n: int, usage: str):
        if len(args) < n:
            raise ValueError(f"expected '{usage}', got {text.strip()!r}")

    if kind == "every":
        need(1, "every <n>d|<n>w|<h>h<m>m")
        if len(args) > 1:
            raise ValueError(f"unexpected text after duration in {text.strip()!r}")
        return FromLastCompletion(parse_delta(args[0]))
    if kind == "daily":
        need(1, "daily HH:MM")
        return Periodic(Daily(parse_time(" ".join(args))))
    if kind == "weekly":
        need(2, "weekly <weekday> HH:MM")
        return Periodic(Weekly(parse_weekday(args[0]), parse_time(" ".join(args[1:]))))
    if kind == "monthly":
        need(2, "monthly <day> HH:MM")
        day = _int(args[0].rstrip("."), "a day of the month")
        return Periodic(Monthly(day, parse_time(" ".join(args[1:]))))
    if kind in ("annual", "annually", "yearly"):
        need(2, "annual <month>-<day> HH:MM")
        parts = re.split(r"[-/]", args[0])
        if len(parts) != 2:
            raise ValueError(f"expected <month>-<day>, got {args[0]!r}")
        month = _int(parts[0], "a month")
        day = _int(parts[1], "a day")
        return Periodic(Annual(month, day, parse_time(" ".join(args[1:]))))
    raise ValueError(
        f"unknown recurrence {tokens[0]!r}, expected every, daily, weekly, monthly or annual"
    )


def format_interval(interval: Interval) -> str:
    """The inverse of parse_interval."""
    if isinstance(interval, FromLastCompletion):
        delta = interval.delta
        if isinstance(delta, Days):
            return f"every {delta.n}d"
        return f"every {delta.hours}h{delta.minutes}m"
    period = interval.period
    if isinstance(period, Daily):
        return f"daily {_hm(period.at)}"
    if isinstance(period, Weekly):
        return f"weekly {WEEKDAYS[period.weekday][:3].lower()} {_hm(period.at)}"
    if isinstance(period, Monthly):
        return f"monthly {period.day} {_hm(period.at)}"
    if isinstance(period, Annual):
        return f"annual {period.month}-{period.day} {_hm(period.at)}"
    raise UnsupportedRecurrence(f"no text syntax for {period!r}")
