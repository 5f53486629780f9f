from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from oil.errors import ScheduleError, UnsupportedRecurrence
from oil.interval import (
    Annual,
    Daily,
    FromLastCompletion,
    Interval,
    Monthly,
    MultiAnnual,
    Weekly,
)
from oil.shared import now_local, to_local
from oil.status import Status


@dataclass(frozen=True)
class EventData:
    text: str
    interval: Interval
    stacks: bool = False

    def __str__(self):
        stack_str = " (re-trigger stacks)" if self.stacks else " (re-trigger overrides)"
        return f'EventData {{ "{self.text}", interval: {self.interval.describe()}{stack_str} }}'


def _at(d: date, at: time, like: datetime) -> datetime:
    return datetime.combine(d, at, tzinfo=like.tzinfo)


def _date(year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ScheduleError(year, month, day, str(e)) from None


def _iso_date(year: int, week: int, weekday: int) -> date:
    try:
        return date.fromisocalendar(year, week, weekday + 1)
    except ValueError as e:
        raise ScheduleError(year, 1, 1, f"iso week {week}: {e}") from None


@dataclass
class TrackedEvent:
    event: EventData
    status: Status = field(default_factory=Status.default)

    @property
    def text(self) -> str:
        return self.event.text

    @property
    def interval(self) -> Interval:
        return self.event.interval

    def is_triggered(self) -> bool:
        return self.status.is_triggered()

    def is_done(self) -> bool:
        return self.status.is_done()

    def is_skipped(self) -> bool:
        return self.status.is_skipped()

    def trigger_now(self, now: Optional[datetime] = None) -> bool:
        return self.status.trigger_now(now)

    def complete_now(self, now: Optional[datetime] = None) -> bool:
        return self.status.complete_now(now)

    def skip_now(self, now: Optional[datetime] = None) -> None:
        self.status.skip_now(now)

    def update(self, now: Optional[datetime] = None) -> bool:
        """
        Trigger the event if it is due. Returns True if it was due; a skipped
        event resolves to completed instead of triggering.
        """
        now = now or now_local()

        next_due = self.next_due()
        if next_due is None:
            return False
        if now >= next_due:
            self.trigger_now(now)
            return True
        return False

    def _is_held(self) -> bool:
        # a triggered event that does not stack waits to be completed
        return self.status.is_triggered() and not self.event.stacks

    def next_due(self) -> Optional[datetime]:
        """
        Returns the next time this event is going to trigger, or None if it is
        triggered and does not stack.

        The count starts from the previous trigger time if there is one,
        otherwise from the time of registration, skip or completion.
        """
        if self._is_held():
            return None

        anchor = to_local(self.status.anchor())
        interval = self.event.interval

        if isinstance(interval, FromLastCompletion):
            return interval.delta.apply_to(anchor)

        period = interval.period
        if isinstance(period, Daily):
            candidate = _at(anchor.date(), period.at, anchor)
            if candidate < anchor:
                candidate += timedelta(days=1)
            return candidate

        if isinstance(period, Weekly):
            iso_year, iso_week, _ = anchor.isocalendar()
            candidate = _at(_iso_date(iso_year, iso_week, period.weekday), period.at, anchor)
            if candidate < anchor:
                candidate += timedelta(weeks=1)
            return candidate

        if isinstance(period, Monthly):
            candidate = _at(
                _date(anchor.year, anchor.month, period.day), period.at, anchor
            )
            if candidate < anchor:
                year, month = anchor.year, anchor.month + 1
                if month > 12:
                    year, month = year + 1, 1
                candidate = _at(_date(year, month, period.day), period.at, anchor)
            return candidate

        if isinstance(period, Annual):
            candidate = _at(
                _date(anchor.year, period.month, period.day), period.at, anchor
            )
            if candidate < anchor:
                candidate = _at(
                    _date(anchor.year + 1, period.month, period.day), period.at, anchor
                )
            return candidate

        if isinstance(period, MultiAnnual):
            raise UnsupportedRecurrence(
                "multi-annual recurrence has no scheduling rule"
            )

        raise UnsupportedRecurrence(f"unknown recurrence {interval!r}")

    def fraction_of_interval_remaining(self, at_time: datetime) -> Optional[float]:
        """
        (next due - at_time) / approximate period, for ordering and filtering
        in views. None if the fraction cannot be evaluated.
        """
        if self._is_held():
            return None

        heuristic = self.event.interval.duration_heuristic()
        if heuristic is None:
            return None

        next_due = self.next_due()
        if next_due is None:
            return None

        interval_seconds = int(heuristic.total_seconds())
        if interval_seconds == 0:
            return 0.0
        seconds_until_next = int((next_due - at_time).total_seconds())
        return seconds_until_next / interval_seconds
