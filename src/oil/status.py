from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from oil.errors import StatusInvariantError
from oil.shared import now_local


class Kind(Enum):
    DORMANT = "dormant"  # never triggered, with time of registration
    TRIGGERED = "triggered"
    COMPLETED = "completed"  # ready to trigger again, with time of completion
    SKIP = "skip"  # skipped until the next trigger, with time of skip


class StatusKind:
    """
    The discriminant of a Status plus its embedded timestamp.

    Equality compares the discriminant only, so that Dormant(t1) == Dormant(t2)
    for any t1, t2. Compare ``at`` explicitly when the time matters.
    """

    __slots__ = ("kind", "at")

    def __init__(self, kind: Kind, at: Optional[datetime] = None):
        if kind is Kind.TRIGGERED and at is not None:
            raise ValueError("Triggered carries no timestamp")
        if kind is not Kind.TRIGGERED and at is None:
            raise ValueError(f"{kind.value} requires a timestamp")
        self.kind = kind
        self.at = at

    @classmethod
    def dormant(cls, at: datetime) -> "StatusKind":
        return cls(Kind.DORMANT, at)

    @classmethod
    def triggered(cls) -> "StatusKind":
        return cls(Kind.TRIGGERED)

    @classmethod
    def completed(cls, at: datetime) -> "StatusKind":
        return cls(Kind.COMPLETED, at)

    @classmethod
    def skip(cls, at: datetime) -> "StatusKind":
        return cls(Kind.SKIP, at)

    def __eq__(self, other):
        if not isinstance(other, StatusKind):
            return NotImplemented
        return self.kind is other.kind

    def __hash__(self):
        return hash(self.kind)

    def __repr__(self):
        name = self.kind.name.capitalize()
        if self.at is None:
            return name
        return f"{name}({self.at.isoformat(timespec='seconds')})"


@dataclass
class Status:
    trigger_times: List[datetime] = field(default_factory=list)
    status: StatusKind = field(default_factory=lambda: StatusKind.dormant(now_local()))

    @classmethod
    def from_time(cls, t: datetime) -> "Status":
        """A dormant status registered at ``t``."""
        return cls([], StatusKind.dormant(t))

    @classmethod
    def default(cls) -> "Status":
        return cls.from_time(now_local())

    def is_dormant(self) -> bool:
        return self.status.kind is Kind.DORMANT

    def is_triggered(self) -> bool:
        return self.status.kind is Kind.TRIGGERED

    def is_done(self) -> bool:
        return self.status.kind is Kind.COMPLETED

    def is_skipped(self) -> bool:
        return self.status.kind is Kind.SKIP

    def trigger_now(self, now: Optional[datetime] = None) -> bool:
        """Returns True if the event moved from an untriggered state to triggered."""
        now = now or now_local()
        kind = self.status.kind
        if kind in (Kind.DORMANT, Kind.COMPLETED):
            self.status = StatusKind.triggered()
            self.trigger_times = [now]
            return True
        if kind is Kind.SKIP:
            # the skipped slot has passed
            self.status = StatusKind.completed(now)
            self.trigger_times = []
            return False
        self.trigger_times.append(now)
        return False

    def complete_now(self, now: Optional[datetime] = None) -> bool:
        """
        Sets the event completed, even if it was skipped, and resets the trigger
        history. Returns True if it was already completed before this call.
        """
        now = now or now_local()
        was_done = self.is_done()
        self.trigger_times = []
        self.status = StatusKind.completed(now)
        return was_done

    def skip_now(self, now: Optional[datetime] = None) -> None:
        now = now or now_local()
        self.trigger_times = []
        self.status = StatusKind.skip(now)

    def prev_trigger_time(self) -> Optional[datetime]:
        if self.trigger_times:
            return self.trigger_times[-1]
        return None

    def anchor(self) -> datetime:
        """The time from which the next trigger is counted."""
        prev = self.prev_trigger_time()
        if prev is not None:
            return prev
        if self.status.at is None:
            raise StatusInvariantError("triggered status without any trigger times")
        return self.status.at
