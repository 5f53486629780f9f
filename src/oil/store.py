from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from oil.errors import EventNotFound, ItemAlreadyExists
from oil.event import TrackedEvent
from oil.shared import now_local

Uid = int


class EventStore:
    """Tracked events keyed by uid, iterated in ascending uid order."""

    def __init__(self, events: Optional[Dict[Uid, TrackedEvent]] = None):
        self._events: Dict[Uid, TrackedEvent] = {}
        for uid, event in sorted((events or {}).items()):
            self.add(uid, event)

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, uid) -> bool:
        return uid in self._events

    def __iter__(self) -> Iterator[Uid]:
        return iter(self.uids())

    def __repr__(self):
        return f"EventStore({self.items()!r})"

    def uids(self) -> List[Uid]:
        return sorted(self._events)

    def items(self) -> List[Tuple[Uid, TrackedEvent]]:
        return [(uid, self._events[uid]) for uid in self.uids()]

    def next_free_uid(self) -> Uid:
        """One past the highest uid in use, or 0 for an empty store."""
        if not self._events:
            return 0
        return max(self._events) + 1

    def add(self, uid: Uid, event: TrackedEvent) -> None:
        """Adds an event; raises ItemAlreadyExists if the uid is taken."""
        if uid < 0:
            raise ValueError(f"uid must be non-negative, got {uid}")
        if uid in self._events:
            raise ItemAlreadyExists(uid, self._events[uid], event)
        self._events[uid] = event

    def remove(self, uid: Uid) -> TrackedEvent:
        """Removes and returns an event; raises EventNotFound if absent."""
        try:
            return self._events.pop(uid)
        except KeyError:
            raise EventNotFound(uid) from None

    def get_mut(self, uid: Uid) -> TrackedEvent:
        try:
            return self._events[uid]
        except KeyError:
            raise EventNotFound(uid) from None

    get = get_mut

    def update_all(self, now: Optional[datetime] = None) -> List[Uid]:
        """Runs update on every event. Returns the uids that were due."""
        now = now or now_local()
        return [uid for uid, event in self.items() if event.update(now)]
