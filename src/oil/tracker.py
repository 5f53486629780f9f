from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from rich import print

from oil.commands import Command, Inverse, ReceiverKind
from oil.event import EventData, TrackedEvent
from oil.model import load_events, store_events
from oil.shared import log_msg
from oil.status import Status
from oil.store import EventStore, Uid


class Tracker:
    """
    A tracking session: the tracked events plus the stack of inverses that
    undo the commands applied so far.
    """

    receiver_kind = ReceiverKind.TRACKER

    def __init__(self, tracked_events: Optional[EventStore] = None):
        self.tracked_events = tracked_events if tracked_events is not None else EventStore()
        self.undo_stack: List[Inverse] = []

    def __repr__(self):
        return f"Tracker({len(self.tracked_events)} events, {len(self.undo_stack)} undoable)"

    @classmethod
    def empty(cls) -> "Tracker":
        return cls()

    @classmethod
    def from_path(cls, path: str | Path, now: Optional[datetime] = None) -> "Tracker":
        """Load a tracker file and bring every event up to date."""
        tracker = cls(load_events(path))
        triggered = tracker.update_events(now)
        if triggered:
            log_msg(f"triggered on load: {triggered}")
        return tracker

    # ─── Events ─────────────────────────────────────────────

    def add_event(self, event: EventData, status: Optional[Status] = None) -> Uid:
        uid = self.tracked_events.next_free_uid()
        self.tracked_events.add(uid, TrackedEvent(event, status or Status.default()))
        log_msg(f"added {uid}: {event}")
        return uid

    def add_event_at(self, uid: Uid, tracked: TrackedEvent) -> None:
        self.tracked_events.add(uid, tracked)

    def remove_event(self, uid: Uid) -> TrackedEvent:
        removed = self.tracked_events.remove(uid)
        log_msg(f"removed {uid}: {removed.event}")
        return removed

    def event(self, uid: Uid) -> TrackedEvent:
        return self.tracked_events.get_mut(uid)

    def events(self) -> List[Tuple[Uid, TrackedEvent]]:
        return self.tracked_events.items()

    def update_events(self, now: Optional[datetime] = None) -> List[Uid]:
        return self.tracked_events.update_all(now)

    # ─── Commands ─────────────────────────────────────────────

    def apply_command(self, cmd: Command) -> Optional[Inverse]:
        """Apply a command to this tracker and remember how to undo it."""
        inverse = cmd.apply(self)
        if inverse is not None:
            self.undo_stack.append(inverse)
        log_msg(f"applied {cmd!r}")
        return inverse

    def undo(self) -> bool:
        if not self.undo_stack:
            print("[yellow]Nothing to undo[/yellow]")
            log_msg("undo requested with an empty undo stack")
            return False
        inverse = self.undo_stack.pop()
        inverse(self)
        log_msg(f"undone, {len(self.undo_stack)} more on the stack")
        return True

    # ─── Disk ─────────────────────────────────────────────

    def refresh_from_disk(self, path: str | Path) -> None:
        """Replace the events with the contents of the file; the undo stack is kept."""
        self.tracked_events = load_events(path)

    def store_to_disk(self, path: str | Path) -> None:
        store_events(self.tracked_events, path)
