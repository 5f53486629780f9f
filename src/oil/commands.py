"""
Reversible commands.

A command is applied to a receiver, either the tracker session or the view
controller, and on success may return an inverse: a callable taking the tracker
that puts everything back as it was. The tracker keeps the inverses on its undo
stack.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Callable, ClassVar, List, Optional, Sequence, Tuple

from oil.errors import InvalidReceiver
from oil.event import EventData
from oil.shared import log_msg

Uid = int
Inverse = Callable[["Tracker"], None]


class ReceiverKind(Enum):
    TRACKER = "tracker"
    VIEW = "view"


class ViewState(Enum):
    STANDARD = "standard"
    EXTENDED = "extended"


class Control(Enum):
    """Input that is not a command but steers the interaction loop."""

    UNDO = "undo"
    EXIT = "exit"


class Command:
    receivers: ClassVar[Tuple[ReceiverKind, ...]] = (ReceiverKind.TRACKER,)

    def accepts(self, kind: ReceiverKind) -> bool:
        return kind in self.receivers

    def apply(self, receiver) -> Optional[Inverse]:
        kind = getattr(receiver, "receiver_kind", None)
        if not self.accepts(kind):
            raise InvalidReceiver(self, kind.value if kind else type(receiver).__name__)
        return self._apply(receiver)

    def _apply(self, receiver) -> Optional[Inverse]:
        raise NotImplementedError


# ─── Tracker commands ─────────────────────────────────────────


@dataclass
class CreateCommand(Command):
    event: EventData

    def _apply(self, tracker):
        uid = tracker.add_event(self.event)

        def inverse(tracker):
            tracker.remove_event(uid)

        return inverse


@dataclass
class RemoveCommand(Command):
    uids: List[Uid]

    def _apply(self, tracker):
        removed = []
        for uid in self.uids:
            removed.append((uid, copy.deepcopy(tracker.remove_event(uid))))

        def inverse(tracker):
            for uid, event in reversed(removed):
                tracker.add_event_at(uid, copy.deepcopy(event))

        return inverse


@dataclass
class AlterCommand(Command):
    """Replace the data of an event. The event keeps its status but gets a new uid."""

    uid: Uid
    event: EventData

    def _apply(self, tracker):
        old = tracker.remove_event(self.uid)
        original = copy.deepcopy(old)
        new_uid = tracker.add_event(self.event, status=copy.deepcopy(old.status))
        uid = self.uid

        def inverse(tracker):
            tracker.remove_event(new_uid)
            tracker.add_event_at(uid, copy.deepcopy(original))

        return inverse


def _nothing_to_restore(receiver):
    pass


def _restore_statuses(snapshots, tracker):
    for uid, status in reversed(snapshots):
        tracker.event(uid).status = copy.deepcopy(status)


@dataclass
class TriggerCommand(Command):
    uid: Uid
    now: Optional[datetime] = None

    def _apply(self, tracker):
        event = tracker.event(self.uid)
        snapshot = copy.deepcopy(event.status)
        event.trigger_now(self.now)
        return partial(_restore_statuses, [(self.uid, snapshot)])


@dataclass
class CompleteCommand(Command):
    """
    Mark events as done. Events counted from their last completion are
    completed; periodic events skip their slot instead, so that the next one
    still lands on the calendar.
    """

    uids: List[Uid]
    now: Optional[datetime] = None

    def _apply(self, tracker):
        if not self.uids:
            return _nothing_to_restore
        snapshots = []
        for uid in self.uids:
            event = tracker.event(uid)
            snapshots.append((uid, copy.deepcopy(event.status)))
            if event.interval.is_periodic:
                event.skip_now(self.now)
            else:
                event.complete_now(self.now)
        return partial(_restore_statuses, snapshots)


# ─── View commands ─────────────────────────────────────────


def _restore_view_state(view, state: ViewState, tracker):
    view.set_state(state)


class _SetViewCommand(Command):
    receivers = (ReceiverKind.VIEW,)
    state: ClassVar[ViewState]

    def _apply(self, view):
        prev = view.set_state(self.state)
        return partial(_restore_view_state, view, prev)

    def __repr__(self):
        return f"{type(self).__name__}()"

    def __eq__(self, other):
        return type(self) is type(other)

    __hash__ = object.__hash__


class ShowCommand(_SetViewCommand):
    state = ViewState.EXTENDED


class HideCommand(_SetViewCommand):
    state = ViewState.STANDARD


class RefreshCommand(Command):
    receivers = (ReceiverKind.TRACKER, ReceiverKind.VIEW)

    def _apply(self, receiver):
        return _nothing_to_restore

    def __repr__(self):
        return "RefreshCommand()"

    def __eq__(self, other):
        return type(self) is type(other)

    __hash__ = object.__hash__


# ─── Command text ─────────────────────────────────────────


@dataclass(frozen=True)
class CommandKey:
    name: str
    keys: Tuple[str, ...] = field(default_factory=tuple)
    short_desc: str = ""


COMMAND_KEYS = (
    CommandKey("<id>", (), "set event as completed"),
    CommandKey("create", ("create", "c"), "create an event interactively"),
    CommandKey("rm <id>", ("rm",), "remove registered event"),
    CommandKey("alter <id>", ("alter", "a"), "alter an existing event"),
    CommandKey("trig <id>", ("trigger", "trig", "t"), "manually trigger an event now"),
    CommandKey("show", ("show", "s"), "show all events and extended status"),
    CommandKey("hide", ("hide", "h"), "hide untriggered events and extended event status"),
    CommandKey("undo", ("undo", "u"), "undo last action"),
    CommandKey("exit", ("exit", "quit", "q"), "exit interactive client"),
)


def _command_name(token: str) -> Optional[str]:
    token = token.lower()
    for key in COMMAND_KEYS:
        if token in key.keys:
            return key.name.split()[0]
    return None


def _id_to_uid(token: Optional[str], visible_uids: Sequence[Uid]) -> Optional[Uid]:
    if token is None:
        log_msg("expected an id after the command")
        return None
    try:
        idx = int(token)
    except ValueError:
        log_msg(f"cannot parse an id from {token!r}")
        return None
    if not 0 <= idx < len(visible_uids):
        log_msg(f"no visible event with id {idx}")
        return None
    return visible_uids[idx]


def match_command(
    text: str,
    visible_uids: Sequence[Uid],
    prompt_event: Optional[Callable[[], Optional[EventData]]] = None,
    now: Optional[datetime] = None,
):
    """
    Resolve a line of user input into a Command, a Control, or None.

    Ids in the input are indexes into ``visible_uids``, the uids in the order
    they are displayed. ``prompt_event`` supplies the EventData for create and
    alter; without it those inputs resolve to None. Trigger and complete
    commands are stamped with ``now``, or read the clock when applied if it is
    None.
    """
    tokens = text.split()
    if not tokens:
        return RefreshCommand()

    first, args = tokens[0], tokens[1:]

    if first.isdecimal():
        uids = []
        for token in tokens:
            if not token.isdecimal():
                continue
            idx = int(token)
            if idx < len(visible_uids) and visible_uids[idx] not in uids:
                uids.append(visible_uids[idx])
        return CompleteCommand(uids, now=now)

    name = _command_name(first)
    if name is None:
        log_msg(
            f"nothing matched from {text!r}: first token {first!r} is not a command"
        )
        return None

    if name == "show":
        return ShowCommand()
    if name == "hide":
        return HideCommand()
    if name == "undo":
        return Control.UNDO
    if name == "exit":
        return Control.EXIT

    if name == "create":
        event = prompt_event() if prompt_event else None
        if event is None:
            log_msg("no event data given, create aborted")
            return None
        return CreateCommand(event)

    uid = _id_to_uid(args[0] if args else None, visible_uids)
    if uid is None:
        return None

    if name == "rm":
        return RemoveCommand([uid])
    if name == "trig":
        return TriggerCommand(uid, now=now)
    # alter
    event = prompt_event() if prompt_event else None
    if event is None:
        log_msg("no event data given, alter aborted")
        return None
    return AlterCommand(uid, event)
