from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table
from rich.markup import escape
from rich.text import Text
from rich import box

from oil.commands import (
    COMMAND_KEYS,
    Command,
    Control,
    ReceiverKind,
    ViewState,
    match_command,
)
from oil.errors import CommandError, LoadError
from oil.event import EventData, TrackedEvent
from oil.interval import (
    WEEKDAYS,
    Annual,
    Daily,
    Days,
    FromLastCompletion,
    HoursMinutes,
    Monthly,
    Periodic,
    Weekly,
    parse_interval,
    parse_time,
)
from oil.oil_env import OilConfig
from oil.shared import (
    COMMAND_COLOR,
    COMPLETED_COLOR,
    DIM_COLOR,
    DORMANT_COLOR,
    ERROR_COLOR,
    HEADER_COLOR,
    SKIP_COLOR,
    STACKING,
    TRIGGERED,
    TRIGGERED_COLOR,
    format_due,
    format_timedelta,
    log_msg,
    now_local,
    truncate_string,
)
from oil.store import Uid
from oil.tracker import Tracker

# events with a shorter period are listed under "Daily Events"
DAILY_CUTOFF = timedelta(days=1, hours=1)

Entry = Tuple[Uid, TrackedEvent]


def _is_daily(event: TrackedEvent) -> bool:
    heuristic = event.interval.duration_heuristic()
    return heuristic is not None and heuristic < DAILY_CUTOFF


def _sort_key(entry: Entry):
    uid, event = entry
    group = 0 if _is_daily(event) else 1
    next_due = event.next_due()
    if next_due is None:
        # held until completed: first, shortest period first
        heuristic = event.interval.duration_heuristic()
        seconds = heuristic.total_seconds() if heuristic is not None else float("inf")
        return (group, 0, seconds, uid)
    return (group, 1, next_due.timestamp(), uid)


def _status_color(event: TrackedEvent) -> str:
    if event.is_triggered():
        return TRIGGERED_COLOR
    if event.is_done():
        return COMPLETED_COLOR
    if event.is_skipped():
        return SKIP_COLOR
    return DORMANT_COLOR


class Controller:
    """
    The display side of a tracking session: which events are visible, in
    what order, and how they are rendered. Receives the view commands.
    """

    receiver_kind = ReceiverKind.VIEW

    def __init__(
        self,
        tracker: Tracker,
        config: Optional[OilConfig] = None,
        console: Optional[Console] = None,
    ):
        self.tracker = tracker
        self.config = config or OilConfig()
        self.look_ahead = self.config.ui.look_ahead
        self.ampm = self.config.ui.ampm
        self.state = ViewState(self.config.ui.view)
        self.console = console or Console()
        self.visible_uids: List[Uid] = []

    def set_state(self, state: ViewState) -> ViewState:
        """Returns the previous state."""
        prev = self.state
        self.state = state
        return prev

    # ─── Visible events ─────────────────────────────────────────────

    def _is_visible(self, event: TrackedEvent, now: datetime) -> bool:
        if self.state is ViewState.EXTENDED:
            return True
        if event.is_triggered():
            return True
        if event.is_skipped():
            return False
        remaining = event.fraction_of_interval_remaining(now)
        return remaining is not None and remaining < self.look_ahead

    def generate_events_list(self, now: Optional[datetime] = None) -> List[Entry]:
        """
        The events to display, in display order. Their positions are the ids
        accepted by commands.
        """
        now = now or now_local()
        entries = [
            (uid, event)
            for uid, event in self.tracker.events()
            if self._is_visible(event, now)
        ]
        entries.sort(key=_sort_key)
        self.visible_uids = [uid for uid, _ in entries]
        return entries

    # ─── Rendering ─────────────────────────────────────────────

    def _event_row(self, idx: int, event: TrackedEvent, now: datetime) -> list:
        color = _status_color(event)
        flags = TRIGGERED if event.is_triggered() else " "
        flags += STACKING if event.event.stacks else " "
        text = Text(truncate_string(event.text, 48), style=color)
        if self.state is ViewState.STANDARD:
            if event.is_triggered():
                count = len(event.status.trigger_times)
                when = f"×{count}" if count > 1 else ""
            else:
                next_due = event.next_due()
                when = (
                    f"triggers {format_due(next_due, now, self.ampm)}"
                    f" (in {format_timedelta(next_due - now)})"
                )
            return [str(idx), flags, text, Text(when, style=DIM_COLOR)]

        return [
            str(idx),
            flags,
            text,
            format_due(event.next_due(), now, self.ampm),
            Text(event.interval.describe(), style=DIM_COLOR),
            Text(repr(event.status.status), style=color),
        ]

    def _table(self, title: str) -> Table:
        table = Table(
            title=f"{title} ({self.state.value})",
            title_style=HEADER_COLOR,
            title_justify="left",
            box=box.SIMPLE_HEAD,
            show_header=self.state is ViewState.EXTENDED,
            pad_edge=False,
        )
        table.add_column("id", justify="right")
        table.add_column("", width=2)
        table.add_column("event", no_wrap=True)
        if self.state is ViewState.EXTENDED:
            table.add_column("next")
            table.add_column("interval")
            table.add_column("status")
        else:
            table.add_column("")
        return table

    def visualize(self, entries: List[Entry], now: Optional[datetime] = None) -> None:
        now = now or now_local()
        if not entries:
            self.console.print(f"[{HEADER_COLOR}]=== No Events ({self.state.value}) ===")
        else:
            daily = self._table("Daily Events")
            other = self._table("Events")
            for idx, (_, event) in enumerate(entries):
                table = daily if _is_daily(event) else other
                table.add_row(*self._event_row(idx, event, now))
            for table in (daily, other):
                if table.row_count:
                    self.console.print(table)

        commands = Table(
            title="Commands",
            title_style=HEADER_COLOR,
            title_justify="left",
            box=None,
            show_header=False,
        )
        commands.add_column(style=COMMAND_COLOR)
        commands.add_column(style=DIM_COLOR)
        for key in COMMAND_KEYS:
            commands.add_row(key.name, key.short_desc)
        self.console.print(commands)

    # ─── Commands ─────────────────────────────────────────────

    def interpret(
        self,
        text: str,
        visible_uids: Optional[List[Uid]] = None,
        now: Optional[datetime] = None,
    ):
        if visible_uids is None:
            visible_uids = self.visible_uids
        log_msg(f"input: {text!r}")
        cmd = match_command(text, visible_uids, prompt_event=prompt_event, now=now)
        if cmd is not None:
            log_msg(f"matched {cmd!r}")
        return cmd

    def apply_command(self, cmd) -> bool:
        """
        Apply a command, an undo or nothing. Returns False when there was
        nothing to apply or the command failed, True otherwise.
        """
        if cmd is None:
            return False
        if cmd is Control.UNDO:
            try:
                return self.tracker.undo()
            except CommandError as e:
                self.console.print(f"[{ERROR_COLOR}]Undo failed: {escape(str(e))}")
                return False
        if cmd is Control.EXIT:
            return True

        try:
            self._apply(cmd)
        except CommandError as e:
            self.console.print(f"[{ERROR_COLOR}]Apply failed: {escape(str(e))}")
            log_msg(f"{cmd!r} failed: {e}")
            return False
        return True

    def _apply(self, cmd: Command) -> None:
        # a command taking both receivers is applied once, to the view
        if cmd.accepts(ReceiverKind.VIEW):
            inverse = cmd.apply(self)
            if inverse is not None:
                self.tracker.undo_stack.append(inverse)
        elif cmd.accepts(ReceiverKind.TRACKER):
            self.tracker.apply_command(cmd)

    def call(self, text: str, now: Optional[datetime] = None) -> bool:
        """Apply a single line of input outside the interaction loop."""
        now = now or now_local()
        self.generate_events_list(now)
        cmd = self.interpret(text, now=now)
        return self.apply_command(cmd)

    def interact(self, path: str | Path) -> None:
        """
        Loop: bring events up to date, display, read a command, reload the
        file, apply the command and store the file.
        """
        while True:
            self.console.print()
            now = now_local()
            self.tracker.update_events(now)
            entries = self.generate_events_list(now)
            self.visualize(entries, now)

            text = click.prompt(">", default="", show_default=False, prompt_suffix=" ")
            cmd = self.interpret(text, now=now)
            if cmd is Control.EXIT:
                return

            try:
                self.tracker.refresh_from_disk(path)
            except LoadError as e:
                self.console.print(
                    f"[{ERROR_COLOR}]Could not refresh event status from disk "
                    f"before applying the command:\n{escape(str(e))}"
                )
                continue

            if not self.apply_command(cmd):
                continue
            self.tracker.store_to_disk(path)


# ─── Event wizard ─────────────────────────────────────────────

INTERVAL_CHOICES = (
    "A constant time after the last completion of the event",
    "Daily",
    "Weekly",
    "Monthly",
    "Annually",
)


def _choose(prompt: str, choices) -> int:
    for idx, choice in enumerate(choices):
        click.echo(f"  {idx}: {choice}")
    return click.prompt(prompt, type=click.IntRange(0, len(choices) - 1), default=0)


def _prompt_time(prompt: str):
    while True:
        raw = click.prompt(prompt, default="", show_default=False)
        if not raw:
            return None
        try:
            return parse_time(raw)
        except ValueError as e:
            click.echo(str(e))


def _prompt_int(prompt: str, lo: int, hi: int):
    while True:
        raw = click.prompt(prompt, default="", show_default=False).strip()
        if not raw:
            return None
        try:
            value = int(raw)
        except ValueError:
            click.echo(f"Cannot parse a number from {raw}")
            continue
        if lo <= value <= hi:
            return value
        click.echo(f"{value} is not between {lo} and {hi}")


def prompt_event() -> Optional[EventData]:
    """
    Ask for the text and recurrence of an event. A recurrence may be typed
    directly in the compact syntax, e.g. 'weekly mon 9:00'. Returns None when
    aborted with an empty answer.
    """
    text = click.prompt("What? (type text)", default="", show_default=False)
    if not text:
        return None

    spec = click.prompt(
        "When? (e.g. 'every 3d', 'daily 15:00', empty to choose)",
        default="",
        show_default=False,
    )
    if spec:
        try:
            interval = parse_interval(spec)
        except ValueError as e:
            click.echo(f"Aborting 'add event': {e}")
            return None
    else:
        interval = _prompt_interval()
        if interval is None:
            click.echo("Aborting 'add event'")
            return None

    stacks = click.confirm("Should re-triggers stack?", default=False)
    return EventData(text, interval, stacks)


def _prompt_interval():
    selection = _choose("Choose when to trigger the event", INTERVAL_CHOICES)
    if selection == 0:
        kind = _choose(
            "Choose the kind of timer",
            ("Trigger every N days", "Trigger every h:mm hours and minutes"),
        )
        if kind == 0:
            days = _prompt_int("Number of days", 0, 100000)
            return None if days is None else FromLastCompletion(Days(days))
        t = _prompt_time("Time interval, eg. 2:15 for 2 hours 15 minutes")
        return None if t is None else FromLastCompletion(HoursMinutes(t.hour, t.minute))

    if selection == 1:
        at = _prompt_time("At what time?")
        return None if at is None else Periodic(Daily(at))

    if selection == 2:
        weekday = _choose("Which day of the week?", WEEKDAYS)
        at = _prompt_time("At what time?")
        return None if at is None else Periodic(Weekly(weekday, at))

    if selection == 3:
        day = _prompt_int("Which day? (number)", 1, 31)
        if day is None:
            return None
        at = _prompt_time("At what time?")
        return None if at is None else Periodic(Monthly(day, at))

    month = _prompt_int("Which month? (number)", 1, 12)
    if month is None:
        return None
    day = _prompt_int("Which day? (number)", 1, 31)
    if day is None:
        return None
    at = _prompt_time("At what time?")
    return None if at is None else Periodic(Annual(month, day, at))
