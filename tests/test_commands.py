from datetime import time, timedelta

import pytest

from conftest import at, snapshot
from oil.commands import (
    AlterCommand,
    CompleteCommand,
    Control,
    CreateCommand,
    HideCommand,
    RefreshCommand,
    RemoveCommand,
    ShowCommand,
    TriggerCommand,
    ViewState,
)
from oil.errors import CommandError, EventNotFound, InvalidReceiver, ItemAlreadyExists
from oil.event import EventData
from oil.interval import Daily, Periodic

NOW = at("2025-01-02T09:00:00+00:00")
NEW_EVENT = EventData("read a book", Periodic(Daily(time(21, 0))))


def _undo_restores(tracker, cmd):
    before = snapshot(tracker)
    tracker.apply_command(cmd)
    assert snapshot(tracker) != before
    assert tracker.undo() is True
    assert snapshot(tracker) == before


@pytest.mark.unit
@pytest.mark.parametrize(
    "cmd",
    [
        CreateCommand(NEW_EVENT),
        RemoveCommand([1]),
        RemoveCommand([2, 0]),
        TriggerCommand(0, now=NOW),
        CompleteCommand([0, 1, 2], now=NOW),
    ],
    ids=repr,
)
def test_undo_restores_tracker(populated_tracker, cmd):
    _undo_restores(populated_tracker, cmd)


@pytest.mark.unit
def test_alter_moves_event_and_undo_restores_original(populated_tracker):
    tracker = populated_tracker
    tracker.event(0).trigger_now(NOW)
    before = snapshot(tracker)

    tracker.apply_command(AlterCommand(0, NEW_EVENT))
    assert 0 not in tracker.tracked_events
    new_uid = tracker.tracked_events.uids()[-1]
    assert new_uid == 3
    altered = tracker.event(new_uid)
    assert altered.event == NEW_EVENT
    assert altered.is_triggered()
    assert altered.status.trigger_times == [NOW]

    assert tracker.undo() is True
    assert snapshot(tracker) == before


@pytest.mark.unit
def test_alter_highest_uid_reuses_it(populated_tracker):
    populated_tracker.apply_command(AlterCommand(2, NEW_EVENT))
    assert populated_tracker.event(2).event == NEW_EVENT


@pytest.mark.unit
def test_batch_complete(populated_tracker):
    tracker = populated_tracker
    for uid in (0, 1, 2):
        tracker.event(uid).trigger_now(NOW)

    tracker.apply_command(CompleteCommand([0, 1], now=NOW + timedelta(minutes=5)))

    # every 3d is completed, daily 15:00 skips its slot
    assert tracker.event(0).is_done()
    assert tracker.event(1).is_skipped()
    assert tracker.event(2).is_triggered()
    assert tracker.event(0).status.trigger_times == []


@pytest.mark.unit
def test_missing_uid_leaves_earlier_removals(populated_tracker):
    tracker = populated_tracker
    with pytest.raises(EventNotFound):
        tracker.apply_command(RemoveCommand([0, 9, 1]))
    assert tracker.tracked_events.uids() == [1, 2]
    assert tracker.undo_stack == []


@pytest.mark.unit
@pytest.mark.parametrize(
    "cmd",
    [TriggerCommand(9), CompleteCommand([9]), AlterCommand(9, NEW_EVENT), RemoveCommand([9])],
    ids=repr,
)
def test_unknown_uid_is_a_command_error(populated_tracker, cmd):
    before = snapshot(populated_tracker)
    with pytest.raises(CommandError):
        populated_tracker.apply_command(cmd)
    assert snapshot(populated_tracker) == before
    assert populated_tracker.undo_stack == []


@pytest.mark.unit
def test_view_commands_reject_the_tracker(populated_tracker):
    before = snapshot(populated_tracker)
    for cmd in (ShowCommand(), HideCommand()):
        with pytest.raises(InvalidReceiver):
            populated_tracker.apply_command(cmd)
    assert snapshot(populated_tracker) == before
    assert populated_tracker.undo_stack == []


@pytest.mark.unit
def test_tracker_commands_reject_the_view(controller):
    before = snapshot(controller.tracker)
    with pytest.raises(InvalidReceiver):
        CreateCommand(NEW_EVENT).apply(controller)
    assert snapshot(controller.tracker) == before


@pytest.mark.unit
def test_show_hide_and_undo(controller):
    controller.set_state(ViewState.STANDARD)

    inverse = ShowCommand().apply(controller)
    assert controller.state is ViewState.EXTENDED
    inverse(controller.tracker)
    assert controller.state is ViewState.STANDARD

    inverse = HideCommand().apply(controller)
    assert controller.state is ViewState.STANDARD
    inverse(controller.tracker)
    assert controller.state is ViewState.STANDARD


@pytest.mark.unit
def test_refresh_does_nothing(controller):
    before = snapshot(controller.tracker)
    inverse = RefreshCommand().apply(controller)
    inverse(controller.tracker)
    controller.tracker.apply_command(RefreshCommand())
    assert len(controller.tracker.undo_stack) == 1
    assert controller.tracker.undo() is True
    assert snapshot(controller.tracker) == before


@pytest.mark.unit
@pytest.mark.parametrize("noop", [RefreshCommand(), CompleteCommand([])], ids=repr)
def test_undo_after_noop_keeps_earlier_command(populated_tracker, noop):
    tracker = populated_tracker
    tracker.apply_command(CreateCommand(NEW_EVENT))
    tracker.apply_command(noop)
    assert len(tracker.undo_stack) == 2

    tracker.undo()
    assert tracker.tracked_events.uids() == [0, 1, 2, 3]
    tracker.undo()
    assert tracker.tracked_events.uids() == [0, 1, 2]


@pytest.mark.unit
def test_refresh_through_the_controller_is_one_undo_step(controller):
    controller.tracker.apply_command(CreateCommand(NEW_EVENT))
    assert controller.apply_command(RefreshCommand()) is True
    assert len(controller.tracker.undo_stack) == 2

    controller.apply_command(Control.UNDO)
    assert controller.tracker.tracked_events.uids() == [0, 1, 2, 3]


@pytest.mark.unit
def test_undo_into_occupied_uid_is_fatal(populated_tracker):
    tracker = populated_tracker
    tracker.apply_command(RemoveCommand([2]))
    tracker.add_event_at(2, tracker.event(0))
    with pytest.raises(ItemAlreadyExists):
        tracker.undo()
