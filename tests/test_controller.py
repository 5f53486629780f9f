from datetime import timedelta

import pytest
from rich.console import Console

from conftest import at
from oil.commands import ViewState
from oil.controller import Controller
from oil.oil_env import OilConfig, UIConfig
from oil.tracker import Tracker

T0 = at("2025-01-01T12:00:00+00:00")


def _controller(tracker, view="extended", look_ahead=1 / 12):
    config = OilConfig(ui=UIConfig(view=view, look_ahead=look_ahead))
    console = Console(record=True, width=200, color_system=None)
    return Controller(tracker, config, console=console)


@pytest.fixture
def mixed_tracker(event_factory):
    """
    0: every 3d, not due for days
    1: daily 12:30, due in half an hour
    2: every 1h30m, triggered
    3: weekly mon 09:00, skipped
    4: annual 1-2 12:00, due tomorrow
    """
    tracker = Tracker.empty()
    specs = [
        ("every 3d", "water the plants"),
        ("daily 12:30", "lunch"),
        ("every 1h30m", "stretch"),
        ("weekly mon 09:00", "standup"),
        ("annual 1-2 12:00", "birthday"),
    ]
    for spec, text in specs:
        ev = event_factory(spec, text=text)
        tracker.add_event(ev.event, status=ev.status)
    tracker.event(2).trigger_now(T0)
    tracker.event(3).skip_now(T0)
    return tracker


@pytest.mark.unit
def test_extended_view_lists_everything(mixed_tracker):
    ctrl = _controller(mixed_tracker)
    entries = ctrl.generate_events_list(T0)
    # daily events first, held ones ahead of the rest, then by due time
    assert [uid for uid, _ in entries] == [2, 1, 4, 0, 3]
    assert ctrl.visible_uids == [2, 1, 4, 0, 3]


@pytest.mark.unit
def test_standard_view_filters(mixed_tracker):
    ctrl = _controller(mixed_tracker, view="standard")
    entries = ctrl.generate_events_list(T0)
    # lunch is 1/48 of a day away; the birthday is 1/365 of a year away
    assert [uid for uid, _ in entries] == [2, 1, 4]

    later = _controller(mixed_tracker, view="standard", look_ahead=0.001)
    assert [uid for uid, _ in later.generate_events_list(T0)] == [2]


@pytest.mark.unit
def test_call_completes_by_display_position(mixed_tracker):
    ctrl = _controller(mixed_tracker)
    assert ctrl.call("0 1", now=T0) is True
    assert mixed_tracker.event(2).is_done()
    # lunch is periodic, so its slot is skipped
    assert mixed_tracker.event(1).is_skipped()
    assert len(mixed_tracker.undo_stack) == 1
    # both are stamped with the time the input was read at
    assert mixed_tracker.event(2).status.status.at == T0
    assert mixed_tracker.event(1).status.status.at == T0


@pytest.mark.unit
def test_call_view_commands_are_undoable(mixed_tracker):
    ctrl = _controller(mixed_tracker)
    assert ctrl.call("hide", now=T0) is True
    assert ctrl.state is ViewState.STANDARD
    assert ctrl.call("undo", now=T0) is True
    assert ctrl.state is ViewState.EXTENDED


@pytest.mark.unit
def test_call_reports_failures(mixed_tracker):
    ctrl = _controller(mixed_tracker)
    assert ctrl.call("nonsense", now=T0) is False
    assert ctrl.call("undo", now=T0) is False
    assert ctrl.call("rm 9", now=T0) is False
    assert mixed_tracker.tracked_events.uids() == [0, 1, 2, 3, 4]


@pytest.mark.unit
def test_visualize(mixed_tracker):
    ctrl = _controller(mixed_tracker)
    ctrl.visualize(ctrl.generate_events_list(T0), T0)
    out = ctrl.console.export_text()

    assert "Daily Events (extended)" in out
    assert "Events (extended)" in out
    assert "lunch" in out and "birthday" in out
    assert "today at 12:30" in out
    assert "Not scheduled" in out
    assert "Commands" in out and "undo last action" in out
    assert out.index("stretch") < out.index("water the plants")


@pytest.mark.unit
def test_visualize_empty(tracker):
    ctrl = _controller(tracker, view="standard")
    ctrl.visualize(ctrl.generate_events_list(T0), T0)
    assert "No Events (standard)" in ctrl.console.export_text()


@pytest.mark.unit
def test_interact_loop(tmp_path, mixed_tracker, monkeypatch, freeze_at):
    path = tmp_path / "events.json"
    mixed_tracker.store_to_disk(path)
    ctrl = _controller(Tracker.from_path(path, now=T0))

    answers = iter(["rm 3", "bogus", "exit"])
    monkeypatch.setattr("oil.controller.click.prompt", lambda *a, **kw: next(answers))

    with freeze_at("2025-01-01 12:00:00"):
        ctrl.interact(path)

    # position 3 in the extended list is uid 0
    reloaded = Tracker.from_path(path, now=T0 + timedelta(seconds=1))
    assert reloaded.tracked_events.uids() == [1, 2, 3, 4]


@pytest.mark.unit
def test_visualize_standard(mixed_tracker):
    ctrl = _controller(mixed_tracker, view="standard")
    ctrl.visualize(ctrl.generate_events_list(T0), T0)
    out = ctrl.console.export_text()

    assert "triggers today at 12:30 (in 30m)" in out
    assert "triggers Thu 2.1. at 12:00 (in 1d)" in out
    assert "standup" not in out
