"""
Shared pytest fixtures for oil tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- A deterministic local timezone
- An isolated workspace home
- Test data factories
"""

import time

import pytest
from dateutil.parser import isoparse
from freezegun import freeze_time

from oil.controller import Controller
from oil.event import EventData, TrackedEvent
from oil.interval import parse_interval
from oil.oil_env import OilConfig
from oil.status import Status
from oil.tracker import Tracker


@pytest.fixture(autouse=True)
def local_utc(monkeypatch):
    """
    Runs every test with the local timezone set to UTC.

    Tests that need another zone set TZ themselves and call time.tzset().
    """
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture(autouse=True)
def oil_home(monkeypatch, tmp_path):
    """
    Points OIL_HOME at a temporary directory so that log files and config
    never land in the real workspace.
    """
    home = tmp_path / "oil-home"
    monkeypatch.setenv("OIL_HOME", str(home))
    return home


@pytest.fixture
def frozen_time():
    """
    Provides a freezegun context that freezes time to a default datetime.

    Time is frozen to 2025-01-01 12:00:00 UTC for the duration of the test.
    You can move time forward using the methods on the frozen context.

    Usage:
        def test_something(frozen_time):
            frozen_time.tick(delta=timedelta(hours=2))
    """
    with freeze_time("2025-01-01 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2025-01-15 10:00:00"):
                ...
    """
    return freeze_time


def at(s: str):
    """An aware datetime from an ISO string, e.g. at("2025-01-01T12:00:00+00:00")."""
    return isoparse(s)


@pytest.fixture
def event_factory():
    """
    Provides a factory for TrackedEvents registered at a given time.

    Usage:
        def test_something(event_factory):
            ev = event_factory("daily 15:00", registered="2025-01-01T12:00:00+00:00")
    """

    def _create(
        spec: str,
        text: str = "test event",
        stacks: bool = False,
        registered: str = "2025-01-01T12:00:00+00:00",
    ) -> TrackedEvent:
        event = EventData(text, parse_interval(spec), stacks)
        return TrackedEvent(event, Status.from_time(at(registered)))

    return _create


@pytest.fixture
def tracker():
    return Tracker.empty()


@pytest.fixture
def populated_tracker(tracker, event_factory):
    """
    A tracker holding three events, uids 0..2:
    0: every 3d, 1: daily 15:00, 2: every 1h30m (stacking)
    """
    for spec, text, stacks in [
        ("every 3d", "water the plants", False),
        ("daily 15:00", "walk the dog", False),
        ("every 1h30m", "stretch", True),
    ]:
        ev = event_factory(spec, text=text, stacks=stacks)
        tracker.add_event(ev.event, status=ev.status)
    return tracker


@pytest.fixture
def controller(populated_tracker):
    return Controller(populated_tracker, OilConfig())


def snapshot(tracker: Tracker):
    """Observable state of a tracker: uid -> (EventData, status kind, times)."""
    return {
        uid: (
            ev.event,
            ev.status.status.kind,
            ev.status.status.at,
            list(ev.status.trigger_times),
        )
        for uid, ev in tracker.events()
    }
