"""
Reading and writing tracker files.

A tracker file is UTF-8 JSON:

    {
      "version": 1,
      "events": {
        "0": {
          "event": {"text": "Water the plants", "stacks": false,
                    "interval": {"kind": "every", "days": 3}},
          "status": {"kind": "completed", "at": "2025-01-01T12:00:00+00:00",
                     "trigger_times": []}
        }
      }
    }

Timestamps are stored with whole-second precision. An empty file is an empty
tracker.
"""

import json
import os
from datetime import datetime, time
from pathlib import Path

from dateutil.parser import isoparse

from oil.errors import (
    ItemAlreadyExists,
    MalformedTrackerFile,
    StoreError,
    TrackerFileNotFound,
)
from oil.event import EventData, TrackedEvent
from oil.interval import (
    Annual,
    Daily,
    Days,
    FromLastCompletion,
    HoursMinutes,
    Interval,
    Monthly,
    MultiAnnual,
    Periodic,
    Weekly,
)
from oil.shared import log_msg, truncate_to_seconds
from oil.status import Kind, Status, StatusKind
from oil.store import EventStore

FILE_VERSION = 1


def _fmt_dt(dt: datetime) -> str:
    return truncate_to_seconds(dt).isoformat()


def _parse_dt(s: str) -> datetime:
    if not isinstance(s, str):
        raise ValueError(f"expected a timestamp string, got {s!r}")
    return isoparse(s)


def _fmt_time(t: time) -> str:
    return t.strftime("%H:%M:%S")


def _parse_time(s: str) -> time:
    return time.fromisoformat(s)


# ─── Intervals ─────────────────────────────────────────────


def interval_to_dict(interval: Interval) -> dict:
    if isinstance(interval, FromLastCompletion):
        delta = interval.delta
        if isinstance(delta, Days):
            return {"kind": "every", "days": delta.n}
        return {"kind": "every", "hours": delta.hours, "minutes": delta.minutes}

    period = interval.period
    if isinstance(period, Daily):
        return {"kind": "daily", "time": _fmt_time(period.at)}
    if isinstance(period, Weekly):
        return {"kind": "weekly", "weekday": period.weekday, "time": _fmt_time(period.at)}
    if isinstance(period, Monthly):
        return {"kind": "monthly", "day": period.day, "time": _fmt_time(period.at)}
    if isinstance(period, Annual):
        return {
            "kind": "annual",
            "month": period.month,
            "day": period.day,
            "time": _fmt_time(period.at),
        }
    if isinstance(period, MultiAnnual):
        return {"kind": "multi_annual", "days": [list(d) for d in period.days]}
    raise TypeError(f"cannot serialize {interval!r}")


def interval_from_dict(d: dict) -> Interval:
    kind = d["kind"]
    if kind == "every":
        if "days" in d:
            return FromLastCompletion(Days(int(d["days"])))
        return FromLastCompletion(HoursMinutes(int(d["hours"]), int(d["minutes"])))
    if kind == "daily":
        return Periodic(Daily(_parse_time(d["time"])))
    if kind == "weekly":
        return Periodic(Weekly(int(d["weekday"]), _parse_time(d["time"])))
    if kind == "monthly":
        return Periodic(Monthly(int(d["day"]), _parse_time(d["time"])))
    if kind == "annual":
        return Periodic(Annual(int(d["month"]), int(d["day"]), _parse_time(d["time"])))
    if kind == "multi_annual":
        return Periodic(MultiAnnual(tuple((int(m), int(dd)) for m, dd in d["days"])))
    raise ValueError(f"unknown interval kind {kind!r}")


# ─── Status ─────────────────────────────────────────────


def status_to_dict(status: Status) -> dict:
    d = {"kind": status.status.kind.value}
    if status.status.at is not None:
        d["at"] = _fmt_dt(status.status.at)
    d["trigger_times"] = [_fmt_dt(t) for t in status.trigger_times]
    return d


def status_from_dict(d: dict) -> Status:
    kind = Kind(d["kind"])
    trigger_times = [_parse_dt(t) for t in d.get("trigger_times", [])]
    if kind is Kind.TRIGGERED:
        if not trigger_times:
            raise ValueError("a triggered status needs at least one trigger time")
        return Status(trigger_times, StatusKind.triggered())
    if trigger_times:
        raise ValueError(f"a {kind.value} status cannot carry trigger times")
    return Status([], StatusKind(kind, _parse_dt(d["at"])))


# ─── Events ─────────────────────────────────────────────


def tracked_event_to_dict(tracked: TrackedEvent) -> dict:
    return {
        "event": {
            "text": tracked.event.text,
            "stacks": tracked.event.stacks,
            "interval": interval_to_dict(tracked.event.interval),
        },
        "status": status_to_dict(tracked.status),
    }


def tracked_event_from_dict(d: dict) -> TrackedEvent:
    ev = d["event"]
    event = EventData(
        text=str(ev["text"]),
        interval=interval_from_dict(ev["interval"]),
        stacks=bool(ev.get("stacks", False)),
    )
    return TrackedEvent(event, status_from_dict(d["status"]))


def store_to_dict(store: EventStore) -> dict:
    return {
        "version": FILE_VERSION,
        "events": {str(uid): tracked_event_to_dict(ev) for uid, ev in store.items()},
    }


def store_from_dict(d: dict) -> EventStore:
    version = d.get("version")
    if version != FILE_VERSION:
        raise ValueError(f"unsupported tracker file version {version!r}")
    store = EventStore()
    for key, value in d["events"].items():
        store.add(int(key), tracked_event_from_dict(value))
    return store


# ─── Files ─────────────────────────────────────────────


def load_events(path: str | Path) -> EventStore:
    """
    Read a tracker file. Raises TrackerFileNotFound or MalformedTrackerFile;
    malformed contents are reported with the raw text and never repaired here.
    """
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise TrackerFileNotFound(path) from None

    if not contents.strip():
        return EventStore()

    try:
        store = store_from_dict(json.loads(contents))
    except (ValueError, KeyError, TypeError, AttributeError, ItemAlreadyExists) as e:
        log_msg(f"malformed tracker file {path}: {e}")
        raise MalformedTrackerFile(e, path, contents) from e
    log_msg(f"loaded {len(store)} events from {path}")
    return store


def store_events(store: EventStore, path: str | Path) -> None:
    """Write a tracker file, replacing the old one only once the new one is complete."""
    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        content = json.dumps(store_to_dict(store), indent=2, ensure_ascii=False)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content + "\n")
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        raise StoreError(path, e) from e
