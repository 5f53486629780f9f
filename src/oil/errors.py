from __future__ import annotations


class OilError(Exception):
    pass


class CommandError(OilError):
    """A command could not be applied. The tracker reports it and carries on."""


class EventNotFound(CommandError):
    def __init__(self, uid):
        self.uid = uid
        super().__init__(f"no event found for uid {uid}")


class InvalidReceiver(CommandError):
    def __init__(self, command, receiver):
        self.command = command
        self.receiver = receiver
        super().__init__(f"{command} cannot be applied to {receiver}")


class ItemAlreadyExists(OilError):
    """
    A uid was already taken when inserting. Uids are allocated internally,
    so this means the in-memory state is corrupt.
    """

    def __init__(self, uid, old, new):
        self.uid = uid
        self.old = old
        self.new = new
        super().__init__(
            f"cannot insert pair with key {uid!r}, because {new!r} would replace {old!r}"
        )


class ScheduleError(OilError, ValueError):
    def __init__(self, year: int, month: int, day: int, reason: str = ""):
        self.year = year
        self.month = month
        self.day = day
        msg = f"no such date: {year:04d}-{month:02d}-{day:02d}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class UnsupportedRecurrence(OilError, NotImplementedError):
    pass


class StatusInvariantError(OilError):
    pass


class LoadError(OilError):
    def __init__(self, path, msg: str):
        self.path = path
        super().__init__(msg)


class TrackerFileNotFound(LoadError):
    def __init__(self, path):
        super().__init__(path, f"tracker file does not exist: {path}")


class MalformedTrackerFile(LoadError):
    def __init__(self, cause: Exception, path, raw_text: str):
        self.cause = cause
        self.raw_text = raw_text
        super().__init__(path, f"tracker file is malformed: {path}: {cause}")


class StoreError(OilError):
    def __init__(self, path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"cannot store tracker file {path}: {cause}")
