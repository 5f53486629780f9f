import inspect
import textwrap
import shutil
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Literal
from dateutil import tz

from oil.oil_env import OilEnvironment

ELLIPSIS_CHAR = "…"

STACKING = "↻"  # Flag for events whose re-triggers stack
TRIGGERED = "*"  # Flag for triggered events

# Colors for UI elements
GOLDENROD = "#DAA520"
LIGHT_SKY_BLUE = "#87CEFA"
LIME_GREEN = "#32CD32"
DARK_GRAY = "#A9A9A9"
DARK_ORANGE = "#FF8C00"
SLATE_GREY = "#708090"
TOMATO = "#FF6347"

HEADER_COLOR = LIGHT_SKY_BLUE
TRIGGERED_COLOR = DARK_ORANGE
DORMANT_COLOR = LIME_GREEN
COMPLETED_COLOR = DARK_GRAY
SKIP_COLOR = SLATE_GREY
DIM_COLOR = DARK_GRAY
COMMAND_COLOR = GOLDENROD
ERROR_COLOR = TOMATO


# ─── Time ─────────────────────────────────────────────────


def now_local() -> datetime:
    """The current time as an aware datetime in the local timezone."""
    return datetime.now(tz.tzlocal())


def to_local(dt: datetime) -> datetime:
    """
    Convert aware -> local-aware; naive datetimes are taken to be local
    already and just get the local tzinfo attached.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz.tzlocal())
    return dt.astimezone(tz.tzlocal())


def truncate_to_seconds(dt: datetime) -> datetime:
    return dt.replace(microsecond=0)


def is_today(dt: datetime, now: datetime | None = None) -> bool:
    now = now or now_local()
    return to_local(dt).date() == to_local(now).date()


# ─── Formatting ─────────────────────────────────────────────


def format_hours_mins(dt: datetime, mode: Literal["24", "12"] = "24") -> str:
    if mode == "12":
        suffix = "am" if dt.hour < 12 else "pm"
        hour = dt.hour % 12 or 12
        return f"{hour}:{dt.minute:02d}{suffix}"
    return f"{dt.hour:02d}:{dt.minute:02d}"


def format_due(
    dt: datetime | None, now: datetime | None = None, ampm: bool = False
) -> str:
    """
    Short description of a due time: 'today at 15:00', 'Sat 1.2. at 15:00'
    or 'Not scheduled'.
    """
    if dt is None:
        return "Not scheduled"
    local = to_local(dt)
    hm = format_hours_mins(local, "12" if ampm else "24")
    if is_today(local, now):
        return f"today at {hm}"
    return f"{local:%a} {local.day}.{local.month}. at {hm}"


def format_timedelta(td: timedelta, short: bool = True) -> str:
    """Compact rendering of a timedelta such as '2d3h' or '-45m'."""
    total = int(td.total_seconds())
    if total == 0:
        return "now"
    sign = "-" if total < 0 else ""
    total = abs(total)
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes and (not short or not days):
        parts.append(f"{minutes}m")
    if not parts:
        parts.append("<1m")
    return sign + "".join(parts)


def truncate_string(s: str, max_length: int) -> str:
    if len(s) > max_length:
        return f"{s[: max_length - 1]}{ELLIPSIS_CHAR}"
    return s


# ─── Logging ─────────────────────────────────────────────


def _get_runtime_home() -> Path:
    override = os.environ.get("OIL_HOME")
    if override:
        return Path(override).expanduser()
    return OilEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = date.today().strftime("%y%m%d")
    return Path("logs") / f"{kind}_{suffix}.md"


def _caller_name(frame) -> str:
    func_name = frame.f_code.co_name

    # Detect instance/class/static context
    if "self" in frame.f_locals:  # instance method
        cls_name = frame.f_locals["self"].__class__.__name__
        return f"{cls_name}.{func_name}"
    elif "cls" in frame.f_locals:  # classmethod
        cls_name = frame.f_locals["cls"].__name__
        return f"{cls_name}.{func_name}"
    return func_name


def _write_msg(
    kind: str,
    caller_name: str,
    msg: str,
    file_path: str | Path | None,
    print_output: bool,
):
    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} {kind}_msg ({caller_name}):  ",
    ]
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 20),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    if file_path is None:
        file_path = _default_log_relative_path(kind)
    log_path = _resolve_log_file_path(file_path)

    # Best-effort file logging; fall back to console when the file is unwritable.
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Log a message and save it directly to a file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``logs/log_<YYMMDD>.md``.
        print_output (bool, optional): If True, also print to console.
    """
    caller_name = _caller_name(inspect.stack()[1].frame)
    _write_msg("log", caller_name, msg, file_path, print_output)
