"""
Module: notibot/utils.py

Provides utility functions for logging, parsing intervals and awaiting
collaborator results that may or may not be coroutines.
"""
import inspect, os, re
from datetime import datetime, timedelta, UTC
from colorama import init, Fore, Style

init(autoreset=True)

LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40}
_threshold = LEVELS["info"]


def set_log_level(level):
    """
    Set the minimum level printed by log_message.

    Unknown level names leave the current threshold unchanged.
    """
    global _threshold
    if level and level.lower() in LEVELS:
        _threshold = LEVELS[level.lower()]


def log_message(message, level="info"):
    """
    Print a timestamped, colored log message with the caller's relative source path.

    Parameters:
    - message: The log message string.
    - level: One of "info", "debug", "warning", or "error" for coloring.
    """
    if LEVELS.get(level.lower(), LEVELS["info"]) < _threshold:
        return

    frame    = inspect.currentframe().f_back
    fullpath = frame.f_code.co_filename
    cwd      = os.getcwd()
    if fullpath.startswith(cwd + os.sep):
        filename = fullpath[len(cwd)+1:]
    else:
        filename = fullpath
    lineno   = frame.f_lineno

    timestamp = f"[{datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S')}]"
    color_map = {
        "info": Fore.GREEN,
        "debug": Fore.BLUE,
        "warning": Fore.YELLOW,
        "error": Fore.RED
    }
    level_prefix = f"{level.upper():<7}"
    level_color = color_map.get(level.lower(), Fore.WHITE)

    prefix = f"[{timestamp}] {filename}({lineno}):"
    print(f"{prefix} {level_color}{level_prefix} {message}{Style.RESET_ALL}")


def parse_interval(interval_str):
    """
    Parse an interval string into a (value, unit) tuple.

    Supported formats: digits + unit, where unit is one of
    s, m, h, d, w, optionally with suffixes like "hours", "days".

    Returns (int(value), str(unit)) if valid, otherwise (None, None).
    """
    pattern = r'^(\d+)\s*([smhdw])(?:ec(?:ond)?|in(?:ute)?|our|ay|(?:ee)?k)?s?$'
    match = re.match(pattern, (interval_str or "").strip(), re.IGNORECASE)
    if not match:
        return None, None
    return int(match.group(1)), match.group(2).lower()


def interval_to_timedelta(value, unit):
    """
    Convert an interval value and unit into a timedelta.

    Supported units:
      s - seconds
      m - minutes
      h - hours
      d - days
      w - weeks

    Returns a datetime.timedelta or None if the unit is invalid.
    """

    # Guard against missing or invalid inputs
    if value is None or unit is None:
        return None

    delta_map = {
        's': timedelta(seconds=value),
        'm': timedelta(minutes=value),
        'h': timedelta(hours=value),
        'd': timedelta(days=value),
        'w': timedelta(weeks=value)
    }
    return delta_map.get(unit)


def interval_to_seconds(interval_str):
    """
    Convert an interval string like '1d' or '30m' into whole seconds.

    Returns None when the string is not a valid, positive interval.
    """
    delta = interval_to_timedelta(*parse_interval(interval_str))
    if not delta:
        return None
    seconds = int(delta.total_seconds())
    return seconds if seconds > 0 else None


def format_timestamp(ts):
    """Render epoch seconds as 'YYYY-mm-dd HH:MM UTC', or '—' when absent."""
    if not ts:
        return '—'
    return datetime.fromtimestamp(int(ts), UTC).strftime('%Y-%m-%d %H:%M UTC')


async def maybe_await(value):
    """Return value, awaiting it first when a collaborator handed back an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
