"""
SRT timestamp parsing, formatting and offsetting.

Times are ``datetime.timedelta`` values so offset arithmetic stays exact at
microsecond resolution instead of accumulating float error.
"""

import re
from datetime import timedelta
from typing import Tuple, Union

from pipeline.errors import FormatError, InvariantError

_TIMESTAMP = r"(\d{2,}):(\d{2}):(\d{2}),(\d{3})"
TIMESTAMP_RE = re.compile(rf"^{_TIMESTAMP}$")
TIMING_RE = re.compile(rf"^\s*{_TIMESTAMP}\s*-->\s*{_TIMESTAMP}\s*$")

_MILLISECOND = timedelta(milliseconds=1)


def _to_timedelta(hours: str, minutes: str, seconds: str, millis: str) -> timedelta:
    if int(minutes) > 59 or int(seconds) > 59:
        raise FormatError(f"Timestamp out of range: {hours}:{minutes}:{seconds},{millis}")
    return timedelta(hours=int(hours), minutes=int(minutes),
                     seconds=int(seconds), milliseconds=int(millis))


def parse_timestamp(text: str) -> timedelta:
    """Parse a single ``HH:MM:SS,mmm`` value."""
    match = TIMESTAMP_RE.match(text.strip())
    if not match:
        raise FormatError(f"Invalid timestamp: {text!r}")
    return _to_timedelta(*match.groups())


def parse_timing(text: str) -> Tuple[timedelta, timedelta]:
    """Parse a ``HH:MM:SS,mmm --> HH:MM:SS,mmm`` line into (start, end)."""
    match = TIMING_RE.match(text)
    if not match:
        raise FormatError(f"Invalid timing line: {text!r}")
    groups = match.groups()
    return _to_timedelta(*groups[:4]), _to_timedelta(*groups[4:])


def format_timestamp(time: timedelta) -> str:
    """Render ``time`` as ``HH:MM:SS,mmm``, truncating below one millisecond."""
    if time < timedelta(0):
        raise InvariantError(f"Cannot format negative time {time}")
    total_ms = time // _MILLISECOND
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def format_timing(start: timedelta, end: timedelta) -> str:
    return f"{format_timestamp(start)} --> {format_timestamp(end)}"


def offset(time: timedelta, delta: Union[float, timedelta]) -> timedelta:
    """Shift ``time`` by ``delta`` seconds (or a timedelta).

    The result must stay non-negative; segment offsets come from the planner,
    so a negative time means the inputs are inconsistent.
    """
    if not isinstance(delta, timedelta):
        delta = timedelta(seconds=delta)
    shifted = time + delta
    if shifted < timedelta(0):
        raise InvariantError(f"Offsetting {time} by {delta} gives negative time")
    return shifted
