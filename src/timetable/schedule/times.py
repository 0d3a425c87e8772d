"""RFC 3339 timestamp parsing."""

import re
from datetime import datetime

from timetable.schedule.errors import TimeParseError

_RFC3339 = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Only the RFC 3339 profile is accepted: a full date, ``T``, a full time
    with seconds, optional fractional seconds and a mandatory offset
    (``Z`` or ``+HH:MM``). Fractional seconds beyond microseconds are
    truncated.

    Raises:
        TimeParseError: If ``text`` is not an RFC 3339 timestamp.
    """
    if not isinstance(text, str):
        raise TimeParseError(repr(text), "not a string")

    match = _RFC3339.fullmatch(text)
    if match is None:
        raise TimeParseError(text)

    frac = match.group("frac")
    offset = match.group("offset")
    normalized = f"{match.group('date')}T{match.group('time')}"
    if frac:
        normalized += "." + frac[:6].ljust(6, "0")
    normalized += "+00:00" if offset in ("Z", "z") else offset

    try:
        return datetime.fromisoformat(normalized)
    except ValueError as e:
        raise TimeParseError(text, str(e)) from e


def format_rfc3339(value: datetime) -> str:
    """Format an aware datetime as RFC 3339, using ``Z`` for UTC."""
    text = value.isoformat()
    return text.replace("+00:00", "Z")
