from datetime import datetime, timedelta, timezone
from typing import Optional

from common.constants import STAMP_FORMAT

STAMP_LENGTH = len("YYYYMMDD-HHMMSS")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """
    Parses an ISO-8601 timestamp from the host. Naive values are taken as UTC.
    Returns None for empty or unparsable input.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def stamp_from_datetime(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(STAMP_FORMAT)


def stamp_from_iso(value: Optional[str]) -> str:
    parsed = parse_iso(value)
    return stamp_from_datetime(parsed or now_utc())


def bump_stamp_by_one_second(stamp: str) -> str:
    try:
        dt = datetime.strptime(stamp, STAMP_FORMAT)
    except ValueError:
        return stamp_from_datetime(now_utc())
    return stamp_from_datetime(dt + timedelta(seconds=1))


def next_free_stamp(stamp: str, floor: Optional[str]) -> str:
    """Returns `stamp`, or one second past `floor` when it would not sort after it."""
    if floor is not None and stamp <= floor:
        return bump_stamp_by_one_second(floor)
    return stamp


def stamp_of(filename: str) -> str:
    return filename[:STAMP_LENGTH]
