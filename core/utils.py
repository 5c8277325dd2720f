import calendar
from datetime import datetime, date, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Union[datetime, date, str, None]) -> Optional[datetime]:
    """
    Normalize a datetime, date or ISO string to a naive UTC datetime.
    Aware values are converted to UTC; naive values are assumed to be UTC already.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def compute_event_status(start: datetime, end: datetime, now: Optional[datetime] = None) -> str:
    """
    Event status relative to now:
    upcoming before start, completed after end, ongoing in between (inclusive).
    """
    now = now or utcnow()
    start = to_naive_utc(start)
    end = to_naive_utc(end)
    if now < start:
        return "upcoming"
    if now > end:
        return "completed"
    return "ongoing"


def compute_mission_status(start: datetime, end: datetime, now: Optional[datetime] = None) -> str:
    """Same window rule as events; missions call the running window "active"."""
    status = compute_event_status(start, end, now)
    return "active" if status == "ongoing" else status


def is_reward_active(stock: Optional[int]) -> bool:
    return (stock or 0) > 0


def parse_entity_id(entity_id: Union[str, int, None]) -> int:
    """
    Parse an interface-level string id into the backend's integer id.

    Raises:
        ValueError: If the id is not a positive integer
    """
    try:
        parsed = int(str(entity_id).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid id: {entity_id}")
    if parsed <= 0:
        raise ValueError(f"Invalid id: {entity_id}")
    return parsed


def format_entity_id(entity_id: Optional[int]) -> Optional[str]:
    return None if entity_id is None else str(entity_id)


def split_full_name(full_name: Optional[str]):
    """Split "First Middle Last" into ("First", "Middle Last")."""
    parts = (full_name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def join_full_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()


def month_windows(now: datetime, count: int):
    """
    The last `count` calendar months up to and including now's month, oldest first.

    Returns (month_abbr, year, start, end) tuples with end exclusive.
    """
    windows = []
    year, month = now.year, now.month
    for _ in range(count):
        start = datetime(year, month, 1)
        end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        windows.append((calendar.month_abbr[month], year, start, end))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(windows))
