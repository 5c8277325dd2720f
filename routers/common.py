"""
Helpers shared by the API routers.
"""
from typing import Callable, Optional, TypeVar

from fastapi import HTTPException, status

from core.logger import logger
from core.utils import to_naive_utc

T = TypeVar("T")


def raise_for_error(error: Optional[str]) -> None:
    """Turn a service error message into an HTTP error (404 for missing records, else 400)."""
    if not error:
        return
    if error.lower().endswith("not found"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)


def fetch(read: Callable[[], T], what: str) -> T:
    """Run a data service read; backend failures become 502."""
    try:
        return read()
    except Exception as e:
        logger.error(f"Failed to fetch {what}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch {what}",
        )


def fetch_one(read: Callable[[], Optional[T]], what: str) -> T:
    """Like fetch, but a missing record is a 404."""
    item = fetch(read, what)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what.capitalize()} not found")
    return item


def lookup(read: Callable[[], Optional[T]]) -> Optional[T]:
    """Best-effort read of a record's current state for audit metadata."""
    try:
        return read()
    except Exception as e:
        logger.warning(f"Lookup for audit metadata failed: {e}")
        return None


def check_date_window(start_date, end_date) -> None:
    """Reject a window whose end is not after its start."""
    if start_date and end_date and to_naive_utc(end_date) <= to_naive_utc(start_date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must be after start date",
        )
