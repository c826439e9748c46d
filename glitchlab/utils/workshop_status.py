"""Derived workshop status."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from glitchlab.utils.constants import (
    STATUS_CANCELED,
    STATUS_FUTURE,
    STATUS_ONGOING,
    STATUS_PAST,
)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form MongoDB hands back."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def get_workshop_status(
    start_date: datetime,
    end_date: datetime,
    canceled: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Compute a workshop's status.

    ``canceled`` wins over the dates. Otherwise the workshop is ``future``
    before it starts, ``ongoing`` between start and end (inclusive) and
    ``past`` afterwards.
    """
    if canceled:
        return STATUS_CANCELED

    now = to_utc_naive(now or datetime.utcnow())
    start = to_utc_naive(start_date)
    end = to_utc_naive(end_date)

    if now < start:
        return STATUS_FUTURE
    if start <= now <= end:
        return STATUS_ONGOING
    return STATUS_PAST


def status_of(workshop: Dict[str, Any], now: Optional[datetime] = None) -> str:
    """Status of a workshop document."""
    return get_workshop_status(
        workshop["startDate"],
        workshop["endDate"],
        bool(workshop.get("canceled", False)),
        now=now,
    )
