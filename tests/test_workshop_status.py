from datetime import datetime, timedelta, timezone

import pytest

from glitchlab.utils.constants import WORKSHOP_STATUSES
from glitchlab.utils.workshop_status import get_workshop_status, status_of

NOW = datetime(2025, 5, 10, 12, 0, 0)
START = datetime(2025, 5, 10, 10, 0, 0)
END = datetime(2025, 5, 10, 14, 0, 0)


@pytest.mark.parametrize(
    "now,expected",
    [
        (START - timedelta(seconds=1), "future"),
        (START, "ongoing"),
        (NOW, "ongoing"),
        (END, "ongoing"),
        (END + timedelta(seconds=1), "past"),
    ],
)
def test_status_from_dates(now, expected):
    assert get_workshop_status(START, END, now=now) == expected


@pytest.mark.parametrize("now", [START - timedelta(days=1), NOW, END + timedelta(days=1)])
def test_canceled_overrides_dates(now):
    assert get_workshop_status(START, END, canceled=True, now=now) == "canceled"


def test_status_is_one_of_four_values():
    for offset in range(-48, 49, 6):
        now = NOW + timedelta(hours=offset)
        for canceled in (False, True):
            assert get_workshop_status(START, END, canceled, now=now) in WORKSHOP_STATUSES


def test_aware_datetimes_are_normalized_to_utc():
    rome = timezone(timedelta(hours=2))
    # 13:00 in Rome is 11:00 UTC, inside the workshop
    now = datetime(2025, 5, 10, 13, 0, 0, tzinfo=rome)
    assert get_workshop_status(START, END, now=now) == "ongoing"


def test_status_of_document():
    doc = {"startDate": START, "endDate": END}
    assert status_of(doc, now=NOW) == "ongoing"
    assert status_of({**doc, "canceled": True}, now=NOW) == "canceled"
