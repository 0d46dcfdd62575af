from datetime import date
from types import SimpleNamespace

import pytest

from spendwise.services.recurring import (
    occurrence_on,
    next_occurrence,
    due_occurrences,
    upcoming_occurrence,
    resumed_pointer,
)


def _rule(start, frequency, end=None, last=None, active=True):
    return SimpleNamespace(
        start_date=start,
        frequency=frequency,
        end_date=end,
        last_generated_date=last,
        is_active=active,
    )


def test_monthly_occurrences_stay_anchored_to_start_day():
    start = date(2024, 1, 31)
    assert occurrence_on(start, "monthly", 1) == date(2024, 2, 29)
    assert occurrence_on(start, "monthly", 2) == date(2024, 3, 31)
    assert occurrence_on(start, "monthly", 3) == date(2024, 4, 30)


def test_yearly_occurrence_from_leap_day():
    start = date(2024, 2, 29)
    assert occurrence_on(start, "yearly", 1) == date(2025, 2, 28)
    assert occurrence_on(start, "yearly", 4) == date(2028, 2, 29)


def test_weekly_and_daily_steps():
    start = date(2024, 3, 1)
    assert occurrence_on(start, "weekly", 2) == date(2024, 3, 15)
    assert occurrence_on(start, "daily", 31) == date(2024, 4, 1)


def test_unknown_frequency_is_rejected():
    with pytest.raises(ValueError):
        occurrence_on(date(2024, 1, 1), "hourly", 1)


def test_next_occurrence_is_strictly_after():
    start = date(2024, 1, 15)
    assert next_occurrence(start, "monthly") == start
    assert next_occurrence(start, "monthly", date(2024, 1, 15)) == date(2024, 2, 15)
    assert next_occurrence(start, "monthly", date(2024, 1, 20)) == date(2024, 2, 15)
    assert next_occurrence(start, "monthly", date(2023, 12, 1)) == start


def test_next_occurrence_after_short_month():
    start = date(2024, 1, 31)
    # Feb 29 is the February occurrence, March goes back to the 31st
    assert next_occurrence(start, "monthly", date(2024, 2, 29)) == date(2024, 3, 31)
    assert next_occurrence(start, "monthly", date(2024, 3, 30)) == date(2024, 3, 31)


def test_due_occurrences_until_as_of():
    rule = _rule(date(2024, 1, 10), "monthly")
    assert due_occurrences(rule, date(2024, 4, 9)) == [
        date(2024, 1, 10),
        date(2024, 2, 10),
        date(2024, 3, 10),
    ]


def test_due_occurrences_respects_end_date_and_last_generated():
    rule = _rule(date(2024, 1, 1), "weekly", end=date(2024, 1, 31), last=date(2024, 1, 8))
    assert due_occurrences(rule, date(2024, 12, 31)) == [
        date(2024, 1, 15),
        date(2024, 1, 22),
        date(2024, 1, 29),
    ]


def test_due_occurrences_limit():
    rule = _rule(date(2024, 1, 1), "daily")
    due = due_occurrences(rule, date(2024, 12, 31), limit=5)
    assert due == [date(2024, 1, d) for d in range(1, 6)]


def test_due_occurrences_before_start_is_empty():
    rule = _rule(date(2024, 6, 1), "monthly")
    assert due_occurrences(rule, date(2024, 5, 31)) == []


def test_upcoming_occurrence():
    rule = _rule(date(2024, 1, 5), "monthly")
    assert upcoming_occurrence(rule, date(2024, 3, 5)) == date(2024, 3, 5)
    assert upcoming_occurrence(rule, date(2024, 3, 6)) == date(2024, 4, 5)


def test_upcoming_occurrence_none_when_finished_or_inactive():
    finished = _rule(date(2024, 1, 5), "monthly", end=date(2024, 2, 10))
    assert upcoming_occurrence(finished, date(2024, 3, 1)) is None
    paused = _rule(date(2024, 1, 5), "monthly", active=False)
    assert upcoming_occurrence(paused, date(2024, 3, 1)) is None


def test_resumed_pointer_skips_paused_occurrences():
    rule = _rule(date(2024, 1, 1), "monthly", last=date(2024, 1, 1))
    assert resumed_pointer(rule, date(2024, 7, 2)) == date(2024, 7, 1)
    assert resumed_pointer(rule, date(2024, 7, 1)) == date(2024, 6, 1)
    assert due_occurrences(_rule(date(2024, 1, 1), "monthly", last=date(2024, 7, 1)), date(2024, 7, 2)) == []


def test_resumed_pointer_never_moves_backwards():
    before_start = _rule(date(2024, 5, 1), "monthly")
    assert resumed_pointer(before_start, date(2024, 3, 1)) is None
    ahead = _rule(date(2024, 1, 1), "monthly", last=date(2024, 9, 1))
    assert resumed_pointer(ahead, date(2024, 7, 2)) == date(2024, 9, 1)
