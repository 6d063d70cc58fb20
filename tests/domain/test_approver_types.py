"""
Tests for approver relationship domain types (``workhour_kernel.domain.approver``).

Covers date containment, period overlap, window validation and the
latest-assignment tie-break, without a database.
"""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from workhour_kernel.domain.approver import (
    ApproverRelationship,
    calendar_days,
    latest_assignment,
    overlaps_with_period,
    validate_pair,
    validate_period,
    validate_window,
    window_for_dates,
)
from workhour_kernel.exceptions import ValidationError

UTC = timezone.utc
JST = timezone(timedelta(hours=9))


def _at(year, month, day, hour=0, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=UTC)


def _rel(effective_from, effective_to=None, seq=1, approver="hanako@example.com"):
    return ApproverRelationship(
        relationship_id=uuid4(),
        subordinate_email="taro@example.com",
        approver_email=approver,
        effective_from=effective_from,
        effective_to=effective_to,
        assignment_seq=seq,
    )


class TestDateContainment:
    """January 2025 relationship, as created from calendar dates."""

    @pytest.fixture
    def january(self):
        start, end = window_for_dates(date(2025, 1, 1), date(2025, 1, 31))
        return _rel(start, end)

    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2024, 12, 31), False),
            (date(2025, 1, 1), True),
            (date(2025, 1, 15), True),
            (date(2025, 1, 31), True),
            (date(2025, 2, 1), False),
        ],
    )
    def test_boundaries_are_inclusive(self, january, day, expected):
        assert january.is_valid_for_date(day) is expected

    def test_open_ended_covers_far_future(self):
        rel = _rel(_at(2025, 1, 1))
        assert rel.is_open_ended
        assert rel.is_valid_for_date(date(2099, 12, 31))
        assert not rel.is_valid_for_date(date(2024, 12, 31))

    def test_window_starting_midday_covers_its_first_day(self):
        rel = _rel(_at(2025, 3, 10, 15, 30))
        assert rel.is_valid_for_date(date(2025, 3, 10))

    def test_contains_instant(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31, 23, 59, 59))
        assert rel.contains(_at(2025, 1, 31, 23, 59, 59))
        assert not rel.contains(_at(2025, 2, 1))
        assert not rel.contains(_at(2024, 12, 31, 23, 59, 59))

    def test_contains_accepts_naive_as_utc(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 2))
        assert rel.contains(datetime(2025, 1, 1, 12, 0))

    def test_supplied_days_win_over_utc_dates(self):
        start = datetime(2025, 1, 1, 0, 0, tzinfo=JST)
        end = datetime(2025, 1, 31, 23, 59, 59, tzinfo=JST)
        utc_start, utc_end = validate_window(start, end)
        first, last = calendar_days(start, end)
        rel = ApproverRelationship(
            relationship_id=uuid4(),
            subordinate_email="taro@example.com",
            approver_email="hanako@example.com",
            effective_from=utc_start,
            effective_to=utc_end,
            first_day=first,
            last_day=last,
        )
        assert rel.effective_from.date() == date(2024, 12, 31)
        assert not rel.is_valid_for_date(date(2024, 12, 31))
        assert rel.is_valid_for_date(date(2025, 1, 1))
        assert rel.is_valid_for_date(date(2025, 1, 31))
        assert not rel.is_valid_for_date(date(2025, 2, 1))

    def test_days_default_to_bound_dates(self):
        rel = _rel(_at(2025, 1, 1, 9), _at(2025, 1, 31, 18))
        assert (rel.first_day, rel.last_day) == (date(2025, 1, 1), date(2025, 1, 31))
        assert _rel(_at(2025, 1, 1)).last_day is None


class TestWindowForDates:

    def test_expands_to_day_bounds(self):
        start, end = window_for_dates(date(2025, 1, 1), date(2025, 1, 31))
        assert start == _at(2025, 1, 1, 0, 0, 0)
        assert end == _at(2025, 1, 31, 23, 59, 59)

    def test_open_ended(self):
        _, end = window_for_dates(date(2025, 1, 1))
        assert end is None

    def test_from_date_required(self):
        with pytest.raises(ValidationError):
            window_for_dates(None)

    def test_laid_out_in_given_timezone(self):
        start, end = window_for_dates(date(2025, 1, 1), date(2025, 1, 31), JST)
        assert start == datetime(2025, 1, 1, 0, 0, tzinfo=JST)
        assert end == datetime(2025, 1, 31, 23, 59, 59, tzinfo=JST)
        assert calendar_days(start, end) == (date(2025, 1, 1), date(2025, 1, 31))


class TestValidation:

    def test_window_requires_start(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_window(None, None)
        assert exc_info.value.field == "effective_from"

    def test_window_rejects_inverted(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_window(_at(2025, 2, 1), _at(2025, 1, 1))
        assert exc_info.value.field == "effective_to"

    def test_window_allows_zero_length(self):
        start, end = validate_window(_at(2025, 1, 1), _at(2025, 1, 1))
        assert start == end

    def test_window_normalizes_to_utc(self):
        tokyo = timezone(timedelta(hours=9))
        start, _ = validate_window(datetime(2025, 1, 1, 9, 0, tzinfo=tokyo), None)
        assert start == _at(2025, 1, 1, 0, 0)
        assert start.tzinfo == UTC

    def test_calendar_days_as_supplied(self):
        assert calendar_days(datetime(2025, 1, 1, 0, 30, tzinfo=JST), None) == (date(2025, 1, 1), None)
        assert calendar_days(datetime(2025, 1, 1, 8), datetime(2025, 1, 2)) == (
            date(2025, 1, 1),
            date(2025, 1, 2),
        )

    def test_calendar_days_reject_inverted_days(self):
        with pytest.raises(ValidationError) as exc_info:
            calendar_days(datetime(2025, 1, 2, 0, 30, tzinfo=JST), _at(2025, 1, 1, 20))
        assert exc_info.value.field == "effective_to"

    def test_pair_rejects_self_approval_case_insensitively(self):
        with pytest.raises(ValidationError):
            validate_pair("Taro@Example.com", "taro@example.com ")

    def test_pair_normalizes(self):
        assert validate_pair(" Taro@Example.com", "HANAKO@example.com") == (
            "taro@example.com",
            "hanako@example.com",
        )

    def test_pair_rejects_malformed(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_pair("taro@example.com", "not-an-email")
        assert exc_info.value.field == "approver_email"

    def test_period_rejects_inverted(self):
        with pytest.raises(ValidationError):
            validate_period(_at(2025, 2, 1), _at(2025, 1, 1))

    @pytest.mark.parametrize("bounds", [(None, _at(2025, 1, 1)), (_at(2025, 1, 1), None)])
    def test_period_requires_both_bounds(self, bounds):
        with pytest.raises(ValidationError):
            validate_period(*bounds)


class TestOverlap:

    def test_disjoint_before(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31))
        assert not overlaps_with_period(rel, _at(2024, 12, 1), _at(2024, 12, 31))

    def test_disjoint_after(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31))
        assert not overlaps_with_period(rel, _at(2025, 2, 1), _at(2025, 2, 28))

    def test_touching_end_overlaps(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31))
        assert overlaps_with_period(rel, _at(2025, 1, 31), _at(2025, 2, 28))

    def test_touching_start_overlaps(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31))
        assert rel.overlaps_with_period(_at(2024, 12, 1), _at(2025, 1, 1))

    def test_period_inside_window(self):
        rel = _rel(_at(2025, 1, 1), _at(2025, 1, 31))
        assert overlaps_with_period(rel, _at(2025, 1, 10), _at(2025, 1, 11))

    def test_open_ended_overlaps_any_later_period(self):
        rel = _rel(_at(2025, 1, 1))
        assert overlaps_with_period(rel, _at(2090, 1, 1), _at(2090, 1, 2))
        assert not overlaps_with_period(rel, _at(2024, 1, 1), _at(2024, 12, 31))

    def test_inverted_period_rejected(self):
        rel = _rel(_at(2025, 1, 1))
        with pytest.raises(ValidationError):
            overlaps_with_period(rel, _at(2025, 2, 1), _at(2025, 1, 1))


class TestLatestAssignment:

    def test_empty(self):
        assert latest_assignment([]) is None

    def test_latest_effective_from_wins(self):
        older = _rel(_at(2025, 1, 1), seq=5, approver="a@example.com")
        newer = _rel(_at(2025, 1, 10), seq=1, approver="b@example.com")
        assert latest_assignment([newer, older]) is newer

    def test_equal_start_goes_to_last_inserted(self):
        first = _rel(_at(2025, 1, 1), seq=1, approver="a@example.com")
        second = _rel(_at(2025, 1, 1), seq=2, approver="b@example.com")
        assert latest_assignment([second, first]) is second
        assert latest_assignment([first, second]) is second
