"""Test calendar arithmetic used to place rules on civil dates."""

from datetime import date, time

import pytest

from custom_components.custody_calendar.dates import (
    anchor_date,
    easter_sunday,
    fixed_date,
    in_range,
    last_weekday_of_month,
    next_weekday,
    nth_weekday_of_month,
    parse_clock,
    relative_date,
    resolve_date,
    weekday_index,
    weeks_between,
    year_parity,
)
from custom_components.custody_calendar.errors import DateArithmeticError
from custom_components.custody_calendar.rules import (
    ExplicitRange,
    FixedDate,
    LastWeekdayOfMonth,
    NthWeekdayOfMonth,
    RelativeDate,
    YearParity,
)

# ============================================================================
# nth / last weekday
# ============================================================================


@pytest.mark.parametrize(
    ("year", "month", "weekday", "n", "expected"),
    [
        (2025, 11, 3, 4, date(2025, 11, 27)),  # Thanksgiving
        (2024, 11, 3, 4, date(2024, 11, 28)),
        (2025, 5, 6, 2, date(2025, 5, 11)),  # Mother's Day
        (2025, 6, 6, 3, date(2025, 6, 15)),  # Father's Day
        (2025, 9, 0, 1, date(2025, 9, 1)),  # Labor Day
        (2025, 10, 3, 5, date(2025, 10, 30)),
    ],
)
def test_nth_weekday_of_month(year: int, month: int, weekday: int, n: int, expected: date) -> None:
    assert nth_weekday_of_month(year, month, weekday, n) == expected


def test_nth_weekday_accepts_day_names() -> None:
    assert nth_weekday_of_month(2025, 11, "Thursday", 4) == date(2025, 11, 27)


def test_missing_fifth_occurrence_raises() -> None:
    """February 2025 has only four Mondays; the result is never clamped."""
    with pytest.raises(DateArithmeticError):
        nth_weekday_of_month(2025, 2, 0, 5)


@pytest.mark.parametrize("n", [0, 6, -1])
def test_occurrence_out_of_range_raises(n: int) -> None:
    with pytest.raises(DateArithmeticError):
        nth_weekday_of_month(2025, 1, 0, n)


def test_invalid_month_and_weekday_raise() -> None:
    with pytest.raises(DateArithmeticError):
        nth_weekday_of_month(2025, 13, 0, 1)
    with pytest.raises(DateArithmeticError):
        weekday_index(7)
    with pytest.raises(DateArithmeticError):
        weekday_index("funday")


def test_last_weekday_of_month() -> None:
    assert last_weekday_of_month(2025, 5, 0) == date(2025, 5, 26)  # Memorial Day
    assert last_weekday_of_month(2025, 8, "sunday") == date(2025, 8, 31)


# ============================================================================
# Fixed, relative and named dates
# ============================================================================


def test_fixed_date_rejects_impossible_dates() -> None:
    assert fixed_date(2024, 2, 29) == date(2024, 2, 29)
    with pytest.raises(DateArithmeticError):
        fixed_date(2025, 2, 29)


@pytest.mark.parametrize(
    ("year", "expected"),
    [
        (2024, date(2024, 3, 31)),
        (2025, date(2025, 4, 20)),
        (2026, date(2026, 4, 5)),
        (2038, date(2038, 4, 25)),
    ],
)
def test_easter_sunday(year: int, expected: date) -> None:
    assert easter_sunday(year) == expected


def test_relative_date_offsets_named_anchor() -> None:
    assert relative_date("thanksgiving", -1, 2025) == date(2025, 11, 26)
    assert relative_date("christmas_eve", 0, 2025) == date(2025, 12, 24)
    assert anchor_date("mlk_day", 2025) == date(2025, 1, 20)
    assert anchor_date("presidents_day", 2025) == date(2025, 2, 17)


def test_unknown_anchor_raises() -> None:
    with pytest.raises(DateArithmeticError):
        relative_date("groundhog_day", 0, 2025)


def test_resolve_date_dispatches_on_determination() -> None:
    assert resolve_date(FixedDate(10, 31), 2025) == date(2025, 10, 31)
    assert resolve_date(RelativeDate("thanksgiving", -6), 2025) == date(2025, 11, 21)
    assert resolve_date(NthWeekdayOfMonth(1, 0, 3), 2026) == date(2026, 1, 19)
    assert resolve_date(LastWeekdayOfMonth(5, 0), 2026) == date(2026, 5, 25)
    with pytest.raises(DateArithmeticError):
        resolve_date(ExplicitRange(date(2025, 1, 1), date(2025, 1, 5)), 2025)


# ============================================================================
# Small helpers
# ============================================================================


def test_in_range_is_inclusive_with_open_end() -> None:
    start, end = date(2025, 1, 1), date(2025, 1, 31)
    assert in_range(start, start, end)
    assert in_range(end, start, end)
    assert not in_range(date(2025, 2, 1), start, end)
    assert in_range(date(2099, 1, 1), start, None)


def test_year_parity() -> None:
    assert year_parity(2024) is YearParity.EVEN
    assert year_parity(2025) is YearParity.ODD
    assert YearParity.ALL.matches(2025)
    assert YearParity.ODD.matches(2025)
    assert not YearParity.EVEN.matches(2025)


def test_weeks_between_floors_before_reference() -> None:
    reference = date(2025, 1, 10)
    assert weeks_between(reference, reference) == 0
    assert weeks_between(reference, date(2025, 1, 16)) == 0
    assert weeks_between(reference, date(2025, 1, 17)) == 1
    assert weeks_between(reference, date(2025, 1, 3)) == -1


def test_next_weekday_keeps_matching_day() -> None:
    assert next_weekday(date(2025, 1, 10), 4) == date(2025, 1, 10)
    assert next_weekday(date(2025, 1, 11), 4) == date(2025, 1, 17)


def test_parse_clock() -> None:
    assert parse_clock("07:45") == time(7, 45)
    for bad in ("25:00", "noon", "12", None):
        with pytest.raises(ValueError):
            parse_clock(bad)
