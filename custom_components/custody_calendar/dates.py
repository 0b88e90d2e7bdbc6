"""Civil calendar arithmetic used to place custody rules on dates.

Everything here works on timezone-naive ``date`` objects. Conversion to
absolute instants happens only in the event generator.
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, time, timedelta
from typing import Callable

from .const import WEEKDAY_LOOKUP
from .errors import DateArithmeticError
from .rules import (
    DateDetermination,
    FixedDate,
    LastWeekdayOfMonth,
    NthWeekdayOfMonth,
    RelativeDate,
    YearParity,
)


def parse_clock(value: str) -> time:
    """Parse an HH:MM string, raising ValueError when malformed."""
    try:
        hour, minute = value.split(":")
        return time(int(hour), int(minute))
    except AttributeError as err:
        raise ValueError(f"{value!r} is not an HH:MM time") from err


def weekday_index(value: int | str) -> int:
    """Return a Monday=0 weekday index from an index or an English day name."""
    if isinstance(value, str):
        try:
            return WEEKDAY_LOOKUP[value.strip().lower()]
        except KeyError as err:
            raise DateArithmeticError(f"Unknown weekday {value!r}") from err
    if not 0 <= value <= 6:
        raise DateArithmeticError(f"Weekday index {value} is outside 0-6")
    return value


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise DateArithmeticError(f"Month {month} is outside 1-12")


def fixed_date(year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except ValueError as err:
        raise DateArithmeticError(f"{year}-{month:02d}-{day:02d} is not a valid date") from err


def nth_weekday_of_month(year: int, month: int, weekday: int | str, n: int) -> date:
    """Return the n-th given weekday of a month (n from 1 to 5).

    Raises DateArithmeticError when the month has no such occurrence, for
    example a fifth Monday in a month with only four.
    """
    _check_month(month)
    weekday = weekday_index(weekday)
    if not 1 <= n <= 5:
        raise DateArithmeticError(f"Occurrence {n} is outside 1-5")
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    day = 1 + offset + (n - 1) * 7
    if day > monthrange(year, month)[1]:
        raise DateArithmeticError(f"No occurrence {n} of weekday {weekday} in {year}-{month:02d}")
    return date(year, month, day)


def last_weekday_of_month(year: int, month: int, weekday: int | str) -> date:
    _check_month(month)
    weekday = weekday_index(weekday)
    last = date(year, month, monthrange(year, month)[1])
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def easter_sunday(year: int) -> date:
    """Easter Sunday, anonymous Gregorian computation."""
    golden = year % 19
    century, year_of_century = divmod(year, 100)
    leap_centuries, century_rest = divmod(century, 4)
    correction = (century + 8) // 25
    moon = (century - correction + 1) // 3
    epact = (19 * golden + century - leap_centuries - moon + 15) % 30
    quarter, year_rest = divmod(year_of_century, 4)
    weekday_shift = (32 + 2 * century_rest + 2 * quarter - epact - year_rest) % 7
    march_shift = (golden + 11 * epact + 22 * weekday_shift) // 451
    month, day = divmod(epact + weekday_shift - 7 * march_shift + 114, 31)
    return date(year, month, day + 1)


NAMED_ANCHORS: dict[str, Callable[[int], date]] = {
    "new_years_day": lambda year: date(year, 1, 1),
    "mlk_day": lambda year: nth_weekday_of_month(year, 1, 0, 3),
    "presidents_day": lambda year: nth_weekday_of_month(year, 2, 0, 3),
    "easter": easter_sunday,
    "mothers_day": lambda year: nth_weekday_of_month(year, 5, 6, 2),
    "memorial_day": lambda year: last_weekday_of_month(year, 5, 0),
    "fathers_day": lambda year: nth_weekday_of_month(year, 6, 6, 3),
    "independence_day": lambda year: date(year, 7, 4),
    "labor_day": lambda year: nth_weekday_of_month(year, 9, 0, 1),
    "halloween": lambda year: date(year, 10, 31),
    "thanksgiving": lambda year: nth_weekday_of_month(year, 11, 3, 4),
    "christmas_eve": lambda year: date(year, 12, 24),
    "christmas": lambda year: date(year, 12, 25),
}


def anchor_date(anchor: str, year: int) -> date:
    try:
        resolver = NAMED_ANCHORS[anchor]
    except KeyError as err:
        raise DateArithmeticError(f"Unknown date anchor {anchor!r}") from err
    return resolver(year)


def relative_date(anchor: str, offset_days: int, year: int) -> date:
    """Return a named anchor of the given year shifted by offset_days."""
    return anchor_date(anchor, year) + timedelta(days=offset_days)


def resolve_date(determination: DateDetermination, year: int) -> date:
    """Resolve a single-day determination for one calendar year.

    Range determinations have no per-year answer and are handled by the
    event generator directly.
    """
    if isinstance(determination, FixedDate):
        return fixed_date(year, determination.month, determination.day)
    if isinstance(determination, RelativeDate):
        return relative_date(determination.anchor, determination.offset_days, year)
    if isinstance(determination, NthWeekdayOfMonth):
        return nth_weekday_of_month(year, determination.month, determination.weekday, determination.n)
    if isinstance(determination, LastWeekdayOfMonth):
        return last_weekday_of_month(year, determination.month, determination.weekday)
    raise DateArithmeticError(f"{type(determination).__name__} does not resolve to a single date")


def in_range(day: date, start: date, end: date | None) -> bool:
    """Inclusive range membership; an open end means no upper bound."""
    return start <= day and (end is None or day <= end)


def year_parity(year: int) -> YearParity:
    return YearParity.EVEN if year % 2 == 0 else YearParity.ODD


def weeks_between(reference: date, day: date) -> int:
    """Whole weeks from reference to day, negative before the reference."""
    return (day - reference).days // 7


def next_weekday(day: date, weekday: int) -> date:
    """Return day itself or the first following date on the given weekday."""
    return day + timedelta(days=(weekday - day.weekday()) % 7)
