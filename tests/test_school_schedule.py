"""Test the school calendar table, break detection and HTTP client."""

# pylint: disable=redefined-outer-name

from datetime import date, time

import pytest
import voluptuous as vol
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.test_util.aiohttp import AiohttpClientMocker

from custom_components.custody_calendar.school_schedule import (
    SchoolBreak,
    SchoolCalendarClient,
    SchoolScheduleProvider,
    StaticSchoolSchedule,
)

from tests.helpers import SCHOOL_YEAR

CALENDAR_URL = "https://school.example.org/calendar.json"


def test_regular_and_minimum_days(school_schedule: StaticSchoolSchedule) -> None:
    thursday = school_schedule.schedule_for_date(date(2025, 10, 16))
    wednesday = school_schedule.schedule_for_date(date(2025, 10, 15))

    assert thursday.is_school_day
    assert not thursday.is_minimum_day
    assert thursday.dismissal_time == time(15, 10)
    assert thursday.dropoff_time == time(8, 15)
    assert wednesday.is_minimum_day
    assert wednesday.dismissal_time == time(13, 30)


def test_days_without_school(school_schedule: StaticSchoolSchedule) -> None:
    assert not school_schedule.schedule_for_date(date(2025, 10, 13)).is_school_day  # listed day off
    assert not school_schedule.schedule_for_date(date(2025, 10, 18)).is_school_day  # Saturday
    assert not school_schedule.schedule_for_date(date(2025, 12, 24)).is_school_day  # winter break
    assert not school_schedule.schedule_for_date(date(2026, 7, 1)).is_school_day  # summer
    assert school_schedule.covers(date(2025, 12, 24))
    assert not school_schedule.covers(date(2026, 7, 1))


@pytest.mark.parametrize(
    ("name", "year", "expected"),
    [
        ("thanksgiving", 2025, SchoolBreak("thanksgiving", date(2025, 11, 21), date(2025, 12, 1))),
        ("winter", 2025, SchoolBreak("winter", date(2025, 12, 19), date(2026, 1, 5))),
        ("spring", 2026, SchoolBreak("spring", date(2026, 3, 27), date(2026, 4, 6))),
        ("summer", 2026, SchoolBreak("summer", date(2026, 6, 4), None)),
    ],
)
def test_break_bounds(
    school_schedule: StaticSchoolSchedule, name: str, year: int, expected: SchoolBreak
) -> None:
    assert school_schedule.break_bounds(name, year) == expected


def test_break_outside_coverage_is_not_found(school_schedule: StaticSchoolSchedule) -> None:
    assert school_schedule.break_bounds("summer", 2025) is None
    assert school_schedule.break_bounds("spring", 2025) is None
    assert school_schedule.break_bounds("ski_week", 2026) is None


@pytest.mark.parametrize(("name", "year"), [("thanksgiving", 2026), ("winter", 2026), ("spring", 2027), ("summer", 2027)])
def test_break_after_school_year_is_not_found(school_schedule: StaticSchoolSchedule, name: str, year: int) -> None:
    """Days past the last school day are not read as a break of the following year."""
    assert school_schedule.break_bounds(name, year) is None


def test_empty_provider_knows_nothing() -> None:
    provider = SchoolScheduleProvider()

    assert not provider.covers(date(2025, 10, 16))
    assert not provider.schedule_for_date(date(2025, 10, 16)).is_school_day
    assert provider.break_bounds("winter", 2025) is None


def test_invalid_table_raises() -> None:
    with pytest.raises(vol.Invalid):
        StaticSchoolSchedule.from_dict({"first_day": "not a date", "last_day": "2026-06-04"})
    with pytest.raises(vol.Invalid):
        StaticSchoolSchedule.from_dict({**SCHOOL_YEAR, "bell_times": {"dropoff": "early"}})


def test_default_bell_times() -> None:
    schedule = StaticSchoolSchedule.from_dict({"first_day": "2025-08-13", "last_day": "2026-06-04"})

    day = schedule.schedule_for_date(date(2025, 10, 16))

    assert day.dropoff_time == time(8, 30)
    assert day.dismissal_time == time(15, 0)


# ============================================================================
# HTTP client
# ============================================================================


async def test_client_fetches_and_caches(hass: HomeAssistant, aioclient_mock: AiohttpClientMocker) -> None:
    aioclient_mock.get(CALENDAR_URL, json=SCHOOL_YEAR)
    client = SchoolCalendarClient(hass, CALENDAR_URL)

    schedule = await client.async_get_schedule()
    cached = await client.async_get_schedule()

    assert isinstance(schedule, StaticSchoolSchedule)
    assert cached is schedule
    assert aioclient_mock.call_count == 1
    assert schedule.break_bounds("winter", 2025).first_day_after == date(2026, 1, 5)

    await client.async_get_schedule(force_refresh=True)
    assert aioclient_mock.call_count == 2


async def test_client_http_error_gives_empty_provider(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(CALENDAR_URL, status=500)
    client = SchoolCalendarClient(hass, CALENDAR_URL)

    schedule = await client.async_get_schedule()

    assert type(schedule) is SchoolScheduleProvider


async def test_client_bad_payload_gives_empty_provider(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(CALENDAR_URL, json={"holidays": []})
    client = SchoolCalendarClient(hass, CALENDAR_URL)

    schedule = await client.async_get_schedule()

    assert type(schedule) is SchoolScheduleProvider


async def test_client_timeout_gives_empty_provider(
    hass: HomeAssistant, aioclient_mock: AiohttpClientMocker
) -> None:
    aioclient_mock.get(CALENDAR_URL, exc=TimeoutError)
    client = SchoolCalendarClient(hass, CALENDAR_URL)

    schedule = await client.async_get_schedule()

    assert not schedule.covers(date(2025, 10, 16))
