"""School calendar lookups used to resolve pickup and dropoff times."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Any

import aiohttp
import voluptuous as vol

from homeassistant.core import HomeAssistant
from homeassistant.helpers import aiohttp_client
from homeassistant.helpers import config_validation as cv

from .const import LOGGER, SCHOOL_BREAK_WINDOWS, WEEKDAY_LOOKUP


@dataclass(frozen=True, slots=True)
class BellTimes:
    dropoff: time = time(8, 30)
    dismissal: time = time(15, 0)
    minimum_dismissal: time = time(13, 0)


@dataclass(frozen=True, slots=True)
class SchoolDay:
    """What the school calendar says about one civil date."""

    day: date
    is_school_day: bool
    is_minimum_day: bool = False
    dismissal_time: time | None = None
    dropoff_time: time | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class SchoolBreak:
    name: str
    last_day_before: date
    first_day_after: date | None


class SchoolScheduleProvider:
    """Read-only school calendar with no information.

    Every day is reported as a non-school day and no break can be located,
    so the engine falls back to literal times.
    """

    def covers(self, day: date) -> bool:
        return False

    def schedule_for_date(self, day: date) -> SchoolDay:
        return SchoolDay(day=day, is_school_day=False)

    def break_bounds(self, name: str, year: int) -> SchoolBreak | None:
        return None


def _weekday(value: Any) -> int:
    if isinstance(value, int):
        return vol.Range(min=0, max=6)(value)
    return WEEKDAY_LOOKUP[vol.In(list(WEEKDAY_LOOKUP))(str(value).lower())]


SCHOOL_CALENDAR_SCHEMA = vol.Schema(
    {
        vol.Required("first_day"): cv.date,
        vol.Required("last_day"): cv.date,
        vol.Optional("no_school_days", default=[]): vol.All(cv.ensure_list, [cv.date]),
        vol.Optional("breaks", default=[]): vol.All(
            cv.ensure_list,
            [vol.Schema({vol.Required("start"): cv.date, vol.Required("end"): cv.date}, extra=vol.ALLOW_EXTRA)],
        ),
        vol.Optional("minimum_days", default=[]): vol.All(cv.ensure_list, [cv.date]),
        vol.Optional("minimum_day_weekday"): vol.Any(None, _weekday),
        vol.Optional("bell_times", default={}): vol.Schema(
            {
                vol.Optional("dropoff", default="08:30"): cv.time,
                vol.Optional("dismissal", default="15:00"): cv.time,
                vol.Optional("minimum_dismissal", default="13:00"): cv.time,
            }
        ),
    },
    extra=vol.ALLOW_EXTRA,
)


@dataclass(frozen=True, slots=True)
class StaticSchoolSchedule(SchoolScheduleProvider):
    """School-year table: coverage, days off, minimum days and bell times."""

    first_day: date
    last_day: date
    no_school_days: frozenset[date] = field(default_factory=frozenset)
    minimum_days: frozenset[date] = field(default_factory=frozenset)
    minimum_day_weekday: int | None = None
    bell_times: BellTimes = field(default_factory=BellTimes)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> StaticSchoolSchedule:
        """Build a schedule from a mapping, raising vol.Invalid on bad input."""
        data = SCHOOL_CALENDAR_SCHEMA(raw)
        days_off = set(data["no_school_days"])
        for school_break in data["breaks"]:
            current = school_break["start"]
            while current <= school_break["end"]:
                days_off.add(current)
                current += timedelta(days=1)
        bells = data["bell_times"]
        return cls(
            first_day=data["first_day"],
            last_day=data["last_day"],
            no_school_days=frozenset(days_off),
            minimum_days=frozenset(data["minimum_days"]),
            minimum_day_weekday=data.get("minimum_day_weekday"),
            bell_times=BellTimes(bells["dropoff"], bells["dismissal"], bells["minimum_dismissal"]),
        )

    def covers(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def is_school_day(self, day: date) -> bool:
        return self.covers(day) and day.weekday() < 5 and day not in self.no_school_days

    def schedule_for_date(self, day: date) -> SchoolDay:
        if not self.is_school_day(day):
            return SchoolDay(day=day, is_school_day=False)
        minimum = day in self.minimum_days or day.weekday() == self.minimum_day_weekday
        return SchoolDay(
            day=day,
            is_school_day=True,
            is_minimum_day=minimum,
            dismissal_time=self.bell_times.minimum_dismissal if minimum else self.bell_times.dismissal,
            dropoff_time=self.bell_times.dropoff,
        )

    def break_bounds(self, name: str, year: int) -> SchoolBreak | None:
        """Locate a named break as a run of weekdays off inside its search months."""
        try:
            (start_month, start_day), (end_month, end_day), min_weekdays = SCHOOL_BREAK_WINDOWS[name]
        except KeyError:
            LOGGER.debug("No search window for school break %s", name)
            return None

        search_start = date(year, start_month, start_day)
        end_year = year + 1 if (end_month, end_day) < (start_month, start_day) else year
        search_end = date(end_year, end_month, end_day)
        # Outside coverage every weekday reads as a day off
        if search_start > self.last_day or search_end < self.first_day:
            LOGGER.debug("School break %s for %s is outside %s - %s", name, year, self.first_day, self.last_day)
            return None

        run_start: date | None = None
        run_weekdays = 0
        current = search_start
        while current <= search_end or (run_start is not None and current <= self.last_day):
            if current.weekday() >= 5:
                current += timedelta(days=1)
                continue
            if self.is_school_day(current):
                if run_start is not None and run_weekdays >= min_weekdays:
                    return self._bounded_break(name, run_start, current)
                run_start = None
                run_weekdays = 0
            else:
                if run_start is None:
                    run_start = current
                run_weekdays += 1
            current += timedelta(days=1)

        if run_start is not None and run_weekdays >= min_weekdays:
            return self._bounded_break(name, run_start, None)
        return None

    def _bounded_break(self, name: str, run_start: date, first_day_after: date | None) -> SchoolBreak | None:
        last_day = run_start - timedelta(days=1)
        while last_day >= self.first_day and not self.is_school_day(last_day):
            last_day -= timedelta(days=1)
        if last_day < self.first_day:
            return None
        return SchoolBreak(name=name, last_day_before=last_day, first_day_after=first_day_after)


class SchoolCalendarClient:
    """Cached client fetching a school calendar document over HTTP."""

    def __init__(self, hass: HomeAssistant, url: str) -> None:
        self._hass = hass
        self._session = aiohttp_client.async_get_clientsession(hass)
        self._url = url
        self._cache: dict[str, SchoolScheduleProvider] = {}

    async def async_get_schedule(self, force_refresh: bool = False) -> SchoolScheduleProvider:
        """Return the school schedule, or an empty provider when unavailable."""
        if not force_refresh and self._url in self._cache:
            return self._cache[self._url]

        try:
            LOGGER.info("Fetching school calendar from %s", self._url)
            async with self._session.get(self._url, timeout=aiohttp.ClientTimeout(total=20)) as resp:
                resp.raise_for_status()
                payload: dict[str, Any] = await resp.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as err:
            LOGGER.warning("Failed to fetch school calendar from %s: %s", self._url, err)
            return self._cache.setdefault(self._url, SchoolScheduleProvider())
        except ValueError as err:
            LOGGER.error("School calendar at %s is not valid JSON: %s", self._url, err)
            return self._cache.setdefault(self._url, SchoolScheduleProvider())

        try:
            schedule: SchoolScheduleProvider = StaticSchoolSchedule.from_dict(payload)
        except vol.Invalid as err:
            LOGGER.error("School calendar at %s has an unexpected shape: %s", self._url, err)
            schedule = SchoolScheduleProvider()

        self._cache[self._url] = schedule
        return schedule
