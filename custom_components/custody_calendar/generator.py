"""Turn a single custody rule into candidate custody intervals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Iterator

from homeassistant.util import dt as dt_util

from .const import (
    DEFAULT_DROPOFF_FALLBACK,
    DEFAULT_PICKUP_FALLBACK,
    LOGGER,
    MARKER_SCHOOL_DROPOFF,
    MARKER_SCHOOL_PICKUP,
    WARNING_MISSING_SCHOOL_DATA,
)
from .dates import next_weekday, parse_clock, resolve_date, weeks_between
from .errors import DateArithmeticError, StructuralError
from .rules import (
    NON_GENERATING_TYPES,
    BreakAnchor,
    CustodialParent,
    CustodyRule,
    CustodyType,
    DateDetermination,
    ExplicitRange,
    FloatingSchoolRange,
    Frequency,
    HolidayData,
    RegularScheduleData,
    RuleType,
    SchedulePeriod,
    SpecialDayData,
    SummerScheduleData,
)
from .school_schedule import SchoolScheduleProvider


@dataclass(frozen=True, slots=True)
class CustodyEvent:
    """A concrete custody interval, half-open [start, end)."""

    id: str
    start: datetime
    end: datetime
    parent: CustodialParent
    custody_type: CustodyType
    title: str
    description: str
    priority: int
    source_rule_id: str

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def overlaps(self, other: CustodyEvent) -> bool:
        return self.start < other.end and self.end > other.start

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "parent": str(self.parent),
            "custody_type": str(self.custody_type),
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "source_rule_id": self.source_rule_id,
        }


_TYPE_FOR_RULE = {
    RuleType.SUMMER_SCHEDULE: CustodyType.SUMMER,
    RuleType.HOLIDAY: CustodyType.HOLIDAY,
    RuleType.SPECIAL_DAY: CustodyType.SPECIAL,
}


class EventGenerator:
    """Expand rules into candidate events for a civil date window.

    Candidates from different rules may overlap; precedence is applied later
    by the conflict resolver.
    """

    def __init__(self, time_zone: tzinfo, school_schedule: SchoolScheduleProvider | None = None) -> None:
        self._tz = time_zone
        self._school = school_schedule or SchoolScheduleProvider()

    def generate(self, rule: CustodyRule, window_start: date, window_end: date) -> list[CustodyEvent]:
        """Return the rule's events intersecting [window_start, window_end] (inclusive dates).

        Raises StructuralError when the rule cannot be evaluated at all.
        A DateArithmeticError only drops the affected occurrence.
        """
        check_structure(rule)
        if window_end < window_start or rule.rule_type in NON_GENERATING_TYPES:
            return []
        if rule.effective_from > window_end:
            return []
        if rule.effective_until is not None and rule.effective_until < window_start:
            return []

        lower = self._at(window_start, time.min)
        upper = self._at(window_end + timedelta(days=1), time.min)
        events = [
            event
            for event in self._candidates(rule, window_start, window_end)
            if event.start < upper
            and event.end > lower
            and rule.is_effective_on(event.start.date())
            and rule.year_parity.matches(event.start.year)
        ]
        events.sort(key=lambda event: (event.start, event.id))
        return events

    def _candidates(self, rule: CustodyRule, window_start: date, window_end: date) -> Iterator[CustodyEvent]:
        data = rule.data
        if isinstance(data, RegularScheduleData):
            yield from self._regular_events(rule, data, window_start, window_end)
        elif isinstance(data, SummerScheduleData):
            yield from self._summer_events(rule, data, window_start, window_end)
        elif isinstance(data, HolidayData) and data.segments:
            yield from self._segment_events(rule, data)
        elif isinstance(data, (HolidayData, SpecialDayData)):
            yield from self._action_events(rule, window_start, window_end)

    # Rule families

    def _regular_events(
        self, rule: CustodyRule, data: RegularScheduleData, window_start: date, window_end: date
    ) -> Iterator[CustodyEvent]:
        for index, period in enumerate(data.periods):
            span = (period.end_day - period.start_day) % 7
            custody_type = (
                CustodyType.WEEKEND
                if any((period.start_day + offset) % 7 >= 5 for offset in range(span + 1))
                else CustodyType.REGULAR
            )
            prefix = rule.id if len(data.periods) == 1 else f"{rule.id}-{index}"
            # Start one week early so periods running into the window are kept
            day = next_weekday(window_start - timedelta(days=7), period.start_day)
            while day <= window_end:
                parent = _period_parent(period, day)
                if parent is not None:
                    end_day = day + timedelta(days=span)
                    if data.extend_on_school_holiday and self._is_school_holiday(end_day):
                        LOGGER.debug("%s: %s is a school holiday, extending to next day", rule.id, end_day)
                        end_day += timedelta(days=1)
                    try:
                        yield self._event(
                            rule,
                            f"{prefix}-{day.isoformat()}",
                            self._at(day, self._clock(rule, period.start_time, day, period.start_fallback)),
                            self._at(end_day, self._clock(rule, period.end_time, end_day, period.end_fallback)),
                            parent,
                            custody_type,
                        )
                    except DateArithmeticError as err:
                        LOGGER.warning("Skipping %s occurrence on %s: %s", rule.id, day, err)
                day += timedelta(days=7)

    def _summer_events(
        self, rule: CustodyRule, data: SummerScheduleData, window_start: date, window_end: date
    ) -> Iterator[CustodyEvent]:
        for year in _candidate_years(window_start, window_end):
            try:
                days = self._occurrence_days(rule, rule.date_determination, year)
            except DateArithmeticError as err:
                LOGGER.warning("Skipping %s for %s: %s", rule.id, year, err)
                continue
            if days is None:
                continue
            first_day = days[0]
            if data.start_weekday is not None:
                first_day = next_weekday(first_day, data.start_weekday)

            for week in range(1, data.duration_weeks + 1):
                if week in data.mother_weeks:
                    parent = CustodialParent.MOTHER
                elif week in data.father_weeks:
                    parent = CustodialParent.FATHER
                else:
                    continue
                week_start = first_day + timedelta(weeks=week - 1)
                week_end = week_start + timedelta(weeks=1)
                try:
                    yield self._event(
                        rule,
                        f"{rule.id}-{year}-w{week}",
                        self._at(week_start, self._clock(rule, data.exchange_time, week_start, None)),
                        self._at(week_end, self._clock(rule, data.exchange_time, week_end, None)),
                        parent,
                        CustodyType.SUMMER,
                    )
                except DateArithmeticError as err:
                    LOGGER.warning("Skipping %s week %s of %s: %s", rule.id, week, year, err)

    def _segment_events(self, rule: CustodyRule, data: HolidayData) -> Iterator[CustodyEvent]:
        for index, segment in enumerate(data.segments, start=1):
            try:
                yield self._event(
                    rule,
                    f"{rule.id}-{index}",
                    self._at(segment.start, self._clock(rule, segment.start_time, segment.start, None)),
                    self._at(segment.end, self._clock(rule, segment.end_time, segment.end, None)),
                    segment.parent,
                    CustodyType.HOLIDAY,
                )
            except DateArithmeticError as err:
                LOGGER.warning("Skipping segment %s of %s: %s", index, rule.id, err)

    def _action_events(self, rule: CustodyRule, window_start: date, window_end: date) -> Iterator[CustodyEvent]:
        action = rule.action
        custody_type = _TYPE_FOR_RULE[rule.rule_type]
        for year in _candidate_years(window_start, window_end):
            try:
                days = self._occurrence_days(rule, rule.date_determination, year)
                if days is None:
                    continue
                first_day, last_day = days
                if last_day is None:
                    LOGGER.warning(
                        "%s: %s has no known end in %s, skipping", WARNING_MISSING_SCHOOL_DATA, rule.id, year
                    )
                    continue
                start_day = first_day + timedelta(days=action.start_offset_days)
                end_day = last_day + timedelta(days=action.end_offset_days)
                start = self._at(start_day, self._clock(rule, action.start_time, start_day, action.start_fallback))
                end = self._at(end_day, self._clock(rule, action.end_time, end_day, action.end_fallback))
                occurrence_id = f"{rule.id}-{first_day.isoformat()}"
                if rule.split is None:
                    occurrence = [self._event(rule, occurrence_id, start, end, action.parent, custody_type)]
                else:
                    occurrence = self._split_events(rule, occurrence_id, first_day, start, end, custody_type)
            except DateArithmeticError as err:
                LOGGER.warning("Skipping %s for %s: %s", rule.id, year, err)
                continue
            yield from occurrence

    def _split_events(
        self,
        rule: CustodyRule,
        occurrence_id: str,
        first_day: date,
        start: datetime,
        end: datetime,
        custody_type: CustodyType,
    ) -> list[CustodyEvent]:
        """Cut one occurrence into two touching halves."""
        split = rule.split
        if split.split_offset_days is not None:
            split_day = first_day + timedelta(days=split.split_offset_days)
            boundary = self._at(split_day, self._clock(rule, split.split_time or "12:00", split_day, None))
        else:
            # Midpoint over absolute time so DST shifts do not move it
            start_utc = start.astimezone(dt_util.UTC)
            midpoint = start_utc + (end.astimezone(dt_util.UTC) - start_utc) / 2
            boundary = midpoint.astimezone(self._tz)
            if split.split_time:
                boundary = self._at(boundary.date(), self._clock(rule, split.split_time, boundary.date(), None))

        if not start < boundary < end:
            raise DateArithmeticError(f"Split point {boundary.isoformat()} is outside {start} - {end}")

        first_parent = split.first_half_parent(start.year)
        return [
            self._event(rule, f"{occurrence_id}-1", start, boundary, first_parent, custody_type),
            self._event(rule, f"{occurrence_id}-2", boundary, end, first_parent.other, custody_type),
        ]

    # Helpers

    def _occurrence_days(
        self, rule: CustodyRule, determination: DateDetermination, year: int
    ) -> tuple[date, date | None] | None:
        """Return (first day, last day) of the occurrence in a year, if any."""
        if isinstance(determination, ExplicitRange):
            if determination.start.year != year:
                return None
            return determination.start, determination.end
        if isinstance(determination, FloatingSchoolRange):
            try:
                bounds = self._school.break_bounds(determination.break_name, year)
            except Exception as err:  # school lookups never abort generation
                LOGGER.warning("School calendar lookup failed for %s: %s", determination.break_name, err)
                bounds = None
            if bounds is None:
                LOGGER.debug(
                    "%s: %s break for %s not found for %s",
                    WARNING_MISSING_SCHOOL_DATA,
                    determination.break_name,
                    year,
                    rule.id,
                )
                return None
            if determination.anchor is BreakAnchor.FIRST_DAY_AFTER_BREAK:
                if bounds.first_day_after is None:
                    return None
                return bounds.first_day_after, bounds.first_day_after
            return bounds.last_day_before, bounds.first_day_after
        day = resolve_date(determination, year)
        return day, day

    def _clock(self, rule: CustodyRule, value: str, day: date, fallback: str | None) -> time:
        """Resolve an HH:MM string or a school marker to a time of day."""
        if value in (MARKER_SCHOOL_PICKUP, MARKER_SCHOOL_DROPOFF):
            school_time = self._school_time(value, day)
            if school_time is not None:
                return school_time
            if fallback is None:
                fallback = DEFAULT_PICKUP_FALLBACK if value == MARKER_SCHOOL_PICKUP else DEFAULT_DROPOFF_FALLBACK
            value = fallback
        try:
            return parse_clock(value)
        except ValueError as err:
            raise StructuralError(rule.id, f"invalid time {value!r}") from err

    def _school_time(self, marker: str, day: date) -> time | None:
        try:
            school_day = self._school.schedule_for_date(day)
            covered = self._school.covers(day)
        except Exception as err:  # school lookups never abort generation
            LOGGER.warning("School calendar lookup failed for %s: %s", day, err)
            return None
        if not school_day.is_school_day:
            if not covered:
                LOGGER.debug("%s: no school data for %s, using fallback time", WARNING_MISSING_SCHOOL_DATA, day)
            return None
        if marker == MARKER_SCHOOL_PICKUP:
            return school_day.dismissal_time
        return school_day.dropoff_time

    def _is_school_holiday(self, day: date) -> bool:
        """A covered weekday without school."""
        try:
            return day.weekday() < 5 and self._school.covers(day) and not self._school.schedule_for_date(day).is_school_day
        except Exception as err:  # school lookups never abort generation
            LOGGER.warning("School calendar lookup failed for %s: %s", day, err)
            return False

    def _at(self, day: date, clock: time) -> datetime:
        return datetime.combine(day, clock, tzinfo=self._tz)

    def _event(
        self,
        rule: CustodyRule,
        event_id: str,
        start: datetime,
        end: datetime,
        parent: CustodialParent,
        custody_type: CustodyType,
    ) -> CustodyEvent:
        if end <= start:
            raise DateArithmeticError(f"Interval {start.isoformat()} - {end.isoformat()} is empty")
        return CustodyEvent(
            id=event_id,
            start=start,
            end=end,
            parent=parent,
            custody_type=custody_type,
            title=f"{parent.capitalize()}: {rule.label}",
            description=rule.description or rule.label,
            priority=rule.priority,
            source_rule_id=rule.id,
        )


def _period_parent(period: SchedulePeriod, day: date) -> CustodialParent | None:
    if period.frequency is Frequency.EVERY:
        return period.parent
    on_week = weeks_between(period.reference_date, day) % 2 == 0
    if period.frequency is Frequency.ALTERNATING:
        return period.parent if on_week else period.parent.other
    return period.parent if on_week else None


def _candidate_years(window_start: date, window_end: date) -> range:
    # Occurrences from the previous year can run into the window (winter break)
    return range(window_start.year - 1, window_end.year + 1)


def check_structure(rule: CustodyRule) -> None:
    """Raise StructuralError when a rule cannot be evaluated."""
    if not isinstance(rule.rule_type, RuleType):
        raise StructuralError(rule.id, f"unknown rule type {rule.rule_type!r}")
    if not isinstance(rule.priority, int):
        raise StructuralError(rule.id, "priority is missing")
    if rule.data is None or rule.data.rule_type != rule.rule_type:
        raise StructuralError(rule.id, f"rule data does not match rule type {rule.rule_type}")
    if rule.effective_from is None:
        raise StructuralError(rule.id, "effective_from is missing")
    if rule.effective_until is not None and rule.effective_until <= rule.effective_from:
        raise StructuralError(rule.id, "effective_until must be after effective_from")
    if rule.rule_type in NON_GENERATING_TYPES:
        return

    data = rule.data
    if isinstance(data, RegularScheduleData):
        if not data.periods:
            raise StructuralError(rule.id, "regular schedule has no periods")
        for period in data.periods:
            if not isinstance(period.parent, CustodialParent):
                raise StructuralError(rule.id, f"invalid custodial parent {period.parent!r}")
            for weekday in (period.start_day, period.end_day):
                if not isinstance(weekday, int) or not 0 <= weekday <= 6:
                    raise StructuralError(rule.id, f"invalid weekday {weekday!r}")
            if not isinstance(period.frequency, Frequency):
                raise StructuralError(rule.id, f"unknown frequency {period.frequency!r}")
            if period.frequency is not Frequency.EVERY and period.reference_date is None:
                raise StructuralError(rule.id, f"{period.frequency} period needs a reference date")
        return
    if isinstance(data, HolidayData) and data.segments:
        for index, segment in enumerate(data.segments, start=1):
            if not isinstance(segment.parent, CustodialParent):
                raise StructuralError(rule.id, f"invalid custodial parent {segment.parent!r}")
            if segment.start is None or segment.end is None:
                raise StructuralError(rule.id, f"segment {index} needs a start and an end date")
        return

    if rule.date_determination is None:
        raise StructuralError(rule.id, "date determination is missing")
    if isinstance(data, SummerScheduleData):
        if not data.duration_weeks or data.duration_weeks < 1:
            raise StructuralError(rule.id, "summer schedule needs a positive duration")
        return

    action = rule.action
    if action is None or action.start_time is None or action.end_time is None:
        raise StructuralError(rule.id, "action with start and end times is required")
    if rule.split is not None:
        for parent in (rule.split.first_half_parent_when_even, rule.split.first_half_parent_when_odd):
            if not isinstance(parent, CustodialParent):
                raise StructuralError(rule.id, f"invalid split parent {parent!r}")
    elif not isinstance(action.parent, CustodialParent):
        raise StructuralError(rule.id, f"invalid custodial parent {action.parent!r}")
