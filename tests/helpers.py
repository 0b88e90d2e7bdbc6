"""Builders shared by the Custody Calendar tests."""

from __future__ import annotations

from datetime import date, datetime

from homeassistant.util import dt as dt_util

from custom_components.custody_calendar.generator import CustodyEvent
from custom_components.custody_calendar.rules import (
    CustodialParent,
    CustodyRule,
    CustodyType,
    Frequency,
    RegularScheduleData,
    RuleCategory,
    RuleType,
    SchedulePeriod,
)

PACIFIC = dt_util.get_time_zone("America/Los_Angeles")

SCHOOL_YEAR = {
    "first_day": "2025-08-13",
    "last_day": "2026-06-04",
    "no_school_days": ["2025-10-13"],
    "breaks": [
        {"name": "thanksgiving", "start": "2025-11-24", "end": "2025-11-28"},
        {"name": "winter", "start": "2025-12-22", "end": "2026-01-02"},
        {"name": "spring", "start": "2026-03-30", "end": "2026-04-03"},
    ],
    "minimum_day_weekday": "wednesday",
    "bell_times": {"dropoff": "08:15", "dismissal": "15:10", "minimum_dismissal": "13:30"},
}


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Wall-clock time in the test zone."""
    return datetime(year, month, day, hour, minute, tzinfo=PACIFIC)


def weekly_rule(
    rule_id: str,
    parent: CustodialParent,
    start_day: int,
    start_time: str,
    end_day: int,
    end_time: str,
    *,
    priority: int = 100,
    frequency: Frequency = Frequency.EVERY,
    reference_date: date | None = None,
    effective_from: date = date(2024, 1, 1),
    effective_until: date | None = None,
) -> CustodyRule:
    return CustodyRule(
        id=rule_id,
        name=rule_id.replace("_", " ").title(),
        rule_type=RuleType.REGULAR_SCHEDULE,
        category=RuleCategory.PHYSICAL_CUSTODY,
        priority=priority,
        data=RegularScheduleData(
            periods=(
                SchedulePeriod(
                    start_day=start_day,
                    start_time=start_time,
                    end_day=end_day,
                    end_time=end_time,
                    parent=parent,
                    frequency=frequency,
                    reference_date=reference_date,
                ),
            )
        ),
        effective_from=effective_from,
        effective_until=effective_until,
    )


def make_event(
    event_id: str,
    start: datetime,
    end: datetime,
    parent: CustodialParent = CustodialParent.MOTHER,
    priority: int = 100,
    rule_id: str | None = None,
    custody_type: CustodyType = CustodyType.REGULAR,
) -> CustodyEvent:
    return CustodyEvent(
        id=event_id,
        start=start,
        end=end,
        parent=parent,
        custody_type=custody_type,
        title=f"{parent.capitalize()}: {event_id}",
        description=event_id,
        priority=priority,
        source_rule_id=rule_id or event_id.rsplit("-", 1)[0],
    )
