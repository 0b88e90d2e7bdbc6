"""Declarative model of custody rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import ClassVar, Iterable, Iterator


class CustodialParent(StrEnum):
    """Parent holding physical custody."""

    MOTHER = "mother"
    FATHER = "father"

    @property
    def other(self) -> CustodialParent:
        return CustodialParent.FATHER if self is CustodialParent.MOTHER else CustodialParent.MOTHER


class YearParity(StrEnum):
    """Which calendar years a rule applies to."""

    EVEN = "even"
    ODD = "odd"
    ALL = "all"

    def matches(self, year: int) -> bool:
        if self is YearParity.ALL:
            return True
        return (year % 2 == 0) == (self is YearParity.EVEN)


class RuleType(StrEnum):
    REGULAR_SCHEDULE = "regular_schedule"
    SUMMER_SCHEDULE = "summer_schedule"
    HOLIDAY = "holiday"
    SPECIAL_DAY = "special_day"
    TRAVEL = "travel"
    RIGHT_OF_FIRST_REFUSAL = "right_of_first_refusal"
    EXCHANGE_PROTOCOL = "exchange_protocol"
    CHILDCARE = "childcare"


class RuleCategory(StrEnum):
    PHYSICAL_CUSTODY = "physical_custody"
    LEGAL_CUSTODY = "legal_custody"
    MEDICAL = "medical"
    TRAVEL = "travel"
    OTHER = "other"


class CustodyType(StrEnum):
    """Kind of period a generated event represents."""

    REGULAR = "regular"
    WEEKEND = "weekend"
    SUMMER = "summer"
    HOLIDAY = "holiday"
    SPECIAL = "special"


class Frequency(StrEnum):
    EVERY = "every"
    ALTERNATING = "alternating"
    BIWEEKLY = "biweekly"


class BreakAnchor(StrEnum):
    LAST_DAY_BEFORE_BREAK = "last_day_before_break"
    FIRST_DAY_AFTER_BREAK = "first_day_after_break"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    WARNING = "warning"


class ConflictType(StrEnum):
    OVERLAPPING_TIME = "overlapping_time"
    CONTRADICTORY_CUSTODY = "contradictory_custody"
    PRIORITY_UNCLEAR = "priority_unclear"


# Date determinations


@dataclass(frozen=True, slots=True)
class FixedDate:
    """Same month and day every year."""

    month: int
    day: int


@dataclass(frozen=True, slots=True)
class RelativeDate:
    """Offset in days from a named recurring date (e.g. thanksgiving)."""

    anchor: str
    offset_days: int = 0


@dataclass(frozen=True, slots=True)
class NthWeekdayOfMonth:
    month: int
    weekday: int
    n: int


@dataclass(frozen=True, slots=True)
class LastWeekdayOfMonth:
    month: int
    weekday: int


@dataclass(frozen=True, slots=True)
class ExplicitRange:
    """One-off inclusive civil date range."""

    start: date
    end: date


@dataclass(frozen=True, slots=True)
class FloatingSchoolRange:
    """A school break located through the school calendar.

    With LAST_DAY_BEFORE_BREAK the occurrence runs from the last school day
    before the break to the first school day after it. With
    FIRST_DAY_AFTER_BREAK it is the single day school resumes.
    """

    break_name: str
    anchor: BreakAnchor = BreakAnchor.LAST_DAY_BEFORE_BREAK


DateDetermination = (
    FixedDate | RelativeDate | NthWeekdayOfMonth | LastWeekdayOfMonth | ExplicitRange | FloatingSchoolRange
)


# Rule data payloads


@dataclass(frozen=True, slots=True)
class SchedulePeriod:
    """A weekly period, e.g. Friday pickup to Monday dropoff."""

    start_day: int
    start_time: str
    end_day: int
    end_time: str
    parent: CustodialParent | str | None
    frequency: Frequency = Frequency.EVERY
    reference_date: date | None = None
    start_fallback: str | None = None
    end_fallback: str | None = None


@dataclass(frozen=True, slots=True)
class RegularScheduleData:
    rule_type: ClassVar[RuleType] = RuleType.REGULAR_SCHEDULE

    periods: tuple[SchedulePeriod, ...] = ()
    extend_on_school_holiday: bool = False


@dataclass(frozen=True, slots=True)
class SummerScheduleData:
    rule_type: ClassVar[RuleType] = RuleType.SUMMER_SCHEDULE

    duration_weeks: int | None = None
    mother_weeks: tuple[int, ...] = ()
    father_weeks: tuple[int, ...] = ()
    exchange_time: str = "16:00"
    start_weekday: int | None = None


@dataclass(frozen=True, slots=True)
class ExplicitSegment:
    start: date
    start_time: str
    end: date
    end_time: str
    parent: CustodialParent | str | None


@dataclass(frozen=True, slots=True)
class HolidayData:
    rule_type: ClassVar[RuleType] = RuleType.HOLIDAY

    holiday_name: str | None = None
    segments: tuple[ExplicitSegment, ...] = ()


@dataclass(frozen=True, slots=True)
class SpecialDayData:
    rule_type: ClassVar[RuleType] = RuleType.SPECIAL_DAY

    occasion: str | None = None


@dataclass(frozen=True, slots=True)
class TravelData:
    rule_type: ClassVar[RuleType] = RuleType.TRAVEL

    travel_type: str | None = None
    requires_consent: bool = False
    notice_period_days: int | None = None
    required_information: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RightOfFirstRefusalData:
    rule_type: ClassVar[RuleType] = RuleType.RIGHT_OF_FIRST_REFUSAL

    threshold_duration: int | None = None
    threshold_unit: str = "overnight"
    threshold_operator: str = "more_than"
    response_period_hours: int | None = None


@dataclass(frozen=True, slots=True)
class ExchangeProtocolData:
    rule_type: ClassVar[RuleType] = RuleType.EXCHANGE_PROTOCOL

    location_type: str | None = None
    location_details: str | None = None
    applies_when: str | None = None


@dataclass(frozen=True, slots=True)
class ChildcareProvider:
    provider_type: str
    minimum_age: int | None = None
    max_hours: int | None = None
    max_per_week: int | None = None
    name: str | None = None


@dataclass(frozen=True, slots=True)
class ChildcareData:
    rule_type: ClassVar[RuleType] = RuleType.CHILDCARE

    providers: tuple[ChildcareProvider, ...] = ()
    notification_required: bool = False


RuleData = (
    RegularScheduleData
    | SummerScheduleData
    | HolidayData
    | SpecialDayData
    | TravelData
    | RightOfFirstRefusalData
    | ExchangeProtocolData
    | ChildcareData
)

# Rule types that only carry obligations and never assign custody time
NON_GENERATING_TYPES = frozenset(
    {
        RuleType.TRAVEL,
        RuleType.RIGHT_OF_FIRST_REFUSAL,
        RuleType.EXCHANGE_PROTOCOL,
        RuleType.CHILDCARE,
    }
)


@dataclass(frozen=True, slots=True)
class RuleAction:
    """Who gets the occurrence and when it starts and ends.

    Times are HH:MM strings or the school_pickup / school_dropoff markers.
    Offsets shift the first and last day of the occurrence.
    """

    parent: CustodialParent | str | None = None
    start_time: str | None = None
    end_time: str | None = None
    start_offset_days: int = 0
    end_offset_days: int = 0
    start_fallback: str | None = None
    end_fallback: str | None = None


@dataclass(frozen=True, slots=True)
class SplitSpec:
    """Two-half split of an occurrence with year-parity parent swap.

    With split_offset_days the exchange happens on the occurrence's first day
    plus the offset at split_time. Without it the exchange is the midpoint of
    the occurrence, moved to split_time on the midpoint's date when set.
    """

    first_half_parent_when_even: CustodialParent | str | None = None
    first_half_parent_when_odd: CustodialParent | str | None = None
    split_offset_days: int | None = None
    split_time: str | None = None

    def first_half_parent(self, year: int) -> CustodialParent | str | None:
        if year % 2 == 0:
            return self.first_half_parent_when_even
        return self.first_half_parent_when_odd


@dataclass(frozen=True, slots=True)
class CustodyRule:
    """A single court-order clause.

    Fields are optional so that incomplete rules can still be loaded and
    reported by the validation layer instead of being dropped.
    """

    id: str
    name: str | None = None
    rule_type: RuleType | str | None = None
    category: RuleCategory | str | None = None
    priority: int | None = None
    data: RuleData | None = None
    action: RuleAction | None = None
    date_determination: DateDetermination | None = None
    year_parity: YearParity = YearParity.ALL
    split: SplitSpec | None = None
    effective_from: date | None = None
    effective_until: date | None = None
    source_section: str | None = None
    description: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.id

    def is_effective_on(self, day: date) -> bool:
        """Return True when the rule is in force on a civil date."""
        if self.effective_from is not None and day < self.effective_from:
            return False
        if self.effective_until is not None and day > self.effective_until:
            return False
        return True

    def assigned_parents(self) -> frozenset[CustodialParent]:
        """Return every parent this rule can hand custody to."""
        parents: set = set()
        data = self.data
        if self.rule_type in NON_GENERATING_TYPES:
            return frozenset()
        if isinstance(data, RegularScheduleData):
            for period in data.periods:
                parents.add(period.parent)
                if period.frequency is Frequency.ALTERNATING and isinstance(period.parent, CustodialParent):
                    parents.add(period.parent.other)
        elif isinstance(data, SummerScheduleData):
            if data.mother_weeks:
                parents.add(CustodialParent.MOTHER)
            if data.father_weeks:
                parents.add(CustodialParent.FATHER)
        elif isinstance(data, HolidayData) and data.segments:
            parents.update(segment.parent for segment in data.segments)
        elif self.split is not None:
            parents.update((self.split.first_half_parent_when_even, self.split.first_half_parent_when_odd))
            for parent in list(parents):
                if isinstance(parent, CustodialParent):
                    parents.add(parent.other)
        elif self.action is not None:
            parents.add(self.action.parent)
        return frozenset(parent for parent in parents if isinstance(parent, CustodialParent))


@dataclass(frozen=True, slots=True)
class RuleCatalog:
    """Immutable, ordered set of rules passed explicitly into the engine."""

    rules: tuple[CustodyRule, ...] = field(default_factory=tuple)

    @classmethod
    def from_rules(cls, rules: Iterable[CustodyRule]) -> RuleCatalog:
        return cls(tuple(rules))

    def __iter__(self) -> Iterator[CustodyRule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> CustodyRule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def of_type(self, rule_type: RuleType) -> tuple[CustodyRule, ...]:
        return tuple(rule for rule in self.rules if rule.rule_type == rule_type)
