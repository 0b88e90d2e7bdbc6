"""Build rule catalogs from plain mappings (YAML or JSON shapes).

Conversion is lenient: a field that cannot be understood is kept as ``None``
or as its raw value so the validation layer can report it. Nothing is
silently dropped.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Any, Iterable, TypeVar

from homeassistant.util import dt as dt_util

from .const import LOGGER, WEEKDAY_LOOKUP
from .rules import (
    BreakAnchor,
    ChildcareData,
    ChildcareProvider,
    CustodialParent,
    CustodyRule,
    DateDetermination,
    ExchangeProtocolData,
    ExplicitRange,
    ExplicitSegment,
    FixedDate,
    FloatingSchoolRange,
    Frequency,
    HolidayData,
    LastWeekdayOfMonth,
    NthWeekdayOfMonth,
    RegularScheduleData,
    RelativeDate,
    RightOfFirstRefusalData,
    RuleAction,
    RuleCatalog,
    RuleCategory,
    RuleData,
    RuleType,
    SchedulePeriod,
    SpecialDayData,
    SplitSpec,
    SummerScheduleData,
    TravelData,
    YearParity,
)

_EnumT = TypeVar("_EnumT", bound=StrEnum)

COURT_ORDER_DATE = "2025-09-30"


def _enum(enum_cls: type[_EnumT], value: Any, default: Any = None) -> _EnumT | Any:
    """Return the enum member, the raw value when unknown, or default when absent."""
    if value is None or value == "":
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return value


def _date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return dt_util.parse_date(str(value))


def _int(value: Any, default: int | None = None) -> int | None:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _weekday(value: Any) -> int:
    """Weekday index from a name or number; -1 when unknown so validation flags it."""
    if isinstance(value, str):
        return WEEKDAY_LOOKUP.get(value.strip().lower(), -1)
    index = _int(value)
    return -1 if index is None else index


def _mapping(value: Any, what: str) -> dict[str, Any] | None:
    """Return the mapping, None when absent, or an empty mapping for anything else."""
    if value is None or isinstance(value, dict):
        return value
    LOGGER.debug("Expected a mapping for %s, got %r", what, value)
    return {}


def _items(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _records(value: Any, what: str) -> list[dict[str, Any]]:
    return [_mapping(item, what) or {} for item in _items(value)]


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def parse_date_determination(raw: Any) -> DateDetermination | None:
    raw = _mapping(raw, "date_determination")
    if not raw:
        return None
    method = raw.get("method")
    if method == "fixed_date":
        if "date" in raw:
            # "MM-DD" shorthand
            month, _, day = str(raw["date"]).partition("-")
            return FixedDate(_int(month, 0), _int(day, 0))
        return FixedDate(_int(raw.get("month"), 0), _int(raw.get("day"), 0))
    if method == "relative_date":
        return RelativeDate(str(raw.get("anchor", "")), _int(raw.get("offset_days"), 0))
    if method == "nth_weekday":
        return NthWeekdayOfMonth(_int(raw.get("month"), 0), _weekday(raw.get("weekday")), _int(raw.get("n"), 0))
    if method == "last_weekday":
        return LastWeekdayOfMonth(_int(raw.get("month"), 0), _weekday(raw.get("weekday")))
    if method == "date_range":
        start, end = _date(raw.get("start")), _date(raw.get("end"))
        if start is None or end is None:
            LOGGER.debug("Unparseable date range %s", raw)
            return None
        return ExplicitRange(start, end)
    if method == "school_break":
        return FloatingSchoolRange(
            str(raw.get("break", "")),
            _enum(BreakAnchor, raw.get("anchor"), BreakAnchor.LAST_DAY_BEFORE_BREAK),
        )
    LOGGER.debug("Unknown date determination method %s", method)
    return None


def _parse_period(raw: dict[str, Any]) -> SchedulePeriod:
    return SchedulePeriod(
        start_day=_weekday(raw.get("start_day")),
        start_time=_text(raw.get("start_time")),
        end_day=_weekday(raw.get("end_day")),
        end_time=_text(raw.get("end_time")),
        parent=_enum(CustodialParent, raw.get("parent")),
        frequency=_enum(Frequency, raw.get("frequency"), Frequency.EVERY),
        reference_date=_date(raw.get("reference_date")),
        start_fallback=_text(raw.get("start_fallback")),
        end_fallback=_text(raw.get("end_fallback")),
    )


def _parse_segment(raw: dict[str, Any]) -> ExplicitSegment:
    return ExplicitSegment(
        start=_date(raw.get("start")),
        start_time=_text(raw.get("start_time")),
        end=_date(raw.get("end")),
        end_time=_text(raw.get("end_time")),
        parent=_enum(CustodialParent, raw.get("parent")),
    )


def parse_rule_data(raw: Any, rule_type: Any) -> RuleData | None:
    """Build the payload named by ``raw['type']`` (defaults to the rule's type)."""
    raw = _mapping(raw, "data")
    if raw is None:
        return None
    data_type = _enum(RuleType, raw.get("type"), rule_type)
    if data_type == RuleType.REGULAR_SCHEDULE:
        return RegularScheduleData(
            periods=tuple(_parse_period(period) for period in _records(raw.get("periods"), "period")),
            extend_on_school_holiday=bool(raw.get("extend_on_school_holiday", False)),
        )
    if data_type == RuleType.SUMMER_SCHEDULE:
        return SummerScheduleData(
            duration_weeks=_int(raw.get("duration_weeks")),
            mother_weeks=tuple(_int(week, 0) for week in _items(raw.get("mother_weeks"))),
            father_weeks=tuple(_int(week, 0) for week in _items(raw.get("father_weeks"))),
            exchange_time=_text(raw.get("exchange_time", "16:00")),
            start_weekday=None if raw.get("start_weekday") is None else _weekday(raw["start_weekday"]),
        )
    if data_type == RuleType.HOLIDAY:
        return HolidayData(
            holiday_name=_text(raw.get("holiday_name")),
            segments=tuple(_parse_segment(segment) for segment in _records(raw.get("segments"), "segment")),
        )
    if data_type == RuleType.SPECIAL_DAY:
        return SpecialDayData(occasion=_text(raw.get("occasion")))
    if data_type == RuleType.TRAVEL:
        return TravelData(
            travel_type=_text(raw.get("travel_type")),
            requires_consent=bool(raw.get("requires_consent", False)),
            notice_period_days=_int(raw.get("notice_period_days")),
            required_information=tuple(str(item) for item in _items(raw.get("required_information"))),
        )
    if data_type == RuleType.RIGHT_OF_FIRST_REFUSAL:
        return RightOfFirstRefusalData(
            threshold_duration=_int(raw.get("threshold_duration")),
            threshold_unit=str(raw.get("threshold_unit", "overnight")),
            threshold_operator=str(raw.get("threshold_operator", "more_than")),
            response_period_hours=_int(raw.get("response_period_hours")),
        )
    if data_type == RuleType.EXCHANGE_PROTOCOL:
        return ExchangeProtocolData(
            location_type=_text(raw.get("location_type")),
            location_details=_text(raw.get("location_details")),
            applies_when=_text(raw.get("applies_when")),
        )
    if data_type == RuleType.CHILDCARE:
        return ChildcareData(
            providers=tuple(
                ChildcareProvider(
                    provider_type=str(provider.get("provider_type", "")),
                    minimum_age=_int(provider.get("minimum_age")),
                    max_hours=_int(provider.get("max_hours")),
                    max_per_week=_int(provider.get("max_per_week")),
                    name=_text(provider.get("name")),
                )
                for provider in _records(raw.get("providers"), "provider")
            ),
            notification_required=bool(raw.get("notification_required", False)),
        )
    LOGGER.debug("Unknown rule data type %s", data_type)
    return None


def rule_from_dict(raw: dict[str, Any]) -> CustodyRule:
    rule_type = _enum(RuleType, raw.get("rule_type"))
    action = _mapping(raw.get("action"), "action")
    split = _mapping(raw.get("split"), "split")
    return CustodyRule(
        id=str(raw.get("id") or raw.get("name") or "unnamed"),
        name=_text(raw.get("name")),
        rule_type=rule_type,
        category=_enum(RuleCategory, raw.get("category")),
        priority=_int(raw.get("priority")),
        data=parse_rule_data(raw.get("data"), rule_type),
        action=None
        if action is None
        else RuleAction(
            parent=_enum(CustodialParent, action.get("parent")),
            start_time=_text(action.get("start_time")),
            end_time=_text(action.get("end_time")),
            start_offset_days=_int(action.get("start_offset_days"), 0),
            end_offset_days=_int(action.get("end_offset_days"), 0),
            start_fallback=_text(action.get("start_fallback")),
            end_fallback=_text(action.get("end_fallback")),
        ),
        date_determination=parse_date_determination(raw.get("date_determination")),
        year_parity=_enum(YearParity, raw.get("year_parity"), YearParity.ALL),
        split=None
        if split is None
        else SplitSpec(
            first_half_parent_when_even=_enum(CustodialParent, split.get("first_half_parent_when_even")),
            first_half_parent_when_odd=_enum(CustodialParent, split.get("first_half_parent_when_odd")),
            split_offset_days=_int(split.get("split_offset_days")),
            split_time=_text(split.get("split_time")),
        ),
        effective_from=_date(raw.get("effective_from")),
        effective_until=_date(raw.get("effective_until")),
        source_section=_text(raw.get("source_section")),
        description=_text(raw.get("description")),
    )


def load_catalog(raw_rules: Iterable[Any]) -> RuleCatalog:
    return RuleCatalog.from_rules(rule_from_dict(_mapping(raw, "rule") or {}) for raw in raw_rules)


def _special_day(rule_id: str, name: str, priority: int, parent: str, determination: dict[str, Any]) -> dict[str, Any]:
    """9am on the day until school dropoff (or 9am) the next morning."""
    return {
        "id": rule_id,
        "name": name,
        "rule_type": "special_day",
        "category": "physical_custody",
        "priority": priority,
        "date_determination": determination,
        "action": {
            "parent": parent,
            "start_time": "09:00",
            "end_time": "school_dropoff",
            "end_offset_days": 1,
            "end_fallback": "09:00",
        },
        "data": {"occasion": rule_id},
        "effective_from": COURT_ORDER_DATE,
        "source_section": "17-19",
    }


def _split_break(rule_id: str, name: str, priority: int, break_name: str, **extra: Any) -> dict[str, Any]:
    """School break shared in halves, father first in odd years."""
    rule = {
        "id": rule_id,
        "name": name,
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": priority,
        "date_determination": {"method": "school_break", "break": break_name},
        "action": {"start_time": "school_pickup", "end_time": "school_dropoff"},
        "split": {"first_half_parent_when_odd": "father", "first_half_parent_when_even": "mother"},
        "data": {"holiday_name": name},
        "effective_from": COURT_ORDER_DATE,
    }
    rule.update(extra)
    return rule


DEFAULT_RULES: list[dict[str, Any]] = [
    _special_day("mother_birthday", "Mother's Birthday", 1, "mother", {"method": "fixed_date", "date": "10-02"}),
    _special_day("father_birthday", "Father's Birthday", 2, "father", {"method": "fixed_date", "date": "12-31"}),
    _special_day(
        "mothers_day", "Mother's Day", 3, "mother", {"method": "nth_weekday", "month": 5, "weekday": "sunday", "n": 2}
    ),
    _special_day(
        "fathers_day", "Father's Day", 4, "father", {"method": "nth_weekday", "month": 6, "weekday": "sunday", "n": 3}
    ),
    {
        "id": "winter_break_2025",
        "name": "Winter Break 2025",
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": 10,
        "date_determination": {"method": "date_range", "start": "2025-12-18", "end": "2026-01-05"},
        "data": {
            "holiday_name": "Winter Break 2025",
            "segments": [
                {"start": "2025-12-18", "start_time": "school_pickup", "end": "2025-12-22", "end_time": "11:00", "parent": "mother"},
                {"start": "2025-12-22", "start_time": "11:00", "end": "2025-12-25", "end_time": "11:00", "parent": "father"},
                {"start": "2025-12-25", "start_time": "11:00", "end": "2025-12-29", "end_time": "11:00", "parent": "mother"},
                {"start": "2025-12-29", "start_time": "11:00", "end": "2026-01-02", "end_time": "11:00", "parent": "father"},
                {"start": "2026-01-02", "start_time": "11:00", "end": "2026-01-05", "end_time": "school_dropoff", "parent": "mother"},
            ],
        },
        "effective_from": "2025-12-18",
        "effective_until": "2026-01-05",
        "source_section": "16.c",
    },
    {
        "id": "thanksgiving",
        "name": "Thanksgiving Break",
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": 11,
        "date_determination": {"method": "relative_date", "anchor": "thanksgiving"},
        "action": {
            "start_time": "school_pickup",
            "start_offset_days": -6,
            "end_time": "school_dropoff",
            "end_offset_days": 4,
        },
        # Exchange at noon on the Wednesday before Thanksgiving
        "split": {
            "first_half_parent_when_odd": "father",
            "first_half_parent_when_even": "mother",
            "split_offset_days": -1,
            "split_time": "12:00",
        },
        "data": {"holiday_name": "Thanksgiving"},
        "effective_from": COURT_ORDER_DATE,
        "source_section": "16.b",
    },
    _split_break(
        "winter_break",
        "Winter Break",
        12,
        "winter",
        effective_from="2026-01-01",
        split={"first_half_parent_when_odd": "father", "first_half_parent_when_even": "mother", "split_time": "11:00"},
        source_section="16.d",
    ),
    _split_break("spring_break", "Spring Break", 13, "spring", source_section="16.e"),
    {
        "id": "halloween_odd",
        "name": "Halloween (odd years)",
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": 14,
        "year_parity": "odd",
        "date_determination": {"method": "fixed_date", "date": "10-31"},
        "action": {"parent": "mother", "start_time": "00:00", "end_time": "23:59"},
        "data": {"holiday_name": "Halloween"},
        "effective_from": COURT_ORDER_DATE,
        "source_section": "16.a",
    },
    {
        "id": "halloween_even",
        "name": "Halloween (even years)",
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": 14,
        "year_parity": "even",
        "date_determination": {"method": "fixed_date", "date": "10-31"},
        "action": {"parent": "father", "start_time": "00:00", "end_time": "23:59"},
        "data": {"holiday_name": "Halloween"},
        "effective_from": COURT_ORDER_DATE,
        "source_section": "16.a",
    },
    {
        "id": "right_of_first_refusal",
        "name": "Right of First Refusal",
        "rule_type": "right_of_first_refusal",
        "category": "physical_custody",
        "priority": 50,
        "data": {
            "threshold_duration": 1,
            "threshold_unit": "overnight",
            "threshold_operator": "more_than",
            "response_period_hours": 24,
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "20",
    },
    {
        "id": "summer_rotation",
        "name": "Summer - 8 Week Rotation",
        "rule_type": "summer_schedule",
        "category": "physical_custody",
        "priority": 90,
        "date_determination": {"method": "school_break", "break": "summer"},
        "data": {
            "duration_weeks": 8,
            "mother_weeks": [1, 3, 5, 7],
            "father_weeks": [2, 4, 6, 8],
            "exchange_time": "16:00",
            "start_weekday": "friday",
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "14",
    },
    {
        "id": "thursday_overnight",
        "name": "Mother - Thursday Overnight",
        "rule_type": "regular_schedule",
        "category": "physical_custody",
        "priority": 100,
        "data": {
            "periods": [
                {
                    "start_day": "thursday",
                    "start_time": "school_pickup",
                    "end_day": "friday",
                    "end_time": "school_dropoff",
                    "parent": "mother",
                }
            ]
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "12.a",
    },
    {
        "id": "alternating_weekends",
        "name": "Alternating Weekends",
        "rule_type": "regular_schedule",
        "category": "physical_custody",
        "priority": 101,
        "data": {
            "periods": [
                {
                    "start_day": "friday",
                    "start_time": "school_pickup",
                    "end_day": "monday",
                    "end_time": "school_dropoff",
                    "parent": "mother",
                    "frequency": "alternating",
                    "reference_date": "2025-01-10",
                }
            ],
            "extend_on_school_holiday": True,
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "12.b, 12.d",
    },
    {
        "id": "exchange_location",
        "name": "Exchange Location - No School",
        "rule_type": "exchange_protocol",
        "category": "physical_custody",
        "priority": 150,
        "data": {
            "location_type": "home_curbside",
            "location_details": "receiving parent's home, curbside",
            "applies_when": "school_not_in_session",
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "12.c",
    },
    {
        "id": "travel_domestic",
        "name": "Domestic Travel",
        "rule_type": "travel",
        "category": "travel",
        "priority": 200,
        "data": {
            "travel_type": "domestic",
            "notice_period_days": 30,
            "required_information": ["itinerary", "destination", "contact"],
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "21.a",
    },
    {
        "id": "travel_international",
        "name": "International Travel",
        "rule_type": "travel",
        "category": "travel",
        "priority": 201,
        "data": {
            "travel_type": "international",
            "requires_consent": True,
            "notice_period_days": 60,
            "required_information": ["itinerary", "destination", "contact", "passport"],
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "21.b",
    },
    {
        "id": "childcare",
        "name": "Childcare Providers",
        "rule_type": "childcare",
        "category": "other",
        "priority": 210,
        "data": {
            "providers": [
                {"provider_type": "specific_person", "minimum_age": 15, "max_hours": 3, "max_per_week": 2},
                {"provider_type": "third_party", "minimum_age": 18},
            ],
            "notification_required": True,
        },
        "effective_from": COURT_ORDER_DATE,
        "source_section": "22",
    },
]


# One-day holidays alternating by year: mother in even years, father in odd years
PARITY_HOLIDAYS: list[tuple[str, str]] = [
    ("new_years_day", "New Year's Day"),
    ("mlk_day", "Martin Luther King Jr. Day"),
    ("presidents_day", "Presidents' Day"),
    ("memorial_day", "Memorial Day"),
    ("independence_day", "Independence Day"),
    ("labor_day", "Labor Day"),
]


def _parity_holiday(anchor: str, name: str, priority: int, parity: str, parent: str) -> dict[str, Any]:
    """9am on the holiday until school dropoff (or 9am) the next morning."""
    return {
        "id": f"{anchor}_{parity}",
        "name": f"{name} ({parity} years)",
        "rule_type": "holiday",
        "category": "physical_custody",
        "priority": priority,
        "year_parity": parity,
        "date_determination": {"method": "relative_date", "anchor": anchor},
        "action": {
            "parent": parent,
            "start_time": "09:00",
            "end_time": "school_dropoff",
            "end_offset_days": 1,
            "end_fallback": "09:00",
        },
        "data": {"holiday_name": name},
        "effective_from": COURT_ORDER_DATE,
    }


def parity_holiday_rules() -> list[dict[str, Any]]:
    rules: list[dict[str, Any]] = []
    for priority, (anchor, name) in enumerate(PARITY_HOLIDAYS, start=15):
        rules.append(_parity_holiday(anchor, name, priority, "even", "mother"))
        rules.append(_parity_holiday(anchor, name, priority, "odd", "father"))
    return rules


def default_rules(include_parity_holidays: bool = False) -> RuleCatalog:
    """Reference court-order rule set, optionally with the alternating one-day holidays."""
    if include_parity_holidays:
        return load_catalog([*DEFAULT_RULES, *parity_holiday_rules()])
    return load_catalog(DEFAULT_RULES)
