"""Static checks for custody rules and generated events.

Every check produces an issue with a severity. The confidence score starts at
1.0 and loses a fixed penalty per issue; a rule or rule set passes only with
no critical or high issue and a score of at least MINIMUM_CONFIDENCE_SCORE.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import combinations
from typing import Any, Iterable, Sequence

from .const import (
    ERROR_DUPLICATE_RULE_ID,
    ERROR_EVENTS_OVERLAP,
    ERROR_EVENTS_UNORDERED,
    ERROR_INVALID_CUSTODIAL_PARENT,
    ERROR_INVALID_DATE_DETERMINATION,
    ERROR_INVALID_DATE_RANGE,
    ERROR_INVALID_EVENT_RANGE,
    ERROR_INVALID_FREQUENCY,
    ERROR_INVALID_PRIORITY,
    ERROR_INVALID_RULE_DATA,
    ERROR_INVALID_SPLIT,
    ERROR_INVALID_TIME,
    ERROR_MISSING_ACTIONS,
    ERROR_MISSING_CUSTODIAL_PARENT,
    ERROR_MISSING_DATE_DETERMINATION,
    ERROR_MISSING_DURATION,
    ERROR_MISSING_EVENT_FIELD,
    ERROR_MISSING_HOLIDAY_NAME,
    ERROR_MISSING_OCCASION,
    ERROR_MISSING_REFERENCE_DATE,
    ERROR_MISSING_REQUIRED_FIELD,
    ERROR_MISSING_SCHEDULE,
    ERROR_MISSING_THRESHOLD,
    ERROR_MISSING_TRAVEL_TYPE,
    ERROR_MISSING_WEEK_ASSIGNMENTS,
    ERROR_RULE_CONFLICT_DETECTED,
    ERROR_RULE_DATA_TYPE_MISMATCH,
    ERROR_RULE_VALIDATION_FAILED,
    ERROR_UNKNOWN_ANCHOR,
    ERROR_UNKNOWN_RULE_TYPE,
    HIGH_PRECEDENCE_THRESHOLD,
    MINIMUM_CONFIDENCE_SCORE,
    PRIORITY_BANDS,
    PRIORITY_MAX,
    PRIORITY_MIN,
    SCHOOL_BREAK_WINDOWS,
    SEVERITY_PENALTIES,
    TIME_MARKERS,
    WARNING_FIFTH_OCCURRENCE,
    WARNING_PRIORITY_OUT_OF_RANGE,
    WARNING_UNRESOLVED_CONFLICT,
    WARNING_WEEK_ASSIGNMENT_OVERLAP,
    WARNING_WEEKEND_NOT_ALTERNATING,
)
from .dates import NAMED_ANCHORS, parse_clock
from .generator import CustodyEvent
from .resolver import Displacement
from .rules import (
    ChildcareData,
    ConflictType,
    CustodialParent,
    CustodyRule,
    CustodyType,
    ExplicitRange,
    FixedDate,
    FloatingSchoolRange,
    Frequency,
    HolidayData,
    LastWeekdayOfMonth,
    NthWeekdayOfMonth,
    RegularScheduleData,
    RelativeDate,
    RightOfFirstRefusalData,
    RuleType,
    Severity,
    SpecialDayData,
    SummerScheduleData,
    TravelData,
    YearParity,
)

_BLOCKING = (Severity.CRITICAL, Severity.HIGH)


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    code: str
    message: str
    severity: Severity
    field: str | None = None
    rule_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": str(self.severity),
            "field": self.field,
            "rule_id": self.rule_id,
        }


@dataclass(frozen=True, slots=True)
class ConflictReport:
    rule_id_a: str
    rule_id_b: str
    conflict_type: ConflictType
    severity: Severity
    resolved: bool
    description: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "rule_id_a": self.rule_id_a,
            "rule_id_b": self.rule_id_b,
            "conflict_type": str(self.conflict_type),
            "severity": str(self.severity),
            "resolved": self.resolved,
            "description": self.description,
        }


@dataclass(slots=True)
class ConflictDetection:
    conflicts: list[ConflictReport] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

    @property
    def unresolved(self) -> list[ConflictReport]:
        """Blocking custody conflicts that precedence does not settle."""
        return [
            report
            for report in self.conflicts
            if not report.resolved
            and report.severity in _BLOCKING
            and report.conflict_type is not ConflictType.OVERLAPPING_TIME
        ]


@dataclass(slots=True)
class ValidationResult:
    passed: bool
    confidence_score: float
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    conflicts: list[ConflictReport] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "confidence_score": round(self.confidence_score, 4),
            "errors": [issue.as_dict() for issue in self.errors],
            "warnings": [issue.as_dict() for issue in self.warnings],
            "notes": list(self.notes),
            "conflicts": [report.as_dict() for report in self.conflicts],
        }


class _Collector:
    """Accumulates issues for one rule or event."""

    def __init__(self, rule_id: str | None = None) -> None:
        self.rule_id = rule_id
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, code: str, message: str, severity: Severity, field: str | None = None) -> None:
        self.errors.append(ValidationIssue(code, message, severity, field, self.rule_id))

    def warn(self, code: str, message: str, field: str | None = None) -> None:
        self.warnings.append(ValidationIssue(code, message, Severity.WARNING, field, self.rule_id))

    def result(self, notes: list[str] | None = None) -> ValidationResult:
        score = confidence_score(self.errors, self.warnings)
        return ValidationResult(
            passed=_passed(self.errors, score),
            confidence_score=score,
            errors=self.errors,
            warnings=self.warnings,
            notes=notes or [],
        )


def confidence_score(errors: Iterable[ValidationIssue], warnings: Iterable[ValidationIssue]) -> float:
    penalty = sum(SEVERITY_PENALTIES[issue.severity] for issue in errors)
    penalty += sum(SEVERITY_PENALTIES[Severity.WARNING] for _ in warnings)
    return max(0.0, min(1.0, 1.0 - penalty))


def _passed(errors: Iterable[ValidationIssue], score: float) -> bool:
    return not any(issue.severity in _BLOCKING for issue in errors) and score >= MINIMUM_CONFIDENCE_SCORE


# Single rule


def validate_rule(rule: CustodyRule) -> ValidationResult:
    """Check one rule for completeness and internal consistency."""
    issues = _Collector(rule.id)
    _check_required_fields(rule, issues)
    _check_rule_data(rule, issues)
    _check_date_logic(rule, issues)
    _check_priority(rule, issues)
    _check_actions(rule, issues)
    _check_date_determination(rule, issues)
    _check_type_specific(rule, issues)
    return issues.result()


def _check_required_fields(rule: CustodyRule, issues: _Collector) -> None:
    required = {
        "rule_type": rule.rule_type,
        "name": rule.name,
        "category": rule.category,
        "priority": rule.priority,
        "data": rule.data,
        "effective_from": rule.effective_from,
    }
    for name, value in required.items():
        if value is None or value == "":
            issues.error(ERROR_MISSING_REQUIRED_FIELD, f"Required field '{name}' is missing", Severity.CRITICAL, name)


def _check_rule_data(rule: CustodyRule, issues: _Collector) -> None:
    if rule.rule_type is not None and not isinstance(rule.rule_type, RuleType):
        issues.error(ERROR_UNKNOWN_RULE_TYPE, f"Unknown rule type '{rule.rule_type}'", Severity.CRITICAL, "rule_type")
        return
    if rule.data is None:
        return
    data_type = getattr(rule.data, "rule_type", None)
    if data_type is None:
        issues.error(ERROR_INVALID_RULE_DATA, "Rule data has no type", Severity.CRITICAL, "data")
    elif rule.rule_type is not None and data_type != rule.rule_type:
        issues.error(
            ERROR_RULE_DATA_TYPE_MISMATCH,
            f"Rule data type '{data_type}' does not match rule type '{rule.rule_type}'",
            Severity.HIGH,
            "data.type",
        )


def _check_date_logic(rule: CustodyRule, issues: _Collector) -> None:
    if rule.effective_from and rule.effective_until and rule.effective_until <= rule.effective_from:
        issues.error(
            ERROR_INVALID_DATE_RANGE,
            "effective_until must be after effective_from",
            Severity.CRITICAL,
            "effective_until",
        )


def _check_priority(rule: CustodyRule, issues: _Collector) -> None:
    if rule.priority is None:
        return
    if not PRIORITY_MIN <= rule.priority <= PRIORITY_MAX:
        issues.error(
            ERROR_INVALID_PRIORITY,
            f"Priority must be between {PRIORITY_MIN} and {PRIORITY_MAX}",
            Severity.HIGH,
            "priority",
        )
    band = PRIORITY_BANDS.get(str(rule.rule_type))
    if band and not band[0] <= rule.priority <= band[1]:
        issues.warn(
            WARNING_PRIORITY_OUT_OF_RANGE,
            f"Priority {rule.priority} for {rule.rule_type} is outside expected range {band[0]}-{band[1]}",
            "priority",
        )


def _check_parent(value: Any, field_name: str, issues: _Collector) -> None:
    if value is None:
        issues.error(ERROR_MISSING_CUSTODIAL_PARENT, f"{field_name} is required", Severity.CRITICAL, field_name)
    elif not isinstance(value, CustodialParent):
        issues.error(
            ERROR_INVALID_CUSTODIAL_PARENT,
            f"{field_name} must be 'mother' or 'father', got '{value}'",
            Severity.HIGH,
            field_name,
        )


def _check_time(value: str | None, field_name: str, issues: _Collector) -> None:
    if value is None:
        issues.error(ERROR_INVALID_TIME, f"{field_name} is required", Severity.HIGH, field_name)
        return
    if value in TIME_MARKERS:
        return
    try:
        parse_clock(value)
    except ValueError:
        issues.error(ERROR_INVALID_TIME, f"{field_name} '{value}' is not HH:MM or a school marker", Severity.HIGH, field_name)


def _check_actions(rule: CustodyRule, issues: _Collector) -> None:
    uses_action = rule.rule_type in (RuleType.HOLIDAY, RuleType.SPECIAL_DAY) and not (
        isinstance(rule.data, HolidayData) and rule.data.segments
    )
    action = rule.action
    if action is None:
        if uses_action:
            issues.error(ERROR_MISSING_ACTIONS, "An action is required", Severity.CRITICAL, "action")
        return

    if rule.split is not None:
        split = rule.split
        for name, parent in (
            ("split.first_half_parent_when_even", split.first_half_parent_when_even),
            ("split.first_half_parent_when_odd", split.first_half_parent_when_odd),
        ):
            if not isinstance(parent, CustodialParent):
                issues.error(ERROR_INVALID_SPLIT, f"{name} must be 'mother' or 'father'", Severity.HIGH, name)
        if split.split_time is not None:
            _check_time(split.split_time, "split.split_time", issues)
    elif uses_action or action.parent is not None:
        _check_parent(action.parent, "action.parent", issues)

    if uses_action:
        _check_time(action.start_time, "action.start_time", issues)
        _check_time(action.end_time, "action.end_time", issues)
        for name, value in (("action.start_fallback", action.start_fallback), ("action.end_fallback", action.end_fallback)):
            if value is not None:
                _check_time(value, name, issues)


def _check_date_determination(rule: CustodyRule, issues: _Collector) -> None:
    determination = rule.date_determination
    field_name = "date_determination"
    if isinstance(determination, FixedDate):
        try:
            # 2024 is a leap year so February 29 is accepted here
            date(2024, determination.month, determination.day)
        except (TypeError, ValueError):
            issues.error(
                ERROR_INVALID_DATE_DETERMINATION,
                f"{determination.month}-{determination.day} is not a calendar date",
                Severity.CRITICAL,
                field_name,
            )
    elif isinstance(determination, RelativeDate):
        if determination.anchor not in NAMED_ANCHORS:
            issues.error(
                ERROR_UNKNOWN_ANCHOR, f"Unknown date anchor '{determination.anchor}'", Severity.CRITICAL, field_name
            )
    elif isinstance(determination, (NthWeekdayOfMonth, LastWeekdayOfMonth)):
        if not 1 <= determination.month <= 12 or not 0 <= determination.weekday <= 6:
            issues.error(
                ERROR_INVALID_DATE_DETERMINATION, "Month or weekday is out of range", Severity.CRITICAL, field_name
            )
        if isinstance(determination, NthWeekdayOfMonth):
            if not 1 <= determination.n <= 5:
                issues.error(
                    ERROR_INVALID_DATE_DETERMINATION,
                    f"Occurrence {determination.n} is outside 1-5",
                    Severity.CRITICAL,
                    field_name,
                )
            elif determination.n == 5:
                issues.warn(
                    WARNING_FIFTH_OCCURRENCE, "A fifth weekday does not exist in every month", field_name
                )
    elif isinstance(determination, ExplicitRange):
        if determination.end < determination.start:
            issues.error(
                ERROR_INVALID_DATE_DETERMINATION, "Range ends before it starts", Severity.CRITICAL, field_name
            )
    elif isinstance(determination, FloatingSchoolRange):
        if determination.break_name not in SCHOOL_BREAK_WINDOWS:
            issues.error(
                ERROR_UNKNOWN_ANCHOR,
                f"Unknown school break '{determination.break_name}'",
                Severity.CRITICAL,
                field_name,
            )


def _check_type_specific(rule: CustodyRule, issues: _Collector) -> None:
    data = rule.data
    if isinstance(data, RegularScheduleData):
        if not data.periods:
            issues.error(ERROR_MISSING_SCHEDULE, "Regular schedule requires periods", Severity.CRITICAL, "data.periods")
        for index, period in enumerate(data.periods):
            prefix = f"data.periods[{index}]"
            _check_parent(period.parent, f"{prefix}.parent", issues)
            _check_time(period.start_time, f"{prefix}.start_time", issues)
            _check_time(period.end_time, f"{prefix}.end_time", issues)
            if not 0 <= period.start_day <= 6 or not 0 <= period.end_day <= 6:
                issues.error(
                    ERROR_INVALID_DATE_DETERMINATION, "Weekday is out of range", Severity.CRITICAL, prefix
                )
            if not isinstance(period.frequency, Frequency):
                issues.error(
                    ERROR_INVALID_FREQUENCY,
                    f"Unknown frequency '{period.frequency}'",
                    Severity.CRITICAL,
                    f"{prefix}.frequency",
                )
            elif period.frequency is not Frequency.EVERY and period.reference_date is None:
                issues.error(
                    ERROR_MISSING_REFERENCE_DATE,
                    f"{period.frequency} period requires a reference date",
                    Severity.CRITICAL,
                    f"{prefix}.reference_date",
                )
    elif isinstance(data, SummerScheduleData):
        if not data.duration_weeks:
            issues.error(
                ERROR_MISSING_DURATION, "Summer schedule requires duration_weeks", Severity.CRITICAL, "data.duration_weeks"
            )
        if not data.mother_weeks or not data.father_weeks:
            issues.error(
                ERROR_MISSING_WEEK_ASSIGNMENTS,
                "Summer schedule requires mother_weeks and father_weeks",
                Severity.CRITICAL,
                "data",
            )
        elif set(data.mother_weeks) & set(data.father_weeks):
            issues.warn(WARNING_WEEK_ASSIGNMENT_OVERLAP, "A summer week is assigned to both parents", "data")
        _check_time(data.exchange_time, "data.exchange_time", issues)
        _require_determination(rule, issues)
    elif isinstance(data, HolidayData):
        if not data.holiday_name:
            issues.error(
                ERROR_MISSING_HOLIDAY_NAME, "Holiday requires holiday_name", Severity.CRITICAL, "data.holiday_name"
            )
        _require_determination(rule, issues)
        for index, segment in enumerate(data.segments):
            prefix = f"data.segments[{index}]"
            _check_parent(segment.parent, f"{prefix}.parent", issues)
            _check_time(segment.start_time, f"{prefix}.start_time", issues)
            _check_time(segment.end_time, f"{prefix}.end_time", issues)
            if segment.start is None or segment.end is None:
                issues.error(
                    ERROR_INVALID_DATE_RANGE, "Segment requires a start and an end date", Severity.CRITICAL, prefix
                )
            elif segment.end < segment.start:
                issues.error(ERROR_INVALID_DATE_RANGE, "Segment ends before it starts", Severity.CRITICAL, prefix)
    elif isinstance(data, SpecialDayData):
        if not data.occasion:
            issues.error(ERROR_MISSING_OCCASION, "Special day requires occasion", Severity.CRITICAL, "data.occasion")
        _require_determination(rule, issues)
    elif isinstance(data, TravelData):
        if not data.travel_type:
            issues.error(
                ERROR_MISSING_TRAVEL_TYPE, "Travel requires travel_type", Severity.CRITICAL, "data.travel_type"
            )
    elif isinstance(data, RightOfFirstRefusalData):
        if not data.threshold_duration:
            issues.error(
                ERROR_MISSING_THRESHOLD,
                "Right of first refusal requires threshold",
                Severity.CRITICAL,
                "data.threshold_duration",
            )
    elif isinstance(data, ChildcareData):
        for index, provider in enumerate(data.providers):
            if not provider.provider_type:
                issues.error(
                    ERROR_MISSING_REQUIRED_FIELD,
                    "Childcare provider requires a type",
                    Severity.CRITICAL,
                    f"data.providers[{index}]",
                )


def _require_determination(rule: CustodyRule, issues: _Collector) -> None:
    if rule.date_determination is None:
        issues.error(
            ERROR_MISSING_DATE_DETERMINATION,
            f"{rule.rule_type} requires a date determination",
            Severity.CRITICAL,
            "date_determination",
        )


# Rule pairs


def _parity_disjoint(rule_a: CustodyRule, rule_b: CustodyRule) -> bool:
    return {rule_a.year_parity, rule_b.year_parity} == {YearParity.EVEN, YearParity.ODD}


def _effective_overlap(rule_a: CustodyRule, rule_b: CustodyRule) -> bool:
    if rule_a.effective_from is None or rule_b.effective_from is None:
        return False
    end_a = rule_a.effective_until or date.max
    end_b = rule_b.effective_until or date.max
    return rule_a.effective_from <= end_b and rule_b.effective_from <= end_a


def detect_conflicts(rule_a: CustodyRule, rule_b: CustodyRule) -> ConflictDetection:
    """Compare two rules whose effective ranges overlap.

    Overlap itself is expected (holidays sit on top of the weekly schedule).
    Only equal-priority rules handing custody to different parents are left
    unresolved.
    """
    detection = ConflictDetection()
    parents_a = rule_a.assigned_parents()
    parents_b = rule_b.assigned_parents()
    if not parents_a or not parents_b:
        return detection
    if not _effective_overlap(rule_a, rule_b) or _parity_disjoint(rule_a, rule_b):
        return detection

    same_priority = rule_a.priority is not None and rule_a.priority == rule_b.priority
    parents_differ = len(parents_a | parents_b) > 1
    if (
        rule_a.priority is not None
        and rule_b.priority is not None
        and rule_a.priority < HIGH_PRECEDENCE_THRESHOLD
        and rule_b.priority < HIGH_PRECEDENCE_THRESHOLD
    ):
        severity = Severity.CRITICAL
    elif parents_differ:
        severity = Severity.HIGH
    else:
        severity = Severity.MEDIUM

    detection.conflicts.append(
        ConflictReport(
            rule_a.id,
            rule_b.id,
            ConflictType.OVERLAPPING_TIME,
            severity,
            resolved=not same_priority,
            description=f"Rules '{rule_a.label}' and '{rule_b.label}' have overlapping effective periods",
        )
    )
    if parents_differ and same_priority:
        detection.conflicts.append(
            ConflictReport(
                rule_a.id,
                rule_b.id,
                ConflictType.CONTRADICTORY_CUSTODY,
                Severity.HIGH,
                resolved=False,
                description=f"Rules '{rule_a.label}' and '{rule_b.label}' assign different parents at equal priority",
            )
        )
    if same_priority:
        detection.conflicts.append(
            ConflictReport(
                rule_a.id,
                rule_b.id,
                ConflictType.PRIORITY_UNCLEAR,
                Severity.MEDIUM,
                resolved=False,
                description=f"Rules share priority {rule_a.priority} and overlap",
            )
        )
    return detection


# Rule sets


def validate_rule_set(rules: Iterable[CustodyRule]) -> ValidationResult:
    """Validate every rule, then every pair of rules."""
    rules = list(rules)
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    notes: list[str] = []
    conflicts: list[ConflictReport] = []

    for rule_id, count in Counter(rule.id for rule in rules).items():
        if count > 1:
            errors.append(
                ValidationIssue(
                    ERROR_DUPLICATE_RULE_ID, f"Rule id '{rule_id}' is used {count} times", Severity.CRITICAL, "id", rule_id
                )
            )

    total_confidence = 0.0
    for rule in rules:
        result = validate_rule(rule)
        if any(issue.severity in _BLOCKING for issue in result.errors):
            errors.append(
                ValidationIssue(
                    ERROR_RULE_VALIDATION_FAILED,
                    f"Rule '{rule.label}' failed validation",
                    Severity.HIGH,
                    rule_id=rule.id,
                )
            )
        total_confidence += result.confidence_score
        errors.extend(result.errors)
        warnings.extend(result.warnings)

    for rule_a, rule_b in combinations(rules, 2):
        detection = detect_conflicts(rule_a, rule_b)
        if not detection.has_conflict:
            continue
        conflicts.extend(detection.conflicts)
        if detection.unresolved:
            errors.append(
                ValidationIssue(
                    ERROR_RULE_CONFLICT_DETECTED,
                    f"Unresolved custody conflict between '{rule_a.label}' and '{rule_b.label}'",
                    Severity.HIGH,
                    rule_id=rule_a.id,
                )
            )
        elif rule_a.priority != rule_b.priority:
            notes.append(
                f"Overlapping rules detected (resolved by priority): '{rule_a.label}' (priority {rule_a.priority}) "
                f"and '{rule_b.label}' (priority {rule_b.priority})"
            )
        else:
            notes.append(f"Overlapping rules '{rule_a.label}' and '{rule_b.label}' assign the same parent")

    average = total_confidence / len(rules) if rules else 0.0
    notes.append(f"Validated {len(rules)} rules")
    notes.append(f"Average confidence score: {average:.4f}")
    return ValidationResult(
        passed=_passed(errors, average),
        confidence_score=average,
        errors=errors,
        warnings=warnings,
        notes=notes,
        conflicts=conflicts,
    )


# Events


def validate_event(event: CustodyEvent) -> ValidationResult:
    issues = _Collector(event.source_rule_id or None)
    for name in ("id", "title", "source_rule_id"):
        if not getattr(event, name):
            issues.error(ERROR_MISSING_EVENT_FIELD, f"Event field '{name}' is missing", Severity.CRITICAL, name)
    if not isinstance(event.custody_type, CustodyType):
        issues.error(ERROR_MISSING_EVENT_FIELD, "Event has no custody type", Severity.CRITICAL, "custody_type")
    if event.start >= event.end:
        issues.error(ERROR_INVALID_EVENT_RANGE, "Event end must be after its start", Severity.CRITICAL, "end")
    if not isinstance(event.parent, CustodialParent):
        issues.error(
            ERROR_INVALID_CUSTODIAL_PARENT, "Event parent must be 'mother' or 'father'", Severity.CRITICAL, "parent"
        )
    return issues.result()


def validate_events(
    events: Sequence[CustodyEvent], displaced: Iterable[Displacement] = ()
) -> ValidationResult:
    """Check a resolved timeline: each event, ordering, overlap and weekend alternation."""
    issues = _Collector()
    for event in events:
        result = validate_event(event)
        issues.errors.extend(result.errors)
        issues.warnings.extend(result.warnings)

    latest_end = None
    for previous, current in zip(events, events[1:]):
        if current.start < previous.start:
            issues.error(
                ERROR_EVENTS_UNORDERED, f"Event {current.id} starts before {previous.id}", Severity.HIGH, "start"
            )
    for event in sorted(events, key=lambda item: item.start):
        if latest_end is not None and event.start < latest_end:
            issues.error(ERROR_EVENTS_OVERLAP, f"Event {event.id} overlaps an earlier event", Severity.CRITICAL, "start")
        latest_end = event.end if latest_end is None else max(latest_end, event.end)

    for item in displaced:
        if item.unresolved:
            issues.warn(
                WARNING_UNRESOLVED_CONFLICT,
                f"{item.candidate.id} lost to {item.blocked_by.id} at equal priority {item.candidate.priority}",
                "priority",
            )

    weekends = sorted(
        (event for event in events if event.custody_type is CustodyType.WEEKEND), key=lambda item: item.start
    )
    for previous, current in zip(weekends, weekends[1:]):
        consecutive = current.start.date() - previous.start.date() == timedelta(weeks=1)
        if consecutive and previous.parent == current.parent:
            issues.warn(
                WARNING_WEEKEND_NOT_ALTERNATING,
                f"Weekends starting {previous.start.date()} and {current.start.date()} both go to {current.parent}",
                "parent",
            )

    notes = [f"Checked {len(events)} events"]
    hours: Counter = Counter()
    for event in events:
        hours[str(event.parent)] += (event.end - event.start).total_seconds() / 3600
    for parent, total in sorted(hours.items()):
        count = sum(1 for event in events if str(event.parent) == parent)
        notes.append(f"{parent}: {count} events, {total:.1f} hours")
    for custody_type, count in sorted(Counter(str(event.custody_type) for event in events).items()):
        notes.append(f"{custody_type}: {count} events")
    return issues.result(notes)
