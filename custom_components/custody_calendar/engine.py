"""Entry points of the custody evaluation engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable

from homeassistant.util import dt as dt_util

from .const import DEFAULT_LOOKUP_DAYS, DEFAULT_PARENT, DEFAULT_TIME_ZONE, LOGGER
from .errors import CustodyEngineError
from .generator import CustodyEvent, EventGenerator
from .resolver import ConflictResolver, ResolutionReport
from .rules import CustodialParent, CustodyRule
from .school_schedule import SchoolScheduleProvider
from .validation import ValidationResult, validate_events, validate_rule_set


@dataclass(frozen=True, slots=True)
class CustodyLookup:
    """Custodial parent at an instant and the event that decided it."""

    instant: datetime
    parent: CustodialParent
    event: CustodyEvent | None

    @property
    def is_default(self) -> bool:
        return self.event is None

    def as_dict(self) -> dict[str, Any]:
        return {
            "instant": self.instant.isoformat(),
            "parent": str(self.parent),
            "is_default": self.is_default,
            "event": self.event.as_dict() if self.event else None,
        }


@dataclass(frozen=True, slots=True)
class CustodyChange:
    at: datetime
    parent: CustodialParent
    event: CustodyEvent | None


class CustodyEngine:
    """Stateless evaluation of a rule catalog.

    The engine holds configuration only (time zone, school schedule, default
    parent). Every call takes the rules explicitly and builds its events from
    scratch, so identical inputs give identical outputs.
    """

    def __init__(
        self,
        time_zone: tzinfo | str = DEFAULT_TIME_ZONE,
        school_schedule: SchoolScheduleProvider | None = None,
        default_parent: CustodialParent = CustodialParent(DEFAULT_PARENT),
        lookup_days: int = DEFAULT_LOOKUP_DAYS,
    ) -> None:
        if isinstance(time_zone, str):
            zone = dt_util.get_time_zone(time_zone)
            if zone is None:
                raise CustodyEngineError(f"Unknown time zone {time_zone}")
            time_zone = zone
        self._tz = time_zone
        self._default_parent = CustodialParent(default_parent)
        self._lookup = timedelta(days=lookup_days)
        self._generator = EventGenerator(time_zone, school_schedule)
        self._resolver = ConflictResolver()

    @property
    def time_zone(self) -> tzinfo:
        return self._tz

    @property
    def default_parent(self) -> CustodialParent:
        return self._default_parent

    def generate_candidates(self, rules: Iterable[CustodyRule], start: date, end: date) -> list[CustodyEvent]:
        """Raw, possibly overlapping events of every rule that can be evaluated."""
        candidates: list[CustodyEvent] = []
        for rule in rules:
            try:
                candidates.extend(self._generator.generate(rule, start, end))
            except CustodyEngineError as err:
                LOGGER.warning("Skipping rule %s: %s", rule.id, err)
        return candidates

    def resolve_window(self, rules: Iterable[CustodyRule], start: date, end: date) -> ResolutionReport:
        report = self._resolver.explain(self.generate_candidates(rules, start, end))
        for item in report.unresolved:
            LOGGER.debug("Unresolved overlap: %s displaced by %s", item.candidate.id, item.blocked_by.id)
        return report

    def generate_events(self, rules: Iterable[CustodyRule], start: date, end: date) -> list[CustodyEvent]:
        """Final non-overlapping events for the inclusive civil date range.

        Data-quality problems never raise here; malformed rules are skipped
        and reported by validate_rule_set instead.
        """
        return self.resolve_window(rules, start, end).events

    def get_custody_for_instant(self, rules: Iterable[CustodyRule], instant: datetime) -> CustodyLookup:
        """Return who has custody at an instant, falling back to the default parent."""
        local = self._localize(instant)
        day = local.date()
        events = self.generate_events(rules, day - self._lookup, day + self._lookup)
        event = next((item for item in events if item.contains(local)), None)
        parent = event.parent if event is not None else self._default_parent
        return CustodyLookup(instant=local, parent=parent, event=event)

    def custody_changes(self, rules: Iterable[CustodyRule], start: datetime, days: int) -> list[CustodyChange]:
        """Every instant in [start, start + days) where the custodial parent changes.

        Gaps between events belong to the default parent.
        """
        local = self._localize(start)
        horizon = local + timedelta(days=days)
        rules = list(rules)
        events = [
            event
            for event in self.generate_events(rules, local.date() - self._lookup, horizon.date())
            if event.end > local and event.start < horizon
        ]

        segments: list[tuple[datetime, CustodialParent, CustodyEvent | None]] = []
        cursor = local
        for event in events:
            if event.start > cursor:
                segments.append((cursor, self._default_parent, None))
            segments.append((max(event.start, local), event.parent, event))
            cursor = max(cursor, event.end)
        if cursor < horizon:
            segments.append((cursor, self._default_parent, None))

        changes: list[CustodyChange] = []
        current = segments[0][1] if segments else self._default_parent
        for at, parent, event in segments[1:]:
            if parent != current:
                changes.append(CustodyChange(at=at, parent=parent, event=event))
                current = parent
        return changes

    def validate_rule_set(self, rules: Iterable[CustodyRule]) -> ValidationResult:
        return validate_rule_set(rules)

    def validate_window(self, rules: Iterable[CustodyRule], start: date, end: date) -> ValidationResult:
        """Check the resolved timeline of a window, including tie-break displacements."""
        report = self.resolve_window(rules, start, end)
        return validate_events(report.events, report.displaced)

    def _localize(self, instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self._tz)
        return instant.astimezone(self._tz)
