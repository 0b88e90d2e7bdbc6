"""Merge overlapping candidate events into one non-overlapping timeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .const import LOGGER
from .generator import CustodyEvent


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def precedence_key(event: CustodyEvent) -> tuple:
    """Lower priority value first, then earlier start, then rule id, then event id."""
    return (event.priority, event.start, event.source_rule_id, event.id)


@dataclass(frozen=True, slots=True)
class Displacement:
    """A candidate dropped because an accepted event already held its time."""

    candidate: CustodyEvent
    blocked_by: CustodyEvent

    @property
    def unresolved(self) -> bool:
        """Equal priorities: the tie-break chose, not the precedence order."""
        return self.candidate.priority == self.blocked_by.priority


@dataclass(slots=True)
class ResolutionReport:
    events: list[CustodyEvent] = field(default_factory=list)
    displaced: list[Displacement] = field(default_factory=list)

    @property
    def unresolved(self) -> list[Displacement]:
        return [item for item in self.displaced if item.unresolved]


class ConflictResolver:
    """Greedy priority-dominance selection.

    Candidates are visited in precedence order and accepted only when they do
    not overlap anything accepted before. The result respects precedence; it
    does not try to maximise covered time.
    """

    def resolve(self, candidates: Iterable[CustodyEvent]) -> list[CustodyEvent]:
        return self.explain(candidates).events

    def explain(self, candidates: Iterable[CustodyEvent]) -> ResolutionReport:
        report = ResolutionReport()
        accepted: list[CustodyEvent] = []
        for candidate in sorted(candidates, key=precedence_key):
            blocker = next(
                (
                    event
                    for event in accepted
                    if intervals_overlap(candidate.start, candidate.end, event.start, event.end)
                ),
                None,
            )
            if blocker is None:
                accepted.append(candidate)
                continue
            report.displaced.append(Displacement(candidate, blocker))
            if candidate.priority == blocker.priority:
                LOGGER.debug(
                    "Equal priority %s: %s kept over %s by tie-break",
                    candidate.priority,
                    blocker.id,
                    candidate.id,
                )

        report.events = sorted(accepted, key=lambda event: (event.start, event.end, event.id))
        return report
