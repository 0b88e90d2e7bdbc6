"""Test priority-dominance merging of candidate events."""

import random

from custom_components.custody_calendar.resolver import (
    ConflictResolver,
    intervals_overlap,
    precedence_key,
)
from custom_components.custody_calendar.rules import CustodialParent

from tests.helpers import local, make_event

MOTHER = CustodialParent.MOTHER
FATHER = CustodialParent.FATHER


def _assert_no_overlap(events) -> None:
    for index, first in enumerate(events):
        for second in events[index + 1 :]:
            assert not intervals_overlap(first.start, first.end, second.start, second.end), (first.id, second.id)


def test_touching_intervals_do_not_overlap() -> None:
    assert not intervals_overlap(local(2025, 1, 1), local(2025, 1, 2), local(2025, 1, 2), local(2025, 1, 3))
    assert intervals_overlap(local(2025, 1, 1), local(2025, 1, 3), local(2025, 1, 2), local(2025, 1, 4))


def test_lower_priority_value_wins() -> None:
    weekend = make_event("weekend-1", local(2025, 10, 31, 15), local(2025, 11, 3, 8), FATHER, priority=101)
    halloween = make_event("halloween-1", local(2025, 10, 31), local(2025, 10, 31, 23, 59), MOTHER, priority=14)

    report = ConflictResolver().explain([weekend, halloween])

    assert report.events == [halloween]
    assert len(report.displaced) == 1
    assert report.displaced[0].candidate == weekend
    assert report.displaced[0].blocked_by == halloween
    assert report.unresolved == []


def test_non_overlapping_candidates_all_survive_in_start_order() -> None:
    later = make_event("b-1", local(2025, 1, 9, 18), local(2025, 1, 10, 8), priority=1)
    earlier = make_event("a-1", local(2025, 1, 2, 18), local(2025, 1, 3, 8), priority=200)
    touching = make_event("c-1", local(2025, 1, 3, 8), local(2025, 1, 3, 18), FATHER, priority=50)

    assert ConflictResolver().resolve([later, earlier, touching]) == [earlier, touching, later]


def test_equal_priority_tie_break_is_independent_of_input_order() -> None:
    """Equal priority falls back to earlier start, then rule id, then event id."""
    first = make_event("rule_a-1", local(2025, 3, 1, 9), local(2025, 3, 1, 17), MOTHER, rule_id="rule_a")
    second = make_event("rule_b-1", local(2025, 3, 1, 9), local(2025, 3, 1, 17), FATHER, rule_id="rule_b")
    third = make_event("rule_c-1", local(2025, 3, 1, 8), local(2025, 3, 1, 10), FATHER, rule_id="rule_c")

    resolver = ConflictResolver()
    forward = resolver.explain([first, second, third])
    backward = resolver.explain([third, second, first])

    assert forward.events == backward.events == [third]
    assert {item.candidate.id for item in forward.unresolved} == {"rule_a-1", "rule_b-1"}


def test_precedence_key_orders_priority_first() -> None:
    early = make_event("x-1", local(2025, 1, 1), local(2025, 1, 2), priority=100)
    urgent = make_event("y-1", local(2025, 6, 1), local(2025, 6, 2), priority=1)

    assert sorted([early, urgent], key=precedence_key) == [urgent, early]


def test_random_candidates_resolve_without_overlap() -> None:
    """Shuffled candidate sets always give the same non-overlapping result."""
    rng = random.Random(20251127)
    candidates = []
    for index in range(60):
        start = local(2025, 1, 1) + (local(2025, 1, 2) - local(2025, 1, 1)) * rng.uniform(0, 30)
        end = start + (local(2025, 1, 2) - local(2025, 1, 1)) * rng.uniform(0.1, 4)
        candidates.append(
            make_event(
                f"rule{index % 7}-{index}",
                start,
                end,
                rng.choice([MOTHER, FATHER]),
                priority=rng.choice([1, 10, 50, 100, 101]),
                rule_id=f"rule{index % 7}",
            )
        )

    resolver = ConflictResolver()
    expected = resolver.resolve(candidates)
    _assert_no_overlap(expected)
    for _ in range(5):
        rng.shuffle(candidates)
        assert resolver.resolve(candidates) == expected

    # Every dropped candidate lost to an accepted event of equal or better precedence
    report = resolver.explain(candidates)
    for item in report.displaced:
        assert item.blocked_by in report.events
        assert item.blocked_by.priority <= item.candidate.priority
        assert precedence_key(item.blocked_by) < precedence_key(item.candidate)
