"""Exceptions raised by the custody evaluation engine."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class CustodyEngineError(HomeAssistantError):
    """Base error for custody rule evaluation."""


class StructuralError(CustodyEngineError):
    """A rule is missing fields or carries malformed data."""

    def __init__(self, rule_id: str | None, message: str) -> None:
        super().__init__(f"Rule {rule_id or '<unknown>'}: {message}")
        self.rule_id = rule_id


class DateArithmeticError(CustodyEngineError):
    """A calendar computation has no valid answer (e.g. a missing 5th weekday)."""
