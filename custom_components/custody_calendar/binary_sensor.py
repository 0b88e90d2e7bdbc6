"""Binary sensor flagging a rule set that fails validation."""

from __future__ import annotations

from typing import Any

from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from . import CustodyCalendarCoordinator, CustodySnapshot
from .const import ATTR_ERRORS, ATTR_WARNINGS, DOMAIN, LOGGER


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback) -> None:
    """Set up the binary sensor."""
    if DOMAIN not in hass.data or entry.entry_id not in hass.data[DOMAIN]:
        LOGGER.error("Custody calendar entry %s not found in hass.data", entry.entry_id)
        return

    coordinator: CustodyCalendarCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([RuleProblemBinarySensor(coordinator)])


class RuleProblemBinarySensor(CoordinatorEntity[CustodySnapshot], BinarySensorEntity):
    """On when the rule catalog has blocking errors or low confidence."""

    _attr_device_class = BinarySensorDeviceClass.PROBLEM
    _attr_has_entity_name = False

    def __init__(self, coordinator: CustodyCalendarCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_name = f"{coordinator.child_name} Custody Rule Problem"
        self._attr_unique_id = f"{coordinator.config_entry.entry_id}_rule_problem"

    @property
    def is_on(self) -> bool | None:
        data = self.coordinator.data
        if not data or data.validation is None:
            return None
        return not data.validation.passed

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        if not data or data.validation is None:
            return {}

        return {
            ATTR_ERRORS: sorted({issue.code for issue in data.validation.errors}),
            ATTR_WARNINGS: sorted({issue.code for issue in data.validation.warnings}),
            "conflicts": len([report for report in data.validation.conflicts if not report.resolved]),
        }
