"""Sensor platform for the custody calendar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity, SensorStateClass
from homeassistant.const import PERCENTAGE
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from . import CustodyCalendarCoordinator, CustodySnapshot
from .const import (
    ATTR_CUSTODY_TYPE,
    ATTR_ERRORS,
    ATTR_NEXT_EXCHANGE,
    ATTR_NEXT_PARENT,
    ATTR_RULE_COUNT,
    ATTR_SOURCE_RULE,
    ATTR_WARNINGS,
    DOMAIN,
    LOGGER,
)
from .rules import CustodialParent


@dataclass(slots=True)
class SensorDefinition:
    """Meta description for each logical sensor."""

    key: str
    name: str
    icon: str | None = None
    device_class: SensorDeviceClass | None = None
    state_class: SensorStateClass | None = None
    unit: str | None = None
    options: list[str] | None = None


SENSORS: tuple[SensorDefinition, ...] = (
    SensorDefinition(
        "current_parent",
        "Current Parent",
        "mdi:account-child",
        SensorDeviceClass.ENUM,
        options=[parent.value for parent in CustodialParent],
    ),
    SensorDefinition("next_exchange", "Next Exchange", "mdi:swap-horizontal", SensorDeviceClass.TIMESTAMP),
    SensorDefinition(
        "confidence",
        "Rule Confidence",
        "mdi:scale-balance",
        state_class=SensorStateClass.MEASUREMENT,
        unit=PERCENTAGE,
    ),
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback) -> None:
    """Set up custody calendar sensors."""
    if DOMAIN not in hass.data or entry.entry_id not in hass.data[DOMAIN]:
        LOGGER.error("Custody calendar entry %s not found in hass.data", entry.entry_id)
        return

    coordinator: CustodyCalendarCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([CustodyCalendarSensor(coordinator, definition) for definition in SENSORS])


class CustodyCalendarSensor(CoordinatorEntity[CustodySnapshot], SensorEntity):
    """Represent a derived sensor from the custody snapshot."""

    _attr_has_entity_name = False

    def __init__(self, coordinator: CustodyCalendarCoordinator, definition: SensorDefinition) -> None:
        super().__init__(coordinator)
        self._definition = definition
        self._attr_unique_id = f"{coordinator.config_entry.entry_id}_{definition.key}"
        self._attr_name = f"{coordinator.child_name} {definition.name}"
        self._attr_icon = definition.icon
        self._attr_device_class = definition.device_class
        self._attr_state_class = definition.state_class
        self._attr_native_unit_of_measurement = definition.unit
        self._attr_options = definition.options

    @property
    def native_value(self) -> Any:
        """Return the sensor state."""
        data = self.coordinator.data
        if not data:
            return None

        if self._definition.key == "current_parent":
            return str(data.current.parent)
        if self._definition.key == "next_exchange":
            return data.next_change.at if data.next_change else None
        if self._definition.key == "confidence":
            return round(data.validation.confidence_score * 100, 1) if data.validation else None
        return None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        if not data:
            return {}

        if self._definition.key == "confidence" and data.validation:
            return {
                ATTR_RULE_COUNT: len(self.coordinator.catalog),
                ATTR_ERRORS: len(data.validation.errors),
                ATTR_WARNINGS: len(data.validation.warnings),
            }

        event = data.current.event
        attrs: dict[str, Any] = {
            ATTR_CUSTODY_TYPE: str(event.custody_type) if event else None,
            ATTR_SOURCE_RULE: event.source_rule_id if event else None,
            ATTR_NEXT_EXCHANGE: data.next_change.at.isoformat() if data.next_change else None,
            ATTR_NEXT_PARENT: str(data.next_change.parent) if data.next_change else None,
        }
        return {key: value for key, value in attrs.items() if value is not None}
