"""Calendar entity for the custody calendar."""

from __future__ import annotations

from datetime import datetime

from homeassistant.components.calendar import CalendarEntity, CalendarEvent
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity
from homeassistant.util import dt as dt_util

from . import CustodyCalendarCoordinator, CustodySnapshot
from .const import DOMAIN, LOGGER
from .generator import CustodyEvent


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback) -> None:
    """Set up the calendar entity."""
    if DOMAIN not in hass.data or entry.entry_id not in hass.data[DOMAIN]:
        LOGGER.error("Custody calendar entry %s not found in hass.data", entry.entry_id)
        return

    coordinator: CustodyCalendarCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([CustodyCalendarEntity(coordinator)])


class CustodyCalendarEntity(CoordinatorEntity[CustodySnapshot], CalendarEntity):
    """Expose the resolved custody timeline as a calendar."""

    _attr_has_entity_name = False

    def __init__(self, coordinator: CustodyCalendarCoordinator) -> None:
        super().__init__(coordinator)
        self._attr_name = f"{coordinator.child_name} Custody"
        self._attr_unique_id = f"{coordinator.config_entry.entry_id}_calendar"

    @property
    def event(self) -> CalendarEvent | None:
        """Return the current event, or the next one when nobody is scheduled."""
        data = self.coordinator.data
        if not data:
            return None

        now = dt_util.now()
        upcoming = [event for event in data.events if event.end > now]
        return self._to_calendar_event(upcoming[0]) if upcoming else None

    async def async_get_events(
        self, hass: HomeAssistant, start_date: datetime, end_date: datetime
    ) -> list[CalendarEvent]:
        """Evaluate the rules for the requested range."""
        engine = self.coordinator.engine
        start = start_date.astimezone(engine.time_zone)
        end = end_date.astimezone(engine.time_zone)
        events = engine.generate_events(self.coordinator.catalog, start.date(), end.date())
        return [
            self._to_calendar_event(event)
            for event in events
            if event.end > start_date and event.start < end_date
        ]

    def _to_calendar_event(self, event: CustodyEvent) -> CalendarEvent:
        return CalendarEvent(
            start=event.start,
            end=event.end,
            summary=event.title,
            description=f"{event.description} • {event.custody_type}",
            uid=event.id,
        )
