"""Test the Home Assistant setup, entities and services."""

# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument

from typing import Any

import pytest
from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntryState
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.setup import async_setup_component
from pytest_homeassistant_custom_component.common import MockConfigEntry, async_capture_events

from custom_components.custody_calendar import CustodyCalendarCoordinator
from custom_components.custody_calendar.const import (
    DOMAIN,
    EVENT_CUSTODY_EXCHANGE,
    SERVICE_GET_CUSTODY,
    SERVICE_REFRESH_SCHEDULE,
    SERVICE_VALIDATE_RULES,
)

from tests.helpers import SCHOOL_YEAR

# Monday 2025-11-24 10:00 in Los Angeles, first half of Thanksgiving break
THANKSGIVING_MONDAY = "2025-11-24T18:00:00+00:00"

BASE_CONFIG = {
    "child_name": "Kids",
    "time_zone": "America/Los_Angeles",
    "school_calendar": SCHOOL_YEAR,
}


def _coordinator(hass: HomeAssistant, index: int = 0) -> CustodyCalendarCoordinator:
    entry = hass.config_entries.async_entries(DOMAIN)[index]
    return hass.data[DOMAIN][entry.entry_id]["coordinator"]


@pytest.fixture
async def setup_integration(hass: HomeAssistant, freezer: Any) -> CustodyCalendarCoordinator:
    """Set up the integration with the default rules during Thanksgiving week."""
    freezer.move_to(THANKSGIVING_MONDAY)
    assert await async_setup_component(hass, DOMAIN, {DOMAIN: BASE_CONFIG})
    await hass.async_block_till_done()
    return _coordinator(hass)


# ============================================================================
# Setup
# ============================================================================


async def test_setup_without_configuration(hass: HomeAssistant) -> None:
    assert await async_setup_component(hass, DOMAIN, {})
    await hass.async_block_till_done()
    assert hass.config_entries.async_entries(DOMAIN) == []


async def test_invalid_default_parent_is_rejected(hass: HomeAssistant) -> None:
    assert not await async_setup_component(hass, DOMAIN, {DOMAIN: {"default_parent": "grandma"}})


async def test_entities_reflect_current_custody(
    hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator
) -> None:
    parent = hass.states.get("sensor.kids_current_parent")
    assert parent.state == "father"
    assert parent.attributes["source_rule"] == "thanksgiving"
    assert parent.attributes["custody_type"] == "holiday"
    assert parent.attributes["next_parent"] == "mother"

    # Exchange at noon on Wednesday, Los Angeles time
    assert hass.states.get("sensor.kids_next_exchange").state == "2025-11-26T20:00:00+00:00"

    confidence = hass.states.get("sensor.kids_rule_confidence")
    assert float(confidence.state) == 100.0
    assert confidence.attributes["rule_count"] == len(setup_integration.catalog)

    assert hass.states.get("binary_sensor.kids_custody_rule_problem").state == "off"
    assert hass.states.get("calendar.kids_custody").state == "on"


async def test_custom_rules_replace_defaults(hass: HomeAssistant) -> None:
    rules = [
        {
            "id": "thursday",
            "name": "Thursday",
            "rule_type": "regular_schedule",
            "category": "physical_custody",
            "priority": 100,
            "data": {
                "periods": [
                    {"start_day": "thursday", "start_time": "18:00", "end_day": "friday", "end_time": "08:00", "parent": "mother"}
                ]
            },
            "effective_from": "2025-01-01",
        }
    ]

    assert await async_setup_component(hass, DOMAIN, {DOMAIN: {"child_name": "Kids", "rules": rules}})
    await hass.async_block_till_done()

    coordinator = _coordinator(hass)
    assert len(coordinator.catalog) == 1
    assert hass.states.get("sensor.kids_rule_confidence").attributes["rule_count"] == 1


async def test_problem_sensor_turns_on_for_conflicts(hass: HomeAssistant) -> None:
    period = {"start_day": "friday", "start_time": "18:00", "end_day": "sunday", "end_time": "18:00"}
    rules = [
        {
            "id": f"{parent}_weekends",
            "name": f"{parent} weekends",
            "rule_type": "regular_schedule",
            "category": "physical_custody",
            "priority": 100,
            "data": {"periods": [{**period, "parent": parent}]},
            "effective_from": "2025-01-01",
        }
        for parent in ("mother", "father")
    ]

    assert await async_setup_component(hass, DOMAIN, {DOMAIN: {"child_name": "Kids", "rules": rules}})
    await hass.async_block_till_done()

    state = hass.states.get("binary_sensor.kids_custody_rule_problem")
    assert state.state == "on"
    assert "RULE_CONFLICT_DETECTED" in state.attributes["errors"]


# ============================================================================
# Config entries
# ============================================================================


async def test_yaml_is_imported_as_config_entry(
    hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator
) -> None:
    entries = hass.config_entries.async_entries(DOMAIN)
    assert len(entries) == 1
    assert entries[0].title == "Kids"
    assert entries[0].unique_id == "kids"
    assert entries[0].source == SOURCE_IMPORT
    assert entries[0].data["school_calendar"] == SCHOOL_YEAR
    assert entries[0].state is ConfigEntryState.LOADED


async def test_unload_entry(hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator) -> None:
    entry = setup_integration.config_entry

    assert await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()

    assert entry.state is ConfigEntryState.NOT_LOADED
    assert entry.entry_id not in hass.data[DOMAIN]
    with pytest.raises(HomeAssistantError):
        await hass.services.async_call(DOMAIN, SERVICE_GET_CUSTODY, {}, blocking=True, return_response=True)


async def test_services_need_entry_id_with_several_children(hass: HomeAssistant) -> None:
    entries = [
        MockConfigEntry(
            domain=DOMAIN,
            title=name,
            unique_id=name.lower(),
            data={**BASE_CONFIG, "child_name": name},
        )
        for name in ("Kids", "Teen")
    ]
    for entry in entries:
        entry.add_to_hass(hass)

    assert await async_setup_component(hass, DOMAIN, {})
    await hass.async_block_till_done()
    assert all(entry.state is ConfigEntryState.LOADED for entry in entries)
    assert hass.states.get("sensor.teen_current_parent") is not None

    with pytest.raises(HomeAssistantError):
        await hass.services.async_call(
            DOMAIN, SERVICE_GET_CUSTODY, {"instant": "2025-11-26 18:00:00"}, blocking=True, return_response=True
        )

    response = await hass.services.async_call(
        DOMAIN,
        SERVICE_GET_CUSTODY,
        {"entry_id": entries[1].entry_id, "instant": "2025-11-26 18:00:00"},
        blocking=True,
        return_response=True,
    )
    assert response["parent"] == "mother"

    with pytest.raises(HomeAssistantError):
        await hass.services.async_call(
            DOMAIN, SERVICE_GET_CUSTODY, {"entry_id": "missing"}, blocking=True, return_response=True
        )


# ============================================================================
# Coordinator
# ============================================================================


async def test_exchange_event_fires_on_parent_change(
    hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator, freezer: Any
) -> None:
    events = async_capture_events(hass, EVENT_CUSTODY_EXCHANGE)

    # Wednesday 18:00 in Los Angeles, after the noon exchange
    freezer.move_to("2025-11-27T02:00:00+00:00")
    await setup_integration.async_refresh()
    await hass.async_block_till_done()

    assert len(events) == 1
    assert events[0].data["parent"] == "mother"
    assert events[0].data["previous_parent"] == "father"
    assert events[0].data["event"] == "thanksgiving-2025-11-27-2"
    assert events[0].data["entry_id"] == setup_integration.config_entry.entry_id
    assert hass.states.get("sensor.kids_current_parent").state == "mother"


# ============================================================================
# Services
# ============================================================================


async def test_get_custody_service(hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator) -> None:
    response = await hass.services.async_call(
        DOMAIN,
        SERVICE_GET_CUSTODY,
        {"instant": "2025-11-26 18:00:00"},
        blocking=True,
        return_response=True,
    )

    assert response["parent"] == "mother"
    assert response["is_default"] is False
    assert response["event"]["source_rule_id"] == "thanksgiving"


async def test_validate_rules_service(hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator) -> None:
    response = await hass.services.async_call(
        DOMAIN,
        SERVICE_VALIDATE_RULES,
        {"start": "2025-11-01", "end": "2025-12-31"},
        blocking=True,
        return_response=True,
    )

    assert response["passed"] is True
    assert response["errors"] == []
    assert response["timeline"]["errors"] == []


async def test_validate_rules_rejects_reversed_window(
    hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator
) -> None:
    with pytest.raises(HomeAssistantError):
        await hass.services.async_call(
            DOMAIN,
            SERVICE_VALIDATE_RULES,
            {"start": "2025-12-31", "end": "2025-11-01"},
            blocking=True,
            return_response=True,
        )


async def test_refresh_service(hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator) -> None:
    await hass.services.async_call(DOMAIN, SERVICE_REFRESH_SCHEDULE, {}, blocking=True)
    await hass.async_block_till_done()

    assert hass.states.get("sensor.kids_current_parent").state == "father"


async def test_calendar_get_events(hass: HomeAssistant, setup_integration: CustodyCalendarCoordinator) -> None:
    response = await hass.services.async_call(
        "calendar",
        "get_events",
        {"start_date_time": "2025-11-24 00:00:00", "end_date_time": "2025-11-25 00:00:00"},
        target={"entity_id": "calendar.kids_custody"},
        blocking=True,
        return_response=True,
    )

    events = response["calendar.kids_custody"]["events"]
    assert [event["summary"] for event in events] == ["Father: Thanksgiving Break"]
