"""Home Assistant entry point for the Custody Calendar integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.typing import ConfigType
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .catalog import default_rules, load_catalog
from .const import (
    ATTR_CUSTODY_TYPE,
    ATTR_END,
    ATTR_ENTRY_ID,
    ATTR_EVENT,
    ATTR_INSTANT,
    ATTR_PARENT,
    ATTR_PREVIOUS_PARENT,
    ATTR_START,
    CONF_CHILD_NAME,
    CONF_DEFAULT_PARENT,
    CONF_LOOKAHEAD_DAYS,
    CONF_LOOKUP_DAYS,
    CONF_PARITY_HOLIDAYS,
    CONF_RULES,
    CONF_SCHOOL_CALENDAR,
    CONF_TIME_ZONE,
    CONF_URL,
    CONF_USE_DEFAULT_RULES,
    DEFAULT_CHILD_NAME,
    DEFAULT_LOOKAHEAD_DAYS,
    DEFAULT_LOOKUP_DAYS,
    DEFAULT_PARENT,
    DOMAIN,
    EVENT_CUSTODY_EXCHANGE,
    LOGGER,
    PLATFORMS,
    SERVICE_GET_CUSTODY,
    SERVICE_REFRESH_SCHEDULE,
    SERVICE_VALIDATE_RULES,
    UPDATE_INTERVAL,
)
from .engine import CustodyChange, CustodyEngine, CustodyLookup
from .generator import CustodyEvent
from .rules import CustodialParent, RuleCatalog
from .school_schedule import SchoolCalendarClient, SchoolScheduleProvider, StaticSchoolSchedule
from .validation import ValidationResult

CUSTODY_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_CHILD_NAME, default=DEFAULT_CHILD_NAME): cv.string,
        vol.Optional(CONF_TIME_ZONE): cv.time_zone,
        vol.Optional(CONF_DEFAULT_PARENT, default=DEFAULT_PARENT): vol.In([parent.value for parent in CustodialParent]),
        vol.Optional(CONF_LOOKAHEAD_DAYS, default=DEFAULT_LOOKAHEAD_DAYS): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=730)
        ),
        vol.Optional(CONF_LOOKUP_DAYS, default=DEFAULT_LOOKUP_DAYS): vol.All(vol.Coerce(int), vol.Range(min=1, max=60)),
        vol.Optional(CONF_USE_DEFAULT_RULES, default=True): cv.boolean,
        vol.Optional(CONF_PARITY_HOLIDAYS, default=False): cv.boolean,
        vol.Optional(CONF_RULES, default=[]): vol.All(cv.ensure_list, [dict]),
        vol.Optional(CONF_SCHOOL_CALENDAR): vol.Any(
            vol.Schema({vol.Required(CONF_URL): cv.url}),
            dict,
        ),
    }
)

CONFIG_SCHEMA = vol.Schema({DOMAIN: CUSTODY_SCHEMA}, extra=vol.ALLOW_EXTRA)


@dataclass(slots=True)
class CustodySnapshot:
    """State consumed by entities."""

    generated_at: datetime
    current: CustodyLookup
    events: list[CustodyEvent] = field(default_factory=list)
    changes: list[CustodyChange] = field(default_factory=list)
    validation: ValidationResult | None = None

    @property
    def next_change(self) -> CustodyChange | None:
        return self.changes[0] if self.changes else None


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Register services and import a YAML configuration into a config entry."""
    hass.data.setdefault(DOMAIN, {})
    if not hass.data[DOMAIN].get("services_registered"):
        _register_services(hass)
        hass.data[DOMAIN]["services_registered"] = True

    if DOMAIN in config:
        hass.async_create_task(
            hass.config_entries.flow.async_init(DOMAIN, context={"source": SOURCE_IMPORT}, data=config[DOMAIN])
        )
    return True


def _build_catalog(conf: dict[str, Any]) -> RuleCatalog:
    if conf[CONF_RULES]:
        return load_catalog(conf[CONF_RULES])
    if conf[CONF_USE_DEFAULT_RULES]:
        return default_rules(include_parity_holidays=conf[CONF_PARITY_HOLIDAYS])
    return RuleCatalog()


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a custody calendar from a config entry."""
    hass.data.setdefault(DOMAIN, {})
    conf = CUSTODY_SCHEMA({**entry.data, **(entry.options or {})})

    # Entries pointing at the same school calendar share one client and its cache
    school_client: SchoolCalendarClient | None = None
    school_conf = conf.get(CONF_SCHOOL_CALENDAR)
    if school_conf and CONF_URL in school_conf:
        school_clients: dict[str, SchoolCalendarClient] = hass.data[DOMAIN].setdefault("school_clients", {})
        url = school_conf[CONF_URL]
        if url not in school_clients:
            school_clients[url] = SchoolCalendarClient(hass, url)
            LOGGER.debug("Created school calendar client for %s", url)
        school_client = school_clients[url]

    coordinator = CustodyCalendarCoordinator(hass, entry, conf, _build_catalog(conf), school_client)
    await coordinator.async_load_school_calendar()
    await coordinator.async_config_entry_first_refresh()

    hass.data[DOMAIN][entry.entry_id] = {"coordinator": coordinator}

    entry.async_on_unload(entry.add_update_listener(_async_reload_entry))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        hass.data[DOMAIN].pop(entry.entry_id, None)
    return unload_ok


async def _async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry when its options change."""
    await hass.config_entries.async_reload(entry.entry_id)


class CustodyCalendarCoordinator(DataUpdateCoordinator[CustodySnapshot]):
    """Coordinator that re-evaluates the rule catalog on a schedule."""

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        conf: dict[str, Any],
        catalog: RuleCatalog,
        school_client: SchoolCalendarClient | None = None,
    ) -> None:
        super().__init__(
            hass,
            LOGGER,
            config_entry=entry,
            name=f"{DOMAIN}_{entry.entry_id}",
            update_interval=UPDATE_INTERVAL,
        )
        self.conf = conf
        self.catalog = catalog
        self.child_name: str = conf[CONF_CHILD_NAME]
        self._school_client = school_client
        self.engine = self._build_engine(self._inline_school_schedule())
        self._last_state: CustodySnapshot | None = None

    def _inline_school_schedule(self) -> SchoolScheduleProvider | None:
        school_conf = self.conf.get(CONF_SCHOOL_CALENDAR)
        if not school_conf or CONF_URL in school_conf:
            return None
        try:
            return StaticSchoolSchedule.from_dict(school_conf)
        except vol.Invalid as err:
            LOGGER.error("Invalid inline school calendar, using literal times: %s", err)
            return None

    def _build_engine(self, school: SchoolScheduleProvider | None) -> CustodyEngine:
        return CustodyEngine(
            time_zone=self.conf.get(CONF_TIME_ZONE) or str(self.hass.config.time_zone),
            school_schedule=school,
            default_parent=CustodialParent(self.conf[CONF_DEFAULT_PARENT]),
            lookup_days=self.conf[CONF_LOOKUP_DAYS],
        )

    async def async_load_school_calendar(self, force_refresh: bool = False) -> None:
        """Fetch the remote school calendar, if one is configured, and rebuild the engine."""
        if self._school_client is None:
            return
        schedule = await self._school_client.async_get_schedule(force_refresh)
        self.engine = self._build_engine(schedule)

    async def _async_update_data(self) -> CustodySnapshot:
        now = dt_util.now()
        try:
            state = self.compute(now)
        except Exception as err:
            raise UpdateFailed(f"Unable to compute custody schedule: {err}") from err

        self._fire_events(state)
        self._last_state = state
        return state

    def compute(self, now: datetime) -> CustodySnapshot:
        lookahead = self.conf[CONF_LOOKAHEAD_DAYS]
        local_now = dt_util.as_local(now)
        return CustodySnapshot(
            generated_at=now,
            current=self.engine.get_custody_for_instant(self.catalog, now),
            events=self.engine.generate_events(
                self.catalog, local_now.date() - timedelta(days=1), local_now.date() + timedelta(days=lookahead)
            ),
            changes=self.engine.custody_changes(self.catalog, now, lookahead),
            validation=self.engine.validate_rule_set(self.catalog),
        )

    def _fire_events(self, new_state: CustodySnapshot) -> None:
        """Emit an exchange event when the custodial parent changed since the last refresh."""
        if self._last_state is None:
            return
        previous = self._last_state.current.parent
        current = new_state.current
        if previous == current.parent:
            return
        self.hass.bus.async_fire(
            EVENT_CUSTODY_EXCHANGE,
            {
                ATTR_ENTRY_ID: self.config_entry.entry_id,
                CONF_CHILD_NAME: self.child_name,
                ATTR_PARENT: str(current.parent),
                ATTR_PREVIOUS_PARENT: str(previous),
                ATTR_CUSTODY_TYPE: str(current.event.custody_type) if current.event else None,
                ATTR_EVENT: current.event.id if current.event else None,
            },
        )


def _register_services(hass: HomeAssistant) -> None:
    """Register services exposed by the integration."""

    def _loaded_entry_ids() -> list[str]:
        return [
            entry.entry_id
            for entry in hass.config_entries.async_entries(DOMAIN)
            if entry.entry_id in hass.data.get(DOMAIN, {})
        ]

    def _get_coordinator(entry_id: str | None) -> CustodyCalendarCoordinator:
        loaded = _loaded_entry_ids()
        if entry_id is None:
            if not loaded:
                raise HomeAssistantError("Custody calendar is not set up")
            if len(loaded) > 1:
                raise HomeAssistantError("Several custody calendars are set up, entry_id is required")
            entry_id = loaded[0]
        if entry_id not in loaded:
            raise HomeAssistantError(f"No custody calendar found for entry_id {entry_id}")
        return hass.data[DOMAIN][entry_id]["coordinator"]

    async def _async_handle_refresh(call: ServiceCall) -> None:
        entry_id = call.data.get(ATTR_ENTRY_ID)
        entry_ids = _loaded_entry_ids() if entry_id is None else [entry_id]
        for target in entry_ids:
            coordinator = _get_coordinator(target)
            await coordinator.async_load_school_calendar(force_refresh=True)
            await coordinator.async_request_refresh()

    async def _async_handle_get_custody(call: ServiceCall) -> ServiceResponse:
        coordinator = _get_coordinator(call.data.get(ATTR_ENTRY_ID))
        instant = call.data.get(ATTR_INSTANT) or dt_util.now()
        return coordinator.engine.get_custody_for_instant(coordinator.catalog, instant).as_dict()

    async def _async_handle_validate(call: ServiceCall) -> ServiceResponse:
        coordinator = _get_coordinator(call.data.get(ATTR_ENTRY_ID))
        response = coordinator.engine.validate_rule_set(coordinator.catalog).as_dict()
        start, end = call.data.get(ATTR_START), call.data.get(ATTR_END)
        if start is not None and end is not None:
            if end < start:
                raise HomeAssistantError(f"End date {end} is before start date {start}")
            response["timeline"] = coordinator.engine.validate_window(coordinator.catalog, start, end).as_dict()
        return response

    hass.services.async_register(
        DOMAIN,
        SERVICE_REFRESH_SCHEDULE,
        _async_handle_refresh,
        schema=vol.Schema({vol.Optional(ATTR_ENTRY_ID): cv.string}),
    )

    hass.services.async_register(
        DOMAIN,
        SERVICE_GET_CUSTODY,
        _async_handle_get_custody,
        schema=vol.Schema(
            {
                vol.Optional(ATTR_ENTRY_ID): cv.string,
                vol.Optional(ATTR_INSTANT): cv.datetime,
            }
        ),
        supports_response=SupportsResponse.ONLY,
    )

    hass.services.async_register(
        DOMAIN,
        SERVICE_VALIDATE_RULES,
        _async_handle_validate,
        schema=vol.Schema(
            {
                vol.Optional(ATTR_ENTRY_ID): cv.string,
                vol.Inclusive(ATTR_START, "window"): cv.date,
                vol.Inclusive(ATTR_END, "window"): cv.date,
            }
        ),
        supports_response=SupportsResponse.ONLY,
    )
