"""Config flow for the Custody Calendar integration."""

from __future__ import annotations

from datetime import date, time
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import config_validation as cv
from homeassistant.util import dt as dt_util, slugify

from .const import (
    CONF_CHILD_NAME,
    CONF_DEFAULT_PARENT,
    CONF_LOOKAHEAD_DAYS,
    CONF_PARITY_HOLIDAYS,
    CONF_SCHOOL_CALENDAR,
    CONF_TIME_ZONE,
    CONF_URL,
    CONF_USE_DEFAULT_RULES,
    DEFAULT_CHILD_NAME,
    DEFAULT_LOOKAHEAD_DAYS,
    DEFAULT_PARENT,
    DOMAIN,
)
from .rules import CustodialParent

PARENT_OPTIONS = [parent.value for parent in CustodialParent]


def _storable(value: Any) -> Any:
    """Entry data is stored as JSON; YAML can hand over date and time objects."""
    if isinstance(value, dict):
        return {key: _storable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_storable(item) for item in value]
    if isinstance(value, (date, time)):
        return value.isoformat()
    return value


def _settings_schema(data: dict[str, Any]) -> dict[Any, Any]:
    """Fields shared by the setup form and the options form."""
    return {
        vol.Optional(CONF_DEFAULT_PARENT, default=data.get(CONF_DEFAULT_PARENT, DEFAULT_PARENT)): vol.In(
            PARENT_OPTIONS
        ),
        vol.Optional(CONF_LOOKAHEAD_DAYS, default=data.get(CONF_LOOKAHEAD_DAYS, DEFAULT_LOOKAHEAD_DAYS)): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=730)
        ),
        vol.Optional(CONF_USE_DEFAULT_RULES, default=data.get(CONF_USE_DEFAULT_RULES, True)): cv.boolean,
        vol.Optional(CONF_PARITY_HOLIDAYS, default=data.get(CONF_PARITY_HOLIDAYS, False)): cv.boolean,
    }


class CustodyCalendarConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Create one entry per child."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Gather the child and the evaluation settings."""
        errors: dict[str, str] = {}
        if user_input:
            cleaned = dict(user_input)

            child_name = str(cleaned.get(CONF_CHILD_NAME, "")).strip()
            if not slugify(child_name):
                errors[CONF_CHILD_NAME] = "invalid_child_name"
            cleaned[CONF_CHILD_NAME] = child_name

            time_zone = str(cleaned.pop(CONF_TIME_ZONE, "") or "").strip()
            if time_zone:
                if dt_util.get_time_zone(time_zone) is None:
                    errors[CONF_TIME_ZONE] = "invalid_time_zone"
                else:
                    cleaned[CONF_TIME_ZONE] = time_zone

            url = str(cleaned.pop(CONF_URL, "") or "").strip()
            if url:
                try:
                    cleaned[CONF_SCHOOL_CALENDAR] = {CONF_URL: cv.url(url)}
                except vol.Invalid:
                    errors[CONF_URL] = "invalid_url"

            if not errors:
                await self.async_set_unique_id(slugify(child_name))
                self._abort_if_unique_id_configured()
                return self.async_create_entry(title=child_name, data=cleaned)

        data = user_input or {}
        schema = vol.Schema(
            {
                vol.Required(CONF_CHILD_NAME, default=data.get(CONF_CHILD_NAME, DEFAULT_CHILD_NAME)): cv.string,
                vol.Optional(CONF_TIME_ZONE, default=data.get(CONF_TIME_ZONE, "")): cv.string,
                vol.Optional(CONF_URL, default=data.get(CONF_URL, "")): cv.string,
                **_settings_schema(data),
            }
        )
        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    async def async_step_import(self, import_data: dict[str, Any]) -> FlowResult:
        """Create or update the entry described in configuration.yaml."""
        data = _storable(import_data)
        await self.async_set_unique_id(slugify(data[CONF_CHILD_NAME]))
        self._abort_if_unique_id_configured(updates=data)
        return self.async_create_entry(title=data[CONF_CHILD_NAME], data=data)

    @staticmethod
    @callback
    def async_get_options_flow(entry: config_entries.ConfigEntry) -> config_entries.OptionsFlow:
        """Return the options handler."""
        return CustodyCalendarOptionsFlow()


class CustodyCalendarOptionsFlow(config_entries.OptionsFlow):
    """Adjust evaluation settings of an existing entry."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        data = {**self.config_entry.data, **(self.config_entry.options or {})}
        return self.async_show_form(step_id="init", data_schema=vol.Schema(_settings_schema(data)))
