"""Constants for the Custody Calendar integration."""

from __future__ import annotations

from datetime import timedelta
import logging

from homeassistant.const import Platform

LOGGER = logging.getLogger(__package__)

DOMAIN = "custody_calendar"
PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.SENSOR,
    Platform.CALENDAR,
]
UPDATE_INTERVAL = timedelta(minutes=15)

CONF_CHILD_NAME = "child_name"
CONF_TIME_ZONE = "time_zone"
CONF_DEFAULT_PARENT = "default_parent"
CONF_LOOKAHEAD_DAYS = "lookahead_days"
CONF_LOOKUP_DAYS = "lookup_days"
CONF_USE_DEFAULT_RULES = "use_default_rules"
CONF_PARITY_HOLIDAYS = "parity_holidays"
CONF_RULES = "rules"
CONF_SCHOOL_CALENDAR = "school_calendar"
CONF_URL = "url"

DEFAULT_CHILD_NAME = "Children"
DEFAULT_TIME_ZONE = "America/Los_Angeles"
DEFAULT_PARENT = "father"
DEFAULT_LOOKAHEAD_DAYS = 90
DEFAULT_LOOKUP_DAYS = 7

# Symbolic times resolved through the school schedule
MARKER_SCHOOL_PICKUP = "school_pickup"
MARKER_SCHOOL_DROPOFF = "school_dropoff"
TIME_MARKERS = (MARKER_SCHOOL_PICKUP, MARKER_SCHOOL_DROPOFF)
DEFAULT_PICKUP_FALLBACK = "16:00"
DEFAULT_DROPOFF_FALLBACK = "09:00"

WEEKDAY_LOOKUP = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

PRIORITY_MIN = 0
PRIORITY_MAX = 1000
# Expected precedence band per rule type, lower value wins
PRIORITY_BANDS: dict[str, tuple[int, int]] = {
    "special_day": (1, 9),
    "holiday": (10, 49),
    "right_of_first_refusal": (50, 89),
    "summer_schedule": (90, 99),
    "regular_schedule": (100, 149),
    "exchange_protocol": (150, 199),
    "travel": (200, 249),
    "childcare": (200, 249),
}
HIGH_PRECEDENCE_THRESHOLD = 50

MINIMUM_CONFIDENCE_SCORE = 0.99
SEVERITY_PENALTIES: dict[str, float] = {
    "critical": 0.5,
    "high": 0.2,
    "medium": 0.1,
    "low": 0.05,
    "warning": 0.02,
}

# School breaks: search window (month, day) pairs and the minimum run of weekdays off
SCHOOL_BREAK_WINDOWS: dict[str, tuple[tuple[int, int], tuple[int, int], int]] = {
    "thanksgiving": ((11, 1), (11, 30), 2),
    "winter": ((12, 1), (1, 31), 5),
    "spring": ((3, 1), (4, 30), 5),
    "summer": ((5, 15), (9, 15), 10),
}

# Validation codes
ERROR_MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
ERROR_UNKNOWN_RULE_TYPE = "UNKNOWN_RULE_TYPE"
ERROR_INVALID_RULE_DATA = "INVALID_RULE_DATA"
ERROR_RULE_DATA_TYPE_MISMATCH = "RULE_DATA_TYPE_MISMATCH"
ERROR_INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
ERROR_INVALID_PRIORITY = "INVALID_PRIORITY"
ERROR_MISSING_ACTIONS = "MISSING_ACTIONS"
ERROR_MISSING_CUSTODIAL_PARENT = "MISSING_CUSTODIAL_PARENT"
ERROR_INVALID_CUSTODIAL_PARENT = "INVALID_CUSTODIAL_PARENT"
ERROR_INVALID_TIME = "INVALID_TIME"
ERROR_INVALID_DATE_DETERMINATION = "INVALID_DATE_DETERMINATION"
ERROR_UNKNOWN_ANCHOR = "UNKNOWN_ANCHOR"
ERROR_INVALID_SPLIT = "INVALID_SPLIT"
ERROR_MISSING_SCHEDULE = "MISSING_SCHEDULE"
ERROR_MISSING_DURATION = "MISSING_DURATION"
ERROR_MISSING_WEEK_ASSIGNMENTS = "MISSING_WEEK_ASSIGNMENTS"
ERROR_MISSING_HOLIDAY_NAME = "MISSING_HOLIDAY_NAME"
ERROR_MISSING_DATE_DETERMINATION = "MISSING_DATE_DETERMINATION"
ERROR_MISSING_OCCASION = "MISSING_OCCASION"
ERROR_MISSING_TRAVEL_TYPE = "MISSING_TRAVEL_TYPE"
ERROR_MISSING_THRESHOLD = "MISSING_THRESHOLD"
ERROR_MISSING_REFERENCE_DATE = "MISSING_REFERENCE_DATE"
ERROR_INVALID_FREQUENCY = "INVALID_FREQUENCY"
ERROR_RULE_VALIDATION_FAILED = "RULE_VALIDATION_FAILED"
ERROR_RULE_CONFLICT_DETECTED = "RULE_CONFLICT_DETECTED"
ERROR_DUPLICATE_RULE_ID = "DUPLICATE_RULE_ID"
ERROR_MISSING_EVENT_FIELD = "MISSING_EVENT_FIELD"
ERROR_INVALID_EVENT_RANGE = "INVALID_EVENT_RANGE"
ERROR_EVENTS_OVERLAP = "EVENTS_OVERLAP"
ERROR_EVENTS_UNORDERED = "EVENTS_UNORDERED"
WARNING_PRIORITY_OUT_OF_RANGE = "PRIORITY_OUT_OF_EXPECTED_RANGE"
WARNING_FIFTH_OCCURRENCE = "FIFTH_OCCURRENCE_NOT_GUARANTEED"
WARNING_WEEK_ASSIGNMENT_OVERLAP = "WEEK_ASSIGNMENT_OVERLAP"
WARNING_UNRESOLVED_CONFLICT = "UNRESOLVED_CONFLICT"
WARNING_MISSING_SCHOOL_DATA = "MISSING_SCHOOL_DATA"
WARNING_WEEKEND_NOT_ALTERNATING = "WEEKEND_NOT_ALTERNATING"

EVENT_CUSTODY_EXCHANGE = "custody_calendar_exchange"

ATTR_PARENT = "parent"
ATTR_PREVIOUS_PARENT = "previous_parent"
ATTR_EVENT = "event"
ATTR_INSTANT = "instant"
ATTR_ENTRY_ID = "entry_id"
ATTR_START = "start"
ATTR_END = "end"
ATTR_CUSTODY_TYPE = "custody_type"
ATTR_SOURCE_RULE = "source_rule"
ATTR_NEXT_EXCHANGE = "next_exchange"
ATTR_NEXT_PARENT = "next_parent"
ATTR_ERRORS = "errors"
ATTR_WARNINGS = "warnings"
ATTR_RULE_COUNT = "rule_count"

SERVICE_REFRESH_SCHEDULE = "refresh_schedule"
SERVICE_GET_CUSTODY = "get_custody"
SERVICE_VALIDATE_RULES = "validate_rules"
