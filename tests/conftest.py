"""Shared fixtures for Custody Calendar tests."""

from typing import Any

import pytest

from custom_components.custody_calendar.catalog import default_rules
from custom_components.custody_calendar.engine import CustodyEngine
from custom_components.custody_calendar.generator import EventGenerator
from custom_components.custody_calendar.rules import RuleCatalog
from custom_components.custody_calendar.school_schedule import StaticSchoolSchedule

from tests.helpers import PACIFIC, SCHOOL_YEAR

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def school_schedule() -> StaticSchoolSchedule:
    """School year 2025-26 with Thanksgiving, winter and spring breaks."""
    return StaticSchoolSchedule.from_dict(SCHOOL_YEAR)


@pytest.fixture
def generator() -> EventGenerator:
    """Generator without school data, so markers use fallback times."""
    return EventGenerator(PACIFIC)


@pytest.fixture
def school_generator(school_schedule: StaticSchoolSchedule) -> EventGenerator:
    return EventGenerator(PACIFIC, school_schedule)


@pytest.fixture
def engine() -> CustodyEngine:
    return CustodyEngine("America/Los_Angeles")


@pytest.fixture
def school_engine(school_schedule: StaticSchoolSchedule) -> CustodyEngine:
    return CustodyEngine("America/Los_Angeles", school_schedule)


@pytest.fixture
def catalog() -> RuleCatalog:
    return default_rules()
