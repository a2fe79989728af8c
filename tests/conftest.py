"""Global fixtures for Medicine Cabinet integration."""
import pytest

from custom_components.medicine_cabinet.const import CONF_PATIENT, DOMAIN
from custom_components.medicine_cabinet.scheduler import NotificationScheduler

from pytest_homeassistant_custom_component.common import MockConfigEntry

pytest_plugins = "pytest_homeassistant_custom_component"


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations defined in the test dir."""
    yield


@pytest.fixture
def config_entry(hass):
    """A config entry for one patient, added but not set up."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        data={CONF_PATIENT: "person.test_user"},
        unique_id="person.test_user",
        entry_id="test_entry_id",
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
async def cabinet(hass, config_entry):
    """The runtime cabinet of a loaded config entry."""
    assert await hass.config_entries.async_setup(config_entry.entry_id)
    await hass.async_block_till_done()
    return hass.data[DOMAIN][config_entry.entry_id]


class FakeScheduler(NotificationScheduler):
    """Records registrations; optionally rejects the n-th one or every cancel."""

    def __init__(self, fail_on=None, fail_cancel=False):
        self.scheduled = {}
        self.cancelled = []
        self.fail_on = fail_on
        self.fail_cancel = fail_cancel
        self.calls = 0

    async def async_schedule(self, content, trigger):
        self.calls += 1
        if self.fail_on == self.calls:
            raise RuntimeError("scheduler rejected the trigger")
        trigger_id = f"trigger-{self.calls}"
        self.scheduled[trigger_id] = (content, trigger)
        return trigger_id

    async def async_cancel(self, trigger_id):
        self.cancelled.append(trigger_id)
        if self.fail_cancel:
            raise RuntimeError("trigger already gone")
        self.scheduled.pop(trigger_id, None)

    async def async_cancel_all(self):
        self.cancelled.extend(self.scheduled)
        self.scheduled.clear()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def failing_scheduler():
    """Rejects the second registration."""
    return FakeScheduler(fail_on=2)


@pytest.fixture
def flaky_scheduler():
    """Rejects the third registration and fails every cancel."""
    return FakeScheduler(fail_on=3, fail_cancel=True)
