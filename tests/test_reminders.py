"""Tests for reminder scheduling and cancellation."""
from datetime import date, datetime, timedelta

import pytest
from homeassistant.util import dt as dt_util

from custom_components.medicine_cabinet.exceptions import InvalidInput, SchedulingError
from custom_components.medicine_cabinet.models import NotificationLog
from custom_components.medicine_cabinet.reminders import ReminderManager, next_occurrence
from custom_components.medicine_cabinet.scheduler import DateTrigger, WeeklyTrigger
from custom_components.medicine_cabinet.store import NotificationLogStore, ReminderStore

REMINDERS_KEY = "medicine_cabinet.test.medicineReminders"


@pytest.fixture
def stores(hass):
    return ReminderStore(hass, "test"), NotificationLogStore(hass, "test")


def _manager(stores, scheduler):
    reminders, logs = stores
    return ReminderManager(reminders, logs, scheduler, lambda: dt_util.DEFAULT_TIME_ZONE)


async def test_one_trigger_per_selected_day(hass, hass_storage, stores, fake_scheduler):
    """Monday and Wednesday at 09:00 store exactly two trigger ids."""
    manager = _manager(stores, fake_scheduler)

    reminder = await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])

    assert len(reminder.notification_ids) == 2
    assert [trigger for _, trigger in fake_scheduler.scheduled.values()] == [
        WeeklyTrigger(1, 9, 0),
        WeeklyTrigger(3, 9, 0),
    ]
    content, _ = fake_scheduler.scheduled[reminder.notification_ids[0]]
    assert content.body == "Paracetamol — 500 mg"
    assert content.data == {"reminder_id": reminder.id}

    stored = hass_storage[REMINDERS_KEY]["data"]
    assert len(stored) == 1
    assert stored[0]["days"] == [1, 3]
    assert stored[0]["time"] == "09:00"
    assert stored[0]["notificationIds"] == reminder.notification_ids


async def test_duplicate_days_collapse(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)

    reminder = await manager.async_create_reminder("Ibuprofen", "200 mg", "21:30", days=[3, "3", 1])

    assert reminder.days == [1, 3]
    assert len(reminder.notification_ids) == 2


@pytest.mark.parametrize(
    ("name", "dosage", "days"),
    [
        ("", "500 mg", [1]),
        ("  ", "500 mg", [1]),
        ("Paracetamol", "", [1]),
        ("Paracetamol", "500 mg", []),
        ("Paracetamol", "500 mg", None),
        ("Paracetamol", "500 mg", [8]),
        ("Paracetamol", "500 mg", [0]),
    ],
)
async def test_invalid_reminder_schedules_nothing(hass_storage, stores, fake_scheduler, name, dosage, days):
    manager = _manager(stores, fake_scheduler)

    with pytest.raises(InvalidInput):
        await manager.async_create_reminder(name, dosage, "09:00", days=days)

    assert fake_scheduler.calls == 0
    assert manager.reminders == []
    assert REMINDERS_KEY not in hass_storage


async def test_failed_registration_is_rolled_back(hass_storage, stores, failing_scheduler):
    """A failing trigger aborts the rest and cancels the ones already made."""
    manager = _manager(stores, failing_scheduler)

    with pytest.raises(SchedulingError):
        await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 2, 3])

    assert failing_scheduler.calls == 2
    assert failing_scheduler.cancelled == ["trigger-1"]
    assert failing_scheduler.scheduled == {}
    assert manager.reminders == []
    assert REMINDERS_KEY not in hass_storage


async def test_rollback_survives_failing_cancel(hass_storage, stores, flaky_scheduler):
    """A cancel that fails during rollback does not hide the scheduling error."""
    manager = _manager(stores, flaky_scheduler)

    with pytest.raises(SchedulingError):
        await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 2, 3])

    assert flaky_scheduler.cancelled == ["trigger-1", "trigger-2"]
    assert manager.reminders == []
    assert REMINDERS_KEY not in hass_storage


async def test_cancel_reminder_prunes_logs_and_is_idempotent(stores, fake_scheduler):
    reminders, logs = stores
    manager = _manager(stores, fake_scheduler)
    reminder = await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])
    other = await manager.async_create_reminder("Vitamin C", "1 tablet", "08:00", days=[5])

    now = dt_util.utcnow().isoformat()
    await logs.async_replace([
        NotificationLog("log-1", "Medication reminder", reminder.body, now, reminder_id=reminder.id),
        NotificationLog("log-2", "Medication reminder", other.body, now, reminder_id=other.id),
        NotificationLog("log-3", "Manual", "", now),
    ])

    assert await manager.async_cancel_reminder(reminder.id)
    assert fake_scheduler.cancelled == reminder.notification_ids
    assert [r.id for r in manager.reminders] == [other.id]
    assert [log.id for log in logs.items] == ["log-2", "log-3"]

    assert not await manager.async_cancel_reminder(reminder.id)
    assert len(fake_scheduler.cancelled) == 2


async def test_one_time_reminder(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    tomorrow = dt_util.now().date() + timedelta(days=1)

    reminder = await manager.async_create_reminder("Amoxicillin", "250 mg", "09:00", on_date=tomorrow)

    assert reminder.one_shot
    assert reminder.date == tomorrow.isoformat()
    assert len(reminder.notification_ids) == 1
    _, trigger = fake_scheduler.scheduled[reminder.notification_ids[0]]
    assert isinstance(trigger, DateTrigger)
    assert trigger.when == datetime(
        tomorrow.year, tomorrow.month, tomorrow.day, 9, 0, tzinfo=dt_util.DEFAULT_TIME_ZONE
    )


async def test_one_time_reminder_in_the_past(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    yesterday = dt_util.now().date() - timedelta(days=1)

    with pytest.raises(InvalidInput):
        await manager.async_create_reminder("Amoxicillin", "250 mg", "09:00", on_date=yesterday)
    with pytest.raises(InvalidInput):
        await manager.async_create_reminder(
            "Amoxicillin", "250 mg", "09:00", days=[1], on_date=dt_util.now().date() + timedelta(days=2)
        )
    assert fake_scheduler.calls == 0


async def test_clear_all_keeps_reminders(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])

    await manager.async_clear_all()

    assert fake_scheduler.scheduled == {}
    assert len(manager.reminders) == 1
    assert manager.reminders[0].notification_ids == []


async def test_restore_registers_again(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    reminder = await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])

    await manager.async_restore()

    restored = manager.get(reminder.id)
    assert restored.notification_ids == ["trigger-3", "trigger-4"]


async def test_reminders_on_day(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    weekly = await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])
    early = await manager.async_create_reminder("Vitamin D", "1 drop", "08:00", days=[1])
    await manager.async_create_reminder("Iron", "1 tablet", "12:00", days=[2])

    monday = date(2024, 1, 1)
    assert [r.id for r in manager.reminders_on(monday)] == [early.id, weekly.id]
    assert [r.id for r in manager.reminders_on(monday, "09")] == [weekly.id]
    assert manager.reminders_on(date(2024, 1, 7)) == []


async def test_next_occurrence(stores, fake_scheduler):
    manager = _manager(stores, fake_scheduler)
    reminder = await manager.async_create_reminder("Paracetamol", "500 mg", "09:00", days=[1, 3])
    tz = dt_util.DEFAULT_TIME_ZONE

    # Monday 2024-01-01 07:00 -> same day 09:00
    after = datetime(2024, 1, 1, 7, 0, tzinfo=tz)
    assert next_occurrence(reminder, after, tz) == datetime(2024, 1, 1, 9, 0, tzinfo=tz)

    # Monday 10:00 -> Wednesday 09:00
    after = datetime(2024, 1, 1, 10, 0, tzinfo=tz)
    assert next_occurrence(reminder, after, tz) == datetime(2024, 1, 3, 9, 0, tzinfo=tz)
