"""Platform for Medicine Cabinet sensor."""
from __future__ import annotations

from datetime import datetime, timedelta
import logging

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers import entity_registry as er
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.util import dt as dt_util

from .cabinet import MedicineCabinet
from .const import CONF_PATIENT, DOMAIN, WEEKDAYS

_LOGGER = logging.getLogger(__name__)

REFRESH_INTERVAL = timedelta(minutes=1)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the sensor platform from UI Config Entry."""
    cabinet: MedicineCabinet = hass.data[DOMAIN][entry.entry_id]

    async_add_entities([
        InventorySensor(cabinet),
        UnreadNotificationsSensor(cabinet),
        NextAppointmentSensor(cabinet),
    ])

    known: set[str] = set()

    @callback
    def _async_add_reminder_sensors() -> None:
        sensors = [
            ReminderSensor(cabinet, reminder.id)
            for reminder in cabinet.reminders.reminders
            if reminder.id not in known
        ]
        known.update(sensor.reminder_id for sensor in sensors)
        if sensors:
            async_add_entities(sensors)

    _async_add_reminder_sensors()
    entry.async_on_unload(
        async_dispatcher_connect(hass, cabinet.signal_updated, _async_add_reminder_sensors)
    )


class CabinetSensor(SensorEntity):
    """A sensor refreshed whenever the cabinet's stored data changes.

    Values that depend on the clock (past appointments, expired medicines)
    are also recomputed every minute.
    """

    _attr_should_poll = False

    def __init__(self, cabinet: MedicineCabinet, key: str) -> None:
        self._cabinet = cabinet
        self._attr_unique_id = f"{cabinet.entry.entry_id}_{key}"

    async def async_added_to_hass(self):
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(self.hass, self._cabinet.signal_updated, self._handle_update)
        )
        self.async_on_remove(
            async_track_time_interval(self.hass, self._handle_tick, REFRESH_INTERVAL)
        )
        self._update_state()

    @callback
    def _handle_tick(self, now: datetime) -> None:
        self._handle_update()

    @callback
    def _handle_update(self) -> None:
        self._update_state()
        self.async_write_ha_state()

    def _update_state(self) -> None:
        """Refresh the cached state from the cabinet."""


class InventorySensor(CabinetSensor):
    """Number of medicines in the cabinet."""

    _attr_name = "Medicine inventory"
    _attr_icon = "mdi:pill"

    def __init__(self, cabinet: MedicineCabinet) -> None:
        super().__init__(cabinet, "inventory")
        self._patient_name = None

    async def async_added_to_hass(self):
        """Resolve patient name."""
        patient_id = self._cabinet.entry.data.get(CONF_PATIENT)
        if patient_id:
            state = self.hass.states.get(patient_id)
            if state:
                self._patient_name = state.attributes.get("friendly_name", state.name)
            else:
                self._patient_name = patient_id
        await super().async_added_to_hass()

    def _update_state(self) -> None:
        inventory = self._cabinet.inventory
        self._attr_native_value = len(inventory.medicines)
        self._attr_extra_state_attributes = {
            "patient_name": self._cabinet.profile.full_name or self._patient_name,
            "categories": inventory.category_counts(),
            "favorites": [med.name for med in inventory.favorites()],
            "expired": [med.name for med in inventory.expired()],
        }


class UnreadNotificationsSensor(CabinetSensor):
    _attr_name = "Unread medicine notifications"
    _attr_icon = "mdi:bell-badge"

    def __init__(self, cabinet: MedicineCabinet) -> None:
        super().__init__(cabinet, "unread_notifications")

    def _update_state(self) -> None:
        notifications = self._cabinet.notifications
        grouped = notifications.grouped()
        self._attr_native_value = notifications.unread_count
        self._attr_extra_state_attributes = {
            bucket: len(logs) for bucket, logs in grouped.items()
        }
        latest = next((logs[0] for logs in grouped.values() if logs), None)
        if latest:
            self._attr_extra_state_attributes["latest"] = latest.subtitle


class NextAppointmentSensor(CabinetSensor):
    _attr_name = "Next doctor appointment"
    _attr_icon = "mdi:doctor"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, cabinet: MedicineCabinet) -> None:
        super().__init__(cabinet, "next_appointment")

    def _update_state(self) -> None:
        book = self._cabinet.appointments
        appointment = book.next_appointment()
        self._attr_extra_state_attributes = {"upcoming": len(book.appointments())}
        if appointment is None:
            self._attr_native_value = None
            return
        self._attr_native_value = appointment.starts_at(dt_util.DEFAULT_TIME_ZONE)
        self._attr_extra_state_attributes.update({
            "appointment_id": appointment.id,
            "doctor": appointment.doctor,
            "specialty": appointment.specialty,
        })


class ReminderSensor(SensorEntity):
    """When a reminder is next due."""

    def __init__(self, cabinet: MedicineCabinet, reminder_id: str) -> None:
        """Initialize the sensor."""
        self._cabinet = cabinet
        self.reminder_id = reminder_id
        self._attr_unique_id = f"{cabinet.entry.entry_id}_{reminder_id}"
        reminder = cabinet.reminders.get(reminder_id)
        self._name = f"{reminder.medicine_name} reminder"
        self._icon = "mdi:clock-outline"
        self._state = "Unknown"
        self._next_due = None

    @property
    def name(self):
        return self._name

    @property
    def native_value(self):
        return self._state

    @property
    def icon(self):
        return self._icon

    @property
    def extra_state_attributes(self):
        reminder = self._cabinet.reminders.get(self.reminder_id)
        if reminder is None:
            return None
        attributes = {
            "reminder_id": reminder.id,
            "medicine_name": reminder.medicine_name,
            "dosage": reminder.dosage,
            "schedule_time": reminder.time,
            "notification_count": len(reminder.notification_ids),
        }
        if reminder.days:
            attributes["schedule_days"] = [WEEKDAYS[day] for day in reminder.days]
        if reminder.date:
            attributes["date"] = reminder.date
        if self._next_due:
            attributes["next_due"] = self._next_due.isoformat()
        return attributes

    async def async_added_to_hass(self):
        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(self.hass, self._cabinet.signal_updated, self._handle_update)
        )
        self._update_state()

    async def async_update(self) -> None:
        self._update_state()

    @callback
    def _handle_update(self) -> None:
        if self._cabinet.reminders.get(self.reminder_id) is None:
            if self.registry_entry:
                er.async_get(self.hass).async_remove(self.entity_id)
            else:
                self.hass.async_create_task(self.async_remove(force_remove=True))
            return
        self._update_state()
        self.async_write_ha_state()

    def _update_state(self):
        """Calculate next due date and set descriptive state."""
        reminder = self._cabinet.reminders.get(self.reminder_id)
        if reminder is None:
            return
        try:
            tz = self._cabinet.time_zone()
            now_in_tz = dt_util.now(time_zone=tz)
            next_due = self._cabinet.reminders.next_due(reminder, now_in_tz)
            self._next_due = next_due.astimezone(tz) if next_due else None

            if self._next_due:
                is_today = self._next_due.date() == now_in_tz.date()
                is_tomorrow = self._next_due.date() == (now_in_tz.date() + timedelta(days=1))
                within_week = self._next_due.date() < now_in_tz.date() + timedelta(days=7)

                if is_today:
                    self._state = f"Due at {_format_time(self._next_due)}"
                    self._icon = "mdi:clock-outline"
                elif is_tomorrow:
                    self._state = "Due Tomorrow"
                    self._icon = "mdi:calendar-arrow-right"
                elif within_week:
                    self._state = f"Due {self._next_due.strftime('%A')}"
                    self._icon = "mdi:calendar"
                else:
                    self._state = f"Due {self._next_due.date().isoformat()}"
                    self._icon = "mdi:calendar"
            else:
                # One-time reminder that already fired
                self._state = "Done"
                self._icon = "mdi:check-circle"

        except ValueError as e:
            _LOGGER.error(f"Error updating reminder {self._name}: {e}")
            self._state = "Error"
            self._icon = "mdi:alert"


def _format_time(when: datetime) -> str:
    """Format time as 12-hour, dropping zero minutes."""
    hour = when.strftime("%I").lstrip("0")
    minute = when.strftime("%M")
    ampm = when.strftime("%p")

    if minute == "00":
        return f"{hour} {ampm}"
    return f"{hour}:{minute} {ampm}"
