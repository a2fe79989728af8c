"""Runtime state of one Medicine Cabinet config entry."""
from __future__ import annotations

from dataclasses import replace
from datetime import tzinfo
import logging

from homeassistant.components import persistent_notification
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .appointments import AppointmentBook
from .const import (
    CONF_CONFIG_ENTRY_ID, CONF_NOTIFY_SERVICE, CONF_REMINDER_ID,
    CONF_SUBTITLE, CONF_TITLE, CONF_TZ_SENSOR, DOMAIN,
    EVENT_NOTIFICATION_DELIVERED, SIGNAL_UPDATED,
)
from .inventory import MedicineInventory
from .models import Profile
from .notification_log import NotificationLogManager
from .reminders import ReminderManager
from .scheduler import HassNotificationScheduler, NotificationContent, resolve_time_zone
from .store import (
    AppointmentStore, CategoryStore, MedicineStore, NotificationLogStore,
    ProfileStore, ReminderStore,
)

_LOGGER = logging.getLogger(__name__)


class MedicineCabinet:
    """Stores, scheduler and managers owned by one config entry."""

    def __init__(self, hass: HomeAssistant, entry: ConfigEntry) -> None:
        self.hass = hass
        self.entry = entry
        entry_id = entry.entry_id

        self.medicine_store = MedicineStore(hass, entry_id)
        self.category_store = CategoryStore(hass, entry_id)
        self.reminder_store = ReminderStore(hass, entry_id)
        self.log_store = NotificationLogStore(hass, entry_id)
        self.appointment_store = AppointmentStore(hass, entry_id)
        self.profile_store = ProfileStore(hass, entry_id)

        self.scheduler = HassNotificationScheduler(hass, self._async_deliver, self.time_zone)
        self.inventory = MedicineInventory(self.medicine_store, self.category_store)
        self.reminders = ReminderManager(
            self.reminder_store, self.log_store, self.scheduler, self.time_zone
        )
        self.notifications = NotificationLogManager(self.log_store)
        self.appointments = AppointmentBook(self.appointment_store)
        self._notify_missing_reported = False

    @property
    def _stores(self):
        return (
            self.medicine_store, self.category_store, self.reminder_store,
            self.log_store, self.appointment_store, self.profile_store,
        )

    @property
    def tz_sensor(self) -> str | None:
        return self.entry.options.get(CONF_TZ_SENSOR, self.entry.data.get(CONF_TZ_SENSOR))

    @property
    def notify_service(self) -> str | None:
        return self.entry.options.get(CONF_NOTIFY_SERVICE)

    def time_zone(self) -> tzinfo:
        return resolve_time_zone(self.hass, self.tz_sensor)

    @property
    def signal_updated(self) -> str:
        return SIGNAL_UPDATED.format(self.entry.entry_id)

    async def async_load(self) -> None:
        """Load every store and re-register the stored reminders."""
        for store in self._stores:
            await store.async_load()
        await self.reminders.async_restore()

    async def async_unload(self) -> None:
        await self.scheduler.async_cancel_all()

    async def async_remove(self) -> None:
        for store in self._stores:
            await store.async_remove()

    @callback
    def async_notify_updated(self) -> None:
        """Tell the entities that stored data changed."""
        async_dispatcher_send(self.hass, self.signal_updated)

    @property
    def profile(self) -> Profile:
        return self.profile_store.profile

    async def async_update_profile(self, **fields) -> Profile:
        profile = replace(self.profile, **fields)
        await self.profile_store.async_save(profile)
        return profile

    async def _async_deliver(self, content: NotificationContent) -> None:
        """Show a fired reminder and announce the delivery on the bus."""
        reminder_id = content.data.get(CONF_REMINDER_ID)
        persistent_notification.async_create(
            self.hass,
            content.body,
            title=content.title,
            notification_id=f"{DOMAIN}_{reminder_id}",
        )
        if self.notify_service:
            await self._async_push(content, reminder_id)

        self.hass.bus.async_fire(
            EVENT_NOTIFICATION_DELIVERED,
            {
                CONF_CONFIG_ENTRY_ID: self.entry.entry_id,
                CONF_TITLE: content.title,
                CONF_SUBTITLE: content.body,
                CONF_REMINDER_ID: reminder_id,
            },
        )

    async def _async_push(self, content: NotificationContent, reminder_id: str | None) -> None:
        domain, _, service = self.notify_service.partition(".")
        if not self.hass.services.has_service(domain, service):
            if not self._notify_missing_reported:
                _LOGGER.warning("Notify service %s is not available", self.notify_service)
                self._notify_missing_reported = True
            return
        try:
            await self.hass.services.async_call(
                domain,
                service,
                {
                    "title": content.title,
                    "message": content.body,
                    "data": {"tag": f"{DOMAIN}_{reminder_id}", CONF_REMINDER_ID: reminder_id},
                },
                blocking=True,
            )
        except HomeAssistantError as err:
            _LOGGER.error("Sending reminder through %s failed: %s", self.notify_service, err)
