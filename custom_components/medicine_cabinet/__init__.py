"""The Medicine Cabinet integration."""
from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import (
    Event, HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse, callback,
)
import homeassistant.helpers.config_validation as cv
from homeassistant.util import dt as dt_util

from .cabinet import MedicineCabinet
from .const import (
    CATEGORY_ALL, CONF_APPOINTMENT_ID, CONF_BIRTH_DATE, CONF_CATEGORY,
    CONF_CONFIG_ENTRY_ID, CONF_DOCTOR, CONF_DOSAGE, CONF_EXPIRATION_DATE,
    CONF_FAVORITE, CONF_FIRST_NAME, CONF_IMAGE, CONF_LAST_NAME,
    CONF_MEDICINE_ID, CONF_NAME, CONF_NOTIFICATION_ID, CONF_PROFILE_IMAGE,
    CONF_QUANTITY, CONF_REMINDER_ID, CONF_SCHEDULE_DATE, CONF_SCHEDULE_DAYS,
    CONF_SCHEDULE_TIME, CONF_SPECIALTY, CONF_SUBTITLE, CONF_TITLE, CONF_TYPE,
    DOMAIN, EVENT_NOTIFICATION_DELIVERED, EVENT_NOTIFICATION_TAPPED,
    NOTIFICATION_TYPES, TYPE_PILL,
)
from .exceptions import InvalidInput

_LOGGER = logging.getLogger(__name__)

PLATFORMS = ["sensor"]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

SERVICE_ADD_MEDICINE = "add_medicine"
SERVICE_UPDATE_MEDICINE = "update_medicine"
SERVICE_DELETE_MEDICINE = "delete_medicine"
SERVICE_TOGGLE_FAVORITE = "toggle_favorite"
SERVICE_ADD_CATEGORY = "add_category"
SERVICE_REMOVE_CATEGORY = "remove_category"
SERVICE_ADD_REMINDER = "add_reminder"
SERVICE_CANCEL_REMINDER = "cancel_reminder"
SERVICE_CLEAR_NOTIFICATIONS = "clear_notifications"
SERVICE_LOG_NOTIFICATION = "log_notification"
SERVICE_TOGGLE_NOTIFICATION_READ = "toggle_notification_read"
SERVICE_DELETE_NOTIFICATION = "delete_notification"
SERVICE_MARK_NOTIFICATIONS_READ = "mark_notifications_read"
SERVICE_ADD_APPOINTMENT = "add_appointment"
SERVICE_DELETE_APPOINTMENT = "delete_appointment"
SERVICE_UPDATE_PROFILE = "update_profile"
SERVICE_LIST_MEDICINES = "list_medicines"
SERVICE_LIST_REMINDERS = "list_reminders"
SERVICE_LIST_NOTIFICATIONS = "list_notifications"
SERVICE_LIST_APPOINTMENTS = "list_appointments"

BASE_SCHEMA = vol.Schema({vol.Optional(CONF_CONFIG_ENTRY_ID): cv.string})

MEDICINE_FIELDS = {
    vol.Optional(CONF_NAME): cv.string,
    vol.Optional(CONF_QUANTITY): vol.Any(vol.Coerce(int), cv.string),
    vol.Optional(CONF_DOSAGE): cv.string,
    vol.Optional(CONF_EXPIRATION_DATE): cv.string,
    vol.Optional(CONF_CATEGORY): cv.string,
    vol.Optional(CONF_FAVORITE): cv.boolean,
    vol.Optional(CONF_IMAGE): vol.Any(None, cv.string),
}

ADD_MEDICINE_SCHEMA = BASE_SCHEMA.extend(MEDICINE_FIELDS)
UPDATE_MEDICINE_SCHEMA = BASE_SCHEMA.extend(
    {vol.Required(CONF_MEDICINE_ID): cv.string, **MEDICINE_FIELDS}
)
MEDICINE_ID_SCHEMA = BASE_SCHEMA.extend({vol.Required(CONF_MEDICINE_ID): cv.string})
CATEGORY_SCHEMA = BASE_SCHEMA.extend({vol.Required(CONF_NAME): cv.string})

ADD_REMINDER_SCHEMA = BASE_SCHEMA.extend({
    vol.Optional(CONF_NAME, default=""): cv.string,
    vol.Optional(CONF_DOSAGE, default=""): cv.string,
    vol.Required(CONF_SCHEDULE_TIME): cv.time,
    vol.Exclusive(CONF_SCHEDULE_DAYS, "when"): vol.All(cv.ensure_list, [vol.Coerce(int)]),
    vol.Exclusive(CONF_SCHEDULE_DATE, "when"): cv.date,
})
REMINDER_ID_SCHEMA = BASE_SCHEMA.extend({vol.Required(CONF_REMINDER_ID): cv.string})

LOG_NOTIFICATION_SCHEMA = BASE_SCHEMA.extend({
    vol.Required(CONF_TITLE): cv.string,
    vol.Optional(CONF_SUBTITLE, default=""): cv.string,
    vol.Optional(CONF_REMINDER_ID): cv.string,
    vol.Optional(CONF_TYPE, default=TYPE_PILL): vol.In(NOTIFICATION_TYPES),
})
NOTIFICATION_ID_SCHEMA = BASE_SCHEMA.extend({vol.Required(CONF_NOTIFICATION_ID): cv.string})

ADD_APPOINTMENT_SCHEMA = BASE_SCHEMA.extend({
    vol.Optional(CONF_DOCTOR, default=""): cv.string,
    vol.Optional(CONF_SPECIALTY, default=""): cv.string,
    vol.Required(CONF_SCHEDULE_DATE): cv.date,
    vol.Required(CONF_SCHEDULE_TIME): cv.time,
})
APPOINTMENT_ID_SCHEMA = BASE_SCHEMA.extend({vol.Required(CONF_APPOINTMENT_ID): cv.string})

UPDATE_PROFILE_SCHEMA = BASE_SCHEMA.extend({
    vol.Optional(CONF_FIRST_NAME): cv.string,
    vol.Optional(CONF_LAST_NAME): cv.string,
    vol.Optional(CONF_BIRTH_DATE): cv.string,
    vol.Optional(CONF_PROFILE_IMAGE): vol.Any(None, cv.string),
})

LIST_MEDICINES_SCHEMA = BASE_SCHEMA.extend({
    vol.Optional(CONF_CATEGORY, default=CATEGORY_ALL): cv.string,
    vol.Optional(CONF_FAVORITE, default=False): cv.boolean,
})
LIST_REMINDERS_SCHEMA = BASE_SCHEMA.extend({
    vol.Optional(CONF_SCHEDULE_DATE): cv.date,
    vol.Optional(CONF_SCHEDULE_TIME): cv.string,
})

MEDICINE_FORM_KEYS = (
    CONF_NAME, CONF_QUANTITY, CONF_DOSAGE, CONF_EXPIRATION_DATE,
    CONF_CATEGORY, CONF_FAVORITE, CONF_IMAGE,
)

PROFILE_FIELDS = {
    CONF_FIRST_NAME: "first_name",
    CONF_LAST_NAME: "last_name",
    CONF_BIRTH_DATE: "birth_date",
    CONF_PROFILE_IMAGE: "profile_image",
}


@callback
def async_get_cabinet(hass: HomeAssistant, call: ServiceCall) -> MedicineCabinet:
    """Find the cabinet a service call is aimed at."""
    cabinets: dict[str, MedicineCabinet] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(CONF_CONFIG_ENTRY_ID)
    if entry_id:
        if entry_id not in cabinets:
            raise InvalidInput(f"Config entry {entry_id} is not loaded")
        return cabinets[entry_id]
    if not cabinets:
        raise InvalidInput("No medicine cabinet is loaded")
    if len(cabinets) > 1:
        raise InvalidInput("Several medicine cabinets are loaded, pass config_entry_id")
    return next(iter(cabinets.values()))


def _medicine_form(data: dict) -> dict:
    return {key: data[key] for key in MEDICINE_FORM_KEYS if key in data}


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Set up the Medicine Cabinet services."""

    # --- MEDICINES ---
    async def handle_add_medicine(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        medicine = await cabinet.inventory.async_save_medicine(_medicine_form(call.data))
        cabinet.async_notify_updated()
        return {"medicine": medicine.as_dict()}

    async def handle_update_medicine(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        medicine_id = call.data[CONF_MEDICINE_ID]
        existing = cabinet.inventory.get(medicine_id)
        if existing is None:
            raise InvalidInput(f"Unknown medicine {medicine_id}")
        form = {
            CONF_NAME: existing.name,
            CONF_QUANTITY: existing.quantity,
            CONF_DOSAGE: existing.dosage,
            CONF_EXPIRATION_DATE: existing.expiration_date,
            CONF_CATEGORY: existing.category,
            CONF_FAVORITE: existing.is_favorite,
            CONF_IMAGE: existing.image,
            **_medicine_form(call.data),
        }
        medicine = await cabinet.inventory.async_save_medicine(form, medicine_id)
        cabinet.async_notify_updated()
        return {"medicine": medicine.as_dict()}

    async def handle_delete_medicine(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        if await cabinet.inventory.async_delete_medicine(call.data[CONF_MEDICINE_ID]):
            cabinet.async_notify_updated()

    async def handle_toggle_favorite(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        medicine = await cabinet.inventory.async_toggle_favorite(call.data[CONF_MEDICINE_ID])
        cabinet.async_notify_updated()
        return {"medicine": medicine.as_dict()}

    async def handle_add_category(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        categories = await cabinet.inventory.async_add_category(call.data[CONF_NAME])
        return {"categories": categories}

    async def handle_remove_category(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        await cabinet.inventory.async_remove_category(call.data[CONF_NAME])

    # --- REMINDERS ---
    async def handle_add_reminder(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        reminder = await cabinet.reminders.async_create_reminder(
            call.data[CONF_NAME],
            call.data[CONF_DOSAGE],
            call.data[CONF_SCHEDULE_TIME],
            days=call.data.get(CONF_SCHEDULE_DAYS),
            on_date=call.data.get(CONF_SCHEDULE_DATE),
        )
        cabinet.async_notify_updated()
        return {"reminder": reminder.as_dict()}

    async def handle_cancel_reminder(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        if await cabinet.reminders.async_cancel_reminder(call.data[CONF_REMINDER_ID]):
            cabinet.async_notify_updated()

    async def handle_clear_notifications(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        await cabinet.reminders.async_clear_all()
        cabinet.async_notify_updated()

    # --- NOTIFICATION LOG ---
    async def handle_log_notification(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        log = await cabinet.notifications.async_record(
            call.data[CONF_TITLE],
            call.data[CONF_SUBTITLE],
            reminder_id=call.data.get(CONF_REMINDER_ID),
            kind=call.data[CONF_TYPE],
        )
        cabinet.async_notify_updated()
        return {"notification": log.as_dict()}

    async def handle_toggle_notification_read(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        if await cabinet.notifications.async_toggle_read(call.data[CONF_NOTIFICATION_ID]):
            cabinet.async_notify_updated()

    async def handle_delete_notification(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        if await cabinet.notifications.async_delete(call.data[CONF_NOTIFICATION_ID]):
            cabinet.async_notify_updated()

    async def handle_mark_notifications_read(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        await cabinet.notifications.async_mark_all_read()
        cabinet.async_notify_updated()

    # --- APPOINTMENTS / PROFILE ---
    async def handle_add_appointment(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        appointment = await cabinet.appointments.async_add_appointment(
            call.data[CONF_DOCTOR],
            call.data[CONF_SPECIALTY],
            call.data[CONF_SCHEDULE_DATE],
            call.data[CONF_SCHEDULE_TIME],
        )
        cabinet.async_notify_updated()
        return {"appointment": appointment.as_dict()}

    async def handle_delete_appointment(call: ServiceCall) -> None:
        cabinet = async_get_cabinet(hass, call)
        if await cabinet.appointments.async_delete_appointment(call.data[CONF_APPOINTMENT_ID]):
            cabinet.async_notify_updated()

    async def handle_update_profile(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        profile = await cabinet.async_update_profile(
            **{attr: call.data[key] for key, attr in PROFILE_FIELDS.items() if key in call.data}
        )
        return {"profile": profile.as_dict()}

    # --- QUERIES ---
    async def handle_list_medicines(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        medicines = cabinet.inventory.medicines_in_category(call.data[CONF_CATEGORY])
        if call.data[CONF_FAVORITE]:
            medicines = [med for med in medicines if med.is_favorite]
        return {
            "medicines": [med.as_dict() for med in medicines],
            "categories": cabinet.inventory.categories(),
        }

    async def handle_list_reminders(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        if CONF_SCHEDULE_DATE in call.data:
            reminders = cabinet.reminders.reminders_on(
                call.data[CONF_SCHEDULE_DATE], call.data.get(CONF_SCHEDULE_TIME)
            )
        else:
            reminders = cabinet.reminders.reminders
        return {"reminders": [reminder.as_dict() for reminder in reminders]}

    async def handle_list_notifications(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        grouped = cabinet.notifications.grouped()
        return {
            **{bucket: [log.as_dict() for log in logs] for bucket, logs in grouped.items()},
            "unread": cabinet.notifications.unread_count,
        }

    async def handle_list_appointments(call: ServiceCall) -> ServiceResponse:
        cabinet = async_get_cabinet(hass, call)
        now = dt_util.now()
        return {
            "appointments": [
                {**appointment.as_dict(), "past": cabinet.appointments.is_past(appointment, now)}
                for appointment in cabinet.appointments.appointments()
            ]
        }

    services = [
        (SERVICE_ADD_MEDICINE, handle_add_medicine, ADD_MEDICINE_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_UPDATE_MEDICINE, handle_update_medicine, UPDATE_MEDICINE_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_DELETE_MEDICINE, handle_delete_medicine, MEDICINE_ID_SCHEMA, SupportsResponse.NONE),
        (SERVICE_TOGGLE_FAVORITE, handle_toggle_favorite, MEDICINE_ID_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_ADD_CATEGORY, handle_add_category, CATEGORY_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_REMOVE_CATEGORY, handle_remove_category, CATEGORY_SCHEMA, SupportsResponse.NONE),
        (SERVICE_ADD_REMINDER, handle_add_reminder, ADD_REMINDER_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_CANCEL_REMINDER, handle_cancel_reminder, REMINDER_ID_SCHEMA, SupportsResponse.NONE),
        (SERVICE_CLEAR_NOTIFICATIONS, handle_clear_notifications, BASE_SCHEMA, SupportsResponse.NONE),
        (SERVICE_LOG_NOTIFICATION, handle_log_notification, LOG_NOTIFICATION_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_TOGGLE_NOTIFICATION_READ, handle_toggle_notification_read, NOTIFICATION_ID_SCHEMA, SupportsResponse.NONE),
        (SERVICE_DELETE_NOTIFICATION, handle_delete_notification, NOTIFICATION_ID_SCHEMA, SupportsResponse.NONE),
        (SERVICE_MARK_NOTIFICATIONS_READ, handle_mark_notifications_read, BASE_SCHEMA, SupportsResponse.NONE),
        (SERVICE_ADD_APPOINTMENT, handle_add_appointment, ADD_APPOINTMENT_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_DELETE_APPOINTMENT, handle_delete_appointment, APPOINTMENT_ID_SCHEMA, SupportsResponse.NONE),
        (SERVICE_UPDATE_PROFILE, handle_update_profile, UPDATE_PROFILE_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_LIST_MEDICINES, handle_list_medicines, LIST_MEDICINES_SCHEMA, SupportsResponse.ONLY),
        (SERVICE_LIST_REMINDERS, handle_list_reminders, LIST_REMINDERS_SCHEMA, SupportsResponse.ONLY),
        (SERVICE_LIST_NOTIFICATIONS, handle_list_notifications, BASE_SCHEMA, SupportsResponse.ONLY),
        (SERVICE_LIST_APPOINTMENTS, handle_list_appointments, BASE_SCHEMA, SupportsResponse.ONLY),
    ]
    for name, handler, schema, supports_response in services:
        hass.services.async_register(
            DOMAIN, name, handler, schema=schema, supports_response=supports_response
        )

    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Medicine Cabinet from a config entry."""
    cabinet = MedicineCabinet(hass, entry)
    await cabinet.async_load()
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = cabinet

    # Delivery and tap callbacks from the host feed the notification log
    async def handle_delivered(event: Event) -> None:
        if event.data.get(CONF_CONFIG_ENTRY_ID) != entry.entry_id:
            return
        await cabinet.notifications.async_handle_delivered(event.data)
        cabinet.async_notify_updated()

    async def handle_tapped(event: Event) -> None:
        target = event.data.get(CONF_CONFIG_ENTRY_ID)
        reminder_id = event.data.get(CONF_REMINDER_ID)
        if target is not None and target != entry.entry_id:
            return
        if target is None and reminder_id and cabinet.reminders.get(reminder_id) is None:
            return
        if target is None and not reminder_id and len(hass.data.get(DOMAIN, {})) > 1:
            _LOGGER.debug("Ignoring tap without config_entry_id or reminder_id")
            return
        await cabinet.notifications.async_handle_tapped(event.data)
        cabinet.async_notify_updated()

    entry.async_on_unload(hass.bus.async_listen(EVENT_NOTIFICATION_DELIVERED, handle_delivered))
    entry.async_on_unload(hass.bus.async_listen(EVENT_NOTIFICATION_TAPPED, handle_tapped))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    entry.async_on_unload(entry.add_update_listener(update_listener))
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        cabinet: MedicineCabinet = hass.data[DOMAIN].pop(entry.entry_id)
        await cabinet.async_unload()
        if not hass.data[DOMAIN]:
            hass.data.pop(DOMAIN)
    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Delete the stored data of a removed entry."""
    await MedicineCabinet(hass, entry).async_remove()


async def update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the integration when options are updated."""
    await hass.config_entries.async_reload(entry.entry_id)
