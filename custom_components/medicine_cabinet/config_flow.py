"""Config flow for Medicine Cabinet integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.selector import (
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    SelectOptionDict,
    TimeSelector,
    EntitySelector,
    EntitySelectorConfig,
    NumberSelector,
    NumberSelectorConfig,
    NumberSelectorMode,
)

from .const import (
    DOMAIN, CONF_NAME, CONF_DOSAGE, CONF_QUANTITY, CONF_CATEGORY,
    CONF_EXPIRATION_DATE, CONF_FAVORITE, CONF_PATIENT, CONF_SCHEDULE_DAYS,
    CONF_SCHEDULE_TIME, CONF_TZ_SENSOR, CONF_NOTIFY_SERVICE,
    CONF_MEDICINE_ID, CONF_IMAGE, WEEKDAYS,
)
from .exceptions import InvalidInput, SchedulingError

_LOGGER = logging.getLogger(__name__)

DAY_OPTIONS = [
    SelectOptionDict(value=str(day), label=label) for day, label in WEEKDAYS.items()
]


def get_medicine_schema(categories: list[str], defaults=None):
    """Build the schema for a single medicine."""
    if defaults is None:
        defaults = {}

    schema = {
        vol.Required(CONF_NAME, default=defaults.get(CONF_NAME, "")): str,
        vol.Required(CONF_QUANTITY, default=defaults.get(CONF_QUANTITY, 0)): NumberSelector(
            NumberSelectorConfig(min=0, step=1, mode=NumberSelectorMode.BOX)
        ),
        vol.Optional(CONF_DOSAGE, default=defaults.get(CONF_DOSAGE, "")): str,
        vol.Optional(CONF_EXPIRATION_DATE, default=defaults.get(CONF_EXPIRATION_DATE, "")): str,
        vol.Required(CONF_CATEGORY, default=defaults.get(CONF_CATEGORY, categories[0])): SelectSelector(
            SelectSelectorConfig(options=categories, custom_value=True, mode=SelectSelectorMode.DROPDOWN)
        ),
        vol.Optional(CONF_FAVORITE, default=defaults.get(CONF_FAVORITE, False)): bool,
    }
    return vol.Schema(schema)


def get_reminder_schema():
    """Build the schema for a weekly reminder."""
    return vol.Schema({
        vol.Required(CONF_NAME): str,
        vol.Required(CONF_DOSAGE): str,
        vol.Required(CONF_SCHEDULE_TIME, default="08:00:00"): TimeSelector(),
        vol.Required(CONF_SCHEDULE_DAYS, default=[]): SelectSelector(
            SelectSelectorConfig(options=DAY_OPTIONS, multiple=True)
        ),
    })


class MedicineCabinetConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Medicine Cabinet."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return MedicineCabinetOptionsFlowHandler(config_entry)

    async def async_step_user(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Step 1: Setup User and Global Timezone Sensor."""
        errors = {}

        if user_input is not None:
            patient_id = user_input[CONF_PATIENT]

            await self.async_set_unique_id(patient_id)
            self._abort_if_unique_id_configured()

            state = self.hass.states.get(patient_id)
            name = state.attributes.get("friendly_name", state.name) if state else patient_id

            return self.async_create_entry(
                title=f"Medicine cabinet for {name}",
                data={
                    CONF_PATIENT: patient_id,
                    CONF_TZ_SENSOR: user_input.get(CONF_TZ_SENSOR),
                }
            )

        schema = vol.Schema({
            vol.Required(CONF_PATIENT): EntitySelector(
                EntitySelectorConfig(domain="person")
            ),
            # Global Timezone Sensor for this person
            vol.Optional(CONF_TZ_SENSOR): EntitySelector(
                EntitySelectorConfig(domain="sensor")
            )
        })

        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)


class MedicineCabinetOptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options flow.

    Medicine and reminder steps write straight to the entry's stores; the
    entry options only carry the global settings.
    """

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        # self.config_entry is a read-only property in HA, so it is not set here.
        self._settings = {
            CONF_TZ_SENSOR: config_entry.options.get(CONF_TZ_SENSOR, config_entry.data.get(CONF_TZ_SENSOR)),
            CONF_NOTIFY_SERVICE: config_entry.options.get(CONF_NOTIFY_SERVICE),
        }
        self._entry_id = config_entry.entry_id
        self._editing_id = None

    @property
    def _cabinet(self):
        return self.hass.data[DOMAIN][self._entry_id]

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Menu: Add/Edit/Remove/Reminder/Settings."""
        return self.async_show_menu(
            step_id="init",
            menu_options=[
                "add_medicine", "edit_medicine", "remove_medicine",
                "add_reminder", "global_settings",
            ]
        )

    # --- SETTINGS ---
    async def async_step_global_settings(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Update global settings like Timezone Sensor and notify service."""
        if user_input is not None:
            self._settings = {
                CONF_TZ_SENSOR: user_input.get(CONF_TZ_SENSOR),
                CONF_NOTIFY_SERVICE: user_input.get(CONF_NOTIFY_SERVICE) or None,
            }
            return self._update_entry()

        notify_options = sorted(
            f"notify.{service}" for service in self.hass.services.async_services().get("notify", {})
        )
        schema = vol.Schema({
            vol.Optional(CONF_TZ_SENSOR, description={"suggested_value": self._settings[CONF_TZ_SENSOR]}): EntitySelector(
                EntitySelectorConfig(domain="sensor")
            ),
            vol.Optional(CONF_NOTIFY_SERVICE, description={"suggested_value": self._settings[CONF_NOTIFY_SERVICE]}): SelectSelector(
                SelectSelectorConfig(options=notify_options, custom_value=True, mode=SelectSelectorMode.DROPDOWN)
            ),
        })

        return self.async_show_form(step_id="global_settings", data_schema=schema)

    # --- ADD ---
    async def async_step_add_medicine(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Form to add a new medicine."""
        errors = {}
        categories = self._cabinet.inventory.categories()
        if user_input is not None:
            try:
                await self._cabinet.inventory.async_save_medicine(user_input)
            except InvalidInput:
                errors["base"] = "missing_fields"
            else:
                self._cabinet.async_notify_updated()
                return self._update_entry()

        return self.async_show_form(
            step_id="add_medicine",
            data_schema=get_medicine_schema(categories, user_input),
            errors=errors,
        )

    # --- EDIT ---
    async def async_step_edit_medicine(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        medicines = self._cabinet.inventory.medicines
        if not medicines:
            return self.async_abort(reason="no_medicines")

        if user_input is not None:
            self._editing_id = user_input[CONF_MEDICINE_ID]
            return await self.async_step_edit_medicine_details()

        schema = vol.Schema({
            vol.Required(CONF_MEDICINE_ID): SelectSelector(
                SelectSelectorConfig(options=_medicine_options(medicines))
            )
        })
        return self.async_show_form(step_id="edit_medicine", data_schema=schema)

    async def async_step_edit_medicine_details(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        errors = {}
        inventory = self._cabinet.inventory
        if user_input is not None:
            existing = inventory.get(self._editing_id)
            try:
                await inventory.async_save_medicine(
                    {**user_input, CONF_IMAGE: existing.image if existing else None},
                    self._editing_id,
                )
            except InvalidInput:
                errors["base"] = "missing_fields"
            else:
                self._cabinet.async_notify_updated()
                return self._update_entry()

        medicine = inventory.get(self._editing_id)
        defaults = user_input or {
            CONF_NAME: medicine.name,
            CONF_QUANTITY: medicine.quantity,
            CONF_DOSAGE: medicine.dosage,
            CONF_EXPIRATION_DATE: medicine.expiration_date,
            CONF_CATEGORY: medicine.category,
            CONF_FAVORITE: medicine.is_favorite,
        }
        return self.async_show_form(
            step_id="edit_medicine_details",
            data_schema=get_medicine_schema(inventory.categories(), defaults),
            errors=errors,
        )

    # --- REMOVE ---
    async def async_step_remove_medicine(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        medicines = self._cabinet.inventory.medicines
        if not medicines:
            return self.async_abort(reason="no_medicines")

        if user_input is not None:
            await self._cabinet.inventory.async_delete_medicine(user_input[CONF_MEDICINE_ID])
            self._cabinet.async_notify_updated()
            return self._update_entry()

        schema = vol.Schema({
            vol.Required(CONF_MEDICINE_ID): SelectSelector(
                SelectSelectorConfig(options=_medicine_options(medicines))
            )
        })
        return self.async_show_form(step_id="remove_medicine", data_schema=schema)

    # --- REMINDER ---
    async def async_step_add_reminder(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Form to schedule a weekly reminder."""
        errors = {}
        if user_input is not None:
            try:
                await self._cabinet.reminders.async_create_reminder(
                    user_input[CONF_NAME],
                    user_input[CONF_DOSAGE],
                    user_input[CONF_SCHEDULE_TIME],
                    days=user_input[CONF_SCHEDULE_DAYS],
                )
            except InvalidInput:
                errors["base"] = "missing_fields"
            except SchedulingError:
                errors["base"] = "scheduling_failed"
            else:
                self._cabinet.async_notify_updated()
                return self._update_entry()

        return self.async_show_form(
            step_id="add_reminder", data_schema=get_reminder_schema(), errors=errors
        )

    @callback
    def _update_entry(self):
        """Write settings back."""
        return self.async_create_entry(title="", data=self._settings)


def _medicine_options(medicines):
    return [
        SelectOptionDict(value=med.id, label=f"{med.name} ({med.quantity})")
        for med in medicines
    ]
