"""Exceptions for the Medicine Cabinet integration."""
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError


class InvalidInput(ServiceValidationError):
    """A required field is missing or malformed; nothing was changed."""


class SchedulingError(HomeAssistantError):
    """Registering a notification trigger failed; nothing was scheduled."""
