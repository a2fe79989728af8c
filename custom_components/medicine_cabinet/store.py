"""Typed repositories over Home Assistant's key-value storage.

Every key holds one JSON array (or one object for the profile). Writes to a
key are serialized through a per-store lock and the in-memory copy is only
replaced after the save succeeded, so two concurrent mutations of the same key
are applied one after the other instead of overwriting each other.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any, Generic, TypeVar

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import (
    DEFAULT_CATEGORIES, DOMAIN, STORAGE_KEY_APPOINTMENTS,
    STORAGE_KEY_CATEGORIES, STORAGE_KEY_MEDICINES,
    STORAGE_KEY_NOTIFICATION_LOGS, STORAGE_KEY_PROFILE,
    STORAGE_KEY_REMINDERS, STORAGE_VERSION,
)
from .models import Appointment, Medicine, NotificationLog, Profile, Reminder

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T", Medicine, Reminder, NotificationLog, Appointment)


def storage_key(entry_id: str, key: str) -> str:
    """Return the storage file key for one entry's data key."""
    return f"{DOMAIN}.{entry_id}.{key}"


class RecordStore(Generic[_T]):
    """A list of records with an ``id`` field stored under one key."""

    key: str
    record_type: type[_T]

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        self._store: Store[list[dict[str, Any]]] = Store(
            hass, STORAGE_VERSION, storage_key(entry_id, self.key)
        )
        self._items: list[_T] = []
        self._lock = asyncio.Lock()

    async def async_load(self) -> None:
        data = await self._store.async_load() or []
        items = []
        for raw in data:
            try:
                items.append(self.record_type.from_dict(raw))
            except (KeyError, TypeError, ValueError) as err:
                _LOGGER.warning("Skipping malformed %s record %s: %s", self.key, raw, err)
        self._items = items

    @property
    def items(self) -> list[_T]:
        return list(self._items)

    def get(self, item_id: str) -> _T | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    async def async_mutate(self, mutate: Callable[[list[_T]], list[_T]]) -> list[_T]:
        """Apply ``mutate`` to the current list and persist the result."""
        async with self._lock:
            updated = mutate(list(self._items))
            await self._store.async_save([item.as_dict() for item in updated])
            self._items = updated
            return list(updated)

    async def async_replace(self, items: list[_T]) -> None:
        await self.async_mutate(lambda _: list(items))

    async def async_upsert(self, item: _T) -> None:
        """Replace the record with the same id, or append it."""

        def _upsert(items: list[_T]) -> list[_T]:
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item
                    return items
            items.append(item)
            return items

        await self.async_mutate(_upsert)

    async def async_delete(self, item_id: str) -> bool:
        """Remove the record with ``item_id``; return whether one was removed."""
        removed = False

        def _delete(items: list[_T]) -> list[_T]:
            nonlocal removed
            kept = [item for item in items if item.id != item_id]
            removed = len(kept) != len(items)
            return kept

        if self.get(item_id) is None:
            return False
        await self.async_mutate(_delete)
        return removed

    async def async_remove(self) -> None:
        """Delete the stored data."""
        await self._store.async_remove()
        self._items = []


class MedicineStore(RecordStore[Medicine]):
    key = STORAGE_KEY_MEDICINES
    record_type = Medicine


class ReminderStore(RecordStore[Reminder]):
    key = STORAGE_KEY_REMINDERS
    record_type = Reminder


class NotificationLogStore(RecordStore[NotificationLog]):
    key = STORAGE_KEY_NOTIFICATION_LOGS
    record_type = NotificationLog


class AppointmentStore(RecordStore[Appointment]):
    key = STORAGE_KEY_APPOINTMENTS
    record_type = Appointment


class CategoryStore:
    """Custom categories; the defaults are merged in on read."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        self._store: Store[list[str]] = Store(
            hass, STORAGE_VERSION, storage_key(entry_id, STORAGE_KEY_CATEGORIES)
        )
        self._custom: list[str] = []
        self._lock = asyncio.Lock()

    async def async_load(self) -> None:
        data = await self._store.async_load() or []
        self._custom = [str(name) for name in data]

    @property
    def custom(self) -> list[str]:
        return list(self._custom)

    @property
    def items(self) -> list[str]:
        """Defaults followed by custom entries, duplicates dropped."""
        return list(dict.fromkeys([*DEFAULT_CATEGORIES, *self._custom]))

    async def async_mutate(self, mutate: Callable[[list[str]], list[str]]) -> list[str]:
        async with self._lock:
            updated = mutate(list(self._custom))
            await self._store.async_save(updated)
            self._custom = updated
            return list(updated)

    async def async_remove(self) -> None:
        await self._store.async_remove()
        self._custom = []


class ProfileStore:
    """The flat profile fields."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        self._store: Store[dict[str, Any]] = Store(
            hass, STORAGE_VERSION, storage_key(entry_id, STORAGE_KEY_PROFILE)
        )
        self._profile = Profile()
        self._lock = asyncio.Lock()

    async def async_load(self) -> None:
        data = await self._store.async_load()
        self._profile = Profile.from_dict(data) if data else Profile()

    @property
    def profile(self) -> Profile:
        return self._profile

    async def async_save(self, profile: Profile) -> None:
        async with self._lock:
            await self._store.async_save(profile.as_dict())
            self._profile = profile

    async def async_remove(self) -> None:
        await self._store.async_remove()
        self._profile = Profile()
