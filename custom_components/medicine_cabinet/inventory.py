"""Medicine inventory and categories."""
from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date
import logging
import re
from typing import Any
import uuid

from homeassistant.util import dt as dt_util

from .const import (
    CATEGORY_ALL, CONF_CATEGORY, CONF_DOSAGE, CONF_EXPIRATION_DATE,
    CONF_FAVORITE, CONF_IMAGE, CONF_NAME, CONF_QUANTITY, DEFAULT_CATEGORIES,
)
from .exceptions import InvalidInput
from .models import Medicine
from .store import CategoryStore, MedicineStore

_LOGGER = logging.getLogger(__name__)


def parse_quantity(value: Any) -> int | None:
    """Turn form input into a quantity, keeping digits only."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value >= 0 and value.is_integer() else None
    digits = re.sub(r"\D", "", str(value))
    if not digits:
        return None
    return int(digits)


class MedicineInventory:
    """Create, edit and query medicines and their categories."""

    def __init__(self, medicines: MedicineStore, categories: CategoryStore) -> None:
        self._medicines = medicines
        self._categories = categories

    @property
    def medicines(self) -> list[Medicine]:
        return self._medicines.items

    def get(self, medicine_id: str) -> Medicine | None:
        return self._medicines.get(medicine_id)

    async def async_save_medicine(
        self, form: dict[str, Any], medicine_id: str | None = None
    ) -> Medicine:
        """Validate a medicine form and add it, or edit ``medicine_id``."""
        name = (form.get(CONF_NAME) or "").strip()
        quantity = parse_quantity(form.get(CONF_QUANTITY))
        category = (form.get(CONF_CATEGORY) or "").strip()
        if not name or quantity is None or not category:
            raise InvalidInput("Name, quantity and category are required")

        existing = None
        if medicine_id is not None:
            existing = self._medicines.get(medicine_id)
            if existing is None:
                raise InvalidInput(f"Unknown medicine {medicine_id}")

        medicine = Medicine(
            id=medicine_id or uuid.uuid4().hex,
            name=name,
            quantity=quantity,
            category=category,
            dosage=(form.get(CONF_DOSAGE) or "").strip(),
            expiration_date=form.get(CONF_EXPIRATION_DATE) or "",
            is_favorite=bool(form.get(CONF_FAVORITE, False)),
            image=form.get(CONF_IMAGE),
            created_at=existing.created_at if existing else dt_util.utcnow().isoformat(),
        )
        await self._medicines.async_upsert(medicine)
        _LOGGER.debug("Saved medicine %s (%s)", medicine.name, medicine.id)
        return medicine

    async def async_delete_medicine(self, medicine_id: str) -> bool:
        return await self._medicines.async_delete(medicine_id)

    async def async_toggle_favorite(self, medicine_id: str) -> Medicine:
        toggled: Medicine | None = None

        def _toggle(items: list[Medicine]) -> list[Medicine]:
            nonlocal toggled
            result = []
            for item in items:
                if item.id == medicine_id:
                    item = toggled = replace(item, is_favorite=not item.is_favorite)
                result.append(item)
            return result

        if self._medicines.get(medicine_id) is None:
            raise InvalidInput(f"Unknown medicine {medicine_id}")
        await self._medicines.async_mutate(_toggle)
        # Deleted while waiting for the store lock
        if toggled is None:
            raise InvalidInput(f"Unknown medicine {medicine_id}")
        return toggled

    def medicines_in_category(self, category: str | None = None) -> list[Medicine]:
        if not category or category == CATEGORY_ALL:
            return self.medicines
        return [med for med in self.medicines if med.category == category]

    def favorites(self) -> list[Medicine]:
        return [med for med in self.medicines if med.is_favorite]

    def expired(self, today: date | None = None) -> list[Medicine]:
        today = today or dt_util.now().date()
        return [
            med for med in self.medicines
            if (expires := med.expires_on()) is not None and expires < today
        ]

    def category_counts(self) -> dict[str, int]:
        return dict(Counter(med.category for med in self.medicines))

    # --- CATEGORIES ---
    def categories(self) -> list[str]:
        return self._categories.items

    def search_categories(self, query: str) -> list[str]:
        query = query.lower()
        return [cat for cat in self.categories() if query in cat.lower()]

    async def async_add_category(self, name: str) -> list[str]:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Category name is required")
        if name in self.categories():
            return self.categories()
        await self._categories.async_mutate(lambda custom: [*custom, name])
        return self.categories()

    async def async_remove_category(self, name: str) -> bool:
        if name in DEFAULT_CATEGORIES or name not in self._categories.custom:
            return False
        await self._categories.async_mutate(
            lambda custom: [cat for cat in custom if cat != name]
        )
        return True
