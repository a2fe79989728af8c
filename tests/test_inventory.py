"""Tests for the medicine inventory."""
import asyncio
from datetime import date

import pytest

from custom_components.medicine_cabinet.const import DEFAULT_CATEGORIES
from custom_components.medicine_cabinet.exceptions import InvalidInput
from custom_components.medicine_cabinet.inventory import MedicineInventory, parse_quantity
from custom_components.medicine_cabinet.store import CategoryStore, MedicineStore

MEDICINES_KEY = "medicine_cabinet.test.medicines"


@pytest.fixture
def inventory(hass):
    return MedicineInventory(MedicineStore(hass, "test"), CategoryStore(hass, "test"))


async def test_save_medicine(hass_storage, inventory):
    medicine = await inventory.async_save_medicine(
        {"name": " Paracetamol ", "quantity": "20", "category": "Pain relief", "dosage": "500 mg"}
    )

    stored = hass_storage[MEDICINES_KEY]["data"]
    assert len(stored) == 1
    assert stored[0]["name"] == "Paracetamol"
    assert stored[0]["quantity"] == 20
    assert stored[0]["category"] == "Pain relief"
    assert stored[0]["isFavorite"] is False
    assert stored[0]["image"] is None
    assert stored[0]["id"] == medicine.id
    assert stored[0]["createdAt"]


@pytest.mark.parametrize(
    "form",
    [
        {"name": "Paracetamol", "category": "Pain relief"},
        {"name": "Paracetamol", "quantity": "", "category": "Pain relief"},
        {"name": "Paracetamol", "quantity": "20"},
        {"name": "   ", "quantity": "20", "category": "Pain relief"},
        {"name": "Paracetamol", "quantity": -1, "category": "Pain relief"},
    ],
)
async def test_missing_fields_block_save(hass_storage, inventory, form):
    await inventory.async_save_medicine({"name": "Aspirin", "quantity": 5, "category": "Other"})

    with pytest.raises(InvalidInput):
        await inventory.async_save_medicine(form)

    assert [med["name"] for med in hass_storage[MEDICINES_KEY]["data"]] == ["Aspirin"]


def test_parse_quantity():
    assert parse_quantity("20") == 20
    assert parse_quantity("2 0 pcs") == 20
    assert parse_quantity(20.0) == 20
    assert parse_quantity(0) == 0
    assert parse_quantity("pcs") is None
    assert parse_quantity(None) is None
    assert parse_quantity(True) is None


async def test_edit_keeps_id_and_created_at(inventory):
    original = await inventory.async_save_medicine(
        {"name": "Paracetamol", "quantity": 20, "category": "Pain relief"}
    )

    edited = await inventory.async_save_medicine(
        {"name": "Paracetamol", "quantity": 10, "category": "Pain relief"}, original.id
    )

    assert len(inventory.medicines) == 1
    assert edited.id == original.id
    assert edited.created_at == original.created_at
    assert inventory.get(original.id).quantity == 10

    with pytest.raises(InvalidInput):
        await inventory.async_save_medicine(
            {"name": "Paracetamol", "quantity": 1, "category": "Pain relief"}, "missing"
        )


async def test_toggle_favorite_twice(inventory):
    medicine = await inventory.async_save_medicine(
        {"name": "Paracetamol", "quantity": 20, "category": "Pain relief"}
    )

    assert (await inventory.async_toggle_favorite(medicine.id)).is_favorite
    assert [med.id for med in inventory.favorites()] == [medicine.id]
    assert not (await inventory.async_toggle_favorite(medicine.id)).is_favorite

    with pytest.raises(InvalidInput):
        await inventory.async_toggle_favorite("missing")


async def test_toggle_favorite_of_medicine_deleted_meanwhile(hass):
    store = MedicineStore(hass, "test")
    inventory = MedicineInventory(store, CategoryStore(hass, "test"))
    medicine = await inventory.async_save_medicine(
        {"name": "Paracetamol", "quantity": 20, "category": "Pain relief"}
    )

    # Both calls pass their lookup and then queue on the store lock, delete first
    async with store._lock:
        delete = asyncio.create_task(inventory.async_delete_medicine(medicine.id))
        toggle = asyncio.create_task(inventory.async_toggle_favorite(medicine.id))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    assert await delete
    with pytest.raises(InvalidInput):
        await toggle
    assert inventory.medicines == []


async def test_delete_removes_exactly_one(inventory):
    first = await inventory.async_save_medicine({"name": "A", "quantity": 1, "category": "Other"})
    second = await inventory.async_save_medicine({"name": "B", "quantity": 2, "category": "Other"})

    assert await inventory.async_delete_medicine(first.id)
    assert [med.id for med in inventory.medicines] == [second.id]
    assert not await inventory.async_delete_medicine(first.id)


async def test_concurrent_saves_keep_both(inventory):
    await asyncio.gather(
        inventory.async_save_medicine({"name": "A", "quantity": 1, "category": "Other"}),
        inventory.async_save_medicine({"name": "B", "quantity": 2, "category": "Other"}),
        inventory.async_save_medicine({"name": "C", "quantity": 3, "category": "Vitamins"}),
    )

    assert sorted(med.name for med in inventory.medicines) == ["A", "B", "C"]


async def test_queries(inventory):
    await inventory.async_save_medicine(
        {"name": "Paracetamol", "quantity": 20, "category": "Pain relief", "expiration_date": "01.02.2023"}
    )
    await inventory.async_save_medicine(
        {"name": "Vitamin C", "quantity": 60, "category": "Vitamins", "expiration_date": "31.12.2030"}
    )
    await inventory.async_save_medicine(
        {"name": "Bandage", "quantity": 3, "category": "Dressings", "expiration_date": "soon"}
    )

    assert [med.name for med in inventory.medicines_in_category("Vitamins")] == ["Vitamin C"]
    assert len(inventory.medicines_in_category("all")) == 3
    assert len(inventory.medicines_in_category(None)) == 3
    assert inventory.category_counts() == {"Pain relief": 1, "Vitamins": 1, "Dressings": 1}
    assert [med.name for med in inventory.expired(date(2024, 1, 1))] == ["Paracetamol"]


async def test_categories(hass_storage, inventory):
    assert inventory.categories() == DEFAULT_CATEGORIES

    await inventory.async_add_category(" Eye care ")
    await inventory.async_add_category("Vitamins")

    assert inventory.categories() == [*DEFAULT_CATEGORIES, "Eye care"]
    assert hass_storage["medicine_cabinet.test.categories"]["data"] == ["Eye care"]
    assert inventory.search_categories("VITA") == ["Vitamins", "Vitamins and supplements"]

    with pytest.raises(InvalidInput):
        await inventory.async_add_category("  ")

    assert not await inventory.async_remove_category("Vitamins")
    assert await inventory.async_remove_category("Eye care")
    assert inventory.categories() == DEFAULT_CATEGORIES
