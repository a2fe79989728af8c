"""Tests for doctor appointments."""
from datetime import date, datetime, time

import pytest
from homeassistant.util import dt as dt_util

from custom_components.medicine_cabinet.appointments import AppointmentBook
from custom_components.medicine_cabinet.exceptions import InvalidInput
from custom_components.medicine_cabinet.store import AppointmentStore


@pytest.fixture
def book(hass):
    return AppointmentBook(AppointmentStore(hass, "test"))


@pytest.fixture
def now():
    return datetime(2024, 5, 10, 12, 0, tzinfo=dt_util.DEFAULT_TIME_ZONE)


async def test_add_appointment(book, now):
    appointment = await book.async_add_appointment(
        " House ", "Cardiologist", date(2024, 5, 20), time(9, 30), now=now
    )

    assert appointment.doctor == "Dr. House"
    assert appointment.date == "2024-05-20"
    assert appointment.time == "09:30"
    assert book.get(appointment.id) == appointment


async def test_prefix_not_doubled(book, now):
    appointment = await book.async_add_appointment(
        "Dr. Quinn", "General practitioner", "2024-05-11", "08:00", now=now
    )

    assert appointment.doctor == "Dr. Quinn"


@pytest.mark.parametrize(
    ("doctor", "specialty", "on_date", "at"),
    [
        ("", "Dentist", "2024-05-20", "09:00"),
        ("House", "", "2024-05-20", "09:00"),
        ("House", "Astrologer", "2024-05-20", "09:00"),
        ("House", "Dentist", "2024-05-09", "09:00"),
        ("House", "Dentist", "2024-05-10", "11:00"),
        ("House", "Dentist", "20.05.2024", "09:00"),
    ],
)
async def test_invalid_appointment(book, now, doctor, specialty, on_date, at):
    with pytest.raises(InvalidInput):
        await book.async_add_appointment(doctor, specialty, on_date, at, now=now)

    assert book.appointments() == []


async def test_later_today_is_allowed(book, now):
    appointment = await book.async_add_appointment("House", "Dentist", "2024-05-10", "15:00", now=now)

    assert not book.is_past(appointment, now)


async def test_ordering_and_next(book, now):
    later = await book.async_add_appointment("B", "Dentist", "2024-06-01", "08:00", now=now)
    sooner = await book.async_add_appointment("A", "Surgeon", "2024-05-11", "16:00", now=now)

    assert [a.id for a in book.appointments()] == [sooner.id, later.id]
    assert book.next_appointment(now) == sooner

    after_first = datetime(2024, 5, 12, 0, 0, tzinfo=dt_util.DEFAULT_TIME_ZONE)
    assert book.is_past(sooner, after_first)
    assert book.next_appointment(after_first) == later

    assert await book.async_delete_appointment(later.id)
    assert book.next_appointment(after_first) is None
