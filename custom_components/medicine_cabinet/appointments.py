"""Doctor appointments."""
from __future__ import annotations

from datetime import date, datetime, time
import logging
import uuid

from homeassistant.util import dt as dt_util

from .const import DOCTOR_PREFIX, SPECIALTIES
from .exceptions import InvalidInput
from .models import Appointment
from .reminders import parse_date, parse_time
from .store import AppointmentStore

_LOGGER = logging.getLogger(__name__)


class AppointmentBook:
    def __init__(self, appointments: AppointmentStore) -> None:
        self._appointments = appointments

    def appointments(self) -> list[Appointment]:
        """All appointments, earliest first."""
        return sorted(self._appointments.items, key=lambda a: (a.date, a.time))

    def get(self, appointment_id: str) -> Appointment | None:
        return self._appointments.get(appointment_id)

    async def async_add_appointment(
        self,
        doctor: str,
        specialty: str,
        on_date: date | str,
        at: time | str,
        now: datetime | None = None,
    ) -> Appointment:
        doctor = (doctor or "").strip()
        if not doctor or not specialty:
            raise InvalidInput("Doctor and specialty are required")
        if specialty not in SPECIALTIES:
            raise InvalidInput(f"Unknown specialty {specialty}")

        on_date = parse_date(on_date)
        at = parse_time(at)
        now = dt_util.as_local(now or dt_util.now())
        if on_date < now.date():
            raise InvalidInput("The date must be today or later")
        if on_date == now.date() and at <= now.time():
            raise InvalidInput("Today's appointment must be in the future")

        if not doctor.startswith(DOCTOR_PREFIX):
            doctor = f"{DOCTOR_PREFIX}{doctor}"
        appointment = Appointment(
            id=uuid.uuid4().hex,
            doctor=doctor,
            specialty=specialty,
            date=on_date.isoformat(),
            time=at.strftime("%H:%M"),
        )
        await self._appointments.async_upsert(appointment)
        _LOGGER.debug("Added appointment %s with %s", appointment.id, doctor)
        return appointment

    async def async_delete_appointment(self, appointment_id: str) -> bool:
        return await self._appointments.async_delete(appointment_id)

    @staticmethod
    def is_past(appointment: Appointment, now: datetime | None = None) -> bool:
        now = now or dt_util.now()
        return appointment.starts_at(dt_util.DEFAULT_TIME_ZONE) < now

    def next_appointment(self, now: datetime | None = None) -> Appointment | None:
        for appointment in self.appointments():
            if not self.is_past(appointment, now):
                return appointment
        return None
