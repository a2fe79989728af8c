"""Records persisted by the Medicine Cabinet integration.

Each record converts to and from the camelCase dictionaries kept in storage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from homeassistant.util import dt as dt_util

from .const import TYPE_PILL


@dataclass
class Medicine:
    """A medicine in the home inventory."""

    id: str
    name: str
    quantity: int
    category: str
    dosage: str = ""
    expiration_date: str = ""
    is_favorite: bool = False
    image: str | None = None
    created_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Medicine:
        return cls(
            id=str(data["id"]),
            name=data["name"],
            quantity=int(data["quantity"]),
            category=data["category"],
            dosage=data.get("dosage", ""),
            expiration_date=data.get("expirationDate", ""),
            is_favorite=bool(data.get("isFavorite", False)),
            image=data.get("image"),
            created_at=data.get("createdAt", ""),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "dosage": self.dosage,
            "expirationDate": self.expiration_date,
            "category": self.category,
            "isFavorite": self.is_favorite,
            "image": self.image,
            "createdAt": self.created_at,
        }

    def expires_on(self) -> date | None:
        """Parse the free-text expiration date (dd.mm.yyyy), if possible."""
        try:
            return datetime.strptime(self.expiration_date, "%d.%m.%Y").date()
        except (TypeError, ValueError):
            return None


@dataclass
class Reminder:
    """A weekly or one-time dose reminder and the triggers backing it."""

    id: str
    medicine_name: str
    dosage: str
    time: str
    days: list[int] | None = None
    date: str | None = None
    notification_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reminder:
        days = data.get("days")
        return cls(
            id=str(data["id"]),
            medicine_name=data["medicineName"],
            dosage=data["dosage"],
            time=data["time"],
            days=[int(d) for d in days] if days is not None else None,
            date=data.get("date"),
            notification_ids=list(data.get("notificationIds", [])),
        )

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "medicineName": self.medicine_name,
            "dosage": self.dosage,
            "time": self.time,
        }
        if self.days is not None:
            data["days"] = self.days
        if self.date is not None:
            data["date"] = self.date
        data["notificationIds"] = self.notification_ids
        return data

    @property
    def time_of_day(self) -> time:
        return datetime.strptime(self.time, "%H:%M").time()

    @property
    def one_shot(self) -> bool:
        return self.date is not None

    @property
    def body(self) -> str:
        return f"{self.medicine_name} — {self.dosage}"


@dataclass
class NotificationLog:
    """A notification that was delivered to or tapped by the user."""

    id: str
    title: str
    subtitle: str
    timestamp: str
    type: str = TYPE_PILL
    is_read: bool = False
    reminder_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationLog:
        return cls(
            id=str(data["id"]),
            title=data["title"],
            subtitle=data.get("subtitle", ""),
            timestamp=data["timestamp"],
            type=data.get("type", TYPE_PILL),
            is_read=bool(data.get("isRead", False)),
            reminder_id=data.get("reminderId"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "timestamp": self.timestamp,
            "type": self.type,
            "isRead": self.is_read,
            "reminderId": self.reminder_id,
        }

    @property
    def when(self) -> datetime:
        return dt_util.parse_datetime(self.timestamp)


@dataclass
class Appointment:
    """A doctor's appointment."""

    id: str
    doctor: str
    specialty: str
    date: str
    time: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Appointment:
        return cls(
            id=str(data["id"]),
            doctor=data["doctor"],
            specialty=data["specialty"],
            date=data["date"],
            time=data["time"],
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "doctor": self.doctor,
            "specialty": self.specialty,
            "date": self.date,
            "time": self.time,
        }

    def starts_at(self, time_zone=None) -> datetime:
        """Return the appointment start as an aware datetime."""
        naive = datetime.strptime(f"{self.date} {self.time}", "%Y-%m-%d %H:%M")
        return naive.replace(tzinfo=time_zone or dt_util.DEFAULT_TIME_ZONE)


@dataclass
class Profile:
    first_name: str = ""
    last_name: str = ""
    birth_date: str = ""
    profile_image: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        return cls(
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            birth_date=data.get("birthDate", ""),
            profile_image=data.get("profileImage"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "birthDate": self.birth_date,
            "profileImage": self.profile_image,
        }

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
