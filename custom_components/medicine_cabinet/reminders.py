"""Dose reminders and the notification triggers that back them."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, time, tzinfo
import logging
import uuid

from homeassistant.util import dt as dt_util

from .const import REMINDER_TITLE, WEEKDAYS
from .exceptions import InvalidInput, SchedulingError
from .models import Reminder
from .scheduler import (
    DateTrigger, NotificationContent, NotificationScheduler, Trigger,
    WeeklyTrigger, localize, next_weekly_fire,
)
from .store import NotificationLogStore, ReminderStore

_LOGGER = logging.getLogger(__name__)


def parse_time(value: time | str) -> time:
    """Accept a time object or an ``HH:MM[:SS]`` string."""
    if isinstance(value, time):
        return value
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(str(value).strip(), fmt).time()
        except ValueError:
            continue
    raise InvalidInput(f"Invalid time {value!r}, expected HH:MM")


def parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError as err:
        raise InvalidInput(f"Invalid date {value!r}, expected YYYY-MM-DD") from err


def parse_days(days) -> list[int]:
    """Normalize a weekday selection (ISO numbers, Monday=1)."""
    try:
        selected = sorted({int(day) for day in days})
    except (TypeError, ValueError) as err:
        raise InvalidInput(f"Invalid days {days!r}") from err
    if any(day not in WEEKDAYS for day in selected):
        raise InvalidInput("Days must be between 1 (Monday) and 7 (Sunday)")
    return selected


def reminder_triggers(reminder: Reminder, time_zone: tzinfo) -> list[Trigger]:
    """Build one trigger per weekday, or the single trigger of a dated reminder."""
    at = reminder.time_of_day
    if reminder.one_shot:
        when = localize(time_zone, datetime.combine(parse_date(reminder.date), at))
        return [DateTrigger(when)]
    return [WeeklyTrigger(day, at.hour, at.minute) for day in reminder.days or []]


def next_occurrence(reminder: Reminder, after: datetime, time_zone: tzinfo) -> datetime | None:
    """Next time ``reminder`` is due strictly after ``after``."""
    triggers = reminder_triggers(reminder, time_zone)
    if reminder.one_shot:
        when = triggers[0].when
        return when if when > after else None
    if not triggers:
        return None
    return min(next_weekly_fire(trigger, after, time_zone) for trigger in triggers)


class ReminderManager:
    """Creates reminders, registers their triggers and retires them."""

    def __init__(
        self,
        reminders: ReminderStore,
        logs: NotificationLogStore,
        scheduler: NotificationScheduler,
        time_zone: Callable[[], tzinfo],
    ) -> None:
        self._reminders = reminders
        self._logs = logs
        self._scheduler = scheduler
        self._time_zone = time_zone

    @property
    def reminders(self) -> list[Reminder]:
        return self._reminders.items

    def get(self, reminder_id: str) -> Reminder | None:
        return self._reminders.get(reminder_id)

    async def async_create_reminder(
        self,
        medicine_name: str,
        dosage: str,
        at: time | str,
        days=None,
        on_date: date | str | None = None,
    ) -> Reminder:
        """Validate, register one trigger per day and persist the reminder.

        Either every trigger is registered and the reminder is stored, or
        nothing is: a failing registration cancels the ones made before it.
        """
        medicine_name = (medicine_name or "").strip()
        dosage = (dosage or "").strip()
        if not medicine_name:
            raise InvalidInput("Medicine name is required")
        if not dosage:
            raise InvalidInput("Dosage is required")
        at = parse_time(at)

        if on_date is not None:
            if days:
                raise InvalidInput("Choose either weekdays or a date, not both")
            selected = None
            on_date = parse_date(on_date).isoformat()
        else:
            if not days:
                raise InvalidInput("Select at least one day")
            selected = parse_days(days)

        reminder = Reminder(
            id=uuid.uuid4().hex,
            medicine_name=medicine_name,
            dosage=dosage,
            time=at.strftime("%H:%M"),
            days=selected,
            date=on_date,
        )
        triggers = reminder_triggers(reminder, self._time_zone())
        if reminder.one_shot and triggers[0].when <= dt_util.utcnow():
            raise InvalidInput("The reminder time must be in the future")

        reminder.notification_ids = await self._async_register(reminder, triggers)
        try:
            await self._reminders.async_upsert(reminder)
        except Exception:
            await self._async_cancel_ids(reminder.notification_ids)
            raise
        _LOGGER.debug(
            "Created reminder %s for %s with %d trigger(s)",
            reminder.id, medicine_name, len(reminder.notification_ids),
        )
        return reminder

    async def _async_register(self, reminder: Reminder, triggers: list[Trigger]) -> list[str]:
        content = NotificationContent(
            title=REMINDER_TITLE,
            body=reminder.body,
            data={"reminder_id": reminder.id},
        )
        trigger_ids: list[str] = []
        for trigger in triggers:
            try:
                trigger_ids.append(await self._scheduler.async_schedule(content, trigger))
            except Exception as err:
                _LOGGER.error("Scheduling %s failed: %s", reminder.body, err)
                await self._async_cancel_ids(trigger_ids)
                raise SchedulingError(f"Could not schedule reminder for {reminder.body}") from err
        return trigger_ids

    async def _async_cancel_ids(self, trigger_ids: list[str]) -> None:
        for trigger_id in trigger_ids:
            try:
                await self._scheduler.async_cancel(trigger_id)
            except Exception as err:
                _LOGGER.warning("Could not cancel trigger %s: %s", trigger_id, err)

    async def async_cancel_reminder(self, reminder_id: str) -> bool:
        """Cancel the triggers, drop the reminder and its log entries.

        Returns False when the reminder does not exist (already cancelled).
        """
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            return False

        await self._async_cancel_ids(reminder.notification_ids)
        await self._reminders.async_delete(reminder_id)
        if any(log.reminder_id == reminder_id for log in self._logs.items):
            await self._logs.async_mutate(
                lambda logs: [log for log in logs if log.reminder_id != reminder_id]
            )
        _LOGGER.debug("Cancelled reminder %s", reminder_id)
        return True

    async def async_clear_all(self) -> None:
        """Cancel every scheduled notification; the reminders are kept."""
        await self._scheduler.async_cancel_all()

        await self._reminders.async_mutate(
            lambda items: [replace(item, notification_ids=[]) for item in items]
        )

    async def async_restore(self) -> None:
        """Register triggers again for every stored reminder."""
        time_zone = self._time_zone()
        now = dt_util.utcnow()
        restored: dict[str, list[str]] = {}
        for reminder in self._reminders.items:
            triggers = reminder_triggers(reminder, time_zone)
            if reminder.one_shot and triggers[0].when <= now:
                restored[reminder.id] = []
                continue
            try:
                restored[reminder.id] = await self._async_register(reminder, triggers)
            except SchedulingError:
                restored[reminder.id] = []

        def _apply(items: list[Reminder]) -> list[Reminder]:
            return [
                replace(item, notification_ids=restored[item.id]) if item.id in restored else item
                for item in items
            ]

        if restored:
            await self._reminders.async_mutate(_apply)

    def reminders_on(self, day: date, time_prefix: str | None = None) -> list[Reminder]:
        """Reminders due on ``day``, optionally only those in one time slot."""
        weekday = day.isoweekday()
        iso_day = day.isoformat()
        matches = [
            reminder for reminder in self._reminders.items
            if (reminder.days and weekday in reminder.days) or reminder.date == iso_day
        ]
        if time_prefix:
            matches = [r for r in matches if r.time.startswith(time_prefix)]
        return sorted(matches, key=lambda r: r.time)

    def next_due(self, reminder: Reminder, after: datetime | None = None) -> datetime | None:
        return next_occurrence(reminder, after or dt_util.utcnow(), self._time_zone())
