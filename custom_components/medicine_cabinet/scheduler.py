"""Notification triggers backed by Home Assistant's time tracking."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from functools import partial
import logging
from typing import Any
import uuid

from dateutil import rrule
import pytz

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_point_in_time
from homeassistant.util import dt as dt_util

from .const import MIN_ONE_SHOT_DELAY

_LOGGER = logging.getLogger(__name__)

WEEKDAY_MAP = {
    1: rrule.MO, 2: rrule.TU, 3: rrule.WE,
    4: rrule.TH, 5: rrule.FR, 6: rrule.SA,
    7: rrule.SU
}


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class WeeklyTrigger:
    """Fires every week on ``weekday`` (ISO, Monday=1) at hour:minute."""

    weekday: int
    hour: int
    minute: int


@dataclass(frozen=True)
class DateTrigger:
    """Fires once at ``when``."""

    when: datetime


Trigger = WeeklyTrigger | DateTrigger


def resolve_time_zone(hass: HomeAssistant, tz_sensor: str | None) -> tzinfo:
    """Determine the effective timezone."""
    if tz_sensor:
        tz_state = hass.states.get(tz_sensor)
        if tz_state and tz_state.state not in ("unknown", "unavailable"):
            try:
                return pytz.timezone(tz_state.state)
            except pytz.UnknownTimeZoneError:
                _LOGGER.warning("Sensor %s reports unknown time zone %s", tz_sensor, tz_state.state)
    return dt_util.DEFAULT_TIME_ZONE


def localize(time_zone: tzinfo, naive: datetime) -> datetime:
    """Attach ``time_zone`` to a naive wall-clock datetime."""
    if isinstance(time_zone, pytz.BaseTzInfo):
        return time_zone.localize(naive)
    return naive.replace(tzinfo=time_zone)


def next_weekly_fire(trigger: WeeklyTrigger, after: datetime, time_zone: tzinfo) -> datetime:
    """Return the first fire time of ``trigger`` strictly after ``after``."""
    after_local = after.astimezone(time_zone).replace(tzinfo=None, microsecond=0)
    rule = rrule.rrule(
        rrule.WEEKLY,
        byweekday=WEEKDAY_MAP[trigger.weekday],
        byhour=trigger.hour,
        byminute=trigger.minute,
        bysecond=0,
        dtstart=after_local,
    )
    return localize(time_zone, rule.after(after_local))


class NotificationScheduler(ABC):
    """Registers notification triggers and cancels them by id."""

    @abstractmethod
    async def async_schedule(self, content: NotificationContent, trigger: Trigger) -> str:
        """Register a trigger and return its opaque id."""

    @abstractmethod
    async def async_cancel(self, trigger_id: str) -> None:
        """Cancel a trigger; unknown ids are ignored."""

    @abstractmethod
    async def async_cancel_all(self) -> None:
        """Cancel every registered trigger."""


class HassNotificationScheduler(NotificationScheduler):
    """Timers on the Home Assistant event loop.

    Weekly triggers re-arm themselves for the following week every time they
    fire and keep the same id, so one id stands for the whole series. Timers
    do not survive a restart; stored reminders are re-registered on setup.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        deliver: Callable[[NotificationContent], Awaitable[None]],
        time_zone: Callable[[], tzinfo],
    ) -> None:
        self.hass = hass
        self._deliver = deliver
        self._time_zone = time_zone
        self._unsubs: dict[str, CALLBACK_TYPE] = {}

    @property
    def scheduled(self) -> list[str]:
        return list(self._unsubs)

    async def async_schedule(self, content: NotificationContent, trigger: Trigger) -> str:
        trigger_id = uuid.uuid4().hex
        if isinstance(trigger, WeeklyTrigger):
            self._arm_weekly(trigger_id, content, trigger, dt_util.utcnow())
        else:
            earliest = dt_util.utcnow() + timedelta(seconds=MIN_ONE_SHOT_DELAY)
            fire_at = max(trigger.when, earliest)
            self._unsubs[trigger_id] = async_track_point_in_time(
                self.hass, partial(self._async_fire_once, trigger_id, content), fire_at
            )
            _LOGGER.debug("Scheduled %s once at %s", trigger_id, fire_at)
        return trigger_id

    @callback
    def _arm_weekly(
        self, trigger_id: str, content: NotificationContent,
        trigger: WeeklyTrigger, after: datetime,
    ) -> None:
        fire_at = next_weekly_fire(trigger, after, self._time_zone())

        async def _async_fire(now: datetime) -> None:
            self._arm_weekly(trigger_id, content, trigger, now)
            await self._deliver(content)

        self._unsubs[trigger_id] = async_track_point_in_time(self.hass, _async_fire, fire_at)
        _LOGGER.debug("Scheduled %s for %s", trigger_id, fire_at)

    async def _async_fire_once(
        self, trigger_id: str, content: NotificationContent, now: datetime
    ) -> None:
        self._unsubs.pop(trigger_id, None)
        await self._deliver(content)

    async def async_cancel(self, trigger_id: str) -> None:
        if (unsub := self._unsubs.pop(trigger_id, None)) is not None:
            unsub()
            _LOGGER.debug("Cancelled %s", trigger_id)

    async def async_cancel_all(self) -> None:
        for unsub in self._unsubs.values():
            unsub()
        self._unsubs.clear()
