"""History of delivered and tapped notifications."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
import logging
from typing import Any
import uuid

from homeassistant.util import dt as dt_util

from .const import (
    CONF_REMINDER_ID, CONF_SUBTITLE, CONF_TITLE, CONF_TYPE,
    NOTIFICATION_TYPES, TYPE_PILL,
)
from .models import NotificationLog
from .store import NotificationLogStore

_LOGGER = logging.getLogger(__name__)

BUCKET_TODAY = "today"
BUCKET_YESTERDAY = "yesterday"
BUCKET_EARLIER = "earlier"


def group_logs(
    logs: list[NotificationLog], now: datetime | None = None
) -> dict[str, list[NotificationLog]]:
    """Sort newest first and split into today / yesterday / earlier."""
    now = dt_util.as_local(now or dt_util.now())
    today = now.date()
    yesterday = today - timedelta(days=1)

    buckets: dict[str, list[NotificationLog]] = {
        BUCKET_TODAY: [],
        BUCKET_YESTERDAY: [],
        BUCKET_EARLIER: [],
    }
    for log in sorted(logs, key=lambda log: log.when, reverse=True):
        day = dt_util.as_local(log.when).date()
        if day == today:
            buckets[BUCKET_TODAY].append(log)
        elif day == yesterday:
            buckets[BUCKET_YESTERDAY].append(log)
        else:
            buckets[BUCKET_EARLIER].append(log)
    return buckets


class NotificationLogManager:
    """Records notification events and tracks their read state.

    The host wires its delivery and tap callbacks to ``async_handle_delivered``
    and ``async_handle_tapped``; nothing here listens for events itself.
    """

    def __init__(self, logs: NotificationLogStore) -> None:
        self._logs = logs

    @property
    def logs(self) -> list[NotificationLog]:
        return self._logs.items

    @property
    def unread_count(self) -> int:
        return sum(1 for log in self._logs.items if not log.is_read)

    def grouped(self, now: datetime | None = None) -> dict[str, list[NotificationLog]]:
        return group_logs(self._logs.items, now)

    async def async_record(
        self,
        title: str,
        subtitle: str,
        reminder_id: str | None = None,
        kind: str = TYPE_PILL,
    ) -> NotificationLog:
        log = NotificationLog(
            id=uuid.uuid4().hex,
            title=title,
            subtitle=subtitle,
            timestamp=dt_util.utcnow().isoformat(),
            type=kind if kind in NOTIFICATION_TYPES else TYPE_PILL,
            is_read=False,
            reminder_id=reminder_id,
        )
        await self._logs.async_mutate(lambda logs: [*logs, log])
        return log

    async def async_handle_delivered(self, data: dict[str, Any]) -> NotificationLog:
        """A notification was delivered to the user."""
        return await self._async_record_event(data)

    async def async_handle_tapped(self, data: dict[str, Any]) -> NotificationLog:
        """The user tapped a notification."""
        return await self._async_record_event(data)

    async def _async_record_event(self, data: dict[str, Any]) -> NotificationLog:
        log = await self.async_record(
            title=data.get(CONF_TITLE, ""),
            subtitle=data.get(CONF_SUBTITLE, ""),
            reminder_id=data.get(CONF_REMINDER_ID),
            kind=data.get(CONF_TYPE, TYPE_PILL),
        )
        _LOGGER.debug("Logged notification %s (%s)", log.id, log.subtitle)
        return log

    async def async_toggle_read(self, log_id: str) -> NotificationLog | None:
        if self._logs.get(log_id) is None:
            return None
        await self._logs.async_mutate(
            lambda logs: [
                replace(log, is_read=not log.is_read) if log.id == log_id else log
                for log in logs
            ]
        )
        return self._logs.get(log_id)

    async def async_mark_all_read(self) -> None:
        if self.unread_count:
            await self._logs.async_mutate(
                lambda logs: [replace(log, is_read=True) for log in logs]
            )

    async def async_delete(self, log_id: str) -> bool:
        return await self._logs.async_delete(log_id)
