"""Notification sink that renders templates and stores inbox entries."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from plateshare import metrics
from plateshare.db.notifications import create_notification
from plateshare.lifecycle.base import NotificationSink
from plateshare.models.notification import Notification, NotificationKind, RecipientKind
from plateshare.notifications.templates import render

logger = logging.getLogger(__name__)

NotificationWriter = Callable[..., Notification]


class NotificationService(NotificationSink):
    """Persist rendered notifications into the user or restaurant inbox."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        writer: NotificationWriter = create_notification,
    ) -> None:
        self._enabled = enabled
        self._writer = writer

    def notify(
        self,
        recipient_kind: RecipientKind,
        recipient_id: str,
        kind: NotificationKind,
        payload: Mapping[str, Any],
    ) -> None:
        if not self._enabled:
            logger.debug("Notifications disabled; dropping %s for %s", kind, recipient_id)
            metrics.NOTIFICATIONS.labels(kind=NotificationKind(kind).value, result="skipped").inc()
            return

        rendered = render(kind, payload)
        self._writer(
            RecipientKind(recipient_kind),
            recipient_id,
            title=rendered.title,
            message=rendered.message,
            kind=kind,
            metadata=dict(payload),
            action_url=rendered.action_url,
        )
        metrics.NOTIFICATIONS.labels(kind=NotificationKind(kind).value, result="delivered").inc()
        logger.debug(
            "Notification %s delivered to %s %s",
            NotificationKind(kind).value,
            RecipientKind(recipient_kind).value,
            recipient_id,
        )


__all__ = ["NotificationService", "NotificationWriter"]
