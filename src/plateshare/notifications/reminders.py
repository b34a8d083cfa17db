"""Expiring-listing reminders for restaurants."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from plateshare.db.listings import find_expiring_listings
from plateshare.db.models import as_utc_naive, utcnow
from plateshare.db.notifications import has_listing_notification
from plateshare.lifecycle.base import NotificationSink
from plateshare.models.listing import FoodListing
from plateshare.models.notification import NotificationKind, RecipientKind

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def days_until(expiry: datetime, now: datetime) -> int:
    """Whole days until expiry, rounded up."""

    return math.ceil((expiry - now).total_seconds() / SECONDS_PER_DAY)


class ExpiryReminder:
    """Notify restaurants once about each AVAILABLE listing that is about to expire."""

    def __init__(
        self,
        sink: NotificationSink,
        *,
        window_hours: int = 24,
        finder: Callable[..., List[FoodListing]] = find_expiring_listings,
        already_notified: Callable[[str, NotificationKind, str], bool] = has_listing_notification,
    ) -> None:
        self._sink = sink
        self._window = timedelta(hours=window_hours)
        self._finder = finder
        self._already_notified = already_notified

    def run_once(self, now: Optional[datetime] = None) -> int:
        """Send reminders for the current window and return how many were sent."""

        current = as_utc_naive(now) or utcnow()
        sent = 0
        for listing in self._finder(window=self._window, now=current):
            kind = NotificationKind.LISTING_EXPIRING_SOON
            if self._already_notified(listing.restaurant_id, kind, listing.id):
                continue
            expiry = as_utc_naive(listing.expiry_date)
            payload = {
                "listing_id": listing.id,
                "food_title": listing.title,
                "expiry_date": expiry.isoformat(),
                "days_until_expiry": days_until(expiry, current),
            }
            try:
                self._sink.notify(RecipientKind.RESTAURANT, listing.restaurant_id, kind, payload)
            except Exception:
                logger.exception("Expiry reminder failed for listing_id=%s", listing.id)
                continue
            sent += 1
        if sent:
            logger.info("Sent %s expiring-listing reminder(s)", sent)
        return sent


__all__ = ["ExpiryReminder", "days_until"]
