"""Notification rendering, delivery and reminders."""

from plateshare.notifications.reminders import ExpiryReminder
from plateshare.notifications.service import NotificationService
from plateshare.notifications.templates import RenderedNotification, render

__all__ = ["ExpiryReminder", "NotificationService", "RenderedNotification", "render"]
