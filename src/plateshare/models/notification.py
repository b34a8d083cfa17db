"""In-app notification models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipientKind(str, Enum):
    USER = "user"
    RESTAURANT = "restaurant"


class NotificationKind(str, Enum):
    REQUEST_CREATED = "REQUEST_CREATED"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    REQUEST_COMPLETED = "REQUEST_COMPLETED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    LISTING_EXPIRING_SOON = "LISTING_EXPIRING_SOON"
    RESTAURANT_VERIFIED = "RESTAURANT_VERIFIED"
    RESTAURANT_UNVERIFIED = "RESTAURANT_UNVERIFIED"


class Notification(BaseModel):
    """Notification stored in a user or restaurant inbox."""

    id: str
    recipient_kind: RecipientKind
    recipient_id: str
    title: str
    message: str
    type: NotificationKind
    metadata: Dict[str, Any] = Field(default_factory=dict)
    action_url: Optional[str] = None
    is_read: bool = False
    created_at: datetime

    model_config = ConfigDict(frozen=True)


__all__ = ["RecipientKind", "NotificationKind", "Notification"]
