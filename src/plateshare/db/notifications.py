"""Notification inbox persistence helpers for users and restaurants."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple, Type, Union

from sqlalchemy import delete, func, select, update

from plateshare.errors import ForbiddenError, NotFoundError
from plateshare.models.notification import Notification, NotificationKind, RecipientKind

from .models import NotificationORM, RestaurantNotificationORM
from .repository import session_scope

_InboxRow = Union[NotificationORM, RestaurantNotificationORM]


def _inbox(kind: RecipientKind) -> Tuple[Type[_InboxRow], Any]:
    if RecipientKind(kind) is RecipientKind.RESTAURANT:
        return RestaurantNotificationORM, RestaurantNotificationORM.restaurant_id
    return NotificationORM, NotificationORM.user_id


def _owner_id(row: _InboxRow) -> str:
    if isinstance(row, RestaurantNotificationORM):
        return row.restaurant_id
    return row.user_id


def _to_model(row: _InboxRow) -> Notification:
    kind = (
        RecipientKind.RESTAURANT
        if isinstance(row, RestaurantNotificationORM)
        else RecipientKind.USER
    )
    return Notification.model_validate(
        {
            "id": row.id,
            "recipient_kind": kind,
            "recipient_id": _owner_id(row),
            "title": row.title,
            "message": row.message,
            "type": row.type,
            "metadata": row.payload or {},
            "action_url": row.action_url,
            "is_read": row.is_read,
            "created_at": row.created_at,
        }
    )


def create_notification(
    recipient_kind: RecipientKind,
    recipient_id: str,
    *,
    title: str,
    message: str,
    kind: NotificationKind,
    metadata: Optional[Mapping[str, Any]] = None,
    action_url: Optional[str] = None,
) -> Notification:
    model, owner_column = _inbox(recipient_kind)
    with session_scope() as session:
        row = model(
            title=title,
            message=message,
            type=NotificationKind(kind).value,
            payload=dict(metadata or {}),
            action_url=action_url,
        )
        setattr(row, owner_column.key, recipient_id)
        session.add(row)
        session.flush()
        return _to_model(row)


def list_notifications(
    recipient_kind: RecipientKind,
    recipient_id: str,
    *,
    unread_only: bool = False,
) -> List[Notification]:
    """Return an inbox, newest first."""

    model, owner_column = _inbox(recipient_kind)
    query = select(model).where(owner_column == recipient_id)
    if unread_only:
        query = query.where(model.is_read.is_(False))

    with session_scope() as session:
        rows = session.execute(query.order_by(model.created_at.desc())).scalars().all()
        return [_to_model(row) for row in rows]


def count_unread(recipient_kind: RecipientKind, recipient_id: str) -> int:
    model, owner_column = _inbox(recipient_kind)
    with session_scope() as session:
        return session.execute(
            select(func.count())
            .select_from(model)
            .where(owner_column == recipient_id, model.is_read.is_(False))
        ).scalar_one()


def _owned_notification(session, recipient_kind, recipient_id, notification_id, action):
    model, _ = _inbox(recipient_kind)
    row = session.get(model, notification_id)
    if row is None:
        raise NotFoundError("Notification not found")
    if _owner_id(row) != recipient_id:
        raise ForbiddenError(f"You do not have permission to {action} this notification")
    return row


def mark_read(
    recipient_kind: RecipientKind,
    recipient_id: str,
    notification_id: str,
) -> Notification:
    with session_scope() as session:
        row = _owned_notification(session, recipient_kind, recipient_id, notification_id, "update")
        row.is_read = True
        session.flush()
        return _to_model(row)


def mark_all_read(recipient_kind: RecipientKind, recipient_id: str) -> int:
    """Mark every unread notification as read and return how many changed."""

    model, owner_column = _inbox(recipient_kind)
    with session_scope() as session:
        result = session.execute(
            update(model)
            .where(owner_column == recipient_id, model.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount or 0


def delete_notification(
    recipient_kind: RecipientKind,
    recipient_id: str,
    notification_id: str,
) -> None:
    with session_scope() as session:
        row = _owned_notification(session, recipient_kind, recipient_id, notification_id, "delete")
        session.delete(row)


def has_listing_notification(
    restaurant_id: str,
    kind: NotificationKind,
    listing_id: str,
) -> bool:
    """Return whether the restaurant already received ``kind`` for ``listing_id``."""

    with session_scope() as session:
        existing = session.execute(
            select(RestaurantNotificationORM.id)
            .where(
                RestaurantNotificationORM.restaurant_id == restaurant_id,
                RestaurantNotificationORM.type == NotificationKind(kind).value,
                RestaurantNotificationORM.payload["listing_id"].as_string() == listing_id,
            )
            .limit(1)
        ).first()
        return existing is not None


def clear_notifications(recipient_kind: RecipientKind, recipient_id: str) -> int:
    """Delete a whole inbox and return how many notifications were removed."""

    model, owner_column = _inbox(recipient_kind)
    with session_scope() as session:
        result = session.execute(delete(model).where(owner_column == recipient_id))
        return result.rowcount or 0


__all__ = [
    "create_notification",
    "list_notifications",
    "count_unread",
    "mark_read",
    "mark_all_read",
    "delete_notification",
    "clear_notifications",
    "has_listing_notification",
]
