"""Per-user in-app notifications, kept as a ring buffer of the newest rows."""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from souqify_backend import errors

from .models import Notification

logger = logging.getLogger("souqify.notifications")

MAX_NOTIFICATIONS_PER_USER = 50
LIST_LIMIT = 30


def notify(user, *, kind: str, title: str, body: str = "", related_id: int | None = None, payload: dict | None = None) -> Notification:
    """Append a notification and drop whatever falls past the cap."""

    user_id = getattr(user, "id", user)

    with transaction.atomic():
        notification = Notification.objects.create(
            user_id=user_id,
            kind=kind,
            title=title,
            body=body,
            related_id=related_id,
            payload=payload or {},
        )

        stale_ids = list(
            Notification.objects.filter(user_id=user_id)
            .order_by("-created_at", "-id")
            .values_list("id", flat=True)[MAX_NOTIFICATIONS_PER_USER:]
        )
        if stale_ids:
            Notification.objects.filter(id__in=stale_ids).delete()

    logger.debug(
        "notification created",
        extra={"user_id": user_id, "notification_id": notification.id, "event": kind},
    )
    return notification


def list_for_user(user, *, limit: int = LIST_LIMIT) -> tuple[list[Notification], int]:
    qs = Notification.objects.filter(user=user).order_by("-created_at", "-id")
    unread = qs.filter(read_at__isnull=True).count()
    return list(qs[:limit]), unread


def unread_count(user) -> int:
    return Notification.objects.filter(user=user, read_at__isnull=True).count()


def mark_all_read(user) -> int:
    return Notification.objects.filter(user=user, read_at__isnull=True).update(read_at=timezone.now())


def mark_read(user, notification_id: int) -> Notification:
    notification = Notification.objects.filter(pk=notification_id, user=user).first()
    if notification is None:
        raise errors.NotFoundError("Notification not found")
    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=["read_at", "updated_at"])
    return notification
