from __future__ import annotations

from django.conf import settings
from django.db import models

from market.models import TimestampedModel


class NotificationKind(models.TextChoices):
    MESSAGE = "message", "Message"
    LISTING = "listing", "Listing"
    SYSTEM = "system", "System"


class Notification(TimestampedModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    kind = models.CharField(max_length=16, choices=NotificationKind.choices, db_index=True)
    title = models.CharField(max_length=140, blank=True)
    body = models.TextField(blank=True)
    related_id = models.PositiveBigIntegerField(null=True, blank=True)
    payload = models.JSONField(default=dict, blank=True)

    read_at = models.DateTimeField(null=True, blank=True, db_index=True)
    emailed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "read_at", "created_at"], name="notif_user_read_created_idx"),
        ]

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def __str__(self) -> str:
        return f"Notification({self.user_id}, {self.kind})"
