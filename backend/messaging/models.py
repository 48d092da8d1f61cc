from __future__ import annotations

from django.conf import settings
from django.db import models

from market.models import TimestampedModel


class Conversation(TimestampedModel):
    """One thread per (unordered participant pair, listing).

    The pair is stored ordered (low id, high id) so the unique constraint
    catches both argument orders.
    """

    listing = models.ForeignKey(
        "market.Listing",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="conversations",
    )
    participant_low = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_low",
    )
    participant_high = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversations_as_high",
    )

    unread_low = models.PositiveIntegerField(default=0)
    unread_high = models.PositiveIntegerField(default=0)

    last_message_content = models.TextField(blank=True)
    last_message_sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    last_message_at = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["participant_low", "participant_high", "listing"],
                name="uq_conversation_pair_listing",
            ),
        ]
        indexes = [
            models.Index(fields=["participant_low", "is_active", "updated_at"], name="conv_low_active_idx"),
            models.Index(fields=["participant_high", "is_active", "updated_at"], name="conv_high_active_idx"),
        ]
        ordering = ["-updated_at", "-id"]

    @staticmethod
    def ordered_pair(a_id: int, b_id: int) -> tuple[int, int]:
        return (a_id, b_id) if a_id <= b_id else (b_id, a_id)

    @property
    def participant_ids(self) -> tuple[int, int]:
        return (self.participant_low_id, self.participant_high_id)

    def has_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids

    def counterpart_id(self, user_id: int) -> int:
        return self.participant_high_id if user_id == self.participant_low_id else self.participant_low_id

    def unread_field_for(self, user_id: int) -> str:
        return "unread_low" if user_id == self.participant_low_id else "unread_high"

    def unread_for(self, user_id: int) -> int:
        return getattr(self, self.unread_field_for(user_id))

    def __str__(self) -> str:
        return f"Conversation({self.participant_low_id}, {self.participant_high_id}, {self.listing_id})"


class MessageKind(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    SYSTEM = "system", "System"


class Message(TimestampedModel):
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="sent_messages")

    # Displayed text, after redaction.
    content = models.TextField(max_length=1000)
    # Raw text, kept only when redaction changed it. Admin-only.
    original_content = models.TextField(null=True, blank=True)
    is_filtered = models.BooleanField(default=False)

    kind = models.CharField(max_length=8, choices=MessageKind.choices, default=MessageKind.TEXT)
    attachments = models.JSONField(default=list, blank=True)

    read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        # id breaks ties between messages created in the same instant.
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["conversation", "created_at", "id"], name="msg_conv_created_idx"),
            models.Index(fields=["conversation", "read", "sender"], name="msg_conv_unread_idx"),
        ]

    def __str__(self) -> str:
        return f"Message({self.conversation_id}, {self.sender_id})"
