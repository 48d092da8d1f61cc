from __future__ import annotations

import logging
from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from market.models import Listing
from notifications.models import NotificationKind
from notifications.services import notify
from realtime.push import NEW_MESSAGE, USER_TYPING, conversation_room, publish_safely
from souqify_backend import errors

from .content_filter import filter_text
from .models import Conversation, Message, MessageKind

logger = logging.getLogger("souqify.messaging")

User = get_user_model()

MAX_MESSAGE_LENGTH = 1000


@dataclass
class OpenedConversation:
    conversation: Conversation
    messages: list[Message]
    counterpart: object


def _get_conversation(conversation_id: int, user, *, for_update: bool = False) -> Conversation:
    qs = Conversation.objects.select_for_update() if for_update else Conversation.objects.all()
    conversation = qs.filter(pk=conversation_id).first()
    if conversation is None:
        raise errors.NotFoundError("Conversation not found")
    if not conversation.has_participant(user.id):
        raise errors.AuthorizationError("Not authorized")
    return conversation


def get_or_create_conversation(user, *, listing_id: int, seller_id: int) -> tuple[Conversation, bool]:
    """Find the thread for (user, seller, listing) or create it.

    Concurrent first contacts converge on one row: the unique constraint on
    the ordered pair + listing rejects the loser, and ``get_or_create``
    turns that into a lookup.
    """

    if seller_id == user.id:
        raise errors.ValidationError("You cannot message yourself")

    listing = Listing.objects.filter(pk=listing_id).only("id", "seller_id").first()
    if listing is None:
        raise errors.NotFoundError("Listing not found")
    if not User.objects.filter(pk=seller_id).exists():
        raise errors.NotFoundError("User not found")
    if listing.seller_id not in (user.id, seller_id):
        raise errors.ValidationError("Conversations must include the listing's seller")

    low, high = Conversation.ordered_pair(user.id, seller_id)
    conversation, created = Conversation.objects.get_or_create(
        participant_low_id=low,
        participant_high_id=high,
        listing_id=listing.id,
    )
    if not created and not conversation.is_active:
        Conversation.objects.filter(pk=conversation.pk).update(is_active=True)
        conversation.is_active = True

    if created:
        logger.info("conversation created", extra={"conversation_id": conversation.id, "listing_id": listing.id})
    return conversation, created


def send_message(conversation_id: int, sender, content: str, *, kind: str = MessageKind.TEXT, attachments: list | None = None) -> Message:
    content = (content or "").strip()
    if not content:
        raise errors.ValidationError("Message content is required")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise errors.ValidationError("Message cannot exceed 1000 characters")
    if kind not in MessageKind.values:
        raise errors.ValidationError("Invalid message type")

    result = filter_text(content)

    with transaction.atomic():
        conversation = _get_conversation(conversation_id, sender, for_update=True)
        recipient_id = conversation.counterpart_id(sender.id)

        message = Message.objects.create(
            conversation=conversation,
            sender=sender,
            content=result.filtered_text,
            original_content=content if result.was_filtered else None,
            is_filtered=result.was_filtered,
            kind=kind,
            attachments=attachments or [],
        )

        unread_field = conversation.unread_field_for(recipient_id)
        Conversation.objects.filter(pk=conversation.pk).update(
            **{unread_field: F(unread_field) + 1},
            last_message_content=message.content,
            last_message_sender=sender,
            last_message_at=message.created_at,
            is_active=True,
            updated_at=timezone.now(),
        )

        notify(
            recipient_id,
            kind=NotificationKind.MESSAGE,
            title="New Message",
            body=f"{sender.name} sent you a message",
            related_id=conversation.id,
        )

        payload = {
            "conversation_id": conversation.id,
            "message": {
                "id": message.id,
                "sender_id": sender.id,
                "content": message.content,
                "kind": message.kind,
                "created_at": message.created_at.isoformat(),
            },
        }
        transaction.on_commit(lambda: publish_safely(NEW_MESSAGE, payload, user_id=recipient_id))
        transaction.on_commit(lambda: publish_safely(NEW_MESSAGE, payload, room=conversation_room(conversation.id)))

    if result.was_filtered:
        logger.info(
            "message filtered",
            extra={
                "user_id": sender.id,
                "conversation_id": conversation.id,
                "categories": result.categories,
            },
        )
    return message


def open_conversation(conversation_id: int, viewer) -> OpenedConversation:
    with transaction.atomic():
        conversation = _get_conversation(conversation_id, viewer, for_update=True)

        Message.objects.filter(conversation=conversation, read=False).exclude(sender_id=viewer.id).update(
            read=True,
            read_at=timezone.now(),
        )
        unread_field = conversation.unread_field_for(viewer.id)
        Conversation.objects.filter(pk=conversation.pk).update(**{unread_field: 0})
        setattr(conversation, unread_field, 0)

    messages = list(
        Message.objects.filter(conversation=conversation).select_related("sender").order_by("created_at", "id")
    )
    counterpart = User.objects.get(pk=conversation.counterpart_id(viewer.id))
    return OpenedConversation(conversation=conversation, messages=messages, counterpart=counterpart)


def archive_conversation(conversation_id: int, viewer) -> Conversation:
    conversation = _get_conversation(conversation_id, viewer)
    Conversation.objects.filter(pk=conversation.pk).update(is_active=False)
    conversation.is_active = False
    return conversation


def list_conversations(user):
    return (
        Conversation.objects.filter(Q(participant_low=user) | Q(participant_high=user), is_active=True)
        .select_related("listing", "participant_low", "participant_high")
        .order_by("-updated_at", "-id")
    )


def total_unread(user) -> int:
    active = Conversation.objects.filter(is_active=True)
    low = active.filter(participant_low=user).aggregate(n=Sum("unread_low"))["n"] or 0
    high = active.filter(participant_high=user).aggregate(n=Sum("unread_high"))["n"] or 0
    return int(low) + int(high)


def get_original_message(admin, message_id: int) -> Message:
    if not getattr(admin, "is_staff", False):
        raise errors.AuthorizationError("Not authorized - Admin access required")
    message = Message.objects.select_related("sender").filter(pk=message_id).first()
    if message is None:
        raise errors.NotFoundError("Message not found")
    return message


def signal_typing(conversation_id: int, sender) -> int:
    conversation = _get_conversation(conversation_id, sender)
    receiver_id = conversation.counterpart_id(sender.id)
    return publish_safely(USER_TYPING, {"user_id": sender.id, "conversation_id": conversation.id}, user_id=receiver_id)
