"""Listing lifecycle as one state with explicit transitions.

A listing's ``status``, ``moderation_status`` and soft-delete fields are only
ever written here, together, by a transition that first checks the listing
is in a legal source state.
"""

from __future__ import annotations

import enum
from datetime import datetime

from django.utils import timezone

from souqify_backend import errors

from .models import DeleteReason, Listing, ListingStatus, ModerationStatus


class ListingState(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    LIVE = "live"
    SOLD = "sold"
    REJECTED = "rejected"
    REMOVED = "removed"
    SOFT_DELETED = "soft_deleted"


class Transition(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    MARK_SOLD = "mark_sold"
    SOFT_DELETE = "soft_delete"
    FLAG_FOR_REVIEW = "flag_for_review"


def state_of(listing: Listing) -> ListingState:
    if listing.is_deleted:
        return ListingState.SOFT_DELETED
    if listing.moderation_status == ModerationStatus.REJECTED:
        return ListingState.REJECTED
    if listing.moderation_status == ModerationStatus.PENDING:
        return ListingState.PENDING_REVIEW
    if listing.status == ListingStatus.SOLD:
        return ListingState.SOLD
    if listing.status == ListingStatus.ACTIVE:
        return ListingState.LIVE
    return ListingState.REMOVED


# Source states each transition may start from.
_ALLOWED_FROM: dict[Transition, frozenset[ListingState]] = {
    Transition.APPROVE: frozenset(set(ListingState) - {ListingState.SOFT_DELETED}),
    Transition.REJECT: frozenset(set(ListingState) - {ListingState.SOFT_DELETED}),
    Transition.MARK_SOLD: frozenset({ListingState.PENDING_REVIEW, ListingState.LIVE}),
    Transition.SOFT_DELETE: frozenset(set(ListingState) - {ListingState.SOFT_DELETED}),
    Transition.FLAG_FOR_REVIEW: frozenset(ListingState),
}

_CONFLICT_MESSAGES = {
    Transition.APPROVE: "Deleted listings cannot be moderated",
    Transition.REJECT: "Deleted listings cannot be moderated",
    Transition.MARK_SOLD: "Listing cannot be marked as sold",
    Transition.SOFT_DELETE: "Listing is already deleted",
}


def apply_transition(
    listing: Listing,
    transition: Transition,
    *,
    note: str = "",
    reason: str | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Mutate ``listing`` in memory and return the fields that changed.

    The caller saves with ``update_fields`` inside its own transaction.
    """

    source = state_of(listing)
    if source not in _ALLOWED_FROM[transition]:
        raise errors.ConflictError(_CONFLICT_MESSAGES.get(transition))
    # A listing under review may still be sold, but only once.
    if transition == Transition.MARK_SOLD and listing.status != ListingStatus.ACTIVE:
        raise errors.ConflictError(_CONFLICT_MESSAGES.get(transition))

    if transition == Transition.APPROVE:
        listing.moderation_status = ModerationStatus.APPROVED
        listing.moderation_note = note
        if listing.status == ListingStatus.REMOVED:
            listing.status = ListingStatus.ACTIVE
        return ["moderation_status", "moderation_note", "status"]

    if transition == Transition.REJECT:
        listing.moderation_status = ModerationStatus.REJECTED
        listing.moderation_note = note
        listing.status = ListingStatus.REMOVED
        return ["moderation_status", "moderation_note", "status"]

    if transition == Transition.MARK_SOLD:
        listing.status = ListingStatus.SOLD
        return ["status"]

    if transition == Transition.SOFT_DELETE:
        if reason not in DeleteReason.values:
            raise errors.ValidationError("Please select a reason for deletion")
        listing.is_deleted = True
        listing.deleted_at = now or timezone.now()
        listing.delete_reason = reason
        # Readers see a soft-deleted listing as sold until it is purged.
        listing.status = ListingStatus.SOLD
        return ["is_deleted", "deleted_at", "delete_reason", "status"]

    if transition == Transition.FLAG_FOR_REVIEW:
        listing.moderation_status = ModerationStatus.PENDING
        return ["moderation_status"]

    raise ValueError(f"Unknown transition: {transition}")
