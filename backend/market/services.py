from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Max

from accounts.verification import require_verified
from notifications.email import schedule_email
from notifications.models import NotificationKind
from notifications.services import notify
from reports.models import ListingReport
from souqify_backend import errors

from .images import compress_images, delete_stored_files
from .lifecycle import Transition, apply_transition
from .models import Favorite, Listing, ListingImage, ListingStatus, ModerationStatus

logger = logging.getLogger("souqify.market")

User = get_user_model()

REPORT_REVIEW_THRESHOLD = 3

EDITABLE_FIELDS = (
    "title",
    "description",
    "price",
    "category",
    "condition",
    "location_area",
    "location_city",
)


class ModerationAction:
    APPROVE = "approve"
    REJECT = "reject"

    choices = (APPROVE, REJECT)


def _is_admin(user) -> bool:
    return bool(getattr(user, "is_staff", False))


def get_listing(listing_id: int, *, for_update: bool = False) -> Listing:
    qs = Listing.objects.select_for_update() if for_update else Listing.objects.select_related("seller")
    listing = qs.filter(pk=listing_id).first()
    if listing is None:
        raise errors.NotFoundError("Listing not found")
    return listing


def _attach_images(listing: Listing, uploads: Sequence) -> list[ListingImage]:
    if not uploads:
        return []
    if len(uploads) > settings.LISTING_MAX_IMAGES:
        raise errors.ValidationError(f"You can upload at most {settings.LISTING_MAX_IMAGES} images")

    highest = listing.images.aggregate(m=Max("sort_order"))["m"]
    start = 0 if highest is None else highest + 1
    created: list[ListingImage] = []
    for offset, (compressed, _) in enumerate(compress_images(uploads)):
        image = ListingImage(listing=listing, sort_order=start + offset)
        image.image.save(getattr(compressed, "name", None) or "image.jpg", compressed, save=False)
        image.save()
        created.append(image)
    return created


def create_listing(seller, data: dict, images: Sequence = ()) -> Listing:
    require_verified(seller)

    with transaction.atomic():
        listing = Listing.objects.create(
            seller=seller,
            status=ListingStatus.ACTIVE,
            moderation_status=ModerationStatus.PENDING,
            **{k: data[k] for k in EDITABLE_FIELDS if k in data},
        )
        _attach_images(listing, images)

    logger.info("listing created", extra={"listing_id": listing.id, "user_id": seller.id})
    return listing


def update_listing(actor, listing_id: int, data: dict, images: Sequence = ()) -> Listing:
    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        is_owner = listing.seller_id == actor.id
        if not is_owner and not _is_admin(actor):
            raise errors.AuthorizationError("You can only edit your own listings")
        if listing.is_deleted:
            raise errors.ConflictError("Deleted listings cannot be edited")

        fields = [k for k in EDITABLE_FIELDS if k in data]
        for field in fields:
            setattr(listing, field, data[field])
        if _is_admin(actor) and "is_featured" in data:
            listing.is_featured = bool(data["is_featured"])
            fields.append("is_featured")

        if (
            settings.LISTING_EDIT_REQUIRES_REVIEW
            and not _is_admin(actor)
            and listing.moderation_status == ModerationStatus.APPROVED
            and fields
        ):
            fields += apply_transition(listing, Transition.FLAG_FOR_REVIEW)

        if fields:
            listing.save(update_fields=sorted(set(fields)) + ["updated_at"])
        _attach_images(listing, images)

    return listing


def moderate_listing(admin, listing_id: int, *, action: str, note: str = "") -> Listing:
    if not _is_admin(admin):
        raise errors.AuthorizationError("Admin access required")
    if action not in ModerationAction.choices:
        raise errors.ValidationError("Invalid action")

    note = (note or "").strip()
    approved = action == ModerationAction.APPROVE

    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        fields = apply_transition(listing, Transition.APPROVE if approved else Transition.REJECT, note=note)
        listing.save(update_fields=fields + ["updated_at"])

        seller = User.objects.get(pk=listing.seller_id)
        if approved:
            notify(
                seller,
                kind=NotificationKind.LISTING,
                title="Listing Approved!",
                body=f'Your listing "{listing.title}" has been approved and is now live!',
                related_id=listing.id,
            )
            schedule_email(
                seller.email,
                "listing_approved",
                {"name": seller.name, "title": listing.title, "listing_id": listing.id},
            )
        else:
            reason = note or "Policy violation"
            notify(
                seller,
                kind=NotificationKind.LISTING,
                title="Listing Rejected",
                body=f'Your listing "{listing.title}" was rejected. Reason: {reason}',
                related_id=listing.id,
            )
            schedule_email(
                seller.email,
                "listing_rejected",
                {"name": seller.name, "title": listing.title, "reason": reason},
            )

    logger.info("listing moderated", extra={"listing_id": listing.id, "action": action})
    return listing


def mark_sold(user, listing_id: int) -> Listing:
    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        if listing.seller_id != user.id:
            raise errors.AuthorizationError("Only the seller can mark this listing as sold")

        fields = apply_transition(listing, Transition.MARK_SOLD)
        listing.save(update_fields=fields + ["updated_at"])
        User.objects.filter(pk=listing.seller_id).update(sales_count=F("sales_count") + 1)

    logger.info("listing sold", extra={"listing_id": listing.id, "user_id": user.id})
    return listing


def soft_delete_listing(user, listing_id: int, *, reason: str, now: datetime | None = None) -> Listing:
    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        if listing.seller_id != user.id:
            raise errors.AuthorizationError("You can only delete your own listings")

        fields = apply_transition(listing, Transition.SOFT_DELETE, reason=reason, now=now)
        listing.save(update_fields=fields + ["updated_at"])

    logger.info("listing soft-deleted", extra={"listing_id": listing.id, "user_id": user.id})
    return listing


def hard_delete_listing(admin, listing_id: int) -> None:
    if not _is_admin(admin):
        raise errors.AuthorizationError("Admin access required")

    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        names = list(listing.images.values_list("image", flat=True))
        listing.delete()
        transaction.on_commit(lambda: delete_stored_files(names))

    logger.info("listing hard-deleted", extra={"listing_id": listing_id, "user_id": admin.id})


def report_listing(user, listing_id: int, *, reason: str) -> tuple[ListingReport, int]:
    reason = (reason or "").strip()
    if not reason:
        raise errors.ValidationError("Please provide a reason")

    with transaction.atomic():
        listing = get_listing(listing_id, for_update=True)
        if ListingReport.objects.filter(listing=listing, reporter=user).exists():
            raise errors.DuplicateError("You have already reported this listing")
        try:
            with transaction.atomic():
                report = ListingReport.objects.create(listing=listing, reporter=user, reason=reason)
        except IntegrityError:
            raise errors.DuplicateError("You have already reported this listing")

        count = ListingReport.objects.filter(listing=listing).count()
        if count >= REPORT_REVIEW_THRESHOLD and listing.moderation_status != ModerationStatus.PENDING:
            fields = apply_transition(listing, Transition.FLAG_FOR_REVIEW)
            listing.save(update_fields=fields + ["updated_at"])
            logger.info("listing flagged for review", extra={"listing_id": listing.id})

    return report, count


def record_view(listing: Listing, viewer) -> None:
    """Count one view per fetch, never the seller's own."""

    if viewer is not None and getattr(viewer, "id", None) == listing.seller_id:
        return
    Listing.objects.filter(pk=listing.pk).update(view_count=F("view_count") + 1)
    listing.view_count += 1


def toggle_favorite(user, listing_id: int) -> tuple[bool, int]:
    """Flip the favorite row and the listing counter together.

    The user row lock serializes concurrent toggles by the same user.
    """

    with transaction.atomic():
        User.objects.select_for_update().filter(pk=user.id).first()
        if not Listing.objects.filter(pk=listing_id).exists():
            raise errors.NotFoundError("Listing not found")

        deleted, _ = Favorite.objects.filter(user_id=user.id, listing_id=listing_id).delete()
        if deleted:
            Listing.objects.filter(pk=listing_id, favorites_count__gt=0).update(
                favorites_count=F("favorites_count") - 1
            )
            favorited = False
        else:
            Favorite.objects.create(user_id=user.id, listing_id=listing_id)
            Listing.objects.filter(pk=listing_id).update(favorites_count=F("favorites_count") + 1)
            favorited = True

        count = Listing.objects.values_list("favorites_count", flat=True).get(pk=listing_id)

    return favorited, count


def is_favorited(user, listing: Listing) -> bool:
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    return Favorite.objects.filter(user_id=user.id, listing_id=listing.id).exists()


def get_listing_for_viewer(viewer, listing_id: int, *, now: datetime | None = None, count_view: bool = True) -> Listing:
    listing = (
        Listing.objects.select_related("seller")
        .prefetch_related("images")
        .filter(pk=listing_id)
        .first()
    )
    if listing is None or listing.is_past_grace(now):
        raise errors.NotFoundError("Listing not found")

    privileged = viewer is not None and (
        getattr(viewer, "id", None) == listing.seller_id or _is_admin(viewer)
    )
    if listing.moderation_status != ModerationStatus.APPROVED and not privileged:
        raise errors.AuthorizationError("This listing is pending review")

    if count_view:
        record_view(listing, viewer)
    return listing


def similar_listings(listing: Listing, *, limit: int = 4):
    return (
        Listing.objects.live()
        .filter(category=listing.category)
        .exclude(pk=listing.pk)
        .select_related("seller")
        .prefetch_related("images")[:limit]
    )


def marketplace_stats() -> dict:
    live = Listing.objects.live()
    categories = {
        row["category"]: row["count"]
        for row in live.values("category").annotate(count=Count("id")).order_by("category")
    }
    return {
        "active_listings": live.count(),
        "sold_listings": Listing.objects.filter(status=ListingStatus.SOLD).count(),
        "members": User.objects.filter(is_active=True).count(),
        "categories": categories,
    }


def seller_counts(user) -> dict:
    own = Listing.objects.filter(seller=user, is_deleted=False)
    return {
        "active": own.filter(status=ListingStatus.ACTIVE).count(),
        "sold": own.filter(status=ListingStatus.SOLD).count(),
        "favorites": Favorite.objects.filter(user=user).count(),
    }


def delete_info(listing: Listing) -> dict | None:
    if not listing.is_deleted:
        return None
    return {
        "is_deleted": True,
        "deleted_at": listing.deleted_at,
        "reason": listing.delete_reason,
        "message": "This item has been sold or is no longer available",
    }
