"""Identity-verification state machine.

unverified -> pending -> approved | rejected, and rejected -> pending on
resubmission. Approved is terminal. Every transition is a compare-and-set
on the current status so a review can never land on a submission that has
changed underneath it.
"""

from __future__ import annotations

import logging
from typing import Sequence

from django.db import IntegrityError, transaction
from django.utils import timezone

from notifications.email import schedule_email
from notifications.models import NotificationKind
from notifications.services import notify
from souqify_backend import errors

from .models import REQUIRED_DOCUMENT_IMAGES, DocumentType, IdentityVerification, User, VerificationStatus

logger = logging.getLogger("souqify.verification")

SUBMITTABLE_FROM = (VerificationStatus.UNVERIFIED, VerificationStatus.REJECTED)


class ReviewAction:
    APPROVE = "approve"
    REJECT = "reject"

    choices = (APPROVE, REJECT)


def get_verification(user: User) -> IdentityVerification:
    """Return the user's verification record, unsaved and unverified if none exists."""

    verification = IdentityVerification.objects.filter(user_id=user.id).first()
    if verification is None:
        verification = IdentityVerification(user=user)
    return verification


def validate_documents(document_type: str, count: int) -> None:
    if document_type not in DocumentType.values:
        raise errors.ValidationError("Invalid document type")

    required = REQUIRED_DOCUMENT_IMAGES[DocumentType(document_type)]
    if count != required:
        if required == 1:
            raise errors.ValidationError("Please upload one image of your passport")
        raise errors.ValidationError("Please upload both front and back of your ID card")


def submit_verification(user: User, *, document_type: str, documents: Sequence) -> IdentityVerification:
    # Imported lazily: market depends on accounts for the trust gate.
    from market.images import delete_stored_files, store_document_images

    validate_documents(document_type, len(documents))

    with transaction.atomic():
        try:
            verification, _ = IdentityVerification.objects.select_for_update().get_or_create(user=user)
        except IntegrityError:
            raise errors.ConflictError("Verification already pending review")
        if verification.status == VerificationStatus.PENDING:
            raise errors.ConflictError("Verification already pending review")
        if verification.status == VerificationStatus.APPROVED:
            raise errors.ConflictError("Already verified")

        references = store_document_images(user, documents)

        updated = IdentityVerification.objects.filter(
            pk=verification.pk,
            status__in=SUBMITTABLE_FROM,
        ).update(
            status=VerificationStatus.PENDING,
            document_type=document_type,
            document_images=references,
            submitted_at=timezone.now(),
            reviewed_at=None,
            reviewed_by=None,
            rejection_reason="",
        )
        if not updated:
            delete_stored_files(references)
            raise errors.ConflictError("Verification already pending review")

    logger.info(
        "verification submitted",
        extra={"user_id": user.id, "verification_status": VerificationStatus.PENDING},
    )
    verification.refresh_from_db()
    return verification


def review_verification(admin: User, user_id: int, *, action: str, reason: str | None = None) -> IdentityVerification:
    if not getattr(admin, "is_staff", False):
        raise errors.AuthorizationError("Admin access required")
    if action not in ReviewAction.choices:
        raise errors.ValidationError("Invalid action")

    reason = (reason or "").strip()
    if action == ReviewAction.REJECT and not reason:
        raise errors.ValidationError("Rejection reason is required")

    target = User.objects.filter(pk=user_id).first()
    if target is None:
        raise errors.NotFoundError("User not found")

    approved = action == ReviewAction.APPROVE
    new_status = VerificationStatus.APPROVED if approved else VerificationStatus.REJECTED

    with transaction.atomic():
        updated = IdentityVerification.objects.filter(
            user_id=target.id,
            status=VerificationStatus.PENDING,
        ).update(
            status=new_status,
            reviewed_at=timezone.now(),
            reviewed_by=admin,
            rejection_reason="" if approved else reason,
        )
        if not updated:
            raise errors.ConflictError("No pending verification for this user")

        if approved:
            notify(
                target,
                kind=NotificationKind.SYSTEM,
                title="Identity Verified!",
                body="Your identity has been verified. You can now post listings on MySouqify.",
            )
            schedule_email(target.email, "verification_approved", {"name": target.name})
        else:
            notify(
                target,
                kind=NotificationKind.SYSTEM,
                title="Verification Rejected",
                body=f"Your verification was rejected. Reason: {reason}",
            )
            schedule_email(target.email, "verification_rejected", {"name": target.name, "reason": reason})

    logger.info(
        "verification reviewed",
        extra={"user_id": target.id, "action": action, "verification_status": new_status},
    )
    return IdentityVerification.objects.select_related("user", "reviewed_by").get(user_id=target.id)


def is_verified(user: User) -> bool:
    return IdentityVerification.objects.filter(
        user_id=user.id,
        status=VerificationStatus.APPROVED,
    ).exists()


def require_verified(user: User) -> None:
    """Trust gate for actions that need an approved identity."""

    if not is_verified(user):
        raise errors.VerificationRequired()
