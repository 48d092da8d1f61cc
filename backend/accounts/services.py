from __future__ import annotations

import logging

from django.db import transaction

from souqify_backend import errors

from .models import User

logger = logging.getLogger("souqify.accounts")

MIN_RATING = 1
MAX_RATING = 5


def rate_user(rater: User, target_id: int, rating: int) -> User:
    """Fold one rating into the target's running average (one decimal)."""

    if rater.id == target_id:
        raise errors.ValidationError("Cannot rate yourself")
    if not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise errors.ValidationError("Rating must be between 1 and 5")

    with transaction.atomic():
        target = User.objects.select_for_update().filter(pk=target_id).first()
        if target is None:
            raise errors.NotFoundError("User not found")

        total = target.rating_average * target.rating_count + rating
        target.rating_count += 1
        target.rating_average = round(total / target.rating_count, 1)
        target.save(update_fields=["rating_average", "rating_count"])

    return target


def change_password(user: User, *, current_password: str, new_password: str) -> None:
    if not user.check_password(current_password):
        raise errors.ValidationError("Current password is incorrect")
    user.set_password(new_password)
    user.save(update_fields=["password"])


def _get_other_user(admin: User, user_id: int) -> User:
    if admin.id == user_id:
        raise errors.ValidationError("You cannot change your own account")
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise errors.NotFoundError("User not found")
    return user


def toggle_admin(admin: User, user_id: int) -> User:
    user = _get_other_user(admin, user_id)
    user.is_staff = not user.is_staff
    user.save(update_fields=["is_staff"])
    logger.info("admin role toggled", extra={"user_id": user.id, "action": "role"})
    return user


def toggle_active(admin: User, user_id: int) -> User:
    user = _get_other_user(admin, user_id)
    user.is_active = not user.is_active
    user.save(update_fields=["is_active"])
    logger.info("account status toggled", extra={"user_id": user.id, "action": "status"})
    return user
