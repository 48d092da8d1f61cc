"""Retention sweeper: permanently remove listings past the soft-delete grace."""

from __future__ import annotations

import logging
from datetime import datetime

from django.db import transaction
from django.utils import timezone

from .images import delete_stored_files
from .models import Listing, ListingImage

logger = logging.getLogger("souqify.retention")


def purge_expired_listings(now: datetime | None = None) -> int:
    now = now or timezone.now()

    with transaction.atomic():
        ids = list(Listing.objects.purgeable(now).values_list("id", flat=True))
        if not ids:
            logger.info("retention sweep finished", extra={"purged": 0})
            return 0

        names = list(ListingImage.objects.filter(listing_id__in=ids).values_list("image", flat=True))
        Listing.objects.filter(id__in=ids).delete()
        transaction.on_commit(lambda: delete_stored_files(names))

    logger.info("retention sweep finished", extra={"purged": len(ids)})
    return len(ids)


def backlog(now: datetime | None = None) -> int:
    """Listings already past grace that the next sweep will remove."""

    return Listing.objects.purgeable(now).count()
