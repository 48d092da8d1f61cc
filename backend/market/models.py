from __future__ import annotations

from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


# Soft-deleted listings stay readable (shown as sold) for this long, then the
# retention sweeper purges them. Read path and sweeper share this constant.
SOFT_DELETE_GRACE = timedelta(days=2)


def grace_cutoff(now: datetime | None = None) -> datetime:
    return (now or timezone.now()) - SOFT_DELETE_GRACE


class TimestampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ListingCategory(models.TextChoices):
    FURNITURE = "furniture", "Furniture"
    ELECTRONICS = "electronics", "Electronics"
    BOOKS = "books", "Books"
    KITCHEN = "kitchen", "Kitchen"
    CLOTHING = "clothing", "Clothing"
    SPORTS = "sports", "Sports"
    TOYS = "toys", "Toys"
    OTHER = "other", "Other"


class ListingCondition(models.TextChoices):
    NEW = "new", "New"
    LIKE_NEW = "like_new", "Like New"
    GOOD = "good", "Good"
    FAIR = "fair", "Fair"


class LocationArea(models.TextChoices):
    MAADI = "maadi", "Maadi"
    NEW_CAIRO = "new_cairo", "New Cairo"
    ZAMALEK = "zamalek", "Zamalek"
    DOWNTOWN = "downtown", "Downtown"
    HELIOPOLIS = "heliopolis", "Heliopolis"
    NASR_CITY = "nasr_city", "Nasr City"
    SHEIKH_ZAYED = "sheikh_zayed", "Sheikh Zayed"
    SIXTH_OF_OCTOBER = "6th_of_october", "6th of October"
    GIZA = "giza", "Giza"
    MOHANDESSIN = "mohandessin", "Mohandessin"
    DOKKI = "dokki", "Dokki"
    TAGAMOA = "tagamoa", "Tagamoa"
    REHAB = "rehab", "Rehab"
    MADINET_NASR = "madinet_nasr", "Madinet Nasr"
    EL_MOKATTAM = "el_mokattam", "El Mokattam"
    AIN_SHAMS = "ain_shams", "Ain Shams"
    SHUBRA = "shubra", "Shubra"
    OTHER = "other", "Other"


class ListingStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    SOLD = "sold", "Sold"
    PENDING = "pending", "Pending"
    REMOVED = "removed", "Removed"


class ModerationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class DeleteReason(models.TextChoices):
    ITEM_SOLD = "item_sold", "Item Sold"
    NO_LONGER_AVAILABLE = "no_longer_available", "No Longer Available"
    POSTED_BY_MISTAKE = "posted_by_mistake", "Posted by Mistake"
    PRICE_CHANGED = "price_changed", "Price Changed"
    FOUND_BETTER_BUYER = "found_better_buyer", "Found Better Buyer"
    ITEM_DAMAGED = "item_damaged", "Item Damaged"
    OTHER = "other", "Other"


class ListingQuerySet(models.QuerySet):
    def publicly_visible(self, now: datetime | None = None):
        cutoff = grace_cutoff(now)
        live = Q(status=ListingStatus.ACTIVE, is_deleted=False)
        in_grace = Q(is_deleted=True, deleted_at__gte=cutoff)
        return self.filter(Q(moderation_status=ModerationStatus.APPROVED) & (live | in_grace))

    def live(self):
        return self.filter(
            moderation_status=ModerationStatus.APPROVED,
            status=ListingStatus.ACTIVE,
            is_deleted=False,
        )

    def purgeable(self, now: datetime | None = None):
        return self.filter(is_deleted=True, deleted_at__lte=grace_cutoff(now))


class Listing(TimestampedModel):
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="listings")

    title = models.CharField(max_length=100)
    description = models.TextField(max_length=2000)
    price = models.PositiveIntegerField()

    category = models.CharField(max_length=20, choices=ListingCategory.choices)
    condition = models.CharField(max_length=16, choices=ListingCondition.choices)
    location_area = models.CharField(max_length=20, choices=LocationArea.choices)
    location_city = models.CharField(max_length=60, default="Cairo")

    status = models.CharField(max_length=16, choices=ListingStatus.choices, default=ListingStatus.ACTIVE)
    moderation_status = models.CharField(
        max_length=16,
        choices=ModerationStatus.choices,
        default=ModerationStatus.PENDING,
    )
    moderation_note = models.TextField(blank=True)

    is_featured = models.BooleanField(default=False)
    view_count = models.PositiveIntegerField(default=0)
    favorites_count = models.PositiveIntegerField(default=0)

    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    delete_reason = models.CharField(max_length=32, choices=DeleteReason.choices, blank=True)

    objects = ListingQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["moderation_status", "status", "is_deleted", "created_at"], name="listing_visible_idx"),
            models.Index(fields=["seller", "created_at"], name="listing_seller_idx"),
            models.Index(fields=["category", "created_at"], name="listing_category_idx"),
            models.Index(fields=["is_deleted", "deleted_at"], name="listing_deleted_idx"),
            models.Index(fields=["view_count"], name="listing_views_idx"),
        ]
        ordering = ["-created_at"]

    def clean(self):
        if self.price is not None and self.price < 1:
            raise ValidationError({"price": "Price must be at least 1"})

    def is_publicly_visible(self, now: datetime | None = None) -> bool:
        if self.moderation_status != ModerationStatus.APPROVED:
            return False
        if self.is_deleted:
            return self.deleted_at is not None and self.deleted_at >= grace_cutoff(now)
        return self.status == ListingStatus.ACTIVE

    def is_past_grace(self, now: datetime | None = None) -> bool:
        return bool(self.is_deleted and self.deleted_at and self.deleted_at < grace_cutoff(now))

    def __str__(self) -> str:
        return self.title


def listing_image_upload_to(instance: "ListingImage", filename: str) -> str:
    return f"listings/{instance.listing_id}/{filename}"


class ListingImage(TimestampedModel):
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="images")
    image = models.ImageField(upload_to=listing_image_upload_to)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return f"ListingImage({self.listing_id})"


class Favorite(TimestampedModel):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="favorites")
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="favorited_by")

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "listing"], name="uq_favorite_user_listing"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Favorite({self.user_id}, {self.listing_id})"
