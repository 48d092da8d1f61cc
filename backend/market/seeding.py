from __future__ import annotations

import random
import secrets
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from accounts.models import DocumentType, IdentityVerification, VerificationStatus
from market.models import Listing, ListingCategory, ListingCondition, ListingStatus, LocationArea, ModerationStatus
from messaging.models import Conversation
from notifications.models import Notification


User = get_user_model()

SAMPLE_PASSWORD = "password123"

SAMPLE_USERS = [
    ("Ahmed Hassan", LocationArea.MAADI),
    ("Sara Mahmoud", LocationArea.ZAMALEK),
    ("Omar Khaled", LocationArea.NEW_CAIRO),
    ("Nour Adel", LocationArea.HELIOPOLIS),
    ("Youssef Ali", LocationArea.DOKKI),
    ("Mariam Samir", LocationArea.SHEIKH_ZAYED),
]

SAMPLE_ITEMS = {
    ListingCategory.FURNITURE: ["Wooden desk", "Office chair", "Bookshelf", "Sofa bed"],
    ListingCategory.ELECTRONICS: ["Laptop stand", "Bluetooth speaker", "Monitor 24 inch", "Wireless mouse"],
    ListingCategory.BOOKS: ["Calculus textbook", "Arabic novels bundle", "Programming books set"],
    ListingCategory.KITCHEN: ["Microwave", "Kettle", "Cookware set"],
    ListingCategory.CLOTHING: ["Winter jacket", "Running shoes"],
    ListingCategory.SPORTS: ["Bicycle", "Yoga mat", "Dumbbells pair"],
    ListingCategory.TOYS: ["Lego set", "Board games bundle"],
    ListingCategory.OTHER: ["Desk lamp", "Suitcase"],
}


@dataclass
class SeedResult:
    admin_email: str
    admin_password: str
    created: dict[str, int] = field(default_factory=dict)
    deleted: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "admin_email": self.admin_email,
            "created": self.created,
            "deleted": self.deleted,
        }


def _inc(d: dict[str, int], key: str, n: int = 1) -> None:
    d[key] = int(d.get(key, 0)) + int(n)


def is_admin_seeding_enabled() -> bool:
    # Default safe behavior: allow in DEBUG only unless explicitly enabled.
    enabled = getattr(settings, "ADMIN_SEEDING_ENABLED", None)
    if enabled is None:
        return bool(getattr(settings, "DEBUG", False))
    return bool(enabled)


def clear_store(result: SeedResult) -> None:
    for label, model in (
        ("notifications", Notification),
        ("conversations", Conversation),
        ("listings", Listing),
        ("users", User),
    ):
        deleted, _ = model.objects.all().delete()
        _inc(result.deleted, label, deleted)


def _verify(user, *, reviewer) -> None:
    IdentityVerification.objects.update_or_create(
        user=user,
        defaults={
            "status": VerificationStatus.APPROVED,
            "document_type": DocumentType.PASSPORT,
            "document_images": [],
            "submitted_at": timezone.now(),
            "reviewed_at": timezone.now(),
            "reviewed_by": reviewer,
        },
    )


def seed_marketplace(
    *,
    users: int = 4,
    listings_per_user: int = 3,
    admin_email: str = "admin@souqify.local",
    rng_seed: int | None = 1337,
) -> SeedResult:
    """Wipe the store and repopulate it with an admin and sample data.

    The admin password is random and only returned, never stored in clear.
    """

    rnd = random.Random(rng_seed)
    result = SeedResult(admin_email=admin_email, admin_password=secrets.token_hex(8))

    with transaction.atomic():
        clear_store(result)

        admin = User.objects.create_superuser(admin_email, result.admin_password, name="Admin")
        _verify(admin, reviewer=admin)
        _inc(result.created, "users")

        categories = list(SAMPLE_ITEMS)
        for i in range(max(0, int(users))):
            name, area = SAMPLE_USERS[i % len(SAMPLE_USERS)]
            user = User.objects.create_user(
                f"user{i + 1}@souqify.local",
                SAMPLE_PASSWORD,
                name=name,
                location_area=area,
            )
            _verify(user, reviewer=admin)
            _inc(result.created, "users")

            for _ in range(max(0, int(listings_per_user))):
                category = rnd.choice(categories)
                title = rnd.choice(SAMPLE_ITEMS[category])
                Listing.objects.create(
                    seller=user,
                    title=title,
                    description=f"{title} in good shape. Pickup from {area.label}.",
                    price=rnd.randint(50, 5000),
                    category=category,
                    condition=rnd.choice(ListingCondition.values),
                    location_area=area,
                    status=ListingStatus.ACTIVE,
                    moderation_status=ModerationStatus.APPROVED,
                    is_featured=rnd.random() < 0.2,
                )
                _inc(result.created, "listings")

    return result
