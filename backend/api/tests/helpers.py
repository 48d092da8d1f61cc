import io

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from PIL import Image

from accounts.models import DocumentType, IdentityVerification, VerificationStatus
from market.models import (
    Listing,
    ListingCategory,
    ListingCondition,
    ListingStatus,
    LocationArea,
    ModerationStatus,
)

User = get_user_model()

PASSWORD = "pass1234"


def make_user(email, *, name=None, verified=False, is_staff=False):
    user = User.objects.create_user(
        email,
        PASSWORD,
        name=name or email.split("@")[0].title(),
        is_staff=is_staff,
    )
    if verified:
        IdentityVerification.objects.create(
            user=user,
            status=VerificationStatus.APPROVED,
            document_type=DocumentType.PASSPORT,
            submitted_at=timezone.now(),
            reviewed_at=timezone.now(),
        )
    return user


def make_listing(seller, **overrides):
    fields = {
        "title": "Oak desk",
        "description": "Solid desk, light scratches",
        "price": 500,
        "category": ListingCategory.FURNITURE,
        "condition": ListingCondition.GOOD,
        "location_area": LocationArea.MAADI,
        "status": ListingStatus.ACTIVE,
        "moderation_status": ModerationStatus.APPROVED,
    }
    fields.update(overrides)
    return Listing.objects.create(seller=seller, **fields)


def jpeg_bytes(size=(64, 64), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


def jpeg_upload(name="photo.jpg", **kwargs):
    return SimpleUploadedFile(name, jpeg_bytes(**kwargs), content_type="image/jpeg")
