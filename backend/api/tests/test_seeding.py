from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError

from accounts.models import IdentityVerification, VerificationStatus
from market.models import Listing, ModerationStatus
from market.seeding import seed_marketplace

from .helpers import make_listing, make_user

User = get_user_model()


@pytest.mark.django_db
def test_seed_replaces_existing_data():
    make_listing(make_user("old@example.com"))

    result = seed_marketplace(users=2, listings_per_user=2)

    assert not User.objects.filter(email="old@example.com").exists()
    assert result.deleted["users"] == 1
    assert result.created == {"users": 3, "listings": 4}
    assert Listing.objects.filter(moderation_status=ModerationStatus.APPROVED).count() == 4
    assert IdentityVerification.objects.filter(status=VerificationStatus.APPROVED).count() == 3

    admin = User.objects.get(email="admin@souqify.local")
    assert admin.is_staff
    assert admin.check_password(result.admin_password)


@pytest.mark.django_db
def test_seed_command_is_guarded(settings):
    settings.ADMIN_SEEDING_ENABLED = False
    with pytest.raises(CommandError):
        call_command("seed_marketplace")


@pytest.mark.django_db
def test_seed_command_prints_admin_credentials_once(settings):
    settings.ADMIN_SEEDING_ENABLED = True
    out = StringIO()
    call_command("seed_marketplace", "--users", "1", "--listings-per-user", "1", "--admin-email", "ops@example.com", stdout=out)

    output = out.getvalue()
    assert output.count("Admin login: ops@example.com / ") == 1
    assert Listing.objects.count() == 1
