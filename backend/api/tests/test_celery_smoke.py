from datetime import timedelta

import pytest
from django.utils import timezone

from market.models import Listing
from market.tasks import purge_expired_listings

from .helpers import make_listing, make_user


@pytest.mark.django_db
def test_retention_task_runs_eagerly():
    seller = make_user("seller@example.com", verified=True)
    expired = make_listing(seller, is_deleted=True, deleted_at=timezone.now() - timedelta(days=3))
    make_listing(seller, is_deleted=True, deleted_at=timezone.now() - timedelta(days=1))

    result = purge_expired_listings.delay().get(timeout=5)

    assert result == 1
    assert not Listing.objects.filter(pk=expired.pk).exists()
    assert Listing.objects.count() == 1
