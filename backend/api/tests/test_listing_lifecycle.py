import pytest
from django.contrib.auth import get_user_model
from django.core import mail
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from market import lifecycle
from market.lifecycle import ListingState, Transition, apply_transition, state_of
from market.models import Listing, ListingImage, ListingStatus, ModerationStatus
from notifications.models import Notification, NotificationKind
from souqify_backend import errors

from .helpers import jpeg_upload, make_listing, make_user

User = get_user_model()


class ListingLifecycleApiTests(APITestCase):
    def setUp(self):
        self.seller = make_user("seller@example.com", name="Mona", verified=True)
        self.admin = make_user("admin@example.com", is_staff=True)
        self.buyer = make_user("buyer@example.com")

    def _create(self, **extra):
        self.client.force_authenticate(self.seller)
        payload = {
            "title": "Road bike",
            "description": "Aluminium frame, 21 gears",
            "price": "2500",
            "category": "sports",
            "condition": "good",
            "location_area": "heliopolis",
        }
        payload.update(extra)
        return self.client.post(reverse("listing-list"), payload, format="multipart")

    def _moderate(self, listing_id, action, note=""):
        self.client.force_authenticate(self.admin)
        url = reverse("admin-listing-moderate", kwargs={"pk": listing_id})
        return self.client.post(url, {"action": action, "note": note}, format="json")

    def test_create_compresses_images_and_waits_for_review(self):
        r = self._create(images=[jpeg_upload("a.png", size=(900, 600)), jpeg_upload("b.jpg")])
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["moderation_status"], ModerationStatus.PENDING)
        self.assertEqual(len(r.data["images"]), 2)
        self.assertEqual([img["sort_order"] for img in r.data["images"]], [0, 1])

        names = list(ListingImage.objects.order_by("sort_order").values_list("image", flat=True))
        self.assertTrue(all(name.endswith(".jpg") for name in names))

        # Pending listings are not in the public feed.
        self.client.force_authenticate(None)
        feed = self.client.get(reverse("listing-list"))
        self.assertEqual(feed.data["count"], 0)

    def test_non_image_upload_is_rejected(self):
        from django.core.files.uploadedfile import SimpleUploadedFile

        bogus = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
        r = self._create(images=[bogus])
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["error"]["message"], "Only image files are allowed")
        self.assertEqual(Listing.objects.count(), 0)

    def test_approve_goes_live_and_notifies_seller(self):
        listing_id = self._create().data["id"]

        with self.captureOnCommitCallbacks(execute=True):
            r = self._moderate(listing_id, "approve")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["moderation_status"], ModerationStatus.APPROVED)

        note = Notification.objects.get(user=self.seller)
        self.assertEqual(note.kind, NotificationKind.LISTING)
        self.assertEqual(note.title, "Listing Approved!")
        self.assertEqual(note.body, 'Your listing "Road bike" has been approved and is now live!')
        self.assertEqual(note.related_id, listing_id)
        self.assertEqual(mail.outbox[0].subject, "MySouqify - Your listing is live")

        self.client.force_authenticate(None)
        feed = self.client.get(reverse("listing-list"))
        self.assertEqual([row["id"] for row in feed.data["results"]], [listing_id])

    def test_reject_removes_and_defaults_reason(self):
        listing_id = self._create().data["id"]

        with self.captureOnCommitCallbacks(execute=True):
            r = self._moderate(listing_id, "reject")
        self.assertEqual(r.status_code, status.HTTP_200_OK)

        listing = Listing.objects.get(pk=listing_id)
        self.assertEqual(listing.status, ListingStatus.REMOVED)
        self.assertEqual(listing.moderation_status, ModerationStatus.REJECTED)

        note = Notification.objects.get(user=self.seller)
        self.assertEqual(note.body, 'Your listing "Road bike" was rejected. Reason: Policy violation')
        self.assertEqual(mail.outbox[0].subject, "MySouqify - Listing Update")

        # A later approval restores the listing.
        self._moderate(listing_id, "approve")
        listing.refresh_from_db()
        self.assertEqual(listing.status, ListingStatus.ACTIVE)

    def test_non_admin_cannot_moderate(self):
        listing_id = self._create().data["id"]
        self.client.force_authenticate(self.buyer)
        url = reverse("admin-listing-moderate", kwargs={"pk": listing_id})
        r = self.client.post(url, {"action": "approve"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_pending_listing_detail_only_for_owner_and_admin(self):
        listing_id = self._create().data["id"]
        url = reverse("listing-detail", kwargs={"pk": listing_id})

        self.client.force_authenticate(self.buyer)
        r = self.client.get(url)
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(r.data["detail"], "This listing is pending review")

        self.client.force_authenticate(self.seller)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

    def test_mark_sold_counts_one_sale(self):
        listing = make_listing(self.seller)
        url = reverse("listing-sold", kwargs={"pk": listing.id})

        self.client.force_authenticate(self.buyer)
        self.assertEqual(self.client.post(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.seller)
        r = self.client.post(url)
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["status"], ListingStatus.SOLD)

        again = self.client.post(url)
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(User.objects.get(pk=self.seller.pk).sales_count, 1)

    def test_listing_under_review_sells_only_once(self):
        listing = make_listing(self.seller, moderation_status=ModerationStatus.PENDING)
        url = reverse("listing-sold", kwargs={"pk": listing.id})

        self.client.force_authenticate(self.seller)
        self.assertEqual(self.client.post(url).status_code, status.HTTP_200_OK)
        again = self.client.post(url)
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["detail"], "Listing cannot be marked as sold")
        self.assertEqual(User.objects.get(pk=self.seller.pk).sales_count, 1)

    def test_non_numeric_listing_id_is_not_found(self):
        self.assertEqual(self.client.get("/api/v1/listings/abc/").status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.admin)
        r = self.client.post("/api/v1/admin/listings/abc/moderate/", {"action": "approve"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_owner_edit_appends_images(self):
        listing_id = self._create(images=[jpeg_upload("first.jpg")]).data["id"]
        url = reverse("listing-detail", kwargs={"pk": listing_id})

        r = self.client.patch(url, {"price": "2300", "images": [jpeg_upload("second.jpg")]}, format="multipart")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["price"], 2300)
        self.assertEqual([img["sort_order"] for img in r.data["images"]], [0, 1])

    def test_only_owner_or_admin_may_edit(self):
        listing = make_listing(self.seller)
        url = reverse("listing-detail", kwargs={"pk": listing.id})

        self.client.force_authenticate(self.buyer)
        self.assertEqual(self.client.patch(url, {"price": 1}, format="json").status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        r = self.client.patch(url, {"is_featured": True}, format="json")
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data["is_featured"])

        # Sellers cannot feature their own listings.
        self.client.force_authenticate(self.seller)
        self.client.patch(url, {"is_featured": False}, format="json")
        listing.refresh_from_db()
        self.assertTrue(listing.is_featured)

    def test_edit_keeps_approval_unless_review_is_required(self):
        listing = make_listing(self.seller)
        url = reverse("listing-detail", kwargs={"pk": listing.id})
        self.client.force_authenticate(self.seller)

        self.client.patch(url, {"title": "Oak desk, repainted"}, format="json")
        listing.refresh_from_db()
        self.assertEqual(listing.moderation_status, ModerationStatus.APPROVED)

        with self.settings(LISTING_EDIT_REQUIRES_REVIEW=True):
            self.client.patch(url, {"title": "Oak desk, repainted again"}, format="json")
        listing.refresh_from_db()
        self.assertEqual(listing.moderation_status, ModerationStatus.PENDING)


@pytest.mark.django_db
def test_state_machine_rejects_illegal_transitions():
    seller = make_user("s@example.com")
    listing = make_listing(seller, status=ListingStatus.SOLD)
    assert state_of(listing) == ListingState.SOLD

    with pytest.raises(errors.ConflictError):
        apply_transition(listing, Transition.MARK_SOLD)

    apply_transition(listing, Transition.SOFT_DELETE, reason="item_sold")
    assert state_of(listing) == ListingState.SOFT_DELETED

    for transition in (Transition.APPROVE, Transition.REJECT, Transition.SOFT_DELETE):
        with pytest.raises(errors.ConflictError):
            apply_transition(listing, transition, reason="other")


@pytest.mark.django_db
def test_soft_delete_needs_a_known_reason():
    listing = make_listing(make_user("s@example.com"))
    with pytest.raises(errors.ValidationError):
        lifecycle.apply_transition(listing, Transition.SOFT_DELETE, reason="bored")
    assert listing.is_deleted is False


@pytest.mark.django_db
def test_sold_listing_flagged_back_to_review_cannot_sell_again():
    listing = make_listing(
        make_user("s@example.com"),
        status=ListingStatus.SOLD,
        moderation_status=ModerationStatus.PENDING,
    )
    assert state_of(listing) == ListingState.PENDING_REVIEW

    with pytest.raises(errors.ConflictError):
        apply_transition(listing, Transition.MARK_SOLD)
    assert listing.status == ListingStatus.SOLD
