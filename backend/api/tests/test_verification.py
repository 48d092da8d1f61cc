from pathlib import Path
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.core import mail
from django.db import IntegrityError
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from accounts import verification as verification_service
from accounts.models import IdentityVerification, VerificationStatus
from notifications.models import Notification, NotificationKind
from souqify_backend import errors

from .helpers import jpeg_upload, make_user

User = get_user_model()


class VerificationApiTests(APITestCase):
    def setUp(self):
        self.user = make_user("omar@example.com", name="Omar")
        self.admin = make_user("admin@example.com", name="Admin", is_staff=True)

    def _submit(self, document_type="passport", count=1):
        self.client.force_authenticate(self.user)
        documents = [jpeg_upload(f"doc{i}.jpg") for i in range(count)]
        return self.client.post(
            reverse("v1-verification-submit"),
            {"document_type": document_type, "documents": documents},
            format="multipart",
        )

    def _review(self, action, reason=None):
        self.client.force_authenticate(self.admin)
        payload = {"action": action}
        if reason is not None:
            payload["reason"] = reason
        url = reverse("admin-verification-review", kwargs={"pk": self.user.id})
        return self.client.post(url, payload, format="json")

    def test_status_is_unverified_before_any_submission(self):
        self.client.force_authenticate(self.user)
        r = self.client.get(reverse("v1-verification"))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["status"], VerificationStatus.UNVERIFIED)
        self.assertEqual(r.data["document_images"], [])

    def test_submit_moves_to_pending_and_stores_documents(self):
        r = self._submit()
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["verification"]["status"], VerificationStatus.PENDING)

        record = IdentityVerification.objects.get(user=self.user)
        self.assertEqual(record.status, VerificationStatus.PENDING)
        self.assertEqual(len(record.document_images), 1)
        self.assertTrue(record.document_images[0].startswith(f"verifications/{self.user.id}/"))
        self.assertIsNotNone(record.submitted_at)

    def test_id_cards_need_front_and_back(self):
        r = self._submit(document_type="student_card", count=1)
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data["detail"], "Please upload both front and back of your ID card")
        self.assertFalse(IdentityVerification.objects.filter(user=self.user).exists())

        r2 = self._submit(document_type="student_card", count=2)
        self.assertEqual(r2.status_code, status.HTTP_201_CREATED)

    def test_second_submission_while_pending_is_a_conflict(self):
        self._submit()
        r = self._submit()
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data["detail"], "Verification already pending review")

    def test_approve_notifies_and_emails_after_commit(self):
        self._submit()

        with self.captureOnCommitCallbacks(execute=True):
            r = self._review("approve")

        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["status"], VerificationStatus.APPROVED)
        self.assertEqual(r.data["reviewed_by"], self.admin.id)

        note = Notification.objects.get(user=self.user)
        self.assertEqual(note.kind, NotificationKind.SYSTEM)
        self.assertEqual(note.title, "Identity Verified!")

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ["omar@example.com"])
        self.assertEqual(mail.outbox[0].subject, "MySouqify - Identity Verified")

        # Re-read: the cached reverse relation on self.user predates the review.
        self.client.force_authenticate(User.objects.get(pk=self.user.pk))
        me = self.client.get(reverse("v1-me"))
        self.assertEqual(me.data["verification_status"], VerificationStatus.APPROVED)
        self.assertTrue(me.data["is_verified"])

    def test_reject_requires_reason_and_allows_resubmission(self):
        self._submit()

        r = self._review("reject")
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

        with self.captureOnCommitCallbacks(execute=True):
            r2 = self._review("reject", reason="Image is blurry")
        self.assertEqual(r2.status_code, status.HTTP_200_OK)
        self.assertEqual(r2.data["rejection_reason"], "Image is blurry")

        note = Notification.objects.get(user=self.user)
        self.assertEqual(note.body, "Your verification was rejected. Reason: Image is blurry")
        self.assertIn("Image is blurry", mail.outbox[0].body)

        r3 = self._submit()
        self.assertEqual(r3.status_code, status.HTTP_201_CREATED)
        record = IdentityVerification.objects.get(user=self.user)
        self.assertEqual(record.status, VerificationStatus.PENDING)
        self.assertEqual(record.rejection_reason, "")
        self.assertIsNone(record.reviewed_by_id)

    def test_review_without_pending_submission_is_a_conflict(self):
        r = self._review("approve")
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)

    def test_non_admin_cannot_review(self):
        self._submit()
        other = make_user("other@example.com")
        self.client.force_authenticate(other)
        url = reverse("admin-verification-review", kwargs={"pk": self.user.id})
        r = self.client.post(url, {"action": "approve"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_list_defaults_to_submitted_records(self):
        self._submit()
        make_user("verified@example.com", verified=True)
        IdentityVerification.objects.create(user=make_user("idle@example.com"))

        self.client.force_authenticate(self.admin)
        r = self.client.get(reverse("admin-verification-list"))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data["pending_count"], 1)
        statuses = sorted(v["status"] for v in r.data["verifications"])
        self.assertEqual(statuses, ["approved", "pending"])

        r2 = self.client.get(reverse("admin-verification-list"), {"status": "pending"})
        self.assertEqual([v["email"] for v in r2.data["verifications"]], ["omar@example.com"])


@pytest.mark.django_db
def test_approved_is_terminal():
    user = make_user("done@example.com", verified=True)
    with pytest.raises(errors.ConflictError):
        verification_service.submit_verification(user, document_type="passport", documents=[jpeg_upload()])


@pytest.mark.django_db
def test_stale_review_cannot_land_twice():
    user = make_user("race@example.com")
    admin = make_user("boss@example.com", is_staff=True)
    verification_service.submit_verification(user, document_type="passport", documents=[jpeg_upload()])

    verification_service.review_verification(admin, user.id, action="approve")
    with pytest.raises(errors.ConflictError):
        verification_service.review_verification(admin, user.id, action="reject", reason="late")

    assert IdentityVerification.objects.get(user=user).status == VerificationStatus.APPROVED


@pytest.mark.django_db
def test_verified_user_can_post_listing():
    seller = make_user("seller@example.com", verified=True)
    client = APIClient()
    client.force_authenticate(seller)
    r = client.post(
        reverse("listing-list"),
        {
            "title": "Bookshelf",
            "description": "Five shelves",
            "price": 300,
            "category": "furniture",
            "condition": "like_new",
            "location_area": "zamalek",
        },
        format="json",
    )
    assert r.status_code == 201
    assert r.data["moderation_status"] == "pending"
    assert r.data["status"] == "active"


@pytest.mark.django_db
def test_admin_list_rows_are_keyed_by_user_for_review():
    admin = make_user("boss@example.com", is_staff=True)
    first = make_user("first@example.com")
    second = make_user("second@example.com")
    third = make_user("third@example.com")
    # Submit in reverse so verification ids and user ids cannot all line up.
    for user in (third, second, first):
        verification_service.submit_verification(user, document_type="passport", documents=[jpeg_upload()])

    client = APIClient()
    client.force_authenticate(admin)
    rows = client.get(reverse("admin-verification-list")).data["verifications"]
    for row in rows:
        assert row["id"] == row["user"]["id"]

    row = next(r for r in rows if r["email"] == "first@example.com")
    r = client.post(reverse("admin-verification-review", kwargs={"pk": row["id"]}), {"action": "approve"}, format="json")
    assert r.status_code == 200
    assert r.data["id"] == first.id

    statuses = dict(IdentityVerification.objects.values_list("user__email", "status"))
    assert statuses == {
        "first@example.com": VerificationStatus.APPROVED,
        "second@example.com": VerificationStatus.PENDING,
        "third@example.com": VerificationStatus.PENDING,
    }


@pytest.mark.django_db
def test_concurrent_first_submission_is_a_conflict():
    user = make_user("twice@example.com")
    with mock.patch.object(IdentityVerification.objects, "select_for_update", side_effect=IntegrityError):
        with pytest.raises(errors.ConflictError):
            verification_service.submit_verification(user, document_type="passport", documents=[jpeg_upload()])


@pytest.mark.django_db
def test_lost_submission_race_removes_stored_documents(settings):
    user = make_user("late@example.com")
    lost = mock.Mock()
    lost.update.return_value = 0
    with mock.patch.object(IdentityVerification.objects, "filter", return_value=lost):
        with pytest.raises(errors.ConflictError):
            verification_service.submit_verification(user, document_type="passport", documents=[jpeg_upload()])

    folder = Path(settings.MEDIA_ROOT) / "verifications" / str(user.id)
    assert folder.is_dir()
    assert [p for p in folder.rglob("*") if p.is_file()] == []
