import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from notifications import services
from notifications.models import Notification, NotificationKind
from notifications.tasks import render_email, send_templated_email

from .helpers import make_user


class NotificationsApiTests(APITestCase):
    def setUp(self):
        self.user = make_user("user@example.com")
        for i in range(3):
            services.notify(self.user, kind=NotificationKind.SYSTEM, title=f"Note {i}")

    def test_list_is_newest_first_with_unread_count(self):
        self.client.force_authenticate(self.user)
        r = self.client.get(reverse("notification-list"))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([n["title"] for n in r.data["notifications"]], ["Note 2", "Note 1", "Note 0"])
        self.assertEqual(r.data["unread_count"], 3)
        self.assertEqual(r.data["notifications"][0]["type"], "system")
        self.assertFalse(r.data["notifications"][0]["read"])

    def test_mark_one_and_all_read(self):
        self.client.force_authenticate(self.user)
        first = Notification.objects.filter(user=self.user).order_by("id").first()

        r = self.client.post(reverse("notification-read", kwargs={"pk": first.id}))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data["read"])
        self.assertEqual(services.unread_count(self.user), 2)

        r2 = self.client.post(reverse("notification-read-all"))
        self.assertEqual(r2.data, {"updated": 2})
        self.assertEqual(services.unread_count(self.user), 0)

    def test_cannot_read_someone_elses_notification(self):
        other = make_user("other@example.com")
        theirs = services.notify(other, kind=NotificationKind.SYSTEM, title="Private")
        self.client.force_authenticate(self.user)
        r = self.client.post(reverse("notification-read", kwargs={"pk": theirs.id}))
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)


@pytest.mark.django_db
def test_store_keeps_newest_fifty():
    user = make_user("busy@example.com")
    for i in range(55):
        services.notify(user, kind=NotificationKind.MESSAGE, title=f"n{i}")

    kept = list(Notification.objects.filter(user=user).order_by("id").values_list("title", flat=True))
    assert len(kept) == 50
    assert kept[0] == "n5"
    assert kept[-1] == "n54"

    items, unread = services.list_for_user(user)
    assert len(items) == 30
    assert unread == 50


@pytest.mark.django_db
def test_cap_is_per_user():
    a = make_user("a@example.com")
    b = make_user("b@example.com")
    for i in range(51):
        services.notify(a, kind=NotificationKind.SYSTEM, title=f"a{i}")
    services.notify(b, kind=NotificationKind.SYSTEM, title="b0")

    assert Notification.objects.filter(user=a).count() == 50
    assert Notification.objects.filter(user=b).count() == 1


def test_email_templates_render():
    subject, body = render_email("listing_rejected", {"name": "Mona", "title": "Desk", "reason": 'Says "new"'})
    assert subject == "MySouqify - Listing Update"
    assert 'Your listing "Desk" was not approved.' in body
    assert 'Says "new"' in body


def test_failed_send_is_swallowed(settings):
    settings.EMAIL_BACKEND = "does.not.Exist"
    assert send_templated_email("x@example.com", "verification_approved", {"name": "X"}) is False
