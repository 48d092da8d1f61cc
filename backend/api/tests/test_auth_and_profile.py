import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from .helpers import PASSWORD, make_listing, make_user


class AuthApiTests(APITestCase):
    def test_register_returns_tokens(self):
        r = self.client.post(
            reverse("v1-register"),
            {"name": "Laila", "email": "Laila@Example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(r.data["user"]["email"], "laila@example.com")
        self.assertEqual(r.data["user"]["verification_status"], "unverified")
        self.assertIn("access", r.data)
        self.assertIn("refresh", r.data)

        again = self.client.post(
            reverse("v1-register"),
            {"name": "Laila", "email": "laila@example.com", "password": "secret1"},
            format="json",
        )
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(again.data["error"]["message"], "User already exists with this email")

    def test_short_password_is_rejected(self):
        r = self.client.post(
            reverse("v1-register"),
            {"name": "Laila", "email": "l@example.com", "password": "123"},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_token_carries_claims_and_authenticates(self):
        make_user("admin@example.com", is_staff=True)
        r = self.client.post(
            reverse("v1-login"),
            {"email": "admin@example.com", "password": PASSWORD},
            format="json",
        )
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        token = AccessToken(r.data["access"])
        self.assertEqual(token["email"], "admin@example.com")
        self.assertTrue(token["is_admin"])
        self.assertTrue(r.data["user"]["is_admin"])

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['access']}")
        me = self.client.get(reverse("v1-me"))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data["email"], "admin@example.com")

    def test_deactivated_account_token_is_refused(self):
        user = make_user("gone@example.com")
        r = self.client.post(reverse("v1-login"), {"email": "gone@example.com", "password": PASSWORD}, format="json")
        access = r.data["access"]

        user.is_active = False
        user.save(update_fields=["is_active"])

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        self.assertEqual(self.client.get(reverse("v1-me")).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_wrong_password(self):
        make_user("u@example.com")
        r = self.client.post(reverse("v1-login"), {"email": "u@example.com", "password": "nope"}, format="json")
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)


@pytest.mark.django_db
def test_profile_update_and_password_change():
    user = make_user("me@example.com", name="Old")
    client = APIClient()
    client.force_authenticate(user)

    r = client.patch(reverse("v1-me"), {"name": "New Name", "location_area": "dokki"}, format="json")
    assert r.status_code == 200
    assert r.data["name"] == "New Name"
    assert r.data["location"] == {"area": "dokki", "city": "Cairo"}

    bad = client.post(reverse("v1-me-password"), {"current_password": "wrong", "new_password": "newpass1"}, format="json")
    assert bad.status_code == 400
    assert bad.data["detail"] == "Current password is incorrect"

    ok = client.post(reverse("v1-me-password"), {"current_password": PASSWORD, "new_password": "newpass1"}, format="json")
    assert ok.status_code == 200
    user.refresh_from_db()
    assert user.check_password("newpass1")


@pytest.mark.django_db
def test_my_listings_with_counts():
    seller = make_user("seller@example.com")
    active = make_listing(seller)
    make_listing(seller, title="Sold", status="sold")
    make_listing(seller, title="Deleted", is_deleted=True)

    client = APIClient()
    client.force_authenticate(seller)
    r = client.get(reverse("v1-me-listings"))
    assert r.status_code == 200
    assert r.data["counts"] == {"active": 1, "sold": 1, "favorites": 0}
    assert len(r.data["listings"]) == 2

    only_active = client.get(reverse("v1-me-listings"), {"status": "active"})
    assert [row["id"] for row in only_active.data["listings"]] == [active.id]
