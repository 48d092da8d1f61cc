from django.utils import timezone
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User


class ActiveUserJWTAuthentication(JWTAuthentication):
    """Bearer-token auth that rejects deactivated accounts and tracks last_seen."""

    def get_user(self, validated_token):
        # simplejwt already raises AuthenticationFailed for inactive users.
        user = super().get_user(validated_token)
        User.objects.filter(pk=user.pk).update(last_seen=timezone.now())
        return user


def tokens_for_user(user: User) -> dict:
    refresh = RefreshToken.for_user(user)
    refresh["email"] = user.email
    refresh["is_admin"] = bool(user.is_staff)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}
