from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .admin_views import (
    AdminListingViewSet,
    AdminReportsView,
    AdminStatsView,
    AdminUserViewSet,
    AdminVerificationViewSet,
)
from .auth_views import RegisterView, ThrottledTokenObtainPairView, ThrottledTokenRefreshView
from .views import (
    ConversationViewSet,
    HealthView,
    ListingViewSet,
    MeView,
    MyFavoritesView,
    MyListingsView,
    NotificationViewSet,
    OriginalMessageView,
    PasswordChangeView,
    UserViewSet,
    VerificationSubmitView,
    VerificationView,
)

router = DefaultRouter()
router.register(r"listings", ListingViewSet, basename="listing")
router.register(r"users", UserViewSet, basename="user")
router.register(r"conversations", ConversationViewSet, basename="conversation")
router.register(r"notifications", NotificationViewSet, basename="notification")
router.register(r"admin/users", AdminUserViewSet, basename="admin-user")
router.register(r"admin/listings", AdminListingViewSet, basename="admin-listing")
router.register(r"admin/verifications", AdminVerificationViewSet, basename="admin-verification")

urlpatterns = [
    path("health/", HealthView.as_view(), name="v1-health"),
    path("auth/register/", RegisterView.as_view(), name="v1-register"),
    path("auth/login/", ThrottledTokenObtainPairView.as_view(), name="v1-login"),
    path("auth/token/refresh/", ThrottledTokenRefreshView.as_view(), name="v1-token-refresh"),
    path("me/", MeView.as_view(), name="v1-me"),
    path("me/password/", PasswordChangeView.as_view(), name="v1-me-password"),
    path("me/listings/", MyListingsView.as_view(), name="v1-me-listings"),
    path("me/favorites/", MyFavoritesView.as_view(), name="v1-me-favorites"),
    path("verification/", VerificationView.as_view(), name="v1-verification"),
    path("verification/submit/", VerificationSubmitView.as_view(), name="v1-verification-submit"),
    path("messages/<int:message_id>/original/", OriginalMessageView.as_view(), name="v1-message-original"),
    path("admin/stats/", AdminStatsView.as_view(), name="v1-admin-stats"),
    path("admin/reports/", AdminReportsView.as_view(), name="v1-admin-reports"),
    path("", include(router.urls)),
]
