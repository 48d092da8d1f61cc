from django.contrib.auth import get_user_model
from django.db.models import Count, Max, Q
from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import services as account_services
from accounts import verification as verification_service
from accounts.models import IdentityVerification, VerificationStatus
from market import services as market_services
from market.models import Listing, ListingStatus, ModerationStatus

from .permissions import IsAdmin
from .serializers import (
    AdminListingSerializer,
    AdminUserSerializer,
    AdminVerificationSerializer,
    ListingListSerializer,
    ModerationSerializer,
    VerificationReviewSerializer,
)

User = get_user_model()

RECENT_LIMIT = 5


class AdminStatsView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request):
        month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        users = User.objects.all()
        listings = Listing.objects.all()

        categories = {
            row["category"]: row["count"]
            for row in listings.filter(is_deleted=False).values("category").annotate(count=Count("id")).order_by("category")
        }
        recent_users = users.order_by("-date_joined")[:RECENT_LIMIT]
        recent_listings = (
            listings.select_related("seller").prefetch_related("images").order_by("-created_at", "-id")[:RECENT_LIMIT]
        )

        return Response(
            {
                "users": {
                    "total": users.count(),
                    "active": users.filter(is_active=True).count(),
                    "admins": users.filter(is_staff=True).count(),
                    "new_this_month": users.filter(date_joined__gte=month_start).count(),
                },
                "listings": {
                    "total": listings.count(),
                    "active": listings.live().count(),
                    "sold": listings.filter(status=ListingStatus.SOLD).count(),
                    "pending": listings.filter(moderation_status=ModerationStatus.PENDING).count(),
                    "reported": listings.filter(reports__isnull=False).distinct().count(),
                },
                "categories": categories,
                "recent_users": AdminUserSerializer(recent_users, many=True).data,
                "recent_listings": ListingListSerializer(recent_listings, many=True, context={"request": request}).data,
            }
        )


class AdminUserViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAdmin]
    serializer_class = AdminUserSerializer

    def get_queryset(self):
        qs = User.objects.select_related("verification").order_by("-date_joined")
        params = self.request.query_params

        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search))

        role = params.get("role")
        if role == "admin":
            qs = qs.filter(is_staff=True)
        elif role == "user":
            qs = qs.filter(is_staff=False)

        account_status = params.get("status")
        if account_status == "active":
            qs = qs.filter(is_active=True)
        elif account_status == "inactive":
            qs = qs.filter(is_active=False)
        return qs

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(AdminUserSerializer(page, many=True).data)

    @action(detail=True, methods=["post"])
    def role(self, request, pk=None):
        user = account_services.toggle_admin(request.user, int(pk))
        return Response(AdminUserSerializer(user).data)

    @action(detail=True, methods=["post"], url_path="status")
    def toggle_status(self, request, pk=None):
        user = account_services.toggle_active(request.user, int(pk))
        return Response(AdminUserSerializer(user).data)


class AdminListingViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAdmin]
    serializer_class = AdminListingSerializer

    def get_queryset(self):
        qs = (
            Listing.objects.select_related("seller", "seller__verification")
            .prefetch_related("images")
            .annotate(report_count=Count("reports"))
            .order_by("-created_at", "-id")
        )
        if self.action == "deleted":
            return qs.filter(is_deleted=True).order_by("-deleted_at", "-id")

        params = self.request.query_params
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))
        if params.get("category"):
            qs = qs.filter(category=params["category"])
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("moderation"):
            qs = qs.filter(moderation_status=params["moderation"])
        return qs

    def _page(self, request, qs):
        page = self.paginate_queryset(qs)
        return self.get_paginated_response(AdminListingSerializer(page, many=True, context={"request": request}).data)

    def list(self, request):
        return self._page(request, self.get_queryset())

    @action(detail=False, methods=["get"])
    def deleted(self, request):
        return self._page(request, self.get_queryset())

    @action(detail=True, methods=["post"])
    def moderate(self, request, pk=None):
        serializer = ModerationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        market_services.moderate_listing(
            request.user,
            int(pk),
            action=serializer.validated_data["action"],
            note=serializer.validated_data.get("note", ""),
        )
        listing = self.get_queryset().get(pk=int(pk))
        return Response(AdminListingSerializer(listing, context={"request": request}).data)

    def destroy(self, request, pk=None):
        market_services.hard_delete_listing(request.user, int(pk))
        return Response({"detail": "Listing permanently deleted"})


class AdminReportsView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request):
        listings = (
            Listing.objects.filter(reports__isnull=False)
            .select_related("seller")
            .prefetch_related("images", "reports__reporter")
            .annotate(report_count=Count("reports", distinct=True), last_reported_at=Max("reports__created_at"))
            .order_by("-last_reported_at", "-id")
        )
        data = []
        for listing in listings:
            row = AdminListingSerializer(listing, context={"request": request}).data
            row["reports"] = [
                {
                    "reporter": {"id": report.reporter_id, "name": report.reporter.name},
                    "reason": report.reason,
                    "created_at": report.created_at,
                }
                for report in listing.reports.all()
            ]
            data.append(row)
        return Response(data)


class AdminVerificationViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAdmin]
    serializer_class = AdminVerificationSerializer

    def get_queryset(self):
        qs = IdentityVerification.objects.select_related("user", "reviewed_by")
        wanted = self.request.query_params.get("status")
        if wanted in VerificationStatus.values:
            return qs.filter(status=wanted)
        return qs.exclude(status=VerificationStatus.UNVERIFIED)

    def list(self, request):
        qs = self.get_queryset()
        pending = IdentityVerification.objects.filter(status=VerificationStatus.PENDING).count()
        return Response(
            {
                "verifications": AdminVerificationSerializer(qs, many=True, context={"request": request}).data,
                "pending_count": pending,
            }
        )

    @action(detail=True, methods=["post"])
    def review(self, request, pk=None):
        serializer = VerificationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        verification = verification_service.review_verification(
            request.user,
            int(pk),
            action=serializer.validated_data["action"],
            reason=serializer.validated_data.get("reason"),
        )
        return Response(AdminVerificationSerializer(verification, context={"request": request}).data)
