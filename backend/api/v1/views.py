from django.contrib.auth import get_user_model
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts import services as account_services
from accounts import verification as verification_service
from api.health_checks import build_health_payload
from market import services as market_services
from market.models import Favorite, Listing, ListingStatus, ModerationStatus
from messaging import services as messaging_services
from notifications import services as notification_services
from realtime.push import get_push_channel

from .filters import ListingFilter
from .serializers import (
    ConversationSerializer,
    ListingDeleteSerializer,
    ListingDetailSerializer,
    ListingListSerializer,
    ListingWriteSerializer,
    MessageSerializer,
    NotificationSerializer,
    OriginalMessageSerializer,
    PasswordChangeSerializer,
    ProfileUpdateSerializer,
    PublicUserSerializer,
    RatingSerializer,
    ReportSerializer,
    SendMessageSerializer,
    StartConversationSerializer,
    UserMeSerializer,
    VerificationSerializer,
    VerificationSubmitSerializer,
)
from .throttling import ActionScopedRateThrottle

User = get_user_model()

PUBLIC_PROFILE_LISTINGS = 20
FEATURED_LIMIT = 8
RECENT_DEFAULT_LIMIT = 10
RECENT_MAX_LIMIT = 50


def _listing_queryset():
    return Listing.objects.select_related("seller", "seller__verification").prefetch_related("images")


class HealthView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        payload, ok = build_health_payload()
        return Response(payload, status=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserMeSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(UserMeSerializer(request.user).data)


class PasswordChangeView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PasswordChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account_services.change_password(request.user, **serializer.validated_data)
        return Response({"detail": "Password updated successfully"})


class MyListingsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = _listing_queryset().filter(seller=request.user, is_deleted=False).order_by("-created_at", "-id")
        wanted = (request.query_params.get("status") or "").strip().lower()
        if wanted in ListingStatus.values:
            qs = qs.filter(status=wanted)

        return Response(
            {
                "listings": ListingListSerializer(qs, many=True, context={"request": request}).data,
                "counts": market_services.seller_counts(request.user),
            }
        )


class MyFavoritesView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        listing_ids = Favorite.objects.filter(user=request.user).values_list("listing_id", flat=True)
        qs = _listing_queryset().publicly_visible().filter(id__in=listing_ids).order_by("-created_at", "-id")
        return Response(ListingListSerializer(qs, many=True, context={"request": request}).data)


class NotificationViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAuthenticated]
    serializer_class = NotificationSerializer

    def list(self, request):
        items, unread = notification_services.list_for_user(request.user)
        return Response(
            {
                "notifications": NotificationSerializer(items, many=True).data,
                "unread_count": unread,
            }
        )

    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        updated = notification_services.mark_all_read(request.user)
        return Response({"updated": updated})

    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        notification = notification_services.mark_read(request.user, int(pk))
        return Response(NotificationSerializer(notification).data)


class VerificationView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        verification = verification_service.get_verification(request.user)
        return Response(VerificationSerializer(verification, context={"request": request}).data)


class VerificationSubmitView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = VerificationSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        verification = verification_service.submit_verification(
            request.user,
            document_type=serializer.validated_data["document_type"],
            documents=serializer.validated_data["documents"],
        )
        return Response(
            {
                "detail": "Verification documents submitted successfully. We will review them within 24-48 hours.",
                "verification": VerificationSerializer(verification, context={"request": request}).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ListingViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    filterset_class = ListingFilter
    search_fields = ["title", "description"]
    ordering_fields = ["created_at", "price", "view_count"]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    throttle_classes = [ActionScopedRateThrottle]
    throttle_scope_map = {"POST": "write", "PATCH": "write", "DELETE": "write"}

    def get_permissions(self):
        if self.action in {"list", "retrieve", "featured", "recent", "stats", "similar"}:
            return [AllowAny()]
        return [IsAuthenticated()]

    def get_queryset(self):
        return _listing_queryset().publicly_visible().order_by("-created_at", "-id")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return ListingDetailSerializer
        return ListingListSerializer

    def _detail(self, request, listing, status_code=status.HTTP_200_OK):
        listing = _listing_queryset().get(pk=listing.pk)
        return Response(ListingDetailSerializer(listing, context={"request": request}).data, status=status_code)

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        serializer = ListingListSerializer(page, many=True, context={"request": request})
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request, pk=None):
        viewer = request.user if request.user.is_authenticated else None
        listing = market_services.get_listing_for_viewer(viewer, int(pk))
        return Response(ListingDetailSerializer(listing, context={"request": request}).data)

    def create(self, request):
        serializer = ListingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        images = data.pop("images", [])
        data.pop("is_featured", None)
        listing = market_services.create_listing(request.user, data, images)
        return self._detail(request, listing, status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        serializer = ListingWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        images = data.pop("images", [])
        listing = market_services.update_listing(request.user, int(pk), data, images)
        return self._detail(request, listing)

    def destroy(self, request, pk=None):
        serializer = ListingDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = market_services.soft_delete_listing(request.user, int(pk), reason=serializer.validated_data["reason"])
        return Response(
            {
                "detail": "Listing deleted successfully. It will show as sold for 2 days.",
                "delete_info": market_services.delete_info(listing),
            }
        )

    @action(detail=False, methods=["get"])
    def featured(self, request):
        qs = _listing_queryset().live().filter(is_featured=True).order_by("-created_at", "-id")[:FEATURED_LIMIT]
        return Response(ListingListSerializer(qs, many=True, context={"request": request}).data)

    @action(detail=False, methods=["get"])
    def recent(self, request):
        try:
            limit = int(request.query_params.get("limit") or RECENT_DEFAULT_LIMIT)
        except (TypeError, ValueError):
            limit = RECENT_DEFAULT_LIMIT
        limit = max(1, min(limit, RECENT_MAX_LIMIT))
        qs = _listing_queryset().live().order_by("-created_at", "-id")[:limit]
        return Response(ListingListSerializer(qs, many=True, context={"request": request}).data)

    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(market_services.marketplace_stats())

    @action(detail=True, methods=["get"])
    def similar(self, request, pk=None):
        listing = market_services.get_listing(int(pk))
        qs = market_services.similar_listings(listing)
        return Response(ListingListSerializer(qs, many=True, context={"request": request}).data)

    @action(detail=True, methods=["post"])
    def sold(self, request, pk=None):
        listing = market_services.mark_sold(request.user, int(pk))
        return self._detail(request, listing)

    @action(detail=True, methods=["post"])
    def favorite(self, request, pk=None):
        favorited, count = market_services.toggle_favorite(request.user, int(pk))
        return Response({"is_favorited": favorited, "favorites_count": count})

    @action(detail=True, methods=["post"])
    def report(self, request, pk=None):
        serializer = ReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        _, count = market_services.report_listing(request.user, int(pk), reason=serializer.validated_data["reason"])
        return Response(
            {"detail": "Listing reported. Thank you for helping keep MySouqify safe.", "report_count": count},
            status=status.HTTP_201_CREATED,
        )


class UserViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    queryset = User.objects.filter(is_active=True)

    def get_permissions(self):
        if self.action == "rate":
            return [IsAuthenticated()]
        return [AllowAny()]

    def retrieve(self, request, pk=None):
        user = self.get_object()
        listings = _listing_queryset().live().filter(seller=user).order_by("-created_at", "-id")[:PUBLIC_PROFILE_LISTINGS]
        data = PublicUserSerializer(user).data
        data["is_online"] = get_push_channel().registry.is_online(user.id)
        return Response(
            {
                "user": data,
                "listings": ListingListSerializer(listings, many=True, context={"request": request}).data,
            }
        )

    @action(detail=True, methods=["get"])
    def listings(self, request, pk=None):
        user = self.get_object()
        wanted = (request.query_params.get("status") or ListingStatus.ACTIVE).strip().lower()
        qs = _listing_queryset().filter(seller=user, moderation_status=ModerationStatus.APPROVED, is_deleted=False)
        if wanted == ListingStatus.SOLD:
            qs = qs.filter(status=ListingStatus.SOLD)
        else:
            qs = qs.filter(status=ListingStatus.ACTIVE)
        page = self.paginate_queryset(qs.order_by("-created_at", "-id"))
        return self.get_paginated_response(ListingListSerializer(page, many=True, context={"request": request}).data)

    @action(detail=True, methods=["post"])
    def rate(self, request, pk=None):
        serializer = RatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = account_services.rate_user(request.user, int(pk), serializer.validated_data["rating"])
        return Response({"rating": {"average": user.rating_average, "count": user.rating_count}})


class ConversationViewSet(viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    permission_classes = [IsAuthenticated]
    serializer_class = ConversationSerializer
    throttle_classes = [ActionScopedRateThrottle]
    throttle_scope_map = {"send_message": "messages", "POST": "write"}

    def get_serializer_context(self):
        return {**super().get_serializer_context(), "viewer": self.request.user}

    def get_queryset(self):
        return messaging_services.list_conversations(self.request.user).prefetch_related("listing__images")

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        serializer = ConversationSerializer(page, many=True, context=self.get_serializer_context())
        return self.get_paginated_response(serializer.data)

    def create(self, request):
        serializer = StartConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        conversation, created = messaging_services.get_or_create_conversation(
            request.user,
            listing_id=serializer.validated_data["listing_id"],
            seller_id=serializer.validated_data["seller_id"],
        )
        data = ConversationSerializer(conversation, context=self.get_serializer_context()).data
        return Response(
            {"conversation": data, "is_new": created},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        opened = messaging_services.open_conversation(int(pk), request.user)
        context = self.get_serializer_context()
        return Response(
            {
                "conversation": ConversationSerializer(opened.conversation, context=context).data,
                "other_participant": PublicUserSerializer(opened.counterpart).data,
                "messages": MessageSerializer(opened.messages, many=True).data,
            }
        )

    def destroy(self, request, pk=None):
        messaging_services.archive_conversation(int(pk), request.user)
        return Response({"detail": "Conversation deleted"})

    @action(detail=True, methods=["post"], url_path="messages")
    def send_message(self, request, pk=None):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = messaging_services.send_message(
            int(pk),
            request.user,
            serializer.validated_data["content"],
            kind=serializer.validated_data["kind"],
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def typing(self, request, pk=None):
        delivered = messaging_services.signal_typing(int(pk), request.user)
        return Response({"delivered": delivered})

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        return Response({"unread_count": messaging_services.total_unread(request.user)})


class OriginalMessageView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, message_id: int):
        message = messaging_services.get_original_message(request.user, message_id)
        return Response(OriginalMessageSerializer(message).data)
