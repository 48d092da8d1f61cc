from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from rest_framework import serializers

from accounts.models import DocumentType, IdentityVerification, VerificationStatus
from market import services as market_services
from market.images import validate_upload
from market.models import (
    DeleteReason,
    Listing,
    ListingCategory,
    ListingCondition,
    ListingImage,
    LocationArea,
)
from messaging.models import Conversation, Message, MessageKind
from notifications.models import Notification
from souqify_backend import errors

User = get_user_model()


def _absolute(request, url):
    if request is not None and url:
        return request.build_absolute_uri(url)
    return url


class UploadListField(serializers.ListField):
    """List of uploaded image files, checked for type and size."""

    child = serializers.FileField()

    def to_internal_value(self, data):
        files = super().to_internal_value(data)
        for upload in files:
            try:
                validate_upload(upload)
            except errors.ValidationError as exc:
                raise serializers.ValidationError(exc.message)
        return files


class PublicUserSerializer(serializers.ModelSerializer):
    location = serializers.SerializerMethodField()
    is_verified = serializers.SerializerMethodField()
    member_since = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "avatar",
            "location",
            "rating_average",
            "rating_count",
            "sales_count",
            "is_verified",
            "member_since",
            "last_seen",
        ]

    def get_location(self, obj):
        return {"area": obj.location_area, "city": obj.location_city}

    def get_is_verified(self, obj):
        return obj.verification_status == VerificationStatus.APPROVED


class UserMeSerializer(PublicUserSerializer):
    verification_status = serializers.CharField(read_only=True)
    is_admin = serializers.BooleanField(source="is_staff", read_only=True)

    class Meta(PublicUserSerializer.Meta):
        fields = PublicUserSerializer.Meta.fields + ["email", "phone", "is_admin", "verification_status"]


class ProfileUpdateSerializer(serializers.ModelSerializer):
    location_area = serializers.ChoiceField(choices=LocationArea.choices, required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ["name", "phone", "avatar", "location_area", "location_city"]
        extra_kwargs = {"name": {"required": False, "max_length": 50}}


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    location_area = serializers.ChoiceField(choices=LocationArea.choices, required=False, allow_blank=True)

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("User already exists with this email")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            validated_data["email"],
            validated_data["password"],
            name=validated_data["name"].strip(),
            phone=validated_data.get("phone") or "",
            location_area=validated_data.get("location_area") or "",
        )


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(min_length=6, write_only=True)


class VerificationSerializer(serializers.ModelSerializer):
    document_images = serializers.SerializerMethodField()

    class Meta:
        model = IdentityVerification
        fields = [
            "status",
            "document_type",
            "document_images",
            "submitted_at",
            "reviewed_at",
            "rejection_reason",
        ]

    def get_document_images(self, obj):
        request = self.context.get("request")
        return [_absolute(request, default_storage.url(name)) for name in obj.document_images or []]


class AdminVerificationSerializer(VerificationSerializer):
    # Rows are keyed by user id, the key the review endpoint takes.
    id = serializers.IntegerField(source="user_id", read_only=True)
    user = PublicUserSerializer(read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    reviewed_by = serializers.IntegerField(source="reviewed_by_id", read_only=True)

    class Meta(VerificationSerializer.Meta):
        fields = ["id", "user", "email"] + VerificationSerializer.Meta.fields + ["reviewed_by"]


class VerificationSubmitSerializer(serializers.Serializer):
    document_type = serializers.ChoiceField(choices=DocumentType.choices)
    documents = UploadListField(min_length=1, max_length=2)


class VerificationReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["approve", "reject"])
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class ListingImageSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()

    class Meta:
        model = ListingImage
        fields = ["id", "url", "sort_order"]

    def get_url(self, obj):
        if not obj.image:
            return None
        return _absolute(self.context.get("request"), obj.image.url)


class ListingListSerializer(serializers.ModelSerializer):
    seller = PublicUserSerializer(read_only=True)
    thumbnail = serializers.SerializerMethodField()
    location = serializers.SerializerMethodField()

    class Meta:
        model = Listing
        fields = [
            "id",
            "title",
            "price",
            "category",
            "condition",
            "location",
            "thumbnail",
            "seller",
            "status",
            "moderation_status",
            "is_featured",
            "view_count",
            "favorites_count",
            "is_deleted",
            "created_at",
        ]

    def get_thumbnail(self, obj):
        images = list(obj.images.all())
        if not images or not images[0].image:
            return None
        return _absolute(self.context.get("request"), images[0].image.url)

    def get_location(self, obj):
        return {"area": obj.location_area, "city": obj.location_city}


class ListingDetailSerializer(ListingListSerializer):
    images = ListingImageSerializer(many=True, read_only=True)
    delete_info = serializers.SerializerMethodField()
    is_favorited = serializers.SerializerMethodField()
    report_count = serializers.SerializerMethodField()

    class Meta(ListingListSerializer.Meta):
        fields = ListingListSerializer.Meta.fields + [
            "description",
            "images",
            "moderation_note",
            "delete_info",
            "is_favorited",
            "report_count",
            "updated_at",
        ]

    def get_delete_info(self, obj):
        return market_services.delete_info(obj)

    def get_is_favorited(self, obj):
        request = self.context.get("request")
        return market_services.is_favorited(getattr(request, "user", None), obj)

    def get_report_count(self, obj):
        return obj.reports.count()


class AdminListingSerializer(ListingListSerializer):
    report_count = serializers.IntegerField(read_only=True)
    seller_email = serializers.EmailField(source="seller.email", read_only=True)

    class Meta(ListingListSerializer.Meta):
        fields = ListingListSerializer.Meta.fields + [
            "seller_email",
            "moderation_note",
            "report_count",
            "deleted_at",
            "delete_reason",
        ]


class ListingWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=2000)
    price = serializers.IntegerField(min_value=1)
    category = serializers.ChoiceField(choices=ListingCategory.choices)
    condition = serializers.ChoiceField(choices=ListingCondition.choices)
    location_area = serializers.ChoiceField(choices=LocationArea.choices)
    location_city = serializers.CharField(max_length=60, required=False)
    is_featured = serializers.BooleanField(required=False)
    images = UploadListField(required=False, max_length=settings.LISTING_MAX_IMAGES)

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title is required")
        return value


class ListingDeleteSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(
        choices=DeleteReason.choices,
        error_messages={"required": "Please select a reason for deletion"},
    )


class ReportSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class ModerationSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["approve", "reject"])
    note = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class RatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)


class MessageSerializer(serializers.ModelSerializer):
    sender = PublicUserSerializer(read_only=True)

    class Meta:
        model = Message
        fields = ["id", "conversation", "sender", "content", "is_filtered", "kind", "attachments", "read", "read_at", "created_at"]


class OriginalMessageSerializer(serializers.ModelSerializer):
    sender = serializers.SerializerMethodField()
    original_content = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ["id", "content", "original_content", "is_filtered", "sender", "created_at"]

    def get_sender(self, obj):
        return {"id": obj.sender_id, "name": obj.sender.name, "email": obj.sender.email}

    def get_original_content(self, obj):
        return obj.original_content or obj.content


class SendMessageSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=1000)
    kind = serializers.ChoiceField(choices=MessageKind.choices, required=False, default=MessageKind.TEXT)


class StartConversationSerializer(serializers.Serializer):
    listing_id = serializers.IntegerField()
    seller_id = serializers.IntegerField()


class ConversationListingSerializer(serializers.ModelSerializer):
    thumbnail = serializers.SerializerMethodField()

    class Meta:
        model = Listing
        fields = ["id", "title", "price", "status", "thumbnail"]

    def get_thumbnail(self, obj):
        image = obj.images.first()
        if not image or not image.image:
            return None
        return _absolute(self.context.get("request"), image.image.url)


class ConversationSerializer(serializers.ModelSerializer):
    """Conversation as seen by ``context['viewer']``."""

    listing = ConversationListingSerializer(read_only=True)
    other_participant = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = ["id", "listing", "other_participant", "unread_count", "last_message", "is_active", "created_at", "updated_at"]

    def _viewer_id(self):
        return self.context["viewer"].id

    def get_other_participant(self, obj):
        viewer_id = self._viewer_id()
        other = obj.participant_high if viewer_id == obj.participant_low_id else obj.participant_low
        return PublicUserSerializer(other, context=self.context).data

    def get_unread_count(self, obj):
        return obj.unread_for(self._viewer_id())

    def get_last_message(self, obj):
        if obj.last_message_at is None:
            return None
        return {
            "content": obj.last_message_content,
            "sender": obj.last_message_sender_id,
            "created_at": obj.last_message_at,
        }


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source="kind", read_only=True)
    content = serializers.CharField(source="body", read_only=True)
    read = serializers.BooleanField(source="is_read", read_only=True)

    class Meta:
        model = Notification
        fields = ["id", "type", "title", "content", "related_id", "read", "read_at", "created_at"]


class AdminUserSerializer(UserMeSerializer):
    class Meta(UserMeSerializer.Meta):
        fields = UserMeSerializer.Meta.fields + ["is_active", "date_joined"]
