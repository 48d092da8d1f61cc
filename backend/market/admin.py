from django.contrib import admin, messages

from souqify_backend import errors

from . import services
from .models import Favorite, Listing, ListingImage


class ListingImageInline(admin.TabularInline):
    model = ListingImage
    extra = 0


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "seller",
        "category",
        "price",
        "status",
        "moderation_status",
        "is_deleted",
        "view_count",
        "created_at",
    )
    list_filter = ("status", "moderation_status", "category", "is_deleted", "is_featured")
    search_fields = ("title", "description", "seller__email")
    raw_id_fields = ("seller",)
    readonly_fields = ("view_count", "favorites_count", "deleted_at", "delete_reason", "created_at", "updated_at")
    inlines = [ListingImageInline]
    actions = ["approve_listings", "reject_listings"]

    def _moderate(self, request, queryset, action: str):
        done = 0
        for listing in queryset:
            try:
                services.moderate_listing(request.user, listing.id, action=action)
                done += 1
            except errors.DomainError as exc:
                self.message_user(request, f"#{listing.id}: {exc.message}", level=messages.WARNING)
        self.message_user(request, f"{done} listing(s) updated.", level=messages.SUCCESS)

    @admin.action(description="Approve selected listings")
    def approve_listings(self, request, queryset):
        self._moderate(request, queryset, services.ModerationAction.APPROVE)

    @admin.action(description="Reject selected listings")
    def reject_listings(self, request, queryset):
        self._moderate(request, queryset, services.ModerationAction.REJECT)


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "listing", "created_at")
    raw_id_fields = ("user", "listing")
