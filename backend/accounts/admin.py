from django.contrib import admin

from .models import IdentityVerification, User


class IdentityVerificationInline(admin.StackedInline):
    model = IdentityVerification
    fk_name = "user"
    extra = 0
    readonly_fields = ("submitted_at", "reviewed_at", "reviewed_by")


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "email", "name", "is_staff", "is_active", "sales_count", "date_joined")
    list_filter = ("is_staff", "is_active")
    search_fields = ("email", "name")
    readonly_fields = ("last_login", "last_seen", "date_joined", "rating_average", "rating_count")
    exclude = ("password", "groups", "user_permissions")
    inlines = [IdentityVerificationInline]


@admin.register(IdentityVerification)
class IdentityVerificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "status", "document_type", "submitted_at", "reviewed_at")
    list_filter = ("status", "document_type")
    search_fields = ("user__email", "user__name")
    raw_id_fields = ("user", "reviewed_by")
