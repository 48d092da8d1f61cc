from django.contrib import admin

from .models import ListingReport


@admin.register(ListingReport)
class ListingReportAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "reporter", "reason", "created_at")
    search_fields = ("reason", "reporter__email", "listing__title")
    raw_id_fields = ("listing", "reporter")
    readonly_fields = ("created_at", "updated_at")
