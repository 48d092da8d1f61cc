from __future__ import annotations

from django.conf import settings
from django.db import models

from market.models import TimestampedModel


class ListingReport(TimestampedModel):
    listing = models.ForeignKey(
        "market.Listing",
        on_delete=models.CASCADE,
        related_name="reports",
    )
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listing_reports",
    )
    reason = models.CharField(max_length=500)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["listing", "reporter"], name="uq_report_listing_reporter"),
        ]
        indexes = [
            models.Index(fields=["listing", "created_at"], name="report_listing_created_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"ListingReport({self.id})"
