from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import market.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Listing",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=100)),
                ("description", models.TextField(max_length=2000)),
                ("price", models.PositiveIntegerField()),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("furniture", "Furniture"),
                            ("electronics", "Electronics"),
                            ("books", "Books"),
                            ("kitchen", "Kitchen"),
                            ("clothing", "Clothing"),
                            ("sports", "Sports"),
                            ("toys", "Toys"),
                            ("other", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "condition",
                    models.CharField(
                        choices=[("new", "New"), ("like_new", "Like New"), ("good", "Good"), ("fair", "Fair")],
                        max_length=16,
                    ),
                ),
                (
                    "location_area",
                    models.CharField(
                        choices=[
                            ("maadi", "Maadi"),
                            ("new_cairo", "New Cairo"),
                            ("zamalek", "Zamalek"),
                            ("downtown", "Downtown"),
                            ("heliopolis", "Heliopolis"),
                            ("nasr_city", "Nasr City"),
                            ("sheikh_zayed", "Sheikh Zayed"),
                            ("6th_of_october", "6th of October"),
                            ("giza", "Giza"),
                            ("mohandessin", "Mohandessin"),
                            ("dokki", "Dokki"),
                            ("tagamoa", "Tagamoa"),
                            ("rehab", "Rehab"),
                            ("madinet_nasr", "Madinet Nasr"),
                            ("el_mokattam", "El Mokattam"),
                            ("ain_shams", "Ain Shams"),
                            ("shubra", "Shubra"),
                            ("other", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                ("location_city", models.CharField(default="Cairo", max_length=60)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("sold", "Sold"), ("pending", "Pending"), ("removed", "Removed")],
                        default="active",
                        max_length=16,
                    ),
                ),
                (
                    "moderation_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("moderation_note", models.TextField(blank=True)),
                ("is_featured", models.BooleanField(default=False)),
                ("view_count", models.PositiveIntegerField(default=0)),
                ("favorites_count", models.PositiveIntegerField(default=0)),
                ("is_deleted", models.BooleanField(default=False)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "delete_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("item_sold", "Item Sold"),
                            ("no_longer_available", "No Longer Available"),
                            ("posted_by_mistake", "Posted by Mistake"),
                            ("price_changed", "Price Changed"),
                            ("found_better_buyer", "Found Better Buyer"),
                            ("item_damaged", "Item Damaged"),
                            ("other", "Other"),
                        ],
                        max_length=32,
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["moderation_status", "status", "is_deleted", "created_at"], name="listing_visible_idx"),
                    models.Index(fields=["seller", "created_at"], name="listing_seller_idx"),
                    models.Index(fields=["category", "created_at"], name="listing_category_idx"),
                    models.Index(fields=["is_deleted", "deleted_at"], name="listing_deleted_idx"),
                    models.Index(fields=["view_count"], name="listing_views_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ListingImage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("image", models.ImageField(upload_to=market.models.listing_image_upload_to)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="images",
                        to="market.listing",
                    ),
                ),
            ],
            options={
                "ordering": ["sort_order", "id"],
            },
        ),
        migrations.CreateModel(
            name="Favorite",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="favorited_by",
                        to="market.listing",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="favorites",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "listing"), name="uq_favorite_user_listing"),
                ],
            },
        ),
    ]
