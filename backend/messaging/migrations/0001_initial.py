from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("market", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("unread_low", models.PositiveIntegerField(default=0)),
                ("unread_high", models.PositiveIntegerField(default=0)),
                ("last_message_content", models.TextField(blank=True)),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "listing",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="conversations",
                        to="market.listing",
                    ),
                ),
                (
                    "participant_low",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conversations_as_low",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "participant_high",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="conversations_as_high",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "last_message_sender",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-updated_at", "-id"],
                "indexes": [
                    models.Index(fields=["participant_low", "is_active", "updated_at"], name="conv_low_active_idx"),
                    models.Index(fields=["participant_high", "is_active", "updated_at"], name="conv_high_active_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("participant_low", "participant_high", "listing"),
                        name="uq_conversation_pair_listing",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("content", models.TextField(max_length=1000)),
                ("original_content", models.TextField(blank=True, null=True)),
                ("is_filtered", models.BooleanField(default=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("text", "Text"), ("image", "Image"), ("system", "System")],
                        default="text",
                        max_length=8,
                    ),
                ),
                ("attachments", models.JSONField(blank=True, default=list)),
                ("read", models.BooleanField(default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="messaging.conversation",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sent_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["conversation", "created_at", "id"], name="msg_conv_created_idx"),
                    models.Index(fields=["conversation", "read", "sender"], name="msg_conv_unread_idx"),
                ],
            },
        ),
    ]
