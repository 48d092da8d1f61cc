from django.contrib import admin

from .models import Conversation, Message


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    fields = ("sender", "content", "original_content", "is_filtered", "read", "created_at")
    readonly_fields = fields


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "participant_low", "participant_high", "is_active", "last_message_at")
    list_filter = ("is_active",)
    raw_id_fields = ("listing", "participant_low", "participant_high", "last_message_sender")
    inlines = [MessageInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "conversation", "sender", "is_filtered", "read", "created_at")
    list_filter = ("is_filtered", "kind", "read")
    search_fields = ("content", "original_content")
    raw_id_fields = ("conversation", "sender")
