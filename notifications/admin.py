"""
Admin configuration for notifications.

Notifications are created by the fan-out only; the admin is for browsing.
"""

from django.contrib import admin
from django.utils.html import format_html

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):

    list_display = [
        'short_id',
        'recipient',
        'notification_type',
        'message_short',
        'is_read_badge',
        'created_at',
    ]
    list_filter = ['notification_type', 'is_read', 'created_at']
    search_fields = ['id', 'recipient__email', 'message', 'complaint__title']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    readonly_fields = [
        'id',
        'recipient',
        'complaint',
        'notification_type',
        'message',
        'metadata',
        'is_read',
        'read_at',
        'created_at',
        'updated_at',
    ]

    def short_id(self, obj):
        return str(obj.id)[:8] + '...'
    short_id.short_description = 'ID'

    def message_short(self, obj):
        text = obj.message or ''
        return text[:50] + '...' if len(text) > 50 else text
    message_short.short_description = 'Message'

    def is_read_badge(self, obj):
        if obj.is_read:
            return format_html('<span style="color: {};">Read</span>', '#27ae60')
        return format_html('<span style="color: {}; font-weight: bold;">Unread</span>', '#e74c3c')
    is_read_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
