"""
Serializers for the notification inbox.
"""

from rest_framework import serializers

from .models import Notification
from .services import complaint_summary


class NotificationSerializer(serializers.ModelSerializer):

    notification_type_display = serializers.CharField(
        source='get_notification_type_display',
        read_only=True
    )
    complaint = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'notification_type_display',
            'message',
            'complaint',
            'metadata',
            'is_read',
            'read_at',
            'created_at',
        ]
        read_only_fields = fields

    def get_complaint(self, obj):
        return complaint_summary(obj.complaint)
