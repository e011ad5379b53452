"""
Notification inbox views.

- GET   /api/v1/notifications/              newest first, ?limit= (default 20)
- GET   /api/v1/notifications/unread-count/
- PATCH /api/v1/notifications/{id}/read/
- PATCH /api/v1/notifications/read-all/
"""

from rest_framework import views
from rest_framework.response import Response

from authentication.permissions import IsAuthenticated
from core.exceptions import NotFoundError, ValidationError
from .models import Notification
from .serializers import NotificationSerializer
from .services import get_unread_count, mark_all_read

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class NotificationListView(views.APIView):

    permission_classes = [IsAuthenticated]

    def get(self, request):
        raw_limit = request.query_params.get('limit', DEFAULT_LIMIT)
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError):
            raise ValidationError('limit must be a positive integer')
        limit = max(1, min(limit, MAX_LIMIT))

        notifications = (
            Notification.objects
            .filter(recipient=request.user)
            .select_related('complaint')
            .order_by('-created_at')[:limit]
        )

        return Response({
            'success': True,
            'data': NotificationSerializer(notifications, many=True).data,
        })


class UnreadCountView(views.APIView):

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({
            'success': True,
            'data': {'unread_count': get_unread_count(request.user)},
        })


class MarkNotificationReadView(views.APIView):
    """Users can only mark their own notifications."""

    permission_classes = [IsAuthenticated]

    def patch(self, request, pk):
        notification = (
            Notification.objects
            .filter(id=pk, recipient=request.user)
            .select_related('complaint')
            .first()
        )
        if notification is None:
            raise NotFoundError('Notification not found')

        notification.mark_as_read()

        return Response({
            'success': True,
            'data': NotificationSerializer(notification).data,
        })


class MarkAllReadView(views.APIView):

    permission_classes = [IsAuthenticated]

    def patch(self, request):
        count = mark_all_read(request.user)
        return Response({
            'success': True,
            'data': {'updated': count},
        })
