"""
URL configuration for the Campus Complaints backend.

API Structure:
- /api/v1/auth/           - Login, logout, token refresh, current user
- /api/v1/complaints/     - Complaint intake and lifecycle workflow
- /api/v1/notifications/  - Notification inbox
- /api/v1/audit/          - Audit trail (admin only)
- /admin/                 - Django admin
WebSocket: /ws/notifications/ (see campus_complaints/asgi.py)
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Health check endpoint for load balancers."""
    return JsonResponse({
        'status': 'healthy',
        'service': 'campus-complaints-backend'
    })


urlpatterns = [
    path('health/', health_check, name='health-check'),
    path('api/v1/auth/', include('authentication.urls', namespace='auth')),
    path('api/v1/complaints/', include('complaints.urls', namespace='complaints')),
    path('api/v1/notifications/', include('notifications.urls', namespace='notifications')),
    path('api/v1/audit/', include('audit.urls', namespace='audit')),
    path('admin/', admin.site.urls),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
