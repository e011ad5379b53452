"""
Audit logging middleware.

Logs every API request for security monitoring and assigns each request a
correlation id, which is echoed back in X-Correlation-ID and stored on
any audit entries written while handling it.
"""

import logging
import time
import uuid

from django.utils import timezone

from core.utils import get_client_ip

audit_logger = logging.getLogger('campus.audit')


class AuditLoggingMiddleware:
    """
    Request-level logging. Action-level entries are written by
    audit.services.AuditTrailRecorder.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.correlation_id = self._get_correlation_id(request)
        start_time = time.time()

        response = self.get_response(request)

        duration = time.time() - start_time
        response['X-Correlation-ID'] = request.correlation_id

        if not self._should_skip(request.path):
            self._log_request(request, response, duration)

        return response

    def _get_correlation_id(self, request):
        supplied = request.META.get('HTTP_X_CORRELATION_ID', '').strip()
        if supplied:
            return supplied[:64]
        return uuid.uuid4().hex

    def _should_skip(self, path):
        skip_prefixes = [
            '/static/',
            '/media/',
            '/health/',
            '/favicon.ico',
        ]
        return any(path.startswith(prefix) for prefix in skip_prefixes)

    def _log_request(self, request, response, duration):
        user_id = 'anonymous'
        user_role = 'none'

        # DRF authenticates inside the view; request.user here is only
        # set for session-authenticated (admin site) requests.
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            user_id = str(user.id)
            user_role = getattr(user, 'role', 'none')

        log_data = {
            'timestamp': timezone.now().isoformat(),
            'correlation_id': request.correlation_id,
            'method': request.method,
            'path': request.path,
            'user_id': user_id,
            'user_role': user_role,
            'status_code': response.status_code,
            'duration_ms': round(duration * 1000, 2),
            'ip_address': get_client_ip(request) or 'unknown',
            'user_agent': request.META.get('HTTP_USER_AGENT', '')[:200],
        }

        if response.status_code >= 500:
            audit_logger.error(f"API Request: {log_data}")
        elif response.status_code >= 400:
            audit_logger.warning(f"API Request: {log_data}")
        else:
            audit_logger.info(f"API Request: {log_data}")
