"""
Exception taxonomy and DRF exception handling for the Campus Complaints backend.

Every rejection reaches the client as a single human-readable message:

    {
        "success": false,
        "error": {"code": "FORBIDDEN", "message": "..."}
    }

Domain errors keep their own message; framework errors get a sanitized
one. Stack traces and internal identifiers are never exposed.
"""

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

from .utils import get_client_ip

security_logger = logging.getLogger('campus.security')


class CampusAPIException(APIException):
    """Base class for workflow/domain errors surfaced to API callers."""

    default_code = 'ERROR'
    default_message = 'An error occurred.'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, code=None, status_code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail=self.message, code=self.code)


class ValidationError(CampusAPIException):
    """Malformed or missing input, invalid transition, invalid verification action."""
    default_code = 'BAD_REQUEST'
    default_message = 'Invalid request. Please check your input.'
    status_code = status.HTTP_400_BAD_REQUEST


class AuthorizationError(CampusAPIException):
    """Role or department mismatch, or a non-creator verification attempt."""
    default_code = 'FORBIDDEN'
    default_message = 'You do not have permission to perform this action.'
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(CampusAPIException):
    default_code = 'NOT_FOUND'
    default_message = 'The requested resource was not found.'
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CampusAPIException):
    """A no-op transition to the status the complaint already has."""
    default_code = 'CONFLICT'
    default_message = 'Request conflicts with current state.'
    status_code = status.HTTP_400_BAD_REQUEST


class DependencyFailure(Exception):
    """
    Email or real-time delivery failed.

    Raised inside the delivery layer and caught at its boundary; never
    reaches the HTTP caller.
    """

    def __init__(self, channel, message):
        self.channel = channel
        super().__init__(f"{channel}: {message}")


def custom_exception_handler(exc, context):
    """
    Wrap DRF's default handler:
    1. Consistent error envelope
    2. Security logging for 401/403/429
    3. Sanitized messages for framework exceptions
    """
    response = exception_handler(exc, context)

    if response is None:
        return None

    request = context.get('request')
    view = context.get('view')

    if isinstance(exc, CampusAPIException):
        code = exc.code
        message = exc.message
    else:
        code = _get_error_code(response.status_code)
        message = _get_safe_message(exc, response.status_code)

    if response.status_code in [401, 403, 429]:
        _log_security_event(exc, request, view, response.status_code)

    response.data = {
        'success': False,
        'error': {
            'code': code,
            'message': message,
        }
    }
    return response


def _get_error_code(status_code):
    error_codes = {
        400: 'BAD_REQUEST',
        401: 'UNAUTHORIZED',
        403: 'FORBIDDEN',
        404: 'NOT_FOUND',
        405: 'METHOD_NOT_ALLOWED',
        409: 'CONFLICT',
        413: 'PAYLOAD_TOO_LARGE',
        415: 'UNSUPPORTED_MEDIA_TYPE',
        429: 'RATE_LIMIT_EXCEEDED',
        500: 'INTERNAL_ERROR',
    }
    return error_codes.get(status_code, 'UNKNOWN_ERROR')


def _get_safe_message(exc, status_code):
    """Return a user-facing message; never internal details."""
    safe_messages = {
        400: 'Invalid request. Please check your input.',
        401: 'Authentication required.',
        403: 'You do not have permission to perform this action.',
        404: 'The requested resource was not found.',
        405: 'This method is not allowed.',
        409: 'Request conflicts with current state.',
        413: 'Request payload is too large.',
        415: 'Unsupported media type.',
        429: 'Too many requests. Please try again later.',
        500: 'An internal error occurred. Please try again later.',
    }

    detail = getattr(exc, 'detail', None)

    if status_code == 400 and detail is not None:
        if isinstance(detail, dict):
            for field, errors in detail.items():
                if isinstance(errors, list) and errors:
                    if field == 'non_field_errors':
                        return str(errors[0])
                    return f"Validation error: {field} - {errors[0]}"
                if isinstance(errors, str):
                    return errors
        elif isinstance(detail, list) and detail:
            return str(detail[0])
        elif isinstance(detail, str):
            return detail

    # Permission classes carry their own message
    if status_code in (401, 403) and isinstance(detail, str):
        return detail

    return safe_messages.get(status_code, 'An error occurred.')


def _log_security_event(exc, request, view, status_code):
    user_info = 'anonymous'
    if request and hasattr(request, 'user') and request.user.is_authenticated:
        user_info = str(request.user.id)

    ip_address = get_client_ip(request) if request else 'unknown'
    view_name = view.__class__.__name__ if view else 'unknown'

    security_logger.warning(
        f"Security event: status={status_code}, "
        f"user={user_info}, ip={ip_address}, "
        f"view={view_name}, exception={exc.__class__.__name__}"
    )

