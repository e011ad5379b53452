"""
JWT authentication for the Campus Complaints backend.

Standard simplejwt bearer-token authentication plus an account gate:
users that are inactive or whose account_status is not Active are
refused with 401 on every request, even while holding a valid token.
"""

import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from core.utils import get_client_ip

security_logger = logging.getLogger('campus.security')


class AccountStatusJWTAuthentication(JWTAuthentication):
    """
    Bearer-token authentication that re-checks the account on each request.

    Every request must include:
    - Authorization: Bearer <access token>
    """

    def authenticate(self, request):
        result = super().authenticate(request)

        if result is None:
            return None

        user, validated_token = result
        self._check_user_status(user, request)
        return (user, validated_token)

    def _check_user_status(self, user, request):
        """
        Raises:
            InvalidToken: if the account is inactive or not Active
        """
        if not user.is_active:
            security_logger.warning(
                f"Inactive user attempted access: {user.id} from {get_client_ip(request)}"
            )
            raise InvalidToken({
                'detail': 'User account is deactivated.',
                'code': 'account_inactive'
            })

        if not user.can_use_api:
            security_logger.warning(
                f"Non-active account attempted access: {user.id} "
                f"status={user.account_status} from {get_client_ip(request)}"
            )
            raise InvalidToken({
                'detail': f'Account is {user.account_status}.',
                'code': 'account_not_active'
            })
