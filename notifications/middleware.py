"""
WebSocket handshake authentication.

The access token is verified when the socket connects, from either the
`token` query parameter or an `Authorization: Bearer <token>` header.
Connections without a valid token, or for accounts that may not use the
API, get AnonymousUser and are refused by the consumer.
"""

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

security_logger = logging.getLogger('campus.security')


@database_sync_to_async
def get_user_for_token(raw_token):
    try:
        token = AccessToken(raw_token)
    except TokenError as exc:
        security_logger.warning(f"WebSocket handshake rejected: {exc}")
        return AnonymousUser()

    user_id = token.get(api_settings.USER_ID_CLAIM)
    User = get_user_model()
    user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()

    if user is None or not user.can_use_api:
        security_logger.warning(f"WebSocket handshake rejected for user={user_id}")
        return AnonymousUser()

    return user


def extract_token(scope):
    query = parse_qs(scope.get('query_string', b'').decode())
    if query.get('token'):
        return query['token'][0]

    for name, value in scope.get('headers', []):
        if name == b'authorization':
            parts = value.decode().split()
            if len(parts) == 2 and parts[0].lower() == 'bearer':
                return parts[1]
    return None


class JWTAuthMiddleware(BaseMiddleware):

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = extract_token(scope)
        scope['user'] = await get_user_for_token(token) if token else AnonymousUser()
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    return JWTAuthMiddleware(inner)
