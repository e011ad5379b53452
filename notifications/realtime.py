"""
Real-time delivery over Django Channels.

Recipients are addressed by group:
- user.<id>   one group per user, joined by each of their open sockets
- admins      every connected admin
- staff       every connected department staff member

A group with no members swallows the message; there is no offline queue.
"""

import json
import threading
from collections import defaultdict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder

from core.exceptions import DependencyFailure

ADMINS_GROUP = 'admins'
STAFF_GROUP = 'staff'

ROLE_GROUPS = {
    'admin': ADMINS_GROUP,
    'staff': STAFF_GROUP,
}

# Consumer handler method: NotificationConsumer.notification_push
PUSH_MESSAGE_TYPE = 'notification.push'


def user_group(user_id):
    return f"user.{user_id}"


def groups_for(user):
    groups = [user_group(user.id)]
    role_group = ROLE_GROUPS.get(user.role)
    if role_group:
        groups.append(role_group)
    return groups


def to_wire(data):
    """Make a payload safe for any channel layer (UUIDs, datetimes -> str)."""
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


class PresenceRegistry:
    """
    Per-process map of user id -> open channel names.

    Only reflects sockets held by this process.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._channels = defaultdict(set)

    def add(self, user_id, channel_name):
        with self._lock:
            self._channels[str(user_id)].add(channel_name)

    def remove(self, user_id, channel_name):
        with self._lock:
            channels = self._channels.get(str(user_id))
            if channels is None:
                return
            channels.discard(channel_name)
            if not channels:
                del self._channels[str(user_id)]

    def is_user_online(self, user_id):
        with self._lock:
            return bool(self._channels.get(str(user_id)))

    def online_user_count(self):
        with self._lock:
            return len(self._channels)

    def clear(self):
        with self._lock:
            self._channels.clear()


presence = PresenceRegistry()


class RealtimeGateway:
    """
    Push `{event, data}` frames to channel groups.

    Raises DependencyFailure when the layer is missing or the send fails;
    callers decide whether that matters.
    """

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    def push(self, group, event, data):
        try:
            layer = self.channel_layer
        except Exception as exc:
            raise DependencyFailure('realtime', f"channel layer unavailable: {exc}") from exc
        if layer is None:
            raise DependencyFailure('realtime', 'no channel layer configured')

        try:
            async_to_sync(layer.group_send)(group, {
                'type': PUSH_MESSAGE_TYPE,
                'event': event,
                'data': to_wire(data),
            })
        except Exception as exc:
            raise DependencyFailure('realtime', f"push to {group} failed: {exc}") from exc

    def push_to_user(self, user_id, event, data):
        self.push(user_group(user_id), event, data)

    def push_to_admins(self, event, data):
        self.push(ADMINS_GROUP, event, data)

    def push_to_staff(self, event, data):
        self.push(STAFF_GROUP, event, data)
