"""
Notification WebSocket consumer.

Notification-only: the server pushes `{event, data}` frames, clients
never mutate anything over this channel. The only client message
understood is `{"action": "ping"}`.
"""

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .realtime import groups_for, presence

logger = logging.getLogger('campus.notifications')

UNAUTHORIZED_CLOSE_CODE = 4401


class NotificationConsumer(AsyncJsonWebsocketConsumer):

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            await self.close(code=UNAUTHORIZED_CLOSE_CODE)
            return

        self.user_id = str(user.id)
        self.joined_groups = groups_for(user)
        for group in self.joined_groups:
            await self.channel_layer.group_add(group, self.channel_name)

        await self.accept()
        presence.add(self.user_id, self.channel_name)
        logger.info(f"Socket connected: user={self.user_id} groups={self.joined_groups}")

        await self.send_json({
            'event': 'connected',
            'data': {'user_id': self.user_id, 'groups': self.joined_groups},
        })

    async def disconnect(self, code):
        for group in getattr(self, 'joined_groups', []):
            await self.channel_layer.group_discard(group, self.channel_name)
        if hasattr(self, 'user_id'):
            presence.remove(self.user_id, self.channel_name)
            logger.info(f"Socket disconnected: user={self.user_id} code={code}")

    async def receive_json(self, content, **kwargs):
        if isinstance(content, dict) and content.get('action') == 'ping':
            await self.send_json({'event': 'pong', 'data': {}})
            return
        await self.send_json({
            'event': 'error',
            'data': {'message': 'This channel is notification-only'},
        })

    async def notification_push(self, message):
        await self.send_json({'event': message['event'], 'data': message['data']})
