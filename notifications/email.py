"""
Email transport for notification fan-out.

send() reports delivery as a boolean and never raises: an SMTP outage
must not surface to the workflow caller.
"""

import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger('campus.notifications')


class EmailTransport:

    def __init__(self, from_email=None, enabled=None):
        self.from_email = from_email
        self.enabled = enabled

    def is_enabled(self):
        if self.enabled is not None:
            return self.enabled
        return getattr(settings, 'EMAIL_NOTIFICATIONS_ENABLED', False)

    def send(self, to, subject, body):
        if not to:
            return False

        if not self.is_enabled():
            logger.warning(f"Email not configured, skipped: subject={subject!r}")
            return False

        try:
            sent = send_mail(
                subject,
                body,
                self.from_email or settings.DEFAULT_FROM_EMAIL,
                [to],
                fail_silently=False,
            )
        except Exception as exc:
            logger.warning(f"Email delivery failed: subject={subject!r}, error={exc.__class__.__name__}: {exc}")
            return False

        return sent > 0
