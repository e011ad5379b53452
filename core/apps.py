import logging

from django.apps import AppConfig
from django.conf import settings


class CoreConfig(AppConfig):
    name = 'core'

    def ready(self):
        """Log important runtime configuration on startup."""
        logger = logging.getLogger(__name__)
        logger.info(f"ACCESS TOKEN LIFETIME: {settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME']}")
        logger.info(
            f"Workflow side effects: async={settings.WORKFLOW_EVENTS_ASYNC}, "
            f"fanout_workers={settings.NOTIFICATION_FANOUT_WORKERS}, "
            f"email_enabled={settings.EMAIL_NOTIFICATIONS_ENABLED}"
        )
