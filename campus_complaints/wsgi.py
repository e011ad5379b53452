"""
WSGI config for the Campus Complaints backend.

Serves the HTTP API only; real-time notifications need the ASGI entry point.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'campus_complaints.settings')

application = get_wsgi_application()
