import os
import subprocess
import sys
from pathlib import Path

from django.conf import settings
from django.test import SimpleTestCase
from django.urls import resolve

from core.utils import get_client_ip

# Import order matters here, so this runs in a fresh interpreter
COLD_START = """
import django
django.setup()
from django.urls import resolve
for path in ('/api/v1/complaints/', '/api/v1/auth/login/', '/api/v1/audit/logs/'):
    resolve(path)
"""


class ColdStartTests(SimpleTestCase):

    def test_urlconf_resolves_in_a_fresh_process(self):
        env = dict(os.environ, DJANGO_SETTINGS_MODULE='campus_complaints.test_settings')
        result = subprocess.run(
            [sys.executable, '-c', COLD_START],
            cwd=Path(settings.BASE_DIR),
            env=env,
            capture_output=True,
            text=True,
            timeout=60,
        )
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_urlconf_resolves(self):
        self.assertEqual(resolve('/api/v1/complaints/').namespace, 'complaints')


class ClientIpTests(SimpleTestCase):

    class FakeRequest:
        def __init__(self, **meta):
            self.META = meta

    def test_first_forwarded_hop_wins(self):
        request = self.FakeRequest(HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

    def test_falls_back_to_remote_addr(self):
        self.assertEqual(get_client_ip(self.FakeRequest(REMOTE_ADDR='127.0.0.1')), '127.0.0.1')
        self.assertIsNone(get_client_ip(None))
