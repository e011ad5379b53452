import csv
import io
from datetime import timedelta
from unittest import mock

from django.test import RequestFactory, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from audit.models import (
    AuditAction, AuditLog, AuditResource, AuditStatus, build_target_id_display,
)
from audit.services import CSV_HEADER, AuditQueryService, AuditTrailRecorder, request_context
from core.testing import make_admin, make_staff, make_student


class TargetIdDisplayTests(TestCase):

    def test_prefix_year_and_last_six(self):
        self.assertEqual(
            build_target_id_display('complaint', '64f1c2aa9b0e1d2c3f4a5b6c', 2025),
            'CMP-2025-4a5b6c',
        )

    def test_unknown_resource_uses_default_prefix(self):
        self.assertEqual(build_target_id_display('widget', 'abcdef123456', 2024), 'RES-2024-123456')

    def test_profile_shares_user_prefix(self):
        self.assertEqual(build_target_id_display('profile', 'abcdef123456', 2024), 'USR-2024-123456')

    def test_missing_id_gives_empty_display(self):
        self.assertEqual(build_target_id_display('complaint', None), '')


class RecorderTests(TestCase):

    def setUp(self):
        self.recorder = AuditTrailRecorder()
        self.admin = make_admin()

    def test_records_actor_role_and_request_context(self):
        request = RequestFactory().get(
            '/',
            HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1',
            HTTP_USER_AGENT='pytest-agent',
            HTTP_X_CORRELATION_ID='corr-123',
        )

        entry = self.recorder.record(
            AuditAction.USER_UPDATE,
            AuditResource.USER,
            resource_id=self.admin.id,
            actor=self.admin,
            details='Updated user',
            request=request,
        )

        self.assertEqual(entry.actor_role, 'admin')
        self.assertEqual(entry.ip_address, '203.0.113.7')
        self.assertEqual(entry.user_agent, 'pytest-agent')
        self.assertEqual(entry.correlation_id, 'corr-123')
        self.assertTrue(entry.target_id_display.startswith('USR-'))
        self.assertTrue(entry.target_id_display.endswith(str(self.admin.id)[-6:]))

    def test_storage_failure_is_swallowed(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=RuntimeError('db down')):
            with self.assertLogs('campus.audit', level='ERROR'):
                result = self.recorder.record(AuditAction.LOGIN, AuditResource.AUTH, actor=self.admin)

        self.assertIsNone(result)

    def test_request_context_is_empty_without_request(self):
        self.assertEqual(request_context(None), {})


class ImmutabilityTests(TestCase):

    def setUp(self):
        self.entry = AuditTrailRecorder().record(AuditAction.LOGOUT, AuditResource.AUTH)

    def test_instance_update_is_refused(self):
        self.entry.details = 'changed'
        with self.assertRaises(PermissionError):
            self.entry.save()

    def test_instance_delete_is_refused(self):
        with self.assertRaises(PermissionError):
            self.entry.delete()

    def test_bulk_update_and_delete_are_refused(self):
        with self.assertRaises(PermissionError):
            AuditLog.objects.all().update(details='x')
        with self.assertRaises(PermissionError):
            AuditLog.objects.all().delete()


class AuditQueryTests(TestCase):

    def setUp(self):
        self.recorder = AuditTrailRecorder()
        self.service = AuditQueryService()
        self.admin = make_admin()
        self.student = make_student(name='Amina Okafor')
        self.staff = make_staff()

        for _ in range(3):
            self.recorder.record(
                AuditAction.LOGIN, AuditResource.AUTH, resource_id=self.student.id, actor=self.student
            )
        self.recorder.record(
            AuditAction.LOGIN_FAILED, AuditResource.AUTH, actor=self.staff, status=AuditStatus.FAILED
        )
        self.complaint_entry = self.recorder.record(
            AuditAction.COMPLAINT_STATUS_UPDATE,
            AuditResource.COMPLAINT,
            resource_id='64f1c2aa9b0e1d2c3f4a5b6c',
            actor=self.staff,
        )

    def test_filters_by_action_and_status(self):
        entries, pagination = self.service.get_logs({'action': AuditAction.LOGIN})
        self.assertEqual(len(entries), 3)
        self.assertEqual(pagination['total'], 3)

        entries, _ = self.service.get_logs({'status': AuditStatus.FAILED})
        self.assertEqual([e.action for e in entries], [AuditAction.LOGIN_FAILED])

    def test_filters_by_user_and_actor_role(self):
        entries, _ = self.service.get_logs({'userId': str(self.staff.id)})
        self.assertEqual(len(entries), 2)

        entries, _ = self.service.get_logs({'actorRole': 'student'})
        self.assertEqual(len(entries), 3)

    def test_date_range(self):
        future = (timezone.now() + timedelta(days=1)).isoformat()
        entries, _ = self.service.get_logs({'startDate': future})
        self.assertEqual(entries, [])

    def test_search_matches_display_id_or_actor(self):
        entries, _ = self.service.get_logs({'search': '4a5b6c'})
        self.assertEqual([e.id for e in entries], [self.complaint_entry.id])

        entries, _ = self.service.get_logs({'search': 'amina'})
        self.assertEqual(len(entries), 3)

        entries, _ = self.service.get_logs({'search': self.student.student_id})
        self.assertEqual(len(entries), 3)

    def test_pagination_and_ordering(self):
        entries, pagination = self.service.get_logs({'page': 2, 'limit': 2})
        self.assertEqual(pagination, {'page': 2, 'limit': 2, 'total': 5, 'pages': 3})
        self.assertEqual(len(entries), 2)

        everything, _ = self.service.get_logs({})
        timestamps = [e.created_at for e in everything]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))

    def test_limit_is_capped(self):
        _, pagination = self.service.get_logs({'limit': 5000})
        self.assertEqual(pagination['limit'], 200)

    def test_invalid_filter_is_a_validation_error(self):
        from core.exceptions import ValidationError
        with self.assertRaises(ValidationError):
            self.service.get_logs({'action': 'NOT_AN_ACTION'})

    def test_csv_export_quotes_every_cell(self):
        content = self.service.export_csv({'action': AuditAction.COMPLAINT_STATUS_UPDATE})
        lines = content.strip().split('\n')

        self.assertTrue(lines[0].startswith('"Audit ID","Timestamp (UTC)"'))
        rows = list(csv.reader(io.StringIO(content)))
        self.assertEqual(rows[0], CSV_HEADER)
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][3], self.staff.email)
        self.assertEqual(rows[1][7], self.complaint_entry.target_id_display)
        self.assertTrue(rows[1][1].endswith('+00:00'))
        self.assertTrue(lines[1].startswith('"') and lines[1].endswith('"'))

    def test_stats(self):
        stats = self.service.get_stats()
        self.assertEqual(stats['totalLogs'], 5)
        self.assertEqual(stats['todayLogs'], 5)
        self.assertEqual(stats['actionStats'][0], {'action': AuditAction.LOGIN, 'count': 3})
        resources = {row['resource']: row['count'] for row in stats['resourceStats']}
        self.assertEqual(resources, {AuditResource.AUTH: 4, AuditResource.COMPLAINT: 1})


class AuditApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.staff = make_staff()
        AuditTrailRecorder().record(AuditAction.LOGIN, AuditResource.AUTH, actor=self.staff)

    def test_non_admin_is_forbidden(self):
        self.client.force_authenticate(self.staff)
        response = self.client.get('/api/v1/audit/logs/')
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['error']['code'], 'FORBIDDEN')

    def test_list_shape(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/audit/logs/', {'limit': 10})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['data']['pagination']['total'], 1)
        self.assertEqual(body['data']['logs'][0]['user']['email'], self.staff.email)

    def test_detail_and_404(self):
        self.client.force_authenticate(self.admin)
        entry = AuditLog.objects.first()

        response = self.client.get(f'/api/v1/audit/logs/{entry.id}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['id'], str(entry.id))

        missing = self.client.get('/api/v1/audit/logs/00000000-0000-0000-0000-000000000000/')
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()['error']['message'], 'Audit log not found')

    def test_export_is_csv_attachment_and_is_audited(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/audit/export/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="audit-logs.csv"')
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.COMPLAINT_EXPORT).exists())

    def test_stats_endpoint(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/audit/stats/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['totalLogs'], 1)

    def test_correlation_id_is_echoed(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/audit/stats/', HTTP_X_CORRELATION_ID='abc-123')
        self.assertEqual(response['X-Correlation-ID'], 'abc-123')
