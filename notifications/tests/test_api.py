from django.test import TestCase
from rest_framework.test import APIClient

from complaints.models import Complaint
from core.testing import make_staff, make_student
from notifications.models import Notification, NotificationType

URL = '/api/v1/notifications/'


class NotificationInboxTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.student = make_student()
        self.other = make_student(email='other@campus.edu')
        self.complaint = Complaint.objects.create(
            title='Leaking tap',
            description='Hostel B tap leaks',
            category='hostel',
            department='Hostel Office',
            created_by=self.student,
        )
        self.notifications = [
            Notification.objects.create(
                recipient=self.student,
                complaint=self.complaint,
                notification_type=NotificationType.STATUS_UPDATED,
                message=f'Update {i}',
            )
            for i in range(25)
        ]
        self.foreign = Notification.objects.create(
            recipient=self.other,
            notification_type=NotificationType.REMARK_ADDED,
            message='Not yours',
        )
        self.client.force_authenticate(self.student)

    def test_list_is_limited_to_twenty_newest_first(self):
        response = self.client.get(URL)

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(len(data), 20)
        self.assertEqual(data[0]['message'], 'Update 24')
        self.assertEqual(
            data[0]['complaint'],
            {'id': str(self.complaint.id), 'title': 'Leaking tap', 'status': 'pending_review'},
        )

    def test_custom_limit(self):
        response = self.client.get(URL, {'limit': 5})
        self.assertEqual(len(response.json()['data']), 5)

    def test_unread_count(self):
        response = self.client.get(URL + 'unread-count/')
        self.assertEqual(response.json()['data'], {'unread_count': 25})

    def test_mark_one_read(self):
        target = self.notifications[0]
        response = self.client.patch(f'{URL}{target.id}/read/')

        self.assertEqual(response.status_code, 200)
        target.refresh_from_db()
        self.assertTrue(target.is_read)
        self.assertIsNotNone(target.read_at)

    def test_cannot_mark_someone_elses_notification(self):
        response = self.client.patch(f'{URL}{self.foreign.id}/read/')
        self.assertEqual(response.status_code, 404)
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_mark_all_read(self):
        response = self.client.patch(URL + 'read-all/')

        self.assertEqual(response.json()['data'], {'updated': 25})
        self.assertFalse(Notification.objects.filter(recipient=self.student, is_read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_requires_authentication(self):
        response = APIClient().get(URL)
        self.assertEqual(response.status_code, 401)


class StaffInboxTests(TestCase):

    def test_staff_sees_only_own_notifications(self):
        staff = make_staff()
        Notification.objects.create(
            recipient=staff, notification_type=NotificationType.COMPLAINT_CREATED, message='Mine'
        )
        client = APIClient()
        client.force_authenticate(staff)

        data = client.get(URL).json()['data']
        self.assertEqual([n['message'] for n in data], ['Mine'])
