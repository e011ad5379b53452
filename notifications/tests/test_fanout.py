from django.core import mail
from django.test import TestCase, override_settings

from complaints.events import WorkflowEvent, WorkflowEventType
from complaints.models import Complaint
from core.exceptions import DependencyFailure
from core.testing import make_admin, make_staff, make_student, suspend
from notifications.email import EmailTransport
from notifications.models import Notification, NotificationType
from notifications.realtime import ADMINS_GROUP, user_group
from notifications.services import NotificationFanout, get_unread_count, mark_all_read


class RecordingGateway:

    def __init__(self, fail=False):
        self.fail = fail
        self.pushes = []

    def push(self, group, event, data):
        if self.fail:
            raise DependencyFailure('realtime', 'layer unavailable')
        self.pushes.append((group, event, data))

    def push_to_user(self, user_id, event, data):
        self.push(user_group(user_id), event, data)

    def push_to_admins(self, event, data):
        self.push(ADMINS_GROUP, event, data)


class FailingEmailBackend:
    """Email backend whose every send raises."""

    def __init__(self, *args, **kwargs):
        pass

    def send_messages(self, messages):
        raise ConnectionRefusedError('smtp down')


class SelectiveEmailTransport:
    """Transport that raises for one address and records the rest."""

    def __init__(self, fail_for=None):
        self.fail_for = fail_for
        self.sent = []

    def send(self, to, subject, body):
        if to == self.fail_for:
            raise ConnectionRefusedError('smtp down')
        self.sent.append(to)
        return True


class BrokenGateway:
    """Gateway whose pushes fail with an error the gateway did not wrap."""

    def push_to_user(self, user_id, event, data):
        raise RuntimeError('layer crashed')

    def push_to_admins(self, event, data):
        raise RuntimeError('layer crashed')


class FanoutTestCase(TestCase):

    def setUp(self):
        self.student = make_student()
        self.staff = make_staff()
        self.admin = make_admin()
        self.other_admin = make_admin(email='second.admin@campus.edu')
        self.complaint = Complaint.objects.create(
            title='Broken projector',
            description='Room 101 projector does not turn on',
            category='infrastructure',
            department='IT Services',
            created_by=self.student,
        )
        self.gateway = RecordingGateway()
        self.fanout = NotificationFanout(gateway=self.gateway, max_workers=1)

    def event(self, name, actor=None, **metadata):
        return WorkflowEvent(name=name, complaint=self.complaint, actor=actor, metadata=metadata)


class StatusUpdateFanoutTests(FanoutTestCase):

    def test_creator_gets_one_notification_push_and_email(self):
        outcomes = self.fanout.dispatch(self.event(
            WorkflowEventType.STATUS_UPDATED, actor=self.staff,
            old_status='pending_review', new_status='open',
        ))

        self.assertEqual(len(outcomes), 1)
        notification = Notification.objects.get(recipient=self.student)
        self.assertEqual(notification.notification_type, NotificationType.STATUS_UPDATED)
        self.assertEqual(notification.message, 'Your complaint status changed from pending_review to open')
        self.assertEqual(notification.metadata, {'old_status': 'pending_review', 'new_status': 'open'})

        events = [(group, event) for group, event, _ in self.gateway.pushes]
        self.assertIn((user_group(self.student.id), 'notification'), events)
        self.assertIn((user_group(self.student.id), 'status_update'), events)

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Complaint Status Updated: Broken projector')
        self.assertEqual(mail.outbox[0].to, [self.student.email])

    @override_settings(EMAIL_BACKEND='notifications.tests.test_fanout.FailingEmailBackend')
    def test_email_failure_does_not_block_persist_or_push(self):
        with self.assertLogs('campus.notifications', level='WARNING'):
            outcomes = self.fanout.dispatch(self.event(
                WorkflowEventType.STATUS_UPDATED, old_status='open', new_status='in_progress',
            ))

        self.assertTrue(outcomes[0].persisted)
        self.assertTrue(outcomes[0].pushed)
        self.assertFalse(outcomes[0].emailed)
        self.assertEqual(Notification.objects.filter(recipient=self.student).count(), 1)

    def test_realtime_failure_does_not_block_persist_or_email(self):
        fanout = NotificationFanout(gateway=RecordingGateway(fail=True), max_workers=1)

        outcomes = fanout.dispatch(self.event(
            WorkflowEventType.STATUS_UPDATED, old_status='open', new_status='in_progress',
        ))

        self.assertTrue(outcomes[0].persisted)
        self.assertFalse(outcomes[0].pushed)
        self.assertTrue(outcomes[0].emailed)

    def test_disabled_email_is_skipped(self):
        fanout = NotificationFanout(
            gateway=self.gateway,
            email_transport=EmailTransport(enabled=False),
            max_workers=1,
        )
        outcomes = fanout.dispatch(self.event(
            WorkflowEventType.STATUS_UPDATED, old_status='open', new_status='in_progress',
        ))

        self.assertFalse(outcomes[0].emailed)
        self.assertEqual(mail.outbox, [])


class AdminFanoutTests(FanoutTestCase):

    def test_new_complaint_notifies_every_active_admin(self):
        suspend(make_admin(email='suspended.admin@campus.edu'))

        self.fanout.dispatch(self.event(WorkflowEventType.COMPLAINT_CREATED, actor=self.student))

        recipients = set(Notification.objects.values_list('recipient_id', flat=True))
        self.assertEqual(recipients, {self.admin.id, self.other_admin.id})
        self.assertEqual(
            Notification.objects.first().message, 'New complaint created: Broken projector'
        )
        broadcast = [p for p in self.gateway.pushes if p[0] == ADMINS_GROUP]
        self.assertEqual(broadcast[0][1], 'new_complaint')
        self.assertEqual(broadcast[0][2]['title'], 'Broken projector')

    def test_confirmation_message_depends_on_comment(self):
        self.fanout.dispatch(self.event(
            WorkflowEventType.RESOLUTION_CONFIRMED, actor=self.student, action='confirm', comment='',
        ))
        messages = set(Notification.objects.values_list('message', flat=True))
        self.assertEqual(messages, {'Student confirmed complaint is fixed: Broken projector'})

        Notification.objects.all().delete()
        self.fanout.dispatch(self.event(
            WorkflowEventType.RESOLUTION_CONFIRMED, actor=self.student, action='confirm', comment='Works now',
        ))
        messages = set(Notification.objects.values_list('message', flat=True))
        self.assertEqual(messages, {'Complaint verified by student: Broken projector'})

    def test_reopen_goes_to_admins_except_actor(self):
        self.fanout.dispatch(self.event(
            WorkflowEventType.COMPLAINT_REOPENED, actor=self.admin, action='reopen', comment='',
        ))

        recipients = list(Notification.objects.values_list('recipient_id', flat=True))
        self.assertEqual(recipients, [self.other_admin.id])
        notification = Notification.objects.get()
        self.assertEqual(notification.notification_type, NotificationType.COMPLAINT_REOPENED)
        self.assertEqual(notification.message, 'Student reopened complaint after resolution: Broken projector')
        self.assertEqual(notification.metadata, {'action': 'reopen', 'comment': ''})

    def test_unknown_event_is_ignored(self):
        self.assertEqual(self.fanout.dispatch(self.event(WorkflowEventType.COMPLAINT_PURGED)), [])
        self.assertFalse(Notification.objects.exists())

    def test_one_admin_email_raising_does_not_stop_the_other(self):
        transport = SelectiveEmailTransport(fail_for=self.admin.email)
        fanout = NotificationFanout(gateway=self.gateway, email_transport=transport, max_workers=1)

        outcomes = fanout.dispatch(self.event(WorkflowEventType.COMPLAINT_CREATED, actor=self.student))

        self.assertEqual(len(outcomes), 2)
        self.assertEqual(transport.sent, [self.other_admin.email])
        recipients = set(Notification.objects.values_list('recipient_id', flat=True))
        self.assertEqual(recipients, {self.admin.id, self.other_admin.id})
        by_recipient = {o.recipient_id: o for o in outcomes}
        self.assertFalse(by_recipient[str(self.admin.id)].emailed)
        self.assertTrue(by_recipient[str(self.admin.id)].persisted)
        self.assertTrue(by_recipient[str(self.other_admin.id)].emailed)

    def test_unexpected_push_error_does_not_stop_persist_or_email(self):
        transport = SelectiveEmailTransport()
        fanout = NotificationFanout(gateway=BrokenGateway(), email_transport=transport, max_workers=1)

        outcomes = fanout.dispatch(self.event(WorkflowEventType.COMPLAINT_CREATED, actor=self.student))

        self.assertEqual(Notification.objects.count(), 2)
        self.assertEqual(sorted(transport.sent), sorted([self.admin.email, self.other_admin.email]))
        self.assertFalse(any(o.pushed for o in outcomes))


class InboxHelperTests(FanoutTestCase):

    def test_unread_count_and_mark_all_read(self):
        for new_status in ('open', 'in_progress'):
            self.fanout.dispatch(self.event(
                WorkflowEventType.STATUS_UPDATED, old_status='x', new_status=new_status,
            ))

        self.assertEqual(get_unread_count(self.student), 2)
        self.assertEqual(mark_all_read(self.student), 2)
        self.assertEqual(get_unread_count(self.student), 0)
        self.assertTrue(all(n.read_at for n in Notification.objects.filter(recipient=self.student)))
