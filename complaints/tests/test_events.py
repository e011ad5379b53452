from unittest import mock

from django.test import TestCase

from audit.models import AuditAction, AuditLog
from audit.services import AuditTrailRecorder
from complaints.events import AuditSubscriber, EventDispatcher, WorkflowEvent, WorkflowEventType
from complaints.models import Complaint
from complaints.orchestrator import WorkflowOrchestrator
from core.testing import make_staff, make_student


class DispatcherTests(TestCase):

    def setUp(self):
        self.student = make_student()
        self.complaint = Complaint.objects.create(
            title='Library noise', description='Too loud', category='library',
            department='Library', created_by=self.student,
        )

    def test_failing_subscriber_does_not_stop_others(self):
        delivered = []

        def broken(event):
            raise RuntimeError('boom')

        dispatcher = EventDispatcher([broken, delivered.append], run_async=False)
        event = WorkflowEvent(name=WorkflowEventType.REMARK_ADDED, complaint=self.complaint)

        with self.assertLogs('campus.workflow', level='ERROR'):
            dispatcher.publish(event)

        self.assertEqual(delivered, [event])

    def test_async_delivery_closes_connections(self):
        dispatcher = EventDispatcher([], run_async=True)
        event = WorkflowEvent(name=WorkflowEventType.REMARK_ADDED, complaint=self.complaint)

        with mock.patch('complaints.events.connections') as connections:
            dispatcher.publish(event).result(timeout=5)

        connections.close_all.assert_called_once()

    def test_audit_subscriber_writes_one_entry_per_event(self):
        subscriber = AuditSubscriber(AuditTrailRecorder())
        subscriber(WorkflowEvent(
            name=WorkflowEventType.STATUS_UPDATED,
            complaint=self.complaint,
            actor=self.student,
            metadata={'old_status': 'open', 'new_status': 'in_progress'},
        ))

        entry = AuditLog.objects.get()
        self.assertEqual(entry.action, AuditAction.COMPLAINT_STATUS_UPDATE)
        self.assertEqual(entry.resource_id, str(self.complaint.id))
        self.assertEqual(entry.details, 'Changed complaint status from open to in_progress')

    def test_event_keeps_complaint_id(self):
        event = WorkflowEvent(name=WorkflowEventType.COMPLAINT_PURGED, complaint=self.complaint)
        self.assertEqual(event.complaint_id, str(self.complaint.id))


class OrchestratorInjectionTests(TestCase):

    def test_events_are_published_only_after_commit(self):
        student = make_student()
        staff = make_staff(department='Library')
        published = []
        orchestrator = WorkflowOrchestrator(
            dispatcher=EventDispatcher([published.append], run_async=False)
        )
        complaint = Complaint.objects.create(
            title='Broken chair', description='Reading room', category='library',
            department='Library', created_by=student,
        )

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            orchestrator.update_status(staff, complaint.id, 'open')

        self.assertEqual(published, [])
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        self.assertEqual(published[0].name, WorkflowEventType.STATUS_UPDATED)
        self.assertEqual(published[0].metadata['new_status'], 'open')
