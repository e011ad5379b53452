"""
Workflow events and their delivery.

The orchestrator publishes a WorkflowEvent after its transaction commits.
The dispatcher hands it to each subscriber in turn; a subscriber that
raises is logged and skipped, so the audit trail and the notification
fan-out can't break each other or the request that caused them.

Usage:
    dispatcher = EventDispatcher([AuditSubscriber(recorder), fanout.dispatch])
    transaction.on_commit(lambda: dispatcher.publish(event))
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Optional

from django.conf import settings
from django.db import connections

from audit.models import AuditAction, AuditResource

logger = logging.getLogger('campus.workflow')


class WorkflowEventType:
    COMPLAINT_CREATED = 'complaint_created'
    STATUS_UPDATED = 'status_updated'
    REMARK_ADDED = 'remark_added'
    RESOLUTION_CONFIRMED = 'resolution_confirmed'
    COMPLAINT_REOPENED = 'complaint_reopened'
    COMPLAINT_PURGED = 'complaint_purged'


@dataclass
class WorkflowEvent:
    name: str
    complaint: Any
    actor: Any = None
    metadata: dict = field(default_factory=dict)
    request_context: dict = field(default_factory=dict)
    # Purged complaints no longer exist; keep what the audit entry needs
    complaint_id: Optional[str] = None

    def __post_init__(self):
        if self.complaint_id is None and self.complaint is not None:
            self.complaint_id = str(self.complaint.id)


class AuditSubscriber:
    """Writes exactly one audit entry per workflow event."""

    ACTIONS = {
        WorkflowEventType.COMPLAINT_CREATED: AuditAction.COMPLAINT_CREATE,
        WorkflowEventType.STATUS_UPDATED: AuditAction.COMPLAINT_STATUS_UPDATE,
        WorkflowEventType.REMARK_ADDED: AuditAction.COMPLAINT_REMARK_ADDED,
        WorkflowEventType.RESOLUTION_CONFIRMED: AuditAction.COMPLAINT_RESOLUTION_CONFIRMED,
        WorkflowEventType.COMPLAINT_REOPENED: AuditAction.COMPLAINT_REOPENED,
        WorkflowEventType.COMPLAINT_PURGED: AuditAction.COMPLAINT_DELETED,
    }

    def __init__(self, recorder):
        self.recorder = recorder

    def __call__(self, event):
        action = self.ACTIONS.get(event.name)
        if action is None:
            return None

        metadata = self.metadata_for(event)
        if self.actor_is_anonymous_creator(event):
            metadata['anonymous_actor'] = True

        return self.recorder.record(
            action,
            AuditResource.COMPLAINT,
            resource_id=event.complaint_id,
            actor=event.actor,
            details=self.describe(event),
            metadata=metadata,
            context=event.request_context,
        )

    def describe(self, event):
        title = event.metadata.get('title') or getattr(event.complaint, 'title', '')
        if event.name == WorkflowEventType.COMPLAINT_CREATED:
            return f"Complaint submitted: {title}"
        if event.name == WorkflowEventType.STATUS_UPDATED:
            return (
                f"Changed complaint status from {event.metadata.get('old_status')} "
                f"to {event.metadata.get('new_status')}"
            )
        if event.name == WorkflowEventType.REMARK_ADDED:
            return f"Added remark to complaint: {title}"
        if event.name == WorkflowEventType.RESOLUTION_CONFIRMED:
            return f"Student confirmed resolution: {title}"
        if event.name == WorkflowEventType.COMPLAINT_REOPENED:
            return f"Student reopened complaint: {title}"
        if event.name == WorkflowEventType.COMPLAINT_PURGED:
            return f"Deleted complaint: {title}"
        return ''

    @staticmethod
    def actor_is_anonymous_creator(event):
        complaint = event.complaint
        return bool(
            complaint is not None
            and complaint.is_anonymous
            and event.actor is not None
            and complaint.created_by_id == event.actor.id
        )

    def metadata_for(self, event):
        if event.name == WorkflowEventType.COMPLAINT_CREATED:
            return {
                'category': event.complaint.category,
                'department': event.complaint.department,
            }
        if event.name == WorkflowEventType.STATUS_UPDATED:
            metadata = {
                'old_status': event.metadata.get('old_status'),
                'new_status': event.metadata.get('new_status'),
            }
            if event.metadata.get('rejection_reason'):
                metadata['rejection_reason'] = event.metadata['rejection_reason']
            return metadata
        return dict(event.metadata)


class EventDispatcher:
    """
    Calls every subscriber for every event.

    With `run_async` the whole delivery runs on a background thread and
    that thread's DB connections are closed afterwards.
    """

    _executor = None

    def __init__(self, subscribers=None, run_async=None):
        self.subscribers = list(subscribers or [])
        if run_async is None:
            run_async = getattr(settings, 'WORKFLOW_EVENTS_ASYNC', False)
        self.run_async = run_async

    def subscribe(self, subscriber):
        self.subscribers.append(subscriber)

    def publish(self, event):
        if self.run_async:
            return self._get_executor().submit(self._deliver_in_background, event)
        self.deliver(event)
        return None

    def deliver(self, event):
        for subscriber in self.subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    f"Subscriber {subscriber!r} failed for {event.name} "
                    f"complaint={event.complaint_id}"
                )

    def _deliver_in_background(self, event):
        try:
            self.deliver(event)
        finally:
            connections.close_all()

    @classmethod
    def _get_executor(cls):
        if cls._executor is None:
            cls._executor = ThreadPoolExecutor(
                max_workers=2,
                thread_name_prefix='workflow-events',
            )
        return cls._executor
