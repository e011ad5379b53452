"""
Notification fan-out for workflow events.

Usage:
    from notifications.services import NotificationFanout

    NotificationFanout().dispatch(event)

Each recipient is delivered independently: the Notification row, the
real-time push and the email are separate steps, and a failure in one
is logged and does not stop the others (or any other recipient).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from django.conf import settings
from django.db import connections, transaction
from django.utils import timezone

from authentication.models import AccountStatus, User, UserRole
from core.exceptions import DependencyFailure
from .email import EmailTransport
from .models import Notification, NotificationType
from .realtime import RealtimeGateway

logger = logging.getLogger('campus.notifications')

# Workflow event names, mirrored from complaints.events.WorkflowEventType
COMPLAINT_CREATED = 'complaint_created'
STATUS_UPDATED = 'status_updated'
REMARK_ADDED = 'remark_added'
RESOLUTION_CONFIRMED = 'resolution_confirmed'
COMPLAINT_REOPENED = 'complaint_reopened'


@dataclass
class DeliveryPlan:
    notification_type: str
    message: str
    subject: str
    body: str
    metadata: dict = field(default_factory=dict)


@dataclass
class DeliveryOutcome:
    recipient_id: str
    persisted: bool = False
    pushed: bool = False
    emailed: bool = False


def active_admins():
    return User.objects.filter(
        role=UserRole.ADMIN,
        is_active=True,
        account_status=AccountStatus.ACTIVE,
    )


def complaint_summary(complaint):
    if complaint is None:
        return None
    return {
        'id': str(complaint.id),
        'title': complaint.title,
        'status': complaint.status,
    }


class NotificationFanout:
    """
    Turn a workflow event into per-recipient notifications.

    `max_workers` of 1 delivers inline on the calling thread.
    """

    def __init__(self, gateway=None, email_transport=None, max_workers=None):
        self.gateway = gateway or RealtimeGateway()
        self.email_transport = email_transport or EmailTransport()
        if max_workers is None:
            max_workers = getattr(settings, 'NOTIFICATION_FANOUT_WORKERS', 4)
        self.max_workers = max(1, int(max_workers))

    # =========================================================================
    # RECIPIENTS AND CONTENT
    # =========================================================================

    def resolve_recipients(self, event):
        complaint = event.complaint
        if event.name == COMPLAINT_CREATED:
            recipients = list(active_admins())
        elif event.name in (STATUS_UPDATED, REMARK_ADDED):
            recipients = [complaint.created_by] if complaint.created_by_id else []
        elif event.name in (RESOLUTION_CONFIRMED, COMPLAINT_REOPENED):
            admins = active_admins()
            if event.actor is not None:
                admins = admins.exclude(id=event.actor.id)
            recipients = list(admins)
        else:
            recipients = []

        seen = set()
        unique = []
        for user in recipients:
            if user.id not in seen:
                seen.add(user.id)
                unique.append(user)
        return unique

    def build_plan(self, event):
        complaint = event.complaint
        title = complaint.title
        metadata = event.metadata or {}

        if event.name == COMPLAINT_CREATED:
            return DeliveryPlan(
                notification_type=NotificationType.COMPLAINT_CREATED,
                message=f"New complaint created: {title}",
                subject=f"New Complaint Submitted: {title}",
                body=(
                    f"A new complaint has been submitted.\n\n"
                    f"Title: {title}\n"
                    f"Category: {complaint.category}\n"
                    f"Department: {complaint.department}\n"
                    f"Priority: {complaint.priority}\n"
                ),
            )

        if event.name == STATUS_UPDATED:
            old_status = metadata.get('old_status')
            new_status = metadata.get('new_status')
            body = (
                f"The status of your complaint \"{title}\" changed "
                f"from {old_status} to {new_status}.\n"
            )
            if complaint.rejection_reason:
                body += f"\nReason: {complaint.rejection_reason}\n"
            return DeliveryPlan(
                notification_type=NotificationType.STATUS_UPDATED,
                message=f"Your complaint status changed from {old_status} to {new_status}",
                subject=f"Complaint Status Updated: {title}",
                body=body,
                metadata={'old_status': old_status, 'new_status': new_status},
            )

        if event.name == REMARK_ADDED:
            return DeliveryPlan(
                notification_type=NotificationType.REMARK_ADDED,
                message=f"New remark added to your complaint: {title}",
                subject=f"New Remark on Complaint: {title}",
                body=f"A remark was added to your complaint \"{title}\":\n\n{metadata.get('comment', '')}\n",
            )

        comment = metadata.get('comment') or ''
        if event.name == RESOLUTION_CONFIRMED:
            if comment:
                message = f"Complaint verified by student: {title}"
            else:
                message = f"Student confirmed complaint is fixed: {title}"
            return DeliveryPlan(
                notification_type=NotificationType.COMPLAINT_VERIFIED,
                message=message,
                subject=f"Complaint Verified: {title}",
                body=f"{message}\n\nComment: {comment or '-'}\n",
                metadata={'action': 'confirm', 'comment': comment},
            )

        if event.name == COMPLAINT_REOPENED:
            if comment:
                message = f"Complaint reopened by student: {title}"
            else:
                message = f"Student reopened complaint after resolution: {title}"
            return DeliveryPlan(
                notification_type=NotificationType.COMPLAINT_REOPENED,
                message=message,
                subject=f"Complaint Reopened: {title}",
                body=f"{message}\n\nComment: {comment or '-'}\n",
                metadata={'action': 'reopen', 'comment': comment},
            )

        return None

    # =========================================================================
    # DELIVERY
    # =========================================================================

    def dispatch(self, event):
        plan = self.build_plan(event)
        if plan is None:
            return []

        recipients = self.resolve_recipients(event)
        self._push_extras(event)

        if not recipients:
            logger.info(f"No recipients for {event.name} on complaint={event.complaint.id}")
            return []

        if self.max_workers == 1 or len(recipients) == 1:
            outcomes = [self._settle(user, event.complaint, plan) for user in recipients]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(
                    lambda user: self._deliver_in_worker(user, event.complaint, plan),
                    recipients,
                ))

        logger.info(
            f"Fan-out {event.name} complaint={event.complaint.id}: "
            f"{sum(o.persisted for o in outcomes)}/{len(outcomes)} persisted, "
            f"{sum(o.pushed for o in outcomes)} pushed, "
            f"{sum(o.emailed for o in outcomes)} emailed"
        )
        return outcomes

    def _deliver_in_worker(self, user, complaint, plan):
        try:
            return self._settle(user, complaint, plan)
        finally:
            connections.close_all()

    def _settle(self, user, complaint, plan):
        """deliver() for one recipient; an unexpected error becomes an empty outcome."""
        try:
            return self.deliver(user, complaint, plan)
        except Exception:
            logger.exception(f"Delivery to user={user.id} failed")
            return DeliveryOutcome(recipient_id=str(user.id))

    def deliver(self, user, complaint, plan):
        outcome = DeliveryOutcome(recipient_id=str(user.id))

        notification = None
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient=user,
                    complaint=complaint,
                    notification_type=plan.notification_type,
                    message=plan.message[:500],
                    metadata=plan.metadata,
                )
            outcome.persisted = True
        except Exception:
            logger.exception(f"Failed to persist notification for user={user.id}")

        if notification is not None:
            try:
                self.gateway.push_to_user(user.id, 'notification', {
                    'id': str(notification.id),
                    'type': notification.notification_type,
                    'message': notification.message,
                    'complaint': complaint_summary(complaint),
                    'created_at': notification.created_at,
                })
                outcome.pushed = True
            except DependencyFailure as exc:
                logger.warning(f"Real-time push skipped for user={user.id}: {exc}")
            except Exception:
                logger.exception(f"Real-time push failed for user={user.id}")

        try:
            outcome.emailed = bool(self.email_transport.send(user.email, plan.subject, plan.body))
        except Exception:
            logger.exception(f"Email to user={user.id} failed")
        return outcome

    def _push_extras(self, event):
        complaint = event.complaint
        try:
            if event.name == STATUS_UPDATED and complaint.created_by_id:
                self.gateway.push_to_user(complaint.created_by_id, 'status_update', {
                    'complaint_id': str(complaint.id),
                    'old_status': event.metadata.get('old_status'),
                    'new_status': event.metadata.get('new_status'),
                    'title': complaint.title,
                })
            elif event.name == COMPLAINT_CREATED:
                self.gateway.push_to_admins('new_complaint', {
                    'id': str(complaint.id),
                    'title': complaint.title,
                    'category': complaint.category,
                    'priority': complaint.priority,
                    'is_anonymous': complaint.is_anonymous,
                })
        except DependencyFailure as exc:
            logger.warning(f"Real-time broadcast skipped for {event.name}: {exc}")
        except Exception:
            logger.exception(f"Real-time broadcast failed for {event.name}")


# =============================================================================
# INBOX HELPERS
# =============================================================================

def get_unread_count(user):
    return Notification.objects.filter(recipient=user, is_read=False).count()


def mark_all_read(user):
    return Notification.objects.filter(recipient=user, is_read=False).update(
        is_read=True,
        read_at=timezone.now(),
        updated_at=timezone.now(),
    )
