"""
Complaint workflow orchestration.

WorkflowOrchestrator is the single entry point for complaint reads and
writes. Each mutation:

1. opens a transaction and locks the complaint row (select_for_update)
2. runs the access policy and the relevant engine
3. saves
4. publishes a WorkflowEvent on commit

Audit entries and notifications are event subscribers, so a request that
fails validation, or whose transaction rolls back, produces neither.
Concurrent transitions on one complaint serialize on the row lock; the
later one is validated against the state the earlier one committed.

Usage:
    orchestrator = WorkflowOrchestrator()
    complaint = orchestrator.update_status(request.user, complaint_id, 'open', request=request)
"""

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from audit.models import AuditAction, AuditResource, AuditStatus
from audit.services import AuditTrailRecorder, request_context
from authentication.models import UserRole
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from notifications.services import NotificationFanout
from . import sla
from .events import AuditSubscriber, EventDispatcher, WorkflowEvent, WorkflowEventType
from .models import Complaint, ComplaintRemark, ComplaintStatus, VerificationStatus
from .policy import AccessPolicy
from .serializers import ComplaintCreateSerializer
from .storage import delete_attachment_files, store_attachments, validate_attachments
from .workflow import ComplaintWorkflowEngine, ResolutionVerificationEngine

logger = logging.getLogger('campus.workflow')

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

LIST_FILTERS = ('status', 'category', 'priority')


class WorkflowOrchestrator:

    def __init__(self, recorder=None, fanout=None, dispatcher=None,
                 workflow_engine=None, verification_engine=None):
        self.recorder = recorder or AuditTrailRecorder()
        self.fanout = fanout or NotificationFanout()
        if dispatcher is None:
            dispatcher = EventDispatcher([AuditSubscriber(self.recorder), self.fanout.dispatch])
        self.dispatcher = dispatcher
        self.workflow_engine = workflow_engine or ComplaintWorkflowEngine()
        self.verification_engine = verification_engine or ResolutionVerificationEngine()

    # =========================================================================
    # READS
    # =========================================================================

    def _queryset(self):
        return Complaint.objects.select_related(
            'created_by', 'assigned_to', 'verified_by'
        ).prefetch_related('attachments', 'remarks__added_by')

    def get_complaint(self, actor, complaint_id, request=None):
        complaint = self._queryset().filter(pk=complaint_id).first()
        if complaint is None:
            raise NotFoundError('Complaint not found')

        if not AccessPolicy.can_access(actor, complaint):
            exc = AuthorizationError('Not authorized to view this complaint')
            self._record_denial(actor, complaint.id, 'view', exc, request)
            raise exc

        return complaint

    def list_complaints(self, actor, filters=None):
        """Return (complaints, pagination) for the actor's scope."""
        filters = filters or {}
        queryset = AccessPolicy.scope_queryset(actor, self._queryset())

        for name in LIST_FILTERS:
            value = filters.get(name)
            if value:
                queryset = queryset.filter(**{name: value})

        search = (filters.get('search') or '').strip()
        if search:
            queryset = queryset.filter(
                Q(title__icontains=search) | Q(description__icontains=search)
            )

        queryset = queryset.order_by('-created_at')

        page = _positive_int(filters.get('page'), 1)
        limit = min(_positive_int(filters.get('limit'), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        total = queryset.count()
        offset = (page - 1) * limit

        pagination = {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': -(-total // limit),
        }
        return list(queryset[offset:offset + limit]), pagination

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_complaint(self, actor, data, files=None, request=None):
        if actor.role != UserRole.STUDENT or not actor.can_use_api:
            exc = AuthorizationError('Only active student accounts can submit complaints')
            self._record_denial(actor, None, 'create', exc, request)
            raise exc

        serializer = ComplaintCreateSerializer(data=data)
        serializer.is_valid(raise_exception=True)
        files = list(files or [])
        validate_attachments(files)

        now = timezone.now()
        with transaction.atomic():
            complaint = Complaint(created_by=actor, created_at=now, **serializer.validated_data)
            complaint.sla_due_date = sla.compute_due_date(now, complaint.priority)
            sla.refresh_sla(complaint, now)
            complaint.save()
            store_attachments(complaint, files)

            self._publish(WorkflowEvent(
                name=WorkflowEventType.COMPLAINT_CREATED,
                complaint=complaint,
                actor=actor,
                metadata={'title': complaint.title},
                request_context=request_context(request),
            ))

        logger.info(f"Complaint {complaint.id} created by user={actor.id} dept={complaint.department}")
        return self._queryset().get(pk=complaint.pk)

    def update_status(self, actor, complaint_id, status, rejection_reason=None, request=None):
        try:
            with transaction.atomic():
                complaint = self._lock(complaint_id)
                result = self.workflow_engine.transition(
                    actor, complaint, status, rejection_reason=rejection_reason
                )
                complaint.save(update_fields=result.fields + ['updated_at'])

                metadata = {
                    'old_status': result.old_status,
                    'new_status': result.new_status,
                    'title': complaint.title,
                }
                if result.new_status == ComplaintStatus.REJECTED:
                    metadata['rejection_reason'] = complaint.rejection_reason

                self._publish(WorkflowEvent(
                    name=WorkflowEventType.STATUS_UPDATED,
                    complaint=complaint,
                    actor=actor,
                    metadata=metadata,
                    request_context=request_context(request),
                ))
        except AuthorizationError as exc:
            self._record_denial(actor, complaint_id, 'update_status', exc, request,
                                requested_status=status)
            raise

        return self._queryset().get(pk=complaint.pk)

    def verify_resolution(self, actor, complaint_id, action, comment=None, request=None):
        try:
            with transaction.atomic():
                complaint = self._lock(complaint_id)
                result = self.verification_engine.verify(actor, complaint, action, comment=comment)
                complaint.save(update_fields=result.fields + ['updated_at'])

                if complaint.verification_status == VerificationStatus.CONFIRMED:
                    name = WorkflowEventType.RESOLUTION_CONFIRMED
                else:
                    name = WorkflowEventType.COMPLAINT_REOPENED

                self._publish(WorkflowEvent(
                    name=name,
                    complaint=complaint,
                    actor=actor,
                    metadata={
                        'action': action,
                        'comment': complaint.verification_comment,
                        'old_status': result.old_status,
                        'new_status': result.new_status,
                        'title': complaint.title,
                    },
                    request_context=request_context(request),
                ))
        except AuthorizationError as exc:
            self._record_denial(actor, complaint_id, 'verify_resolution', exc, request,
                                requested_action=action)
            raise

        return self._queryset().get(pk=complaint.pk)

    def add_remark(self, actor, complaint_id, comment, request=None):
        comment = (comment or '').strip()

        try:
            if actor.role not in (UserRole.STAFF, UserRole.ADMIN):
                raise AuthorizationError('Only staff or admins can add remarks')

            with transaction.atomic():
                complaint = self._lock(complaint_id)
                if not AccessPolicy.can_remark(actor, complaint):
                    raise AuthorizationError('Not authorized to update this complaint')
                if not comment:
                    raise ValidationError('Comment is required')
                if len(comment) > 1000:
                    raise ValidationError('Comment must be at most 1000 characters')

                remark = ComplaintRemark.objects.create(
                    complaint=complaint,
                    comment=comment,
                    added_by=actor,
                )

                fields = sla.refresh_sla(complaint, timezone.now())
                complaint.save(update_fields=fields + ['updated_at'])

                self._publish(WorkflowEvent(
                    name=WorkflowEventType.REMARK_ADDED,
                    complaint=complaint,
                    actor=actor,
                    metadata={'remark_id': str(remark.id), 'comment': comment, 'title': complaint.title},
                    request_context=request_context(request),
                ))
        except AuthorizationError as exc:
            self._record_denial(actor, complaint_id, 'add_remark', exc, request)
            raise

        return self._queryset().get(pk=complaint.pk)

    def purge_complaint(self, actor, complaint_id, request=None):
        """Hard-delete a resolved complaint whose resolution the student confirmed."""
        if actor.role != UserRole.ADMIN:
            exc = AuthorizationError('Only administrators can delete complaints')
            self._record_denial(actor, complaint_id, 'purge', exc, request)
            raise exc

        with transaction.atomic():
            complaint = self._lock(complaint_id)
            if complaint.status in ComplaintStatus.ACTIVE_STATES:
                raise ValidationError('Active complaints cannot be deleted')
            if not complaint.is_purgeable:
                raise ValidationError('Only resolved complaints confirmed by the student can be deleted')

            event = WorkflowEvent(
                name=WorkflowEventType.COMPLAINT_PURGED,
                complaint=complaint,
                actor=actor,
                metadata={
                    'title': complaint.title,
                    'category': complaint.category,
                    'department': complaint.department,
                },
                request_context=request_context(request),
            )
            paths = [path for path in complaint.attachments.values_list('path', flat=True) if path]
            complaint.delete()
            # Files go only once the rows are gone for good
            transaction.on_commit(lambda: delete_attachment_files(paths))
            self._publish(event)

        logger.info(f"Complaint {event.complaint_id} purged by admin={actor.id}")

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _lock(self, complaint_id):
        complaint = (
            Complaint.objects.select_for_update()
            .filter(pk=complaint_id)
            .first()
        )
        if complaint is None:
            raise NotFoundError('Complaint not found')
        return complaint

    def _publish(self, event):
        transaction.on_commit(lambda: self.dispatcher.publish(event))

    def _record_denial(self, actor, complaint_id, attempted, exc, request=None, **extra):
        """Audit a refused attempt. Runs outside the refused transaction so the entry survives."""
        metadata = {'attempted': attempted, 'reason': str(exc.message)}
        metadata.update({key: value for key, value in extra.items() if value is not None})

        self.recorder.record(
            AuditAction.UNAUTHORIZED_ACCESS,
            AuditResource.COMPLAINT,
            resource_id=complaint_id,
            actor=actor,
            details=f"Refused {attempted}: {exc.message}",
            metadata=metadata,
            status=AuditStatus.FAILED,
            request=request,
        )
        logger.warning(f"Denied {attempted} of complaint={complaint_id} for user={actor.id}")


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
