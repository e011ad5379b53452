"""
Complaint state machine.

ComplaintWorkflowEngine handles staff status changes.
ResolutionVerificationEngine handles the creator's confirm/reopen after
resolution. Both validate fully before touching the complaint, so a
rejected request leaves it unchanged; neither saves. Persistence and
side effects belong to the orchestrator.
"""

import logging

from django.utils import timezone

from core.exceptions import AuthorizationError, ConflictError, ValidationError
from . import sla
from .models import ComplaintStatus, VerificationStatus
from .policy import AccessPolicy

logger = logging.getLogger('campus.workflow')

ALLOWED_TRANSITIONS = {
    ComplaintStatus.PENDING_REVIEW: {ComplaintStatus.OPEN, ComplaintStatus.REJECTED},
    ComplaintStatus.OPEN: {ComplaintStatus.IN_PROGRESS, ComplaintStatus.REJECTED},
    ComplaintStatus.IN_PROGRESS: {ComplaintStatus.RESOLVED, ComplaintStatus.REJECTED},
    # resolved is left only through verification "reopen"
    ComplaintStatus.RESOLVED: set(),
    ComplaintStatus.REJECTED: set(),
}

VALID_STATUSES = {value for value, _ in ComplaintStatus.CHOICES}


def is_allowed(current, target):
    return target in ALLOWED_TRANSITIONS.get(current, set())


class TransitionResult:
    """What changed: the orchestrator saves `fields` and publishes from it."""

    def __init__(self, old_status, new_status, fields):
        self.old_status = old_status
        self.new_status = new_status
        self.fields = fields


class ComplaintWorkflowEngine:

    def transition(self, actor, complaint, target_status, rejection_reason=None, now=None):
        now = now or timezone.now()

        if not AccessPolicy.can_mutate_status(actor):
            raise AuthorizationError('Only staff can change complaint status')

        if not AccessPolicy.can_mutate_complaint(actor, complaint):
            raise AuthorizationError('Not authorized to update this complaint')

        if target_status not in VALID_STATUSES:
            raise ValidationError('Invalid status value')

        if target_status == complaint.status:
            raise ConflictError('Complaint already has this status')

        if not is_allowed(complaint.status, target_status):
            raise ValidationError('Invalid status transition')

        reason = (rejection_reason or '').strip()
        if target_status == ComplaintStatus.REJECTED and not reason:
            raise ValidationError('Rejection reason is required when rejecting a complaint')

        old_status = complaint.status
        complaint.status = target_status
        fields = ['status']

        if target_status == ComplaintStatus.REJECTED:
            complaint.rejection_reason = reason[:500]
            fields.append('rejection_reason')

        if target_status == ComplaintStatus.RESOLVED:
            complaint.verification_status = VerificationStatus.PENDING
            complaint.verification_comment = ''
            complaint.verified_by = None
            complaint.verified_at = None
            complaint.resolved_at = now
            complaint.resolution_time = sla.resolution_hours(complaint.created_at, now)
            fields += [
                'verification_status', 'verification_comment', 'verified_by',
                'verified_at', 'resolved_at', 'resolution_time',
            ]

        fields += sla.refresh_sla(complaint, now)

        logger.info(
            f"Complaint {complaint.id}: {old_status} -> {target_status} by user={actor.id}"
        )
        return TransitionResult(old_status, target_status, fields)


class ResolutionVerificationEngine:

    CONFIRM = 'confirm'
    REOPEN = 'reopen'
    ACTIONS = (CONFIRM, REOPEN)

    def verify(self, actor, complaint, action, comment=None, now=None):
        now = now or timezone.now()

        if actor is None or complaint.created_by_id != actor.id:
            raise AuthorizationError('Not authorized to verify this complaint')

        if complaint.status != ComplaintStatus.RESOLVED:
            raise ValidationError('Only resolved complaints can be verified')

        if action not in self.ACTIONS:
            raise ValidationError('Invalid verification action')

        comment = (comment or '').strip()
        if len(comment) > 500:
            raise ValidationError('Verification comment must be at most 500 characters')

        old_status = complaint.status
        complaint.verification_comment = comment
        complaint.verified_by = actor
        complaint.verified_at = now
        fields = ['verification_status', 'verification_comment', 'verified_by', 'verified_at']

        if action == self.CONFIRM:
            complaint.verification_status = VerificationStatus.CONFIRMED
        else:
            complaint.verification_status = VerificationStatus.REOPENED
            complaint.status = ComplaintStatus.IN_PROGRESS
            fields.append('status')
            fields += sla.refresh_sla(complaint, now)

        logger.info(f"Complaint {complaint.id}: verification {action} by user={actor.id}")
        return TransitionResult(old_status, complaint.status, fields)
