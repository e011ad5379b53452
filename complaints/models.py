"""
Complaint models for the Campus Complaints backend.

Contains:
- Complaint: a student grievance moving through the review lifecycle
- ComplaintAttachment: uploaded evidence (JPG/PNG/PDF)
- ComplaintRemark: append-only staff/admin notes

Workflow fields (status, verification, SLA) are only ever written by the
engines in complaints.workflow, driven by the orchestrator.
"""

import os

from django.db import models
from django.utils import timezone

from authentication.models import normalize_department
from core.models import BaseModel


class ComplaintStatus:
    """Complaint lifecycle status constants."""
    PENDING_REVIEW = 'pending_review'
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    RESOLVED = 'resolved'
    REJECTED = 'rejected'

    CHOICES = [
        (PENDING_REVIEW, 'Pending Review'),
        (OPEN, 'Open'),
        (IN_PROGRESS, 'In Progress'),
        (RESOLVED, 'Resolved'),
        (REJECTED, 'Rejected'),
    ]

    # Statuses a complaint can never be deleted from
    ACTIVE_STATES = [PENDING_REVIEW, OPEN, IN_PROGRESS]


class ComplaintCategory:
    ACADEMIC = 'academic'
    INFRASTRUCTURE = 'infrastructure'
    HOSTEL = 'hostel'
    LIBRARY = 'library'
    CAFETERIA = 'cafeteria'
    TRANSPORT = 'transport'
    OTHER = 'other'

    CHOICES = [
        (ACADEMIC, 'Academic'),
        (INFRASTRUCTURE, 'Infrastructure'),
        (HOSTEL, 'Hostel'),
        (LIBRARY, 'Library'),
        (CAFETERIA, 'Cafeteria'),
        (TRANSPORT, 'Transport'),
        (OTHER, 'Other'),
    ]


class ComplaintPriority:
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    CHOICES = [
        (LOW, 'Low'),
        (MEDIUM, 'Medium'),
        (HIGH, 'High'),
    ]


class VerificationStatus:
    """Student verification of a resolution."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    REOPENED = 'reopened'

    CHOICES = [
        (PENDING, 'Pending'),
        (CONFIRMED, 'Confirmed'),
        (REOPENED, 'Reopened'),
    ]


class Complaint(BaseModel):

    # === Content ===

    title = models.CharField(max_length=200)

    description = models.TextField(max_length=2000)

    category = models.CharField(
        max_length=20,
        choices=ComplaintCategory.CHOICES,
        db_index=True
    )

    department = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Department responsible for this complaint"
    )

    priority = models.CharField(
        max_length=10,
        choices=ComplaintPriority.CHOICES,
        default=ComplaintPriority.MEDIUM,
        db_index=True
    )

    is_anonymous = models.BooleanField(
        default=False,
        help_text="Hide the creator's identity from staff and admins"
    )

    # === Ownership ===

    created_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.PROTECT,
        related_name='complaints'
    )

    assigned_to = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_complaints'
    )

    # === Workflow state ===

    status = models.CharField(
        max_length=20,
        choices=ComplaintStatus.CHOICES,
        default=ComplaintStatus.PENDING_REVIEW,
        db_index=True
    )

    rejection_reason = models.CharField(max_length=500, blank=True, default='')

    resolved_at = models.DateTimeField(null=True, blank=True)

    resolution_time = models.FloatField(
        null=True,
        blank=True,
        help_text="Hours from creation to resolution, one decimal"
    )

    # === Resolution verification (null until first resolved) ===

    verification_status = models.CharField(
        max_length=20,
        choices=VerificationStatus.CHOICES,
        null=True,
        blank=True
    )

    verification_comment = models.CharField(max_length=500, blank=True, default='')

    verified_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verified_complaints'
    )

    verified_at = models.DateTimeField(null=True, blank=True)

    # === SLA ===

    sla_due_date = models.DateTimeField(null=True, blank=True, db_index=True)

    sla_is_overdue = models.BooleanField(default=False)

    sla_hours_remaining = models.FloatField(null=True, blank=True)

    class Meta:
        db_table = 'complaints'
        verbose_name = 'Complaint'
        verbose_name_plural = 'Complaints'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['department', 'status'], name='complaints_dept_status_idx'),
            models.Index(fields=['created_by', '-created_at'], name='complaints_creator_idx'),
            models.Index(fields=['status', 'sla_due_date'], name='complaints_status_sla_idx'),
        ]

    def __str__(self):
        return f"{self.title} [{self.status}]"

    def save(self, *args, **kwargs):
        self.department = normalize_department(self.department)
        super().save(*args, **kwargs)

    @property
    def resolution_verification(self):
        if self.verification_status is None:
            return None
        return {
            'status': self.verification_status,
            'comment': self.verification_comment or None,
            'verified_by': self.verified_by_id,
            'verified_at': self.verified_at,
        }

    @property
    def is_purgeable(self):
        return (
            self.status == ComplaintStatus.RESOLVED
            and self.verification_status == VerificationStatus.CONFIRMED
        )


def attachment_path(instance, filename):
    """
    Storage path for complaint attachments.

    Path format: complaint_attachments/<complaint_uuid>/<attachment_uuid>.<ext>
    The uploaded filename is kept on the row, never in the path.
    """
    ext = os.path.splitext(filename)[1].lower() or '.bin'
    return os.path.join(
        'complaint_attachments',
        str(instance.complaint_id),
        f"{instance.id}{ext}"
    )


class ComplaintAttachment(BaseModel):

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name='attachments'
    )

    filename = models.CharField(max_length=255)

    path = models.CharField(max_length=500, help_text="Storage path")

    mimetype = models.CharField(max_length=100)

    size = models.PositiveIntegerField(default=0)

    extracted_text = models.TextField(max_length=12000, blank=True, default='')

    uploaded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'complaint_attachments'
        ordering = ['uploaded_at']

    def __str__(self):
        return f"{self.filename} ({self.complaint_id})"


class ComplaintRemark(BaseModel):
    """Append-only remark by staff or an admin."""

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name='remarks'
    )

    comment = models.CharField(max_length=1000)

    added_by = models.ForeignKey(
        'authentication.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='complaint_remarks'
    )

    added_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'complaint_remarks'
        ordering = ['added_at']

    def __str__(self):
        return f"Remark on {self.complaint_id} by {self.added_by_id}"
