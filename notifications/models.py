"""
Notification models.

A Notification is the durable copy of a workflow event for one recipient.
Real-time pushes are not queued for offline users; the persisted record
and its unread flag are how a missed push is recovered.
"""

from django.db import models
from django.utils import timezone

from core.models import BaseModel


class NotificationType:
    COMPLAINT_CREATED = 'complaint_created'
    STATUS_UPDATED = 'status_updated'
    REMARK_ADDED = 'remark_added'
    COMPLAINT_ASSIGNED = 'complaint_assigned'
    COMPLAINT_VERIFIED = 'complaint_verified'
    COMPLAINT_REOPENED = 'complaint_reopened'

    CHOICES = [
        (COMPLAINT_CREATED, 'Complaint Created'),
        (STATUS_UPDATED, 'Status Updated'),
        (REMARK_ADDED, 'Remark Added'),
        (COMPLAINT_ASSIGNED, 'Complaint Assigned'),
        (COMPLAINT_VERIFIED, 'Complaint Verified'),
        (COMPLAINT_REOPENED, 'Complaint Reopened'),
    ]


class Notification(BaseModel):
    recipient = models.ForeignKey(
        'authentication.User',
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    complaint = models.ForeignKey(
        'complaints.Complaint',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )

    notification_type = models.CharField(
        max_length=30,
        choices=NotificationType.CHOICES,
        db_index=True
    )

    message = models.CharField(max_length=500)

    is_read = models.BooleanField(default=False, db_index=True)

    read_at = models.DateTimeField(null=True, blank=True)

    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'notifications'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read', '-created_at'], name='notif_recipient_unread_idx'),
            models.Index(fields=['recipient', '-created_at'], name='notif_recipient_created_idx'),
        ]

    def __str__(self):
        return f"[{self.recipient_id}] {self.message}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])
