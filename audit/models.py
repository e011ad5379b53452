"""
Audit models for the Campus Complaints backend.

Immutable, append-only record of security- and workflow-relevant actions:
- Authentication events (login, failed login, logout)
- Complaint lifecycle events (create, status change, verification, remarks)
- Unauthorized access attempts
- User/registration/profile administration

Entries are never updated or deleted through normal operation.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class AuditAction:
    """Closed set of auditable actions."""

    # Authentication
    LOGIN = 'LOGIN'
    LOGIN_FAILED = 'LOGIN_FAILED'
    LOGOUT = 'LOGOUT'
    UNAUTHORIZED_ACCESS = 'UNAUTHORIZED_ACCESS'

    # Complaint lifecycle
    COMPLAINT_CREATE = 'COMPLAINT_CREATE'
    COMPLAINT_STATUS_UPDATE = 'COMPLAINT_STATUS_UPDATE'
    COMPLAINT_RESOLUTION_CONFIRMED = 'COMPLAINT_RESOLUTION_CONFIRMED'
    COMPLAINT_REOPENED = 'COMPLAINT_REOPENED'
    COMPLAINT_REMARK_ADDED = 'COMPLAINT_REMARK_ADDED'
    COMPLAINT_DELETED = 'COMPLAINT_DELETED'
    COMPLAINT_EXPORT = 'COMPLAINT_EXPORT'

    # User administration
    USER_CREATE = 'USER_CREATE'
    USER_UPDATE = 'USER_UPDATE'
    USER_DELETE = 'USER_DELETE'
    USER_SUSPEND = 'USER_SUSPEND'
    USER_REACTIVATE = 'USER_REACTIVATE'

    # Registration requests
    REGISTRATION_APPROVED = 'REGISTRATION_APPROVED'
    REGISTRATION_REJECTED = 'REGISTRATION_REJECTED'

    # Profile / password
    PROFILE_UPDATE = 'PROFILE_UPDATE'
    PASSWORD_CHANGE = 'PASSWORD_CHANGE'
    PASSWORD_RESET_REQUEST = 'PASSWORD_RESET_REQUEST'
    PASSWORD_RESET = 'PASSWORD_RESET'

    CHOICES = [
        (LOGIN, 'Login'),
        (LOGIN_FAILED, 'Login Failed'),
        (LOGOUT, 'Logout'),
        (UNAUTHORIZED_ACCESS, 'Unauthorized Access'),

        (COMPLAINT_CREATE, 'Complaint Created'),
        (COMPLAINT_STATUS_UPDATE, 'Complaint Status Updated'),
        (COMPLAINT_RESOLUTION_CONFIRMED, 'Complaint Resolution Confirmed'),
        (COMPLAINT_REOPENED, 'Complaint Reopened'),
        (COMPLAINT_REMARK_ADDED, 'Complaint Remark Added'),
        (COMPLAINT_DELETED, 'Complaint Deleted'),
        (COMPLAINT_EXPORT, 'Complaint Export'),

        (USER_CREATE, 'User Created'),
        (USER_UPDATE, 'User Updated'),
        (USER_DELETE, 'User Deleted'),
        (USER_SUSPEND, 'User Suspended'),
        (USER_REACTIVATE, 'User Reactivated'),

        (REGISTRATION_APPROVED, 'Registration Approved'),
        (REGISTRATION_REJECTED, 'Registration Rejected'),

        (PROFILE_UPDATE, 'Profile Updated'),
        (PASSWORD_CHANGE, 'Password Changed'),
        (PASSWORD_RESET_REQUEST, 'Password Reset Requested'),
        (PASSWORD_RESET, 'Password Reset'),
    ]


class AuditResource:
    """Kinds of entity an audit entry can point at."""
    COMPLAINT = 'complaint'
    USER = 'user'
    REGISTRATION = 'registration'
    PROFILE = 'profile'
    AUTH = 'auth'

    CHOICES = [
        (COMPLAINT, 'Complaint'),
        (USER, 'User'),
        (REGISTRATION, 'Registration'),
        (PROFILE, 'Profile'),
        (AUTH, 'Auth'),
    ]

    # Prefix for the operator-facing display id
    DISPLAY_PREFIXES = {
        COMPLAINT: 'CMP',
        USER: 'USR',
        REGISTRATION: 'REG',
        PROFILE: 'USR',
        AUTH: 'AUTH',
    }
    DEFAULT_PREFIX = 'RES'


class AuditStatus:
    SUCCESS = 'Success'
    FAILED = 'Failed'

    CHOICES = [
        (SUCCESS, 'Success'),
        (FAILED, 'Failed'),
    ]


class ActorRole:
    """Role of the actor at the time of the action (copied, not joined)."""
    ADMIN = 'admin'
    STAFF = 'staff'
    STUDENT = 'student'

    CHOICES = [
        (ADMIN, 'Admin'),
        (STAFF, 'Staff'),
        (STUDENT, 'Student'),
    ]


def build_target_id_display(resource, resource_id, year=None):
    """
    Short operator-facing id: {PREFIX}-{year}-{last 6 chars of id}.

    >>> build_target_id_display('complaint', '64f1c2aa9b0e1d2c3f4a5b6c', 2025)
    'CMP-2025-4a5b6c'
    """
    if not resource_id:
        return ''
    value = str(resource_id)
    prefix = AuditResource.DISPLAY_PREFIXES.get(resource, AuditResource.DEFAULT_PREFIX)
    year = year or timezone.now().year
    suffix = value[-6:] if len(value) >= 6 else value
    return f"{prefix}-{year}-{suffix}"


class AuditLogQuerySet(models.QuerySet):
    """Queryset that refuses bulk modification."""

    def update(self, *args, **kwargs):
        raise PermissionError("Audit logs are immutable and cannot be updated.")

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit logs are immutable and cannot be deleted.")


class AuditLog(models.Model):
    """
    Immutable audit entry.

    Does not inherit from BaseModel: audit entries must never be
    updated or deleted. The actor FK is nullable so failed logins
    (no resolved user) and later user removal keep the entry intact.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="Actor (null for unresolved failed logins)"
    )

    actor_role = models.CharField(
        max_length=10,
        choices=ActorRole.CHOICES,
        blank=True,
        db_index=True
    )

    action = models.CharField(
        max_length=40,
        choices=AuditAction.CHOICES,
        db_index=True
    )

    resource = models.CharField(
        max_length=20,
        choices=AuditResource.CHOICES,
        db_index=True
    )

    resource_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="True id of the target, for exact lookups"
    )

    target_id_display = models.CharField(
        max_length=32,
        blank=True,
        db_index=True,
        help_text="Short display id shown to operators"
    )

    details = models.CharField(
        max_length=1000,
        blank=True
    )

    metadata = models.JSONField(
        default=dict,
        blank=True
    )

    status = models.CharField(
        max_length=10,
        choices=AuditStatus.CHOICES,
        default=AuditStatus.SUCCESS,
        db_index=True
    )

    correlation_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True
    )

    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )

    user_agent = models.CharField(
        max_length=500,
        blank=True
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        db_table = 'audit_logs'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='audit_user_created_idx'),
            models.Index(fields=['action', '-created_at'], name='audit_action_created_idx'),
            models.Index(fields=['resource', '-created_at'], name='audit_resource_created_idx'),
            models.Index(fields=['status', '-created_at'], name='audit_status_created_idx'),
        ]

    def __str__(self):
        actor = self.user_id or 'anonymous'
        return f"{self.created_at} | {self.action} | {actor}"

    @property
    def hides_actor(self):
        """True for entries a student made on their own anonymous complaint."""
        return bool((self.metadata or {}).get('anonymous_actor'))

    def save(self, *args, **kwargs):
        """Append-only: creation is allowed, updates are not."""
        if self.pk and AuditLog.objects.filter(pk=self.pk).exists():
            raise PermissionError("Audit logs are immutable and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit logs are immutable and cannot be deleted.")
