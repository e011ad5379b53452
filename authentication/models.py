"""
Authentication models for the Campus Complaints backend.

The User model carries everything the complaint workflow needs to decide
whether it will accept an action at all:
- role (student / staff / admin)
- department (required for staff, drives department scoping)
- student_id (required for students)
- is_active / account_status gates
"""

import re

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.validators import RegexValidator
from django.db import models

from core.models import BaseModel

STUDENT_ID_PATTERN = r'^UGR/\d{5}/\d{2}$'


class UserRole:
    """User role constants."""
    STUDENT = 'student'
    STAFF = 'staff'
    ADMIN = 'admin'

    CHOICES = [
        (STUDENT, 'Student'),
        (STAFF, 'Department Staff'),
        (ADMIN, 'Administrator'),
    ]


class AccountStatus:
    """Account status constants. Only ACTIVE accounts may use the API."""
    PENDING_APPROVAL = 'PendingApproval'
    ACTIVE = 'Active'
    SUSPENDED = 'Suspended'
    REJECTED = 'Rejected'

    CHOICES = [
        (PENDING_APPROVAL, 'Pending Approval'),
        (ACTIVE, 'Active'),
        (SUSPENDED, 'Suspended'),
        (REJECTED, 'Rejected'),
    ]


def normalize_department(value):
    """Trim and collapse inner whitespace; case is preserved."""
    return re.sub(r'\s+', ' ', str(value or '')).strip()


class UserManager(BaseUserManager):
    """
    Manager for the campus User model.

    Enforces the role-specific required fields at creation time so that
    seeded and admin-created accounts can't bypass them.
    """

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('User must have an email address')

        email = self.normalize_email(email).lower()
        role = extra_fields.setdefault('role', UserRole.STUDENT)

        if 'department' in extra_fields:
            extra_fields['department'] = normalize_department(extra_fields['department'])

        if role == UserRole.STAFF and not extra_fields.get('department'):
            raise ValueError('Staff users must have a department')

        if role == UserRole.STUDENT:
            student_id = extra_fields.get('student_id') or ''
            if not re.match(STUDENT_ID_PATTERN, student_id):
                raise ValueError('Students must have a student ID in the format UGR/XXXXX/XX')

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        """Create an admin with Django admin site access."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)
        extra_fields.setdefault('account_status', AccountStatus.ACTIVE)
        extra_fields.setdefault('name', 'Administrator')

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Campus user.

    Note: `is_staff` is Django's admin-site flag, unrelated to the
    department staff role. Use the `is_staff_member` property for the role.
    """

    email = models.EmailField(
        unique=True,
        help_text="Login identifier (stored lower-case)"
    )

    name = models.CharField(
        max_length=150,
        help_text="Display name"
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.CHOICES,
        default=UserRole.STUDENT,
        db_index=True
    )

    department = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Required for staff; complaints are scoped by this value"
    )

    student_id = models.CharField(
        max_length=20,
        blank=True,
        validators=[
            RegexValidator(
                regex=STUDENT_ID_PATTERN,
                message='Student ID must be in the format UGR/XXXXX/XX'
            )
        ],
        help_text="University registration number (students only)"
    )

    account_status = models.CharField(
        max_length=20,
        choices=AccountStatus.CHOICES,
        default=AccountStatus.ACTIVE,
        db_index=True
    )

    is_active = models.BooleanField(default=True)

    is_staff = models.BooleanField(
        default=False,
        help_text="Designates whether user can access the admin site"
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'campus_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role', 'account_status'], name='users_role_status_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def is_student(self):
        return self.role == UserRole.STUDENT

    @property
    def is_staff_member(self):
        return self.role == UserRole.STAFF

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    @property
    def can_use_api(self):
        """Inactive and non-Active accounts are refused everywhere."""
        return self.is_active and self.account_status == AccountStatus.ACTIVE

    def save(self, *args, **kwargs):
        self.department = normalize_department(self.department)
        super().save(*args, **kwargs)


class RegistrationStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    ]


class RegistrationRequest(BaseModel):
    """
    A student's request for an account, reviewed by department staff.

    Approval creates the student in the reviewer's department; the
    request keeps a link to the account it produced.
    """

    name = models.CharField(max_length=100)

    email = models.EmailField()

    student_id = models.CharField(
        max_length=20,
        validators=[
            RegexValidator(
                regex=STUDENT_ID_PATTERN,
                message='Student ID must be in the format UGR/XXXXX/XX'
            )
        ]
    )

    id_photo_path = models.CharField(max_length=500, help_text="Storage path of the student ID photo")

    profile_photo_path = models.CharField(max_length=500, blank=True, default='')

    status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.CHOICES,
        default=RegistrationStatus.PENDING,
        db_index=True
    )

    rejection_reason = models.TextField(max_length=500, blank=True, default='')

    reviewed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_registrations'
    )

    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='registration_requests'
    )

    class Meta:
        db_table = 'registration_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email', 'status'], name='registration_email_status_idx'),
            models.Index(fields=['student_id', 'status'], name='registration_sid_status_idx'),
        ]

    def __str__(self):
        return f"{self.student_id} <{self.email}> ({self.status})"

    @property
    def is_pending(self):
        return self.status == RegistrationStatus.PENDING
