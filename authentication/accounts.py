"""
Account administration.

Covers the account lifecycle around the complaint workflow:
- student registration requests (submit, approve, reject)
- staff managing students in their own department
  (create, update, suspend, reactivate, delete)
- admins creating and deactivating staff accounts
- self-service profile and password changes, password reset by email

Every successful change is audited; refused attempts are audited as
UNAUTHORIZED_ACCESS with status Failed. Emails are best effort and their
outcome is reported back to the caller, never raised.

Usage:
    service = AccountService()
    result = service.approve_registration(request.user, request_id, request=request)
"""

import logging
import os
import secrets
import string

from django.conf import settings
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, Q
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from audit.models import AuditAction, AuditResource, AuditStatus
from audit.services import AuditTrailRecorder
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from notifications.email import EmailTransport
from .models import (
    AccountStatus,
    RegistrationRequest,
    RegistrationStatus,
    User,
    UserRole,
    normalize_department,
)

logger = logging.getLogger('campus.auth')

PASSWORD_ALPHABETS = (string.ascii_uppercase, string.ascii_lowercase, string.digits, '@#$%&*!')

PHOTO_EXTENSIONS = {
    'image/jpeg': ('.jpg', '.jpeg'),
    'image/png': ('.png',),
}

MIN_REASON_LENGTH = 10


def generate_password(length=12):
    """Random password with at least one character from each alphabet."""
    chars = [get_random_string(1, alphabet) for alphabet in PASSWORD_ALPHABETS]
    chars += list(get_random_string(length - len(chars), ''.join(PASSWORD_ALPHABETS)))
    secrets.SystemRandom().shuffle(chars)
    return ''.join(chars)


def require_reason(value, label):
    reason = (value or '').strip()
    if not reason:
        raise ValidationError(f'{label} is required')
    if len(reason) < MIN_REASON_LENGTH:
        raise ValidationError(f'{label} must be at least {MIN_REASON_LENGTH} characters')
    if len(reason) > 500:
        raise ValidationError(f'{label} must be at most 500 characters')
    return reason


def validate_photo(upload, label):
    max_size = getattr(settings, 'MAX_REGISTRATION_PHOTO_SIZE', 5 * 1024 * 1024)
    content_type = (getattr(upload, 'content_type', '') or '').lower()
    ext = os.path.splitext(upload.name)[1].lower()

    if ext not in PHOTO_EXTENSIONS.get(content_type, ()):
        raise ValidationError(f'{label} must be a JPG or PNG image')
    if upload.size > max_size:
        raise ValidationError(f'{label} exceeds the {max_size // (1024 * 1024)}MB limit')


def store_photo(upload):
    ext = os.path.splitext(upload.name)[1].lower()
    name = f"registration_requests/{timezone.now():%Y/%m}/{secrets.token_hex(16)}{ext}"
    return default_storage.save(name, upload)


class AccountService:

    def __init__(self, recorder=None, email_transport=None):
        self.recorder = recorder or AuditTrailRecorder()
        self.email_transport = email_transport or EmailTransport()

    # =========================================================================
    # REGISTRATION REQUESTS
    # =========================================================================

    def submit_registration(self, data, id_photo, profile_photo=None):
        """Public: queue a student's account request for staff review."""
        email = data['email'].lower()
        student_id = data['student_id']

        if User.objects.filter(email=email).exists():
            raise ValidationError('User already exists with this email')
        if User.objects.filter(student_id=student_id).exists():
            raise ValidationError('User already exists with this student ID')
        if RegistrationRequest.objects.filter(
            Q(email=email) | Q(student_id=student_id),
            status=RegistrationStatus.PENDING,
        ).exists():
            raise ValidationError('A pending registration request already exists for this student/email')

        if id_photo is None:
            raise ValidationError('Student ID photo is required')
        validate_photo(id_photo, 'ID photo')
        if profile_photo is not None:
            validate_photo(profile_photo, 'Profile photo')

        registration = RegistrationRequest.objects.create(
            name=data['name'],
            email=email,
            student_id=student_id,
            id_photo_path=store_photo(id_photo),
            profile_photo_path=store_photo(profile_photo) if profile_photo is not None else '',
        )
        logger.info(f"Registration request {registration.id} submitted for {student_id}")

        staff_alerts = 0
        staff = User.objects.filter(
            role=UserRole.STAFF, is_active=True, account_status=AccountStatus.ACTIVE
        )
        for member in staff:
            staff_alerts += self.email_transport.send(
                member.email,
                'New Student Registration Request',
                f"{registration.name} ({registration.student_id}) requested an account.\n"
                f"Review it in the staff dashboard.\n",
            )
        pending_email_sent = self.email_transport.send(
            registration.email,
            'Registration Request Received',
            f"Hello {registration.name},\n\n"
            f"Your registration request was received. Staff will review your "
            f"student information and ID photo.\n",
        )

        return {
            'registration': registration,
            'pending_email_sent': pending_email_sent,
            'staff_alerts_sent': staff_alerts,
        }

    def list_registrations(self, actor, status=None):
        queryset = RegistrationRequest.objects.select_related('reviewed_by', 'created_user')
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-created_at')

    def approve_registration(self, actor, registration_id, request=None):
        """Staff only: create the student account in the reviewer's department."""
        try:
            if actor.role != UserRole.STAFF:
                raise AuthorizationError('Registration requests are reviewed by department staff')
            if not actor.department:
                raise ValidationError('Staff account has no department assigned')

            password = generate_password()
            with transaction.atomic():
                registration = self._lock_registration(registration_id)
                if not registration.is_pending:
                    raise ValidationError('Registration request was already reviewed')
                if User.objects.filter(email=registration.email).exists():
                    raise ValidationError('A user with this email already exists')
                if User.objects.filter(student_id=registration.student_id).exists():
                    raise ValidationError('A user with this student ID already exists')

                student = User.objects.create_user(
                    registration.email,
                    password,
                    name=registration.name,
                    role=UserRole.STUDENT,
                    student_id=registration.student_id,
                    department=actor.department,
                    account_status=AccountStatus.ACTIVE,
                )

                registration.status = RegistrationStatus.APPROVED
                registration.reviewed_by = actor
                registration.reviewed_at = timezone.now()
                registration.created_user = student
                registration.rejection_reason = ''
                registration.save()
        except AuthorizationError as exc:
            self._record_denial(actor, AuditResource.REGISTRATION, registration_id, 'approve_registration', exc, request)
            raise

        self.recorder.record(
            AuditAction.REGISTRATION_APPROVED,
            AuditResource.REGISTRATION,
            resource_id=registration.id,
            actor=actor,
            details=f"Approved registration for {registration.student_id}",
            metadata={'student_user_id': str(student.id), 'department': student.department},
            request=request,
        )
        logger.info(f"Registration {registration.id} approved by staff={actor.id}")

        email_sent = self.email_transport.send(
            student.email,
            'Registration Approved',
            f"Hello {student.name},\n\n"
            f"Your account has been approved.\n"
            f"Login email: {student.email}\n"
            f"Temporary password: {password}\n\n"
            f"Please change your password after signing in.\n",
        )
        return {'registration': registration, 'generated_password': password, 'email_sent': email_sent}

    def reject_registration(self, actor, registration_id, reason, request=None):
        try:
            if actor.role != UserRole.STAFF:
                raise AuthorizationError('Registration requests are reviewed by department staff')
            reason = require_reason(reason, 'Rejection reason')

            with transaction.atomic():
                registration = self._lock_registration(registration_id)
                if not registration.is_pending:
                    raise ValidationError('Registration request was already reviewed')

                registration.status = RegistrationStatus.REJECTED
                registration.reviewed_by = actor
                registration.reviewed_at = timezone.now()
                registration.rejection_reason = reason
                registration.save()
        except AuthorizationError as exc:
            self._record_denial(actor, AuditResource.REGISTRATION, registration_id, 'reject_registration', exc, request)
            raise

        self.recorder.record(
            AuditAction.REGISTRATION_REJECTED,
            AuditResource.REGISTRATION,
            resource_id=registration.id,
            actor=actor,
            details=f"Rejected registration for {registration.student_id}",
            metadata={'reason': reason},
            request=request,
        )

        email_sent = self.email_transport.send(
            registration.email,
            'Registration Request Rejected',
            f"Hello {registration.name},\n\n"
            f"Your registration request was not approved.\n\nReason: {reason}\n",
        )
        return {'registration': registration, 'email_sent': email_sent}

    # =========================================================================
    # USER MANAGEMENT
    # =========================================================================

    def list_users(self, actor, role=None):
        queryset = User.objects.all()
        if actor.role == UserRole.STAFF:
            queryset = queryset.filter(role=UserRole.STUDENT, department__iexact=actor.department)
        elif role:
            queryset = queryset.filter(role=role)
        return queryset.order_by('-created_at')

    def create_user(self, actor, data, request=None):
        """
        Staff create students in their own department; admins create staff.

        Returns the account, the generated password and whether the
        credentials email went out.
        """
        email = data['email'].lower()
        if User.objects.filter(email=email).exists():
            raise ValidationError('A user with this email already exists')

        fields = {'name': data['name'], 'account_status': AccountStatus.ACTIVE}
        if actor.role == UserRole.STAFF:
            if not actor.department:
                raise ValidationError('Staff account has no department assigned')
            student_id = (data.get('student_id') or '').upper().strip()
            if not student_id:
                raise ValidationError('Student ID is required')
            if User.objects.filter(student_id=student_id).exists():
                raise ValidationError('A user with this student ID already exists')
            fields.update(role=UserRole.STUDENT, student_id=student_id, department=actor.department)
        elif actor.role == UserRole.ADMIN:
            department = normalize_department(data.get('department'))
            if not department:
                raise ValidationError('Department is required when creating staff accounts')
            fields.update(role=UserRole.STAFF, department=department)
        else:
            exc = AuthorizationError('Not authorized to create accounts')
            self._record_denial(actor, AuditResource.USER, None, 'create_user', exc, request)
            raise exc

        password = generate_password()
        try:
            user = User.objects.create_user(email, password, **fields)
        except (ValueError, IntegrityError) as exc:
            raise ValidationError(str(exc))

        self.recorder.record(
            AuditAction.USER_CREATE,
            AuditResource.USER,
            resource_id=user.id,
            actor=actor,
            details=f"Created {user.role} account for {user.email}",
            metadata={'role': user.role, 'department': user.department},
            request=request,
        )
        logger.info(f"User {user.id} ({user.role}) created by {actor.role}={actor.id}")

        email_sent = self.email_transport.send(
            user.email,
            'Your Campus Complaints Account',
            f"Hello {user.name},\n\n"
            f"An account was created for you.\n"
            f"Login email: {user.email}\n"
            f"Temporary password: {password}\n\n"
            f"Please change your password after signing in.\n",
        )
        return {'user': user, 'generated_password': password, 'email_sent': email_sent}

    def update_student(self, actor, user_id, data, request=None):
        """Staff correct a student's name or email."""
        student = self._managed_student(actor, user_id, 'update_user', request)

        changes = {}
        name = (data.get('name') or '').strip()
        if name and name != student.name:
            changes['name'] = name
        email = (data.get('email') or '').strip().lower()
        if email and email != student.email:
            if User.objects.filter(email=email).exclude(pk=student.pk).exists():
                raise ValidationError('Email is already in use')
            changes['email'] = email
        if not changes:
            raise ValidationError('Nothing to update')

        for field, value in changes.items():
            setattr(student, field, value)
        student.save(update_fields=list(changes) + ['updated_at'])

        self.recorder.record(
            AuditAction.USER_UPDATE,
            AuditResource.USER,
            resource_id=student.id,
            actor=actor,
            details=f"Updated student {student.student_id}",
            metadata={'fields': sorted(changes)},
            request=request,
        )
        return student

    def suspend_student(self, actor, user_id, request=None):
        student = self._managed_student(actor, user_id, 'suspend_user', request)
        if student.account_status == AccountStatus.SUSPENDED:
            raise ValidationError('Student account is already suspended')

        student.account_status = AccountStatus.SUSPENDED
        student.is_active = False
        student.save(update_fields=['account_status', 'is_active', 'updated_at'])

        self.recorder.record(
            AuditAction.USER_SUSPEND,
            AuditResource.USER,
            resource_id=student.id,
            actor=actor,
            details=f"Suspended student {student.student_id}",
            request=request,
        )
        logger.info(f"Student {student.id} suspended by {actor.role}={actor.id}")
        return student

    def reactivate_student(self, actor, user_id, request=None):
        student = self._managed_student(actor, user_id, 'reactivate_user', request)
        if student.can_use_api:
            raise ValidationError('Student account is already active')

        student.account_status = AccountStatus.ACTIVE
        student.is_active = True
        student.save(update_fields=['account_status', 'is_active', 'updated_at'])

        self.recorder.record(
            AuditAction.USER_REACTIVATE,
            AuditResource.USER,
            resource_id=student.id,
            actor=actor,
            details=f"Reactivated student {student.student_id}",
            request=request,
        )
        return student

    def remove_user(self, actor, user_id, reason, request=None):
        """
        Staff delete a student in their department; admins deactivate staff.

        A student who has filed complaints cannot be deleted (the complaint
        keeps its creator); suspend the account instead.
        """
        reason = require_reason(reason, 'Reason')

        if actor.role == UserRole.ADMIN:
            return self._deactivate_staff(actor, user_id, reason, request)

        student = self._managed_student(actor, user_id, 'delete_user', request)
        snapshot = {'email': student.email, 'name': student.name, 'id': student.id}
        try:
            with transaction.atomic():
                student.delete()
        except ProtectedError:
            raise ValidationError('Students with complaints cannot be deleted; suspend the account instead')

        self.recorder.record(
            AuditAction.USER_DELETE,
            AuditResource.USER,
            resource_id=snapshot['id'],
            actor=actor,
            details=f"Deleted student account {snapshot['email']}",
            metadata={'reason': reason, 'mode': 'deleted'},
            request=request,
        )
        email_sent = self.email_transport.send(
            snapshot['email'],
            'Account Removed',
            f"Hello {snapshot['name']},\n\nYour account was removed.\n\nReason: {reason}\n",
        )
        return {'email_sent': email_sent}

    def _deactivate_staff(self, actor, user_id, reason, request):
        target = User.objects.filter(pk=user_id).first()
        if target is None:
            raise NotFoundError('User not found')
        if target.pk == actor.pk:
            raise ValidationError('You cannot remove your own admin account')
        if target.role != UserRole.STAFF:
            exc = AuthorizationError('Admins can only deactivate staff accounts')
            self._record_denial(actor, AuditResource.USER, user_id, 'delete_user', exc, request)
            raise exc

        target.is_active = False
        target.account_status = AccountStatus.SUSPENDED
        target.save(update_fields=['is_active', 'account_status', 'updated_at'])

        self.recorder.record(
            AuditAction.USER_DELETE,
            AuditResource.USER,
            resource_id=target.id,
            actor=actor,
            details=f"Deactivated staff account {target.email}",
            metadata={'reason': reason, 'mode': 'deactivated'},
            request=request,
        )
        email_sent = self.email_transport.send(
            target.email,
            'Account Deactivated',
            f"Hello {target.name},\n\nYour staff account was deactivated.\n\nReason: {reason}\n",
        )
        return {'email_sent': email_sent}

    # =========================================================================
    # SELF SERVICE
    # =========================================================================

    def update_profile(self, user, data, request=None):
        changes = {}
        name = (data.get('name') or '').strip()
        if name and name != user.name:
            changes['name'] = name
        email = (data.get('email') or '').strip().lower()
        if email and email != user.email:
            if User.objects.filter(email=email).exclude(pk=user.pk).exists():
                raise ValidationError('Email is already in use')
            changes['email'] = email
        if not changes:
            return user

        for field, value in changes.items():
            setattr(user, field, value)
        user.save(update_fields=list(changes) + ['updated_at'])

        self.recorder.record(
            AuditAction.PROFILE_UPDATE,
            AuditResource.PROFILE,
            resource_id=user.id,
            actor=user,
            details='Updated own profile',
            metadata={'fields': sorted(changes)},
            request=request,
        )
        return user

    def change_password(self, user, current_password, new_password, request=None):
        if not user.check_password(current_password or ''):
            raise ValidationError('Current password is incorrect')
        self._validate_new_password(new_password, user)

        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])

        self.recorder.record(
            AuditAction.PASSWORD_CHANGE,
            AuditResource.AUTH,
            resource_id=user.id,
            actor=user,
            details='Password changed',
            request=request,
        )
        logger.info(f"Password changed: user={user.id}")

    def request_password_reset(self, email, request=None):
        """Email a reset link. The response never reveals whether the email exists."""
        user = User.objects.filter(email=(email or '').lower()).first()
        if user is None or not user.can_use_api:
            logger.info("Password reset requested for unknown or unusable account")
            return False

        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        base = getattr(settings, 'FRONTEND_URL', '').rstrip('/')
        reset_url = f"{base}/reset-password/{uid}/{token}"

        self.recorder.record(
            AuditAction.PASSWORD_RESET_REQUEST,
            AuditResource.AUTH,
            resource_id=user.id,
            actor=user,
            details='Password reset requested',
            request=request,
        )
        return self.email_transport.send(
            user.email,
            'Password Reset',
            f"Hello {user.name},\n\n"
            f"Use this link to reset your password:\n{reset_url}\n\n"
            f"If you did not ask for a reset, ignore this email.\n",
        )

    def reset_password(self, uid, token, new_password, request=None):
        user = self._user_for_reset(uid)
        if user is None or not default_token_generator.check_token(user, token):
            raise ValidationError('Reset token is invalid or expired')
        self._validate_new_password(new_password, user)

        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])

        self.recorder.record(
            AuditAction.PASSWORD_RESET,
            AuditResource.AUTH,
            resource_id=user.id,
            actor=user,
            details='Password reset via email link',
            request=request,
        )
        return user

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _lock_registration(self, registration_id):
        registration = (
            RegistrationRequest.objects.select_for_update()
            .filter(pk=registration_id)
            .first()
        )
        if registration is None:
            raise NotFoundError('Registration request not found')
        return registration

    def _managed_student(self, actor, user_id, attempted, request):
        """The student an actor may manage: admins any student, staff their department's."""
        student = User.objects.filter(pk=user_id, role=UserRole.STUDENT).first()
        if student is None:
            raise NotFoundError('Student not found')

        if actor.role == UserRole.ADMIN:
            return student
        if actor.role == UserRole.STAFF:
            if not actor.department:
                raise ValidationError('Staff account has no department assigned')
            if actor.department.casefold() == (student.department or '').casefold():
                return student

        exc = AuthorizationError('You can only manage students in your department')
        self._record_denial(actor, AuditResource.USER, student.id, attempted, exc, request)
        raise exc

    def _user_for_reset(self, uid):
        try:
            pk = force_str(urlsafe_base64_decode(uid))
            return User.objects.filter(pk=pk).first()
        except (TypeError, ValueError, OverflowError, DjangoValidationError):
            return None

    def _validate_new_password(self, password, user):
        try:
            validate_password(password, user=user)
        except DjangoValidationError as exc:
            raise ValidationError(' '.join(exc.messages))

    def _record_denial(self, actor, resource, resource_id, attempted, exc, request=None):
        self.recorder.record(
            AuditAction.UNAUTHORIZED_ACCESS,
            resource,
            resource_id=resource_id,
            actor=actor,
            details=f"Refused {attempted}: {exc.message}",
            metadata={'attempted': attempted, 'reason': str(exc.message)},
            status=AuditStatus.FAILED,
            request=request,
        )
        logger.warning(f"Denied {attempted} on {resource}={resource_id} for user={actor.id}")
