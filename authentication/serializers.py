"""
Serializers for authentication.

Handles:
- Email/password login with audit of every attempt
- Logout (refresh token blacklisting)
- User profile serialization
- Input validation for registration, user management and passwords
"""

import logging

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from audit.models import AuditAction, AuditResource, AuditStatus
from audit.services import AuditTrailRecorder
from core.exceptions import AuthorizationError
from .models import STUDENT_ID_PATTERN, RegistrationRequest, User

logger = logging.getLogger('campus.auth')


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id', 'email', 'name', 'role', 'department', 'student_id',
            'account_status', 'is_active', 'last_login', 'created_at',
        ]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    """
    Email + password login.

    Every attempt is audited: LOGIN on success, LOGIN_FAILED (status
    Failed) otherwise, with the actor attached when the email resolves.
    """

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )

    recorder = AuditTrailRecorder()

    def validate(self, attrs):
        request = self.context.get('request')
        email = attrs['email'].lower()
        password = attrs['password']

        user = authenticate(request=request, username=email, password=password)

        if user is None:
            existing_user = User.objects.filter(email=email).first()
            reason = 'Invalid password' if existing_user else 'Unknown email'
            if existing_user is not None and not existing_user.is_active:
                reason = 'Inactive account'
            self._record_failure(existing_user, email, reason, request)
            raise AuthenticationFailed('Invalid credentials')

        if not user.can_use_api:
            self._record_failure(user, email, f'Account {user.account_status}', request)
            raise AuthorizationError(f'Account is {user.account_status}.')

        attrs['user'] = user
        return attrs

    def create(self, validated_data):
        user = validated_data['user']
        request = self.context.get('request')

        refresh = RefreshToken.for_user(user)
        refresh['role'] = user.role

        self.recorder.record(
            AuditAction.LOGIN,
            AuditResource.AUTH,
            resource_id=user.id,
            actor=user,
            details='User logged in',
            metadata={'role': user.role},
            request=request,
        )
        logger.info(f"Login success: user={user.id} role={user.role}")

        return {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
            'user': UserSerializer(user).data,
        }

    def _record_failure(self, user, email, reason, request):
        logger.warning(f"Login failed: reason={reason}")
        self.recorder.record(
            AuditAction.LOGIN_FAILED,
            AuditResource.AUTH,
            resource_id=user.id if user else None,
            actor=user,
            details=f'Failed login attempt: {reason}',
            metadata={'email': email},
            status=AuditStatus.FAILED,
            request=request,
        )


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(help_text="Refresh token to blacklist")

    recorder = AuditTrailRecorder()

    def validate_refresh(self, value):
        try:
            RefreshToken(value)
        except TokenError:
            raise serializers.ValidationError("Invalid refresh token.")
        return value

    def save(self):
        request = self.context.get('request')
        token = RefreshToken(self.validated_data['refresh'])
        token.blacklist()

        user = request.user if request else None
        self.recorder.record(
            AuditAction.LOGOUT,
            AuditResource.AUTH,
            resource_id=getattr(user, 'id', None),
            actor=user,
            details='User logged out',
            request=request,
        )


# =============================================================================
# ACCOUNT ADMINISTRATION
# =============================================================================

class RegistrationRequestSerializer(serializers.ModelSerializer):
    reviewed_by = serializers.SerializerMethodField()

    class Meta:
        model = RegistrationRequest
        fields = [
            'id', 'name', 'email', 'student_id', 'id_photo_path', 'profile_photo_path',
            'status', 'rejection_reason', 'reviewed_by', 'reviewed_at',
            'created_user', 'created_at',
        ]
        read_only_fields = fields

    def get_reviewed_by(self, obj):
        if obj.reviewed_by is None:
            return None
        return {'id': str(obj.reviewed_by.id), 'name': obj.reviewed_by.name}


class RegistrationSubmitSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    student_id = serializers.RegexField(
        STUDENT_ID_PATTERN,
        max_length=20,
        error_messages={'invalid': 'Student ID must be in the format UGR/XXXXX/XX'},
    )


class RejectRegistrationSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CreateUserSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    student_id = serializers.CharField(max_length=20, required=False, allow_blank=True)
    department = serializers.CharField(max_length=100, required=False, allow_blank=True)


class UpdateUserSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100, required=False)
    email = serializers.EmailField(required=False)


class RemoveUserSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    uid = serializers.CharField()
    token = serializers.CharField()
    new_password = serializers.CharField(write_only=True)
