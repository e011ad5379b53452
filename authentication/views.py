"""
Authentication views.

Provides REST API endpoints for:
- Login (email/password) -> JWT pair
- Logout (refresh token blacklist)
- Token refresh
- Current user
- Registration requests, user management, profile and passwords
"""

from rest_framework import status, views
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from .accounts import AccountService
from .permissions import IsAuthenticated, IsStaffOrAdmin
from .serializers import (
    ChangePasswordSerializer, CreateUserSerializer, ForgotPasswordSerializer,
    LoginSerializer, LogoutSerializer, RegistrationRequestSerializer,
    RegistrationSubmitSerializer, RejectRegistrationSerializer,
    RemoveUserSerializer, ResetPasswordSerializer, UpdateUserSerializer,
    UserSerializer,
)


class LoginThrottle(ScopedRateThrottle):
    scope = 'login'


class LoginView(views.APIView):
    """
    POST /api/v1/auth/login/

    Request:
    {
        "email": "student@campus.edu",
        "password": "..."
    }

    Response:
    {
        "success": true,
        "data": {"refresh": "...", "access": "...", "user": {...}}
    }
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [LoginThrottle]

    def get_authenticate_header(self, request):
        # Bad credentials must come back as 401, which DRF only does with a challenge
        return 'Bearer realm="api"'

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        result = serializer.save()
        return Response({'success': True, 'data': result}, status=status.HTTP_200_OK)


class LogoutView(views.APIView):
    """
    POST /api/v1/auth/logout/

    Request: {"refresh": "<refresh token>"}
    """

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'success': True, 'data': {'detail': 'Successfully logged out.'}})


class CurrentUserView(views.APIView):
    """GET /api/v1/auth/me/"""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'success': True, 'data': UserSerializer(request.user).data})


# =============================================================================
# ACCOUNT ADMINISTRATION
# =============================================================================

class RegistrationThrottle(ScopedRateThrottle):
    scope = 'registration'


class PasswordResetThrottle(ScopedRateThrottle):
    scope = 'password_reset'


class AccountView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get_service(self):
        return AccountService()


class RegistrationRequestListView(AccountView):
    """
    POST /api/v1/auth/registration-requests/   public, multipart
        name, email, student_id, id_photo (required), profile_photo (optional)

    GET  /api/v1/auth/registration-requests/?status=pending   staff or admin
    """

    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get_permissions(self):
        if self.request.method == 'POST':
            return [AllowAny()]
        return [IsStaffOrAdmin()]

    def get_authenticators(self):
        if self.request.method == 'POST':
            return []
        return super().get_authenticators()

    def get_throttles(self):
        if self.request.method == 'POST':
            return [RegistrationThrottle()]
        return super().get_throttles()

    def get(self, request):
        registrations = self.get_service().list_registrations(
            request.user, request.query_params.get('status')
        )
        return Response({
            'success': True,
            'data': RegistrationRequestSerializer(registrations, many=True).data,
        })

    def post(self, request):
        serializer = RegistrationSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().submit_registration(
            serializer.validated_data,
            request.FILES.get('id_photo'),
            request.FILES.get('profile_photo'),
        )
        return Response(
            {
                'success': True,
                'data': {
                    'registration': RegistrationRequestSerializer(result['registration']).data,
                    'pending_email_sent': result['pending_email_sent'],
                },
            },
            status=status.HTTP_201_CREATED
        )


class ApproveRegistrationView(AccountView):
    """POST /api/v1/auth/registration-requests/{id}/approve/"""

    def post(self, request, pk):
        result = self.get_service().approve_registration(request.user, pk, request=request)
        return Response({
            'success': True,
            'data': {
                'registration': RegistrationRequestSerializer(result['registration']).data,
                'email_sent': result['email_sent'],
            },
        })


class RejectRegistrationView(AccountView):
    """POST /api/v1/auth/registration-requests/{id}/reject/  {"reason": "..."}"""

    def post(self, request, pk):
        serializer = RejectRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().reject_registration(
            request.user, pk, serializer.validated_data['reason'], request=request
        )
        return Response({
            'success': True,
            'data': {
                'registration': RegistrationRequestSerializer(result['registration']).data,
                'email_sent': result['email_sent'],
            },
        })


class UserListCreateView(AccountView):
    """
    GET  /api/v1/auth/users/    staff: students in their department; admin: everyone
    POST /api/v1/auth/users/    staff create students, admins create staff
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [IsStaffOrAdmin()]
        return super().get_permissions()

    def get(self, request):
        users = self.get_service().list_users(request.user, request.query_params.get('role'))
        return Response({'success': True, 'data': UserSerializer(users, many=True).data})

    def post(self, request):
        serializer = CreateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().create_user(
            request.user, serializer.validated_data, request=request
        )
        return Response(
            {
                'success': True,
                'data': {
                    'user': UserSerializer(result['user']).data,
                    'generated_password': result['generated_password'],
                    'email_sent': result['email_sent'],
                },
            },
            status=status.HTTP_201_CREATED
        )


class UserDetailView(AccountView):
    """
    PATCH  /api/v1/auth/users/{id}/   staff update a student's name/email
    DELETE /api/v1/auth/users/{id}/   {"reason": "..."}
    """

    def patch(self, request, pk):
        serializer = UpdateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = self.get_service().update_student(
            request.user, pk, serializer.validated_data, request=request
        )
        return Response({'success': True, 'data': UserSerializer(user).data})

    def delete(self, request, pk):
        serializer = RemoveUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_service().remove_user(
            request.user, pk, serializer.validated_data['reason'], request=request
        )
        return Response({'success': True, 'data': result})


class SuspendUserView(AccountView):
    """POST /api/v1/auth/users/{id}/suspend/"""

    def post(self, request, pk):
        user = self.get_service().suspend_student(request.user, pk, request=request)
        return Response({'success': True, 'data': UserSerializer(user).data})


class ReactivateUserView(AccountView):
    """POST /api/v1/auth/users/{id}/reactivate/"""

    def post(self, request, pk):
        user = self.get_service().reactivate_student(request.user, pk, request=request)
        return Response({'success': True, 'data': UserSerializer(user).data})


class ProfileView(AccountView):
    """PATCH /api/v1/auth/profile/  {"name": "...", "email": "..."}"""

    def patch(self, request):
        serializer = UpdateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = self.get_service().update_profile(
            request.user, serializer.validated_data, request=request
        )
        return Response({'success': True, 'data': UserSerializer(user).data})


class ChangePasswordView(AccountView):
    """POST /api/v1/auth/password/change/"""

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.get_service().change_password(
            request.user,
            serializer.validated_data['current_password'],
            serializer.validated_data['new_password'],
            request=request,
        )
        return Response({'success': True, 'data': {'detail': 'Password updated.'}})


class ForgotPasswordView(AccountView):
    """
    POST /api/v1/auth/password/forgot/  {"email": "..."}

    Always answers the same way so the endpoint can't be used to find accounts.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [PasswordResetThrottle]

    def post(self, request):
        serializer = ForgotPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.get_service().request_password_reset(serializer.validated_data['email'], request=request)
        return Response({
            'success': True,
            'data': {'detail': 'If the account exists, a reset link has been sent.'},
        })


class ResetPasswordView(AccountView):
    """POST /api/v1/auth/password/reset/  {"uid": "...", "token": "...", "new_password": "..."}"""

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [PasswordResetThrottle]

    def post(self, request):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.get_service().reset_password(
            serializer.validated_data['uid'],
            serializer.validated_data['token'],
            serializer.validated_data['new_password'],
            request=request,
        )
        return Response({'success': True, 'data': {'detail': 'Password has been reset.'}})
