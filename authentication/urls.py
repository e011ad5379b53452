"""
URL configuration for authentication and account administration.
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import views

app_name = 'auth'

urlpatterns = [
    path('login/', views.LoginView.as_view(), name='login'),
    path('logout/', views.LogoutView.as_view(), name='logout'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('me/', views.CurrentUserView.as_view(), name='me'),

    # Registration requests
    path('registration-requests/', views.RegistrationRequestListView.as_view(), name='registration-list'),
    path('registration-requests/<uuid:pk>/approve/', views.ApproveRegistrationView.as_view(), name='registration-approve'),
    path('registration-requests/<uuid:pk>/reject/', views.RejectRegistrationView.as_view(), name='registration-reject'),

    # User management
    path('users/', views.UserListCreateView.as_view(), name='user-list'),
    path('users/<uuid:pk>/', views.UserDetailView.as_view(), name='user-detail'),
    path('users/<uuid:pk>/suspend/', views.SuspendUserView.as_view(), name='user-suspend'),
    path('users/<uuid:pk>/reactivate/', views.ReactivateUserView.as_view(), name='user-reactivate'),

    # Self service
    path('profile/', views.ProfileView.as_view(), name='profile'),
    path('password/change/', views.ChangePasswordView.as_view(), name='password-change'),
    path('password/forgot/', views.ForgotPasswordView.as_view(), name='password-forgot'),
    path('password/reset/', views.ResetPasswordView.as_view(), name='password-reset'),
]
