"""
Role permissions for the Campus Complaints backend.

These gate whole endpoints by role. Per-complaint decisions (ownership,
department scope, anonymity masking) live in complaints.policy.AccessPolicy.
"""

from rest_framework import permissions


class IsAuthenticated(permissions.IsAuthenticated):
    """IsAuthenticated that also checks the account is usable."""

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.can_use_api


class _RolePermission(permissions.BasePermission):
    allowed_roles = ()

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if not user.can_use_api:
            return False
        return user.role in self.allowed_roles


class IsStudent(_RolePermission):
    message = "This action is available to students only."
    allowed_roles = ('student',)


class IsStaffMember(_RolePermission):
    message = "This action requires department staff."
    allowed_roles = ('staff',)


class IsAdmin(_RolePermission):
    """Admins: system-wide read access and the audit trail."""
    message = "This action requires an administrator."
    allowed_roles = ('admin',)


class IsStaffOrAdmin(_RolePermission):
    message = "This action requires staff or administrator access."
    allowed_roles = ('staff', 'admin')
