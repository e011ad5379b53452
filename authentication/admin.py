"""
Admin configuration for campus users.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import RegistrationRequest, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'department', 'student_id', 'account_status', 'is_active']
    list_filter = ['role', 'account_status', 'is_active', 'department']
    search_fields = ['email', 'name', 'student_id', 'department']
    ordering = ['email']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        ('Profile', {'fields': ('name', 'role', 'department', 'student_id')}),
        ('Status', {'fields': ('account_status', 'is_active', 'is_staff', 'is_superuser')}),
        ('Timestamps', {'fields': ('created_at', 'updated_at', 'last_login')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'role', 'department', 'student_id', 'password1', 'password2'),
        }),
    )


@admin.register(RegistrationRequest)
class RegistrationRequestAdmin(admin.ModelAdmin):
    list_display = ['student_id', 'name', 'email', 'status', 'reviewed_by', 'created_at']
    list_filter = ['status']
    search_fields = ['student_id', 'name', 'email']
    readonly_fields = ['id', 'created_at', 'updated_at', 'reviewed_at', 'created_user']
