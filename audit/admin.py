"""
Admin configuration for audit logs.
Read-only: entries can be browsed but never added, changed or deleted.
"""

from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'actor_role', 'user', 'target_id_display', 'status', 'ip_address']
    list_filter = ['action', 'resource', 'actor_role', 'status']
    search_fields = ['target_id_display', 'resource_id', 'correlation_id', 'user__email', 'user__name']
    date_hierarchy = 'created_at'
    readonly_fields = [field.name for field in AuditLog._meta.fields]
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
