"""
Admin configuration for complaints.

Workflow fields are read-only here: status changes must go through the
API so they are validated, audited and notified.
"""

from django.contrib import admin

from .models import Complaint, ComplaintAttachment, ComplaintRemark


class ComplaintAttachmentInline(admin.TabularInline):
    model = ComplaintAttachment
    extra = 0
    fields = ['filename', 'mimetype', 'size', 'uploaded_at']
    readonly_fields = fields
    can_delete = False


class ComplaintRemarkInline(admin.TabularInline):
    model = ComplaintRemark
    extra = 0
    fields = ['comment', 'added_by', 'added_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = [
        'title', 'category', 'department', 'priority', 'status',
        'verification_status', 'sla_is_overdue', 'created_at',
    ]
    list_filter = ['status', 'category', 'priority', 'department', 'is_anonymous']
    search_fields = ['title', 'description', 'department']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']
    inlines = [ComplaintAttachmentInline, ComplaintRemarkInline]

    readonly_fields = [
        'id', 'created_by', 'status', 'rejection_reason',
        'verification_status', 'verification_comment', 'verified_by', 'verified_at',
        'resolved_at', 'resolution_time',
        'sla_due_date', 'sla_is_overdue', 'sla_hours_remaining',
        'created_at', 'updated_at',
    ]

    fieldsets = (
        ('Complaint', {
            'fields': ('id', 'title', 'description', 'category', 'department', 'priority', 'is_anonymous'),
        }),
        ('Ownership', {
            'fields': ('created_by', 'assigned_to'),
        }),
        ('Workflow', {
            'fields': ('status', 'rejection_reason', 'resolved_at', 'resolution_time'),
        }),
        ('Resolution Verification', {
            'fields': ('verification_status', 'verification_comment', 'verified_by', 'verified_at'),
        }),
        ('SLA', {
            'fields': ('sla_due_date', 'sla_is_overdue', 'sla_hours_remaining'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def has_delete_permission(self, request, obj=None):
        return False
