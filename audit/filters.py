"""
Query filters for the audit trail.

Parameter names follow the public API (camelCase) so the same FilterSet
backs both the paginated list and the CSV export.
"""

from django.contrib.auth import get_user_model
from django.db.models import Q
from django_filters import rest_framework as filters

from .models import AuditLog, AuditAction, AuditResource, AuditStatus, ActorRole


class AuditLogFilter(filters.FilterSet):
    userId = filters.UUIDFilter(field_name='user_id')
    action = filters.ChoiceFilter(field_name='action', choices=AuditAction.CHOICES)
    resource = filters.ChoiceFilter(field_name='resource', choices=AuditResource.CHOICES)
    actorRole = filters.ChoiceFilter(field_name='actor_role', choices=ActorRole.CHOICES)
    status = filters.ChoiceFilter(field_name='status', choices=AuditStatus.CHOICES)
    startDate = filters.DateTimeFilter(field_name='created_at', lookup_expr='gte')
    endDate = filters.DateTimeFilter(field_name='created_at', lookup_expr='lte')
    search = filters.CharFilter(method='filter_search')

    class Meta:
        model = AuditLog
        fields = ['userId', 'action', 'resource', 'actorRole', 'status', 'startDate', 'endDate', 'search']

    def filter_search(self, queryset, name, value):
        """
        Match the display id, or any entry whose actor's email, name or
        student id contains the term.
        """
        term = value.strip()
        if not term:
            return queryset

        User = get_user_model()
        matching_users = User.objects.filter(
            Q(email__icontains=term) |
            Q(name__icontains=term) |
            Q(student_id__icontains=term)
        ).values('id')

        return queryset.filter(
            Q(target_id_display__icontains=term) |
            Q(user_id__in=matching_users)
        )
