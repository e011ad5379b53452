"""
Audit trail services.

AuditTrailRecorder writes entries and never fails the caller.
AuditQueryService backs the admin read surface: paginated queries,
CSV export and summary statistics.

Usage:
    from audit.services import AuditTrailRecorder

    AuditTrailRecorder().record(
        AuditAction.COMPLAINT_STATUS_UPDATE,
        AuditResource.COMPLAINT,
        resource_id=complaint.id,
        actor=request.user,
        details="Changed complaint status from open to in_progress",
        request=request,
    )
"""

import csv
import io
import logging
import math
from datetime import timezone as dt_timezone

from django.conf import settings
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from core.exceptions import ValidationError
from core.utils import get_client_ip
from .filters import AuditLogFilter
from .models import AuditLog, AuditStatus, ActorRole, build_target_id_display

logger = logging.getLogger('campus.audit')

CORRELATION_HEADER = 'HTTP_X_CORRELATION_ID'

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

CSV_HEADER = [
    'Audit ID',
    'Timestamp (UTC)',
    'Actor Name',
    'Actor Email',
    'Actor Role',
    'Action',
    'Target Entity',
    'Target ID',
    'Description',
    'Status',
    'IP Address',
    'Correlation ID',
]


def request_context(request):
    """
    Copy the audit-relevant parts of a request into a plain dict.

    The dict outlives the request, so it can travel with workflow events
    that are recorded after commit or on another thread.
    """
    if request is None:
        return {}
    meta = getattr(request, 'META', {})
    correlation_id = (
        getattr(request, 'correlation_id', None)
        or meta.get(CORRELATION_HEADER, '')
    )
    return {
        'ip_address': get_client_ip(request),
        'user_agent': meta.get('HTTP_USER_AGENT', '')[:500],
        'correlation_id': str(correlation_id)[:64],
    }


class AuditTrailRecorder:
    """
    Append audit entries. Never raises.

    Storage failures are logged to `campus.audit` and swallowed: audit
    logging must not block or fail a user-facing action.
    """

    def record(
        self,
        action,
        resource,
        resource_id=None,
        actor=None,
        details='',
        metadata=None,
        status=AuditStatus.SUCCESS,
        request=None,
        context=None,
        correlation_id=None,
    ):
        try:
            ctx = dict(context or request_context(request))
            if correlation_id:
                ctx['correlation_id'] = str(correlation_id)[:64]

            actor_role = ''
            if actor is not None and getattr(actor, 'is_authenticated', False):
                if actor.role in dict(ActorRole.CHOICES):
                    actor_role = actor.role
            else:
                actor = None

            # Savepoint: a failed insert must not poison the caller's transaction
            with transaction.atomic():
                return AuditLog.objects.create(
                    user=actor,
                    actor_role=actor_role,
                    action=action,
                    resource=resource,
                    resource_id=str(resource_id) if resource_id else '',
                    target_id_display=build_target_id_display(resource, resource_id),
                    details=(details or '')[:1000],
                    metadata=metadata or {},
                    status=AuditStatus.FAILED if status == AuditStatus.FAILED else AuditStatus.SUCCESS,
                    correlation_id=ctx.get('correlation_id') or '',
                    ip_address=ctx.get('ip_address') or None,
                    user_agent=ctx.get('user_agent') or '',
                )
        except Exception:
            logger.exception(
                f"Failed to write audit entry: action={action}, "
                f"resource={resource}, resource_id={resource_id}"
            )
            return None


class AuditQueryService:
    """Read side of the audit trail (admin only)."""

    def filtered_queryset(self, params):
        queryset = AuditLog.objects.select_related('user').order_by('-created_at')
        filterset = AuditLogFilter(params, queryset=queryset)
        if not filterset.is_valid():
            field, errors = next(iter(filterset.errors.items()))
            raise ValidationError(f"Invalid filter {field}: {errors[0]}")
        return filterset.qs

    def get_logs(self, params):
        """Return (entries, pagination) for one page of the filtered trail."""
        page = _positive_int(params.get('page'), 1)
        limit = min(_positive_int(params.get('limit'), DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)

        queryset = self.filtered_queryset(params)
        total = queryset.count()
        offset = (page - 1) * limit
        entries = list(queryset[offset:offset + limit])

        pagination = {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': math.ceil(total / limit) if limit else 0,
        }
        return entries, pagination

    def get_log(self, log_id):
        return AuditLog.objects.select_related('user').filter(pk=log_id).first()

    def export_csv(self, params):
        """
        Flat, de-normalized CSV of the filtered trail, newest first.
        Every cell is quoted; at most AUDIT_EXPORT_LIMIT rows.
        """
        limit = getattr(settings, 'AUDIT_EXPORT_LIMIT', 10000)
        queryset = self.filtered_queryset(params)[:limit]

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(CSV_HEADER)

        for entry in queryset:
            user = entry.user
            if user is None:
                name, email = '', ''
            elif entry.hides_actor:
                name, email = 'Anonymous', ''
            else:
                name, email = user.name, user.email
            writer.writerow([
                str(entry.id),
                entry.created_at.astimezone(dt_timezone.utc).isoformat() if entry.created_at else '',
                name,
                email,
                entry.actor_role or (user.role if user else ''),
                entry.action,
                entry.resource,
                entry.target_id_display,
                entry.details,
                entry.status or AuditStatus.SUCCESS,
                entry.ip_address or '',
                entry.correlation_id,
            ])

        return buffer.getvalue()

    def get_stats(self):
        today_start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)

        action_stats = (
            AuditLog.objects.values('action')
            .annotate(count=Count('id'))
            .order_by('-count', 'action')[:20]
        )
        resource_stats = (
            AuditLog.objects.values('resource')
            .annotate(count=Count('id'))
            .order_by('-count', 'resource')
        )

        return {
            'totalLogs': AuditLog.objects.count(),
            'todayLogs': AuditLog.objects.filter(created_at__gte=today_start).count(),
            'actionStats': [
                {'action': row['action'], 'count': row['count']} for row in action_stats
            ],
            'resourceStats': [
                {'resource': row['resource'], 'count': row['count']} for row in resource_stats
            ],
        }


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
