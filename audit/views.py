"""
Audit Views - read-only access to the audit trail.

All audit logs are append-only and immutable.
Only administrators have access.
"""

from django.http import HttpResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsAdmin
from core.exceptions import NotFoundError
from .models import AuditAction, AuditResource
from .serializers import AuditLogSerializer
from .services import AuditQueryService, AuditTrailRecorder


class AuditLogListView(APIView):
    """
    GET /api/v1/audit/logs/

    Query parameters: page, limit, userId, action, resource, actorRole,
    status, startDate, endDate, search
    """

    permission_classes = [IsAdmin]
    query_service = AuditQueryService()

    def get(self, request):
        entries, pagination = self.query_service.get_logs(request.query_params)
        return Response({
            'success': True,
            'data': {
                'logs': AuditLogSerializer(entries, many=True).data,
                'pagination': pagination,
            }
        })


class AuditLogDetailView(APIView):
    """GET /api/v1/audit/logs/{id}/"""

    permission_classes = [IsAdmin]
    query_service = AuditQueryService()

    def get(self, request, id):
        entry = self.query_service.get_log(id)
        if entry is None:
            raise NotFoundError('Audit log not found')
        return Response({'success': True, 'data': AuditLogSerializer(entry).data})


class AuditLogExportView(APIView):
    """
    GET /api/v1/audit/export/

    Same filters as the list endpoint; returns text/csv as an attachment.
    The export itself is recorded in the trail.
    """

    permission_classes = [IsAdmin]
    query_service = AuditQueryService()
    recorder = AuditTrailRecorder()

    def get(self, request):
        content = self.query_service.export_csv(request.query_params)

        self.recorder.record(
            AuditAction.COMPLAINT_EXPORT,
            AuditResource.AUTH,
            actor=request.user,
            details='Exported audit logs as CSV',
            metadata={'filters': {k: v for k, v in request.query_params.items()}},
            request=request,
        )

        response = HttpResponse(content, content_type='text/csv; charset=utf-8', status=status.HTTP_200_OK)
        response['Content-Disposition'] = 'attachment; filename="audit-logs.csv"'
        return response


class AuditLogStatsView(APIView):
    """GET /api/v1/audit/stats/"""

    permission_classes = [IsAdmin]
    query_service = AuditQueryService()

    def get(self, request):
        return Response({'success': True, 'data': self.query_service.get_stats()})
