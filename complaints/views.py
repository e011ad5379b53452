"""
Complaint views.

Thin HTTP layer over WorkflowOrchestrator: parse the request, call one
orchestrator operation, present the result through the anonymity mask.

- POST   /api/v1/complaints/                 student submits (JSON or multipart)
- GET    /api/v1/complaints/                 scoped list
- GET    /api/v1/complaints/{id}/            detail
- DELETE /api/v1/complaints/{id}/            admin purge of a confirmed resolution
- PATCH  /api/v1/complaints/{id}/status/     staff status change
- PATCH  /api/v1/complaints/{id}/verify/     creator confirms or reopens
- POST   /api/v1/complaints/{id}/remarks/    staff/admin remark
"""

from rest_framework import status, views
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from authentication.permissions import IsAdmin, IsAuthenticated, IsStaffOrAdmin
from .orchestrator import WorkflowOrchestrator
from .serializers import (
    StatusUpdateSerializer, VerificationSerializer, present_complaint,
    present_complaints,
)


class ComplaintCreateThrottle(ScopedRateThrottle):
    scope = 'complaint_create'


class OrchestratedView(views.APIView):
    permission_classes = [IsAuthenticated]

    def get_orchestrator(self):
        return WorkflowOrchestrator()


class ComplaintListCreateView(OrchestratedView):

    def get_throttles(self):
        if self.request.method == 'POST':
            return [ComplaintCreateThrottle()]
        return super().get_throttles()

    def get(self, request):
        complaints, pagination = self.get_orchestrator().list_complaints(
            request.user, request.query_params
        )
        return Response({
            'success': True,
            'data': {
                'complaints': present_complaints(request.user, complaints),
                'pagination': pagination,
            }
        })

    def post(self, request):
        data = {
            key: request.data.get(key)
            for key in ('title', 'description', 'category', 'department', 'priority', 'is_anonymous')
            if key in request.data
        }
        files = request.FILES.getlist('attachments')

        complaint = self.get_orchestrator().create_complaint(
            request.user, data, files=files, request=request
        )
        return Response(
            {'success': True, 'data': present_complaint(request.user, complaint)},
            status=status.HTTP_201_CREATED
        )


class ComplaintDetailView(OrchestratedView):

    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [IsAdmin()]
        return super().get_permissions()

    def get(self, request, pk):
        complaint = self.get_orchestrator().get_complaint(request.user, pk, request=request)
        return Response({'success': True, 'data': present_complaint(request.user, complaint)})

    def delete(self, request, pk):
        self.get_orchestrator().purge_complaint(request.user, pk, request=request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ComplaintStatusView(OrchestratedView):
    """Role and department checks happen in the workflow engine, in order."""

    def patch(self, request, pk):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        complaint = self.get_orchestrator().update_status(
            request.user,
            pk,
            serializer.validated_data.get('status', ''),
            rejection_reason=serializer.validated_data.get('rejectionReason'),
            request=request,
        )
        return Response({'success': True, 'data': present_complaint(request.user, complaint)})


class ComplaintVerifyView(OrchestratedView):

    def patch(self, request, pk):
        serializer = VerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        complaint = self.get_orchestrator().verify_resolution(
            request.user,
            pk,
            serializer.validated_data.get('action', ''),
            comment=serializer.validated_data.get('comment'),
            request=request,
        )
        return Response({'success': True, 'data': present_complaint(request.user, complaint)})


class ComplaintRemarkView(OrchestratedView):
    permission_classes = [IsStaffOrAdmin]

    def post(self, request, pk):
        complaint = self.get_orchestrator().add_remark(
            request.user, pk, request.data.get('comment'), request=request
        )
        return Response({'success': True, 'data': present_complaint(request.user, complaint)})
