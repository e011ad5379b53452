"""
Serializers for complaints.

Output goes through `present_complaint`, which applies the anonymity
mask; no view should return ComplaintSerializer data directly.
"""

from rest_framework import serializers

from .models import (
    Complaint, ComplaintAttachment, ComplaintCategory, ComplaintPriority,
    ComplaintRemark,
)
from .policy import AccessPolicy


class ComplaintCreatorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    student_id = serializers.CharField(read_only=True)
    department = serializers.CharField(read_only=True)


class UserSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    role = serializers.CharField(read_only=True)


class ComplaintAttachmentSerializer(serializers.ModelSerializer):

    class Meta:
        model = ComplaintAttachment
        fields = ['id', 'filename', 'path', 'mimetype', 'size', 'uploaded_at']
        read_only_fields = fields


class ComplaintRemarkSerializer(serializers.ModelSerializer):

    added_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = ComplaintRemark
        fields = ['id', 'comment', 'added_by', 'added_at']
        read_only_fields = fields


class ResolutionVerificationSerializer(serializers.Serializer):
    status = serializers.CharField()
    comment = serializers.CharField(allow_null=True)
    verified_by = serializers.UUIDField(allow_null=True)
    verified_at = serializers.DateTimeField(allow_null=True)


class ComplaintSerializer(serializers.ModelSerializer):

    created_by = ComplaintCreatorSerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True, allow_null=True)
    attachments = ComplaintAttachmentSerializer(many=True, read_only=True)
    remarks = ComplaintRemarkSerializer(many=True, read_only=True)
    resolution_verification = serializers.SerializerMethodField()
    sla = serializers.SerializerMethodField()

    class Meta:
        model = Complaint
        fields = [
            'id',
            'title',
            'description',
            'category',
            'department',
            'priority',
            'is_anonymous',
            'status',
            'rejection_reason',
            'created_by',
            'assigned_to',
            'attachments',
            'remarks',
            'resolution_verification',
            'resolved_at',
            'resolution_time',
            'sla',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_resolution_verification(self, obj):
        verification = obj.resolution_verification
        if verification is None:
            return None
        return ResolutionVerificationSerializer(verification).data

    def get_sla(self, obj):
        return {
            'due_date': obj.sla_due_date,
            'is_overdue': obj.sla_is_overdue,
            'hours_remaining': obj.sla_hours_remaining,
        }


class ComplaintListSerializer(ComplaintSerializer):
    """List rows skip remarks and attachments."""

    class Meta(ComplaintSerializer.Meta):
        fields = [
            field for field in ComplaintSerializer.Meta.fields
            if field not in ('remarks', 'attachments', 'description')
        ]
        read_only_fields = fields


def present_complaint(actor, complaint, serializer_class=ComplaintSerializer):
    return AccessPolicy.mask_if_anonymous(actor, serializer_class(complaint).data)


def present_complaints(actor, complaints):
    return [present_complaint(actor, c, ComplaintListSerializer) for c in complaints]


# =============================================================================
# INPUT
# =============================================================================

class ComplaintCreateSerializer(serializers.Serializer):

    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=2000)
    category = serializers.ChoiceField(choices=ComplaintCategory.CHOICES)
    department = serializers.CharField(max_length=100)
    priority = serializers.ChoiceField(
        choices=ComplaintPriority.CHOICES,
        default=ComplaintPriority.MEDIUM
    )
    is_anonymous = serializers.BooleanField(default=False)

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Title is required.')
        return value

    def validate_department(self, value):
        if not value.strip():
            raise serializers.ValidationError('Department is required.')
        return value


class StatusUpdateSerializer(serializers.Serializer):
    """The status value itself is validated by the workflow engine."""

    status = serializers.CharField(required=False, allow_blank=True, default='')
    rejectionReason = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=500
    )


class VerificationSerializer(serializers.Serializer):
    action = serializers.CharField(required=False, allow_blank=True, default='')
    comment = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=500
    )

