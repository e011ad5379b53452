"""
Serializers for audit logs.
Read-only; audit entries are never written through the API.
"""

from rest_framework import serializers

from .models import AuditLog


class AuditActorSerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    role = serializers.CharField(read_only=True)
    student_id = serializers.CharField(read_only=True)
    department = serializers.CharField(read_only=True)


class AuditLogSerializer(serializers.ModelSerializer):
    user = serializers.SerializerMethodField()
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = [
            'id',
            'user',
            'actor_role',
            'action',
            'action_display',
            'resource',
            'resource_id',
            'target_id_display',
            'details',
            'metadata',
            'status',
            'correlation_id',
            'ip_address',
            'user_agent',
            'created_at',
        ]
        read_only_fields = fields

    def get_user(self, obj):
        if obj.user is None:
            return None
        if obj.hides_actor:
            return {'id': str(obj.user_id), 'is_anonymous': True}
        return AuditActorSerializer(obj.user).data
