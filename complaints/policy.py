"""
Access policy for complaints.

One place answers "may this actor see or change this complaint?" for
every read and write path, including the list queryset.
"""

from authentication.models import UserRole, normalize_department

from .models import Complaint


def _same_department(a, b):
    left = normalize_department(a).casefold()
    return bool(left) and left == normalize_department(b).casefold()


class AccessPolicy:

    @staticmethod
    def can_access(actor, complaint):
        if actor is None or not getattr(actor, 'is_authenticated', False):
            return False
        if actor.role == UserRole.ADMIN:
            return True
        if actor.role == UserRole.STUDENT:
            return complaint.created_by_id == actor.id
        if actor.role == UserRole.STAFF:
            return _same_department(actor.department, complaint.department)
        return False

    @staticmethod
    def can_mutate_status(actor):
        """Only department staff move the workflow; admins are read-only here."""
        return actor is not None and actor.role == UserRole.STAFF

    @staticmethod
    def can_mutate_complaint(actor, complaint):
        return AccessPolicy.can_mutate_status(actor) and _same_department(
            actor.department, complaint.department
        )

    @staticmethod
    def can_remark(actor, complaint):
        if actor.role == UserRole.ADMIN:
            return True
        return AccessPolicy.can_mutate_complaint(actor, complaint)

    @staticmethod
    def scope_queryset(actor, queryset=None):
        if queryset is None:
            queryset = Complaint.objects.all()
        if actor.role == UserRole.ADMIN:
            return queryset
        if actor.role == UserRole.STUDENT:
            return queryset.filter(created_by=actor)
        if actor.role == UserRole.STAFF:
            department = normalize_department(actor.department)
            if not department:
                return queryset.none()
            return queryset.filter(department__iexact=department)
        return queryset.none()

    @staticmethod
    def should_mask(actor, complaint):
        return complaint.is_anonymous and actor.role in (UserRole.STAFF, UserRole.ADMIN)

    @staticmethod
    def mask_if_anonymous(actor, complaint_view):
        """
        Replace the creator with an opaque stub for staff/admin views of
        anonymous complaints. Works on a serialized complaint dict.
        """
        if not complaint_view.get('is_anonymous'):
            return complaint_view
        if actor.role not in (UserRole.STAFF, UserRole.ADMIN):
            return complaint_view

        creator = complaint_view.get('created_by') or {}
        masked = dict(complaint_view)
        masked['created_by'] = {
            'id': creator.get('id') if isinstance(creator, dict) else creator,
            'is_anonymous': True,
        }
        return masked
