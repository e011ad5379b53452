"""
SLA arithmetic for complaints.

Pure functions: callers pass `now` explicitly so results are reproducible.
"""

from datetime import timedelta

from django.conf import settings

from .models import ComplaintPriority, ComplaintStatus

DEFAULT_SLA_HOURS = {
    ComplaintPriority.HIGH: 24,
    ComplaintPriority.MEDIUM: 72,
    ComplaintPriority.LOW: 168,
}


def sla_hours_for(priority):
    table = getattr(settings, 'COMPLAINT_SLA_HOURS', DEFAULT_SLA_HOURS)
    return table.get(priority, table.get(ComplaintPriority.MEDIUM, 72))


def compute_due_date(created_at, priority):
    return created_at + timedelta(hours=sla_hours_for(priority))


def hours_remaining(due_date, now):
    return round((due_date - now).total_seconds() / 3600, 1)


def resolution_hours(created_at, resolved_at):
    """Hours from creation to resolution, one decimal, never negative."""
    hours = round((resolved_at - created_at).total_seconds() / 3600, 1)
    return max(hours, 0.0)


def refresh_sla(complaint, now):
    """
    Recompute the SLA fields in place.

    Frozen once the complaint is resolved. Returns the names of the
    fields that were written.
    """
    if complaint.status == ComplaintStatus.RESOLVED:
        return []

    if complaint.sla_due_date is None:
        complaint.sla_due_date = compute_due_date(complaint.created_at, complaint.priority)

    remaining = hours_remaining(complaint.sla_due_date, now)
    complaint.sla_hours_remaining = remaining
    complaint.sla_is_overdue = remaining < 0
    return ['sla_due_date', 'sla_hours_remaining', 'sla_is_overdue']
