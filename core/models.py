"""
Core models for the Campus Complaints backend.

Contains the abstract base model that provides:
- UUID primary keys (no enumerable auto-increment IDs)
- Timestamp tracking
"""

import uuid

from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    """
    Abstract base model providing UUID primary key and timestamps.

    UUIDs don't reveal record counts or creation order, and the last six
    characters of the id feed the operator-facing display ids in the
    audit trail.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)"
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Timestamp when record was created"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']
