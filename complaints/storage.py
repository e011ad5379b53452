"""
Attachment intake for complaints.

Files are validated as a batch before anything is written, then saved
through Django's default storage backend.
"""

import logging
import os

from django.conf import settings
from django.core.files.storage import default_storage

from core.exceptions import ValidationError
from .models import ComplaintAttachment, attachment_path

logger = logging.getLogger('campus.workflow')

EXTENSIONS_BY_TYPE = {
    'image/jpeg': ['.jpg', '.jpeg'],
    'image/png': ['.png'],
    'application/pdf': ['.pdf'],
}


def validate_attachments(files):
    max_count = getattr(settings, 'MAX_ATTACHMENTS_PER_COMPLAINT', 5)
    max_size = getattr(settings, 'MAX_ATTACHMENT_SIZE', 5 * 1024 * 1024)
    allowed = getattr(settings, 'ALLOWED_ATTACHMENT_TYPES', list(EXTENSIONS_BY_TYPE))

    if len(files) > max_count:
        raise ValidationError(f"At most {max_count} attachments are allowed")

    for upload in files:
        content_type = (getattr(upload, 'content_type', '') or '').lower()
        ext = os.path.splitext(upload.name)[1].lower()

        if content_type not in allowed or ext not in EXTENSIONS_BY_TYPE.get(content_type, []):
            raise ValidationError(f"Unsupported file type: {upload.name}. Only JPG, PNG and PDF are allowed")

        if upload.size > max_size:
            raise ValidationError(f"File {upload.name} exceeds the {max_size // (1024 * 1024)}MB limit")


def store_attachments(complaint, files):
    stored = []
    for upload in files:
        attachment = ComplaintAttachment(
            complaint=complaint,
            filename=os.path.basename(upload.name)[:255],
            mimetype=upload.content_type,
            size=upload.size,
        )
        attachment.path = default_storage.save(attachment_path(attachment, upload.name), upload)
        attachment.save()
        stored.append(attachment)

    if stored:
        logger.info(f"Stored {len(stored)} attachment(s) for complaint={complaint.id}")
    return stored


def delete_attachment_files(paths):
    """Remove stored files; a file that cannot be removed is logged and skipped."""
    removed = 0
    for path in paths:
        try:
            default_storage.delete(path)
            removed += 1
        except Exception:
            logger.exception(f"Failed to remove attachment file {path}")
    return removed
