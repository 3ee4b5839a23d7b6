"""C2 Attachment Storage - uploaded files on disk."""
from informejo.c2_attachment_storage.attachment_storage import (
    AttachmentStorage,
    StoredFile,
    sanitize_file_name,
)
__all__ = ["AttachmentStorage", "StoredFile", "sanitize_file_name"]
