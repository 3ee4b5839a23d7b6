"""Attachment file storage with path policy enforcement."""

import re
import time
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from informejo.core.errors import NotFoundError, TicketValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_file_name(file_name: str) -> str:
    """Replace everything outside [A-Za-z0-9.-] with underscores."""
    return _UNSAFE_CHARS.sub("_", file_name)


@dataclass(frozen=True)
class StoredFile:
    """Where an uploaded file ended up."""

    stored_name: str
    public_path: str
    size: int


class AttachmentStorage:
    """
    Writes attachments under <upload_dir>/<ticket_id>/ and reads them back.

    Every path is resolved and checked to stay inside the upload directory,
    so neither ticket ids nor file names can escape it.

    Example:
        storage = AttachmentStorage(Path("uploads"), max_file_size=10 * 1024 * 1024)
        stored = storage.save("ticket-id", "report.pdf", b"...")
        stored.public_path  # "/uploads/ticket-id/1700000000000-report.pdf"
    """

    def __init__(self, upload_dir: Union[str, Path], max_file_size: int):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_file_size = max_file_size

    def save(self, ticket_id: str, file_name: str, content: bytes) -> StoredFile:
        """
        Persist an upload.

        Raises:
            TicketValidationError: Empty file or over the size limit
        """
        if not content:
            raise TicketValidationError("No file provided")
        if len(content) > self.max_file_size:
            raise TicketValidationError(
                f"File size exceeds {self.max_file_size / 1024 / 1024:g}MB limit"
            )

        stored_name = f"{int(time.time() * 1000)}-{sanitize_file_name(file_name or 'file')}"
        target = self._safe_path(ticket_id, stored_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

        logger.info(f"Stored attachment {stored_name} ({len(content)} bytes) for ticket {ticket_id}")
        return StoredFile(
            stored_name=stored_name,
            public_path=f"/uploads/{ticket_id}/{stored_name}",
            size=len(content),
        )

    def open_path(self, ticket_id: str, stored_name: str) -> Path:
        """
        Resolve a stored attachment for reading.

        Raises:
            NotFoundError: Missing file or a path outside the upload directory
        """
        try:
            path = self._safe_path(ticket_id, stored_name)
        except TicketValidationError:
            raise NotFoundError("File not found")
        if not path.is_file():
            raise NotFoundError("File not found")
        return path

    def _safe_path(self, ticket_id: str, stored_name: str) -> Path:
        path = (self.upload_dir / ticket_id / stored_name).resolve()
        try:
            relative = path.relative_to(self.upload_dir)
        except ValueError:
            raise TicketValidationError("Invalid attachment path")
        if len(relative.parts) != 2:
            raise TicketValidationError("Invalid attachment path")
        return path
