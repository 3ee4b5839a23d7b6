"""Serve stored attachment files to callers allowed to read the ticket."""

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import FileResponse

from informejo.core.errors import InformejoError, InvalidCredentialError

logger = logging.getLogger(__name__)


def create_upload_router(server_state):
    """Create the attachment download router.

    A download needs either a staff bearer header or a ``?token=`` magic
    token; the caller must then be allowed to read the ticket.
    """
    router = APIRouter(tags=["uploads"])

    @router.get("/uploads/{ticket_id}/{file_name}")
    async def serve_upload(
        ticket_id: str,
        file_name: str,
        token: Optional[str] = Query(None),
        authorization: Optional[str] = Header(None),
    ):
        try:
            if authorization:
                actor = server_state.authenticator.authenticate(authorization)
            elif token:
                actor = await server_state.ticket_service.magic_link_actor(token)
            else:
                raise InvalidCredentialError("Unauthorized")

            found = await server_state.ticket_service.get_attachment_file(actor, ticket_id, file_name)
            return FileResponse(found["path"], media_type=found["mime_type"], filename=found["file_name"])
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[UPLOAD] ❌ Unexpected error serving {ticket_id}/{file_name}: {e}")
            raise HTTPException(status_code=500, detail="Failed to serve file")

    return router
