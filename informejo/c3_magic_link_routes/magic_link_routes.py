"""Public routes for anonymous submission and magic-link access."""

import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from pydantic import BaseModel, EmailStr, Field

from informejo.core.errors import InformejoError

logger = logging.getLogger(__name__)


class AnonymousTicketRequest(BaseModel):
    name: str = Field(..., description="Submitter name")
    email: EmailStr = Field(..., description="Where the magic link is mailed")
    title: str = Field(..., description="Ticket title (5-200 characters)")
    description: str = Field(..., description="Detailed description (10+ characters)")
    category: str = Field(..., description="HARDWARE, SOFTWARE, NETWORK, ACCESS or OTHER")
    priority: Optional[str] = Field(None, description="LOW, MEDIUM, HIGH or CRITICAL")


class AnonymousTicketResponse(BaseModel):
    success: bool
    ticket_id: str
    magic_link: str
    message: str


class MagicCommentRequest(BaseModel):
    content: str = Field(..., description="Comment text")


def create_magic_link_router(server_state):
    """Create the public magic-link router.

    Args:
        server_state: ServerState instance with ticket_service

    Returns:
        APIRouter: Router with anonymous submission and token-gated endpoints
    """
    router = APIRouter(tags=["magic-link"])

    @router.post("/api/tickets/anonymous", response_model=AnonymousTicketResponse, status_code=201)
    async def create_anonymous_ticket_endpoint(request: AnonymousTicketRequest):
        """Submit a ticket without an account; a magic link is mailed back."""
        logger.info(f"[ANON_TICKET] Submission from {request.email}")
        try:
            result = await server_state.ticket_service.create_anonymous_ticket(
                name=request.name,
                email=str(request.email),
                title=request.title,
                description=request.description,
                category=request.category,
                priority=request.priority,
            )
            return AnonymousTicketResponse(
                success=True,
                ticket_id=result["ticket"]["id"],
                magic_link=result["magic_link"],
                message="Ticket created successfully. Check your email for the access link.",
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[ANON_TICKET] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to create ticket")

    @router.get("/api/tickets/magic/{token}")
    async def view_ticket_endpoint(token: str):
        """Ticket behind a magic token or an admin short-id."""
        try:
            return await server_state.ticket_service.view_via_magic_link(token)
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[MAGIC_VIEW] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch ticket")

    @router.post("/api/tickets/magic/{token}/comment", status_code=201)
    async def add_comment_endpoint(token: str, request: MagicCommentRequest):
        try:
            return await server_state.ticket_service.add_comment_via_magic_link(token, request.content)
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[MAGIC_COMMENT] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to add comment")

    @router.post("/api/tickets/magic/{token}/attachments", status_code=201)
    async def add_attachment_endpoint(token: str, file: UploadFile = File(...)):
        try:
            content = await file.read()
            return await server_state.ticket_service.add_attachment_via_magic_link(
                token, file.filename or "upload", content, file.content_type
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[MAGIC_ATTACHMENT] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to upload file")

    return router
