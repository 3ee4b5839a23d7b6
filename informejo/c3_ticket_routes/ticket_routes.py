"""Staff ticket routes for Informejo."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

from informejo.c2_auth_service.access_policy import Actor
from informejo.core.errors import InformejoError
from informejo.server.dependencies import staff_actor

logger = logging.getLogger(__name__)


# Request/Response Models
class CreateTicketRequest(BaseModel):
    title: str = Field(..., description="Ticket title (5-200 characters)")
    description: str = Field(..., description="Detailed description (10+ characters)")
    category: str = Field(..., description="HARDWARE, SOFTWARE, NETWORK, ACCESS or OTHER")
    priority: Optional[str] = Field(None, description="LOW, MEDIUM, HIGH or CRITICAL")


class UpdateTicketRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = Field(None, description="Admin only")
    assigned_to_id: Optional[str] = Field(None, description="Admin only; null unassigns")


class UpdateTicketResponse(BaseModel):
    ticket: Dict[str, Any]
    changed_fields: List[str]


class AddCommentRequest(BaseModel):
    content: str = Field(..., description="Comment text")
    is_internal: bool = Field(False, description="Staff-only note (admins only)")


class ListTicketsResponse(BaseModel):
    tickets: List[Dict[str, Any]]
    total_count: int
    limit: int
    offset: int


def create_ticket_router(server_state):
    """Create ticket router with server_state dependency.

    Args:
        server_state: ServerState instance with ticket_service and authenticator

    Returns:
        APIRouter: Configured router with staff ticket endpoints
    """
    router = APIRouter(tags=["tickets"])
    current_staff = staff_actor(server_state)

    @router.post("/api/tickets", status_code=201)
    async def create_ticket_endpoint(request: CreateTicketRequest, actor: Actor = Depends(current_staff)):
        """Create a ticket as the signed-in staff member."""
        try:
            return await server_state.ticket_service.create_ticket(
                actor,
                title=request.title,
                description=request.description,
                category=request.category,
                priority=request.priority,
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[TICKET_CREATE] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to create ticket")

    @router.get("/api/tickets", response_model=ListTicketsResponse)
    async def list_tickets_endpoint(
        status: Optional[str] = Query(None),
        priority: Optional[str] = Query(None),
        assigned_to_id: Optional[str] = Query(None),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
        actor: Actor = Depends(current_staff),
    ):
        """List tickets: admins see all, users their own."""
        try:
            return await server_state.ticket_service.list_tickets(
                actor,
                status=status,
                priority=priority,
                assigned_to_id=assigned_to_id,
                limit=limit,
                offset=offset,
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[TICKET_LIST] ❌ Unexpected error: {e}")
            raise HTTPException(status_code=500, detail="Failed to list tickets")

    @router.get("/api/tickets/{ticket_id}")
    async def get_ticket_endpoint(ticket_id: str, actor: Actor = Depends(current_staff)):
        """Ticket with comments, attachments and (for admins) history."""
        try:
            return await server_state.ticket_service.get_ticket(actor, ticket_id)
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[TICKET_GET] ❌ Unexpected error for {ticket_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch ticket")

    @router.patch("/api/tickets/{ticket_id}", response_model=UpdateTicketResponse)
    async def update_ticket_endpoint(
        ticket_id: str,
        request: UpdateTicketRequest,
        actor: Actor = Depends(current_staff),
    ):
        """Update fields; only fields present in the body are touched."""
        updates = request.model_dump(exclude_unset=True)
        logger.info(f"[TICKET_UPDATE] {actor.id} -> {ticket_id}: {sorted(updates)}")
        try:
            return await server_state.ticket_service.update_ticket(actor, ticket_id, updates)
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[TICKET_UPDATE] ❌ Unexpected error for {ticket_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update ticket")

    @router.delete("/api/tickets/{ticket_id}")
    async def delete_ticket_endpoint(ticket_id: str, actor: Actor = Depends(current_staff)):
        try:
            result = await server_state.ticket_service.delete_ticket(actor, ticket_id)
            return {"success": True, **result}
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[TICKET_DELETE] ❌ Unexpected error for {ticket_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete ticket")

    @router.post("/api/tickets/{ticket_id}/comments", status_code=201)
    async def add_comment_endpoint(
        ticket_id: str,
        request: AddCommentRequest,
        actor: Actor = Depends(current_staff),
    ):
        try:
            return await server_state.ticket_service.add_comment(
                actor, ticket_id, request.content, is_internal=request.is_internal
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[COMMENT] ❌ Unexpected error for {ticket_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to add comment")

    @router.post("/api/tickets/{ticket_id}/attachments", status_code=201)
    async def add_attachment_endpoint(
        ticket_id: str,
        file: UploadFile = File(...),
        actor: Actor = Depends(current_staff),
    ):
        try:
            content = await file.read()
            return await server_state.ticket_service.add_attachment(
                actor, ticket_id, file.filename or "upload", content, file.content_type
            )
        except InformejoError:
            raise
        except Exception as e:
            logger.error(f"[ATTACHMENT] ❌ Unexpected error for {ticket_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to upload file")

    return router
