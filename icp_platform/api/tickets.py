"""
Tickets API - approval requests, status transitions and comments.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from .deps import get_container, get_principal, page_params
from .schemas import PageResponse
from ..core.container import AppContainer
from ..core.schema import Principal

router = APIRouter()


@router.get("", response_model=PageResponse)
async def list_tickets(
    status: Optional[str] = Query(None),
    assignedToMe: bool = Query(False),
    paging=Depends(page_params),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    page, limit = paging
    result = await container.workflow.list_tickets(principal, status, assignedToMe, page, limit)
    return result.to_dict()


@router.post("", status_code=201)
async def create_ticket(
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.workflow.create_ticket(principal, data)


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.workflow.get_ticket(principal, ticket_id)


@router.put("/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.workflow.update_ticket(principal, ticket_id, data)


@router.patch("/{ticket_id}/status")
async def change_ticket_status(
    ticket_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Moderator status change; RESOLVED approval tickets publish their entity."""
    return await container.workflow.change_status(principal, ticket_id, data)


@router.post("/{ticket_id}/comments", status_code=201)
async def add_ticket_comment(
    ticket_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.workflow.add_comment(principal, ticket_id, data)
