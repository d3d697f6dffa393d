"""
Users API - profile sync, admin directory, partner associations and bookmarks.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Response

from .deps import get_container, get_principal, page_params
from .schemas import AssociationRequest, BookmarkRequest, PageResponse
from ..core.container import AppContainer
from ..core.permissions import require_principal
from ..core.schema import Principal

router = APIRouter()


# /me routes come before /{user_id} so "me" is never taken as an ID
@router.get("/me")
async def get_me(
    x_user_email: Optional[str] = Header(default=None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Return the caller's record, creating it on first sight."""
    return await container.users.sync(principal, email=x_user_email)


@router.put("/me")
async def update_me(
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    principal = require_principal(principal)
    return await container.users.update_profile(principal, principal.uid, data)


@router.get("/me/bookmarks", response_model=PageResponse)
async def list_my_bookmarks(
    paging=Depends(page_params),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    principal = require_principal(principal)
    page, limit = paging
    result = await container.users.list_bookmarks(principal, principal.uid, page, limit)
    return result.to_dict()


@router.post("/me/bookmarks", status_code=201)
async def add_my_bookmark(
    request: BookmarkRequest,
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    principal = require_principal(principal)
    return await container.users.add_bookmark(principal, principal.uid, request.solutionId)


@router.delete("/me/bookmarks/{solution_id}", status_code=204)
async def remove_my_bookmark(
    solution_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    principal = require_principal(principal)
    await container.users.remove_bookmark(principal, principal.uid, solution_id)
    return Response(status_code=204)


@router.get("", response_model=PageResponse)
async def list_users(
    role: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    paging=Depends(page_params),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Admin-only user directory."""
    page, limit = paging
    result = await container.users.list_users(principal, role, q, page, limit)
    return result.to_dict()


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.users.get_user(principal, user_id)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.users.update_profile(principal, user_id, data)


@router.post("/{user_id}/associations", status_code=201)
async def request_association(
    user_id: str,
    request: AssociationRequest,
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.users.request_association(principal, user_id, request.partnerId)


@router.put("/{user_id}/associations/{partner_id}")
async def decide_association(
    user_id: str,
    partner_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.users.decide_association(principal, user_id, partner_id, data)
