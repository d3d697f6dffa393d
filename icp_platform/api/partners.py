"""
Partners API - organizations, their proposals and the solutions they provide.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query

from .deps import get_container, get_principal, search_params
from .schemas import PageResponse
from ..core.container import AppContainer
from ..core.schema import Principal
from ..core.search_service import SearchParams

router = APIRouter()


@router.get("", response_model=PageResponse)
async def list_partners(
    params: SearchParams = Depends(search_params),
    entityType: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """List or search partners visible to the caller."""
    params.filters = {"entityType": entityType}
    page = await container.partners.search(principal, params)
    return page.to_dict()


@router.post("", status_code=201)
async def create_partner(
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.partners.create(principal, data)


@router.get("/{partner_id}")
async def get_partner(
    partner_id: str,
    lang: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.partners.get(principal, partner_id, lang)


@router.put("/{partner_id}")
async def update_partner(
    partner_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.partners.update(principal, partner_id, data)


@router.get("/{partner_id}/solutions", response_model=PageResponse)
async def list_partner_solutions(
    partner_id: str,
    params: SearchParams = Depends(search_params),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Solutions provided by this partner, under solution visibility."""
    page = await container.partners.list_solutions(principal, partner_id, params)
    return page.to_dict()
