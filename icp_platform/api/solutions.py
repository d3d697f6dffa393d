"""
Solutions API - catalog listing, semantic/fuzzy search and proposal workflow.
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
async def list_solutions(
    params: SearchParams = Depends(search_params),
    domain: Optional[str] = Query(None),
    providedByPartnerId: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """List or search solutions visible to the caller."""
    params.filters = {"domain": domain, "providedByPartnerId": providedByPartnerId}
    page = await container.solutions.search(principal, params)
    return page.to_dict()


@router.post("", status_code=201)
async def create_solution(
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Propose a solution. It starts PROPOSED with an approval ticket."""
    return await container.solutions.create(principal, data)


@router.get("/{solution_id}")
async def get_solution(
    solution_id: str,
    lang: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.solutions.get(principal, solution_id, lang)


@router.put("/{solution_id}")
async def update_solution(
    solution_id: str,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    return await container.solutions.update(principal, solution_id, data)
