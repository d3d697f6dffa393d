"""
Common lookup lists used by the entity forms.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Response

from .deps import get_container, get_principal
from ..core.container import AppContainer
from ..core.schema import Principal

router = APIRouter()


@router.get("/beneficiary-types", response_model=List[str])
async def list_beneficiary_types(container: AppContainer = Depends(get_container)):
    return await container.beneficiary_types.list_types()


@router.post("/beneficiary-types", status_code=201)
async def add_beneficiary_type(
    response: Response,
    data: Any = Body(None),
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Register a beneficiary type: 201 when new, 200 when it already existed."""
    name = data.get("name") if isinstance(data, dict) else None
    result, created = await container.beneficiary_types.add_type(principal, name)
    if not created:
        response.status_code = 200
    return result
