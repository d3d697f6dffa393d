"""
Read-only endpoints: dashboard stats and entity JSON schemas.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from .deps import get_container, get_principal
from .schemas import StatsResponse
from ..core.container import AppContainer
from ..core.errors import NotFoundError
from ..core.models import ENTITY_MODELS
from ..core.schema import Principal

stats_router = APIRouter()
schemas_router = APIRouter()


@stats_router.get("", response_model=StatsResponse)
async def get_stats(
    principal: Optional[Principal] = Depends(get_principal),
    container: AppContainer = Depends(get_container),
):
    """Counts under the caller's visibility."""
    return await container.stats.get_stats(principal)


@schemas_router.get("/{kind}")
def get_entity_schema(kind: str):
    """JSON schema of the input model for an entity kind, for form rendering."""
    model = ENTITY_MODELS.get(kind)
    if model is None:
        raise NotFoundError(f"Schema not found: {kind}")
    return {"schema": model.model_json_schema()}
