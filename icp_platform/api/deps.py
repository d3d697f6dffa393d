"""
Request-scoped dependencies: the app container and the calling principal.
"""

from typing import Optional

from fastapi import Depends, Header, Query, Request

from ..core.config import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from ..core.container import AppContainer
from ..core.schema import ROLE_REGULAR, USERS, Principal
from ..core.search_service import SearchParams


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def get_principal(
    x_user_id: Optional[str] = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> Optional[Principal]:
    """Resolve the caller from the gateway-supplied X-User-Id header.

    The role always comes from the stored user record, never from the request.
    Returns None for anonymous callers.
    """
    uid = (x_user_id or "").strip()
    if not uid:
        return None

    user = await container.store.get(USERS, uid)
    if user is None:
        return Principal(uid=uid, role=ROLE_REGULAR)

    full_name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
    return Principal(
        uid=uid,
        role=user.get("role") or ROLE_REGULAR,
        display_name=full_name or user.get("email") or None,
    )


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=SEARCH_MAX_LIMIT),
):
    return page, limit


def search_params(
    q: Optional[str] = Query(None),
    mode: str = Query("semantic"),
    status: Optional[str] = Query(None),
    lang: Optional[str] = Query(None),
    paging=Depends(page_params),
) -> SearchParams:
    page, limit = paging
    return SearchParams(q=q, mode=mode, status=status, lang=lang, page=page, limit=limit)
