"""
Visibility planning and result merging.

The document store only answers conjunctive equality queries, so "public OR
mine" is expressed as several independent queries whose results are merged
here. Both halves are pure functions of their inputs.
"""

import math
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .schema import OWNER_FIELD, Page, Principal
from ..vector.types import QueryResult


def plan_visibility(
    principal: Optional[Principal],
    status: Optional[str],
    public_statuses: FrozenSet[str],
    filters: Dict[str, Any] = None,
    owner_field: str = OWNER_FIELD,
) -> List[Dict[str, Any]]:
    """Build the list of equality-filter queries whose union is visible to principal.

    Args:
        principal: Caller, None when anonymous
        status: Explicitly requested status, or None
        public_statuses: Statuses visible to everyone
        filters: Additional equality filters applied to every query
        owner_field: Field holding the owning user's ID

    Returns:
        Filter dicts to run independently and union. An empty list means the
        result is empty without querying anything.
    """
    base = {k: v for k, v in (filters or {}).items() if v is not None}

    def query(**extra):
        return {**base, **extra}

    if principal is not None and principal.is_moderator:
        return [query(status=status)] if status else [query()]

    if principal is not None:
        if status:
            if status in public_statuses:
                return [query(status=status)]
            return [query(status=status, **{owner_field: principal.uid})]
        plans = [query(status=s) for s in sorted(public_statuses)]
        plans.append(query(**{owner_field: principal.uid}))
        return plans

    # Anonymous
    if status:
        return [query(status=status)] if status in public_statuses else []
    return [query(status=s) for s in sorted(public_statuses)]


def merge_by_id(result_sets: Iterable[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Union result sets keyed by ID (later sets win) and sort by ID ascending."""
    merged: Dict[str, Dict[str, Any]] = {}
    for results in result_sets:
        for item in results:
            merged[item["id"]] = item
    return [merged[key] for key in sorted(merged)]


def merge_by_score(result_sets: Iterable[List[QueryResult]]) -> List[QueryResult]:
    """Union scored result sets keyed by ID and order by score, highest first.

    Ties keep first-seen order.
    """
    merged: Dict[str, QueryResult] = {}
    for results in result_sets:
        for result in results:
            merged[result.id] = result
    return sorted(merged.values(), key=lambda r: r.score, reverse=True)


def paginate(items: List[Any], page: int, limit: int) -> Page:
    """Slice one page out of an already merged list."""
    total = len(items)
    offset = (page - 1) * limit
    return Page(
        items=list(items[offset:offset + limit]),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit) if limit else 0,
    )
