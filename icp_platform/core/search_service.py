"""
Listing and search over one catalog collection.

Visibility is planned first, candidates come from the store (plain listing) or
the entity index (semantic / fuzzy), then the merged set is paginated and
localized.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import SEARCH_CANDIDATE_CAP, SEARCH_DEFAULT_LIMIT
from .errors import SchemaValidationError
from .refinement import QueryRefiner
from .schema import COLLECTION_BY_KIND, FUZZY_FIELDS, PUBLIC_STATUSES, SEARCH_MODES, Page, Principal
from .store import IDocumentStore
from .translation import TranslationService
from .visibility import merge_by_id, merge_by_score, paginate, plan_visibility
from ..vector.embeddings import IEmbeddingProvider
from ..vector.entity_index import EntityIndex
from ..vector.index import fuzzy_match
from ..util.logging import logger


@dataclass
class SearchParams:
    """Listing/search request after HTTP parsing."""

    q: Optional[str] = None
    mode: str = "semantic"
    status: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    lang: Optional[str] = None
    page: int = 1
    limit: int = SEARCH_DEFAULT_LIMIT


class EntitySearchService:
    """Visibility-aware listing and search for solutions or partners."""

    def __init__(self, kind: str, store: IDocumentStore, index: EntityIndex,
                 embedder: IEmbeddingProvider, translator: TranslationService,
                 refiner: Optional[QueryRefiner] = None, candidate_cap: int = SEARCH_CANDIDATE_CAP):
        self.kind = kind
        self.collection = COLLECTION_BY_KIND[kind]
        self.store = store
        self.index = index
        self.embedder = embedder
        self.translator = translator
        self.refiner = refiner
        self.candidate_cap = candidate_cap
        self.public_statuses = PUBLIC_STATUSES[self.collection]

    async def search(self, principal: Optional[Principal], params: SearchParams) -> Page:
        """Run one listing or search request and return a localized page."""
        mode = (params.mode or "semantic").lower()
        if mode not in SEARCH_MODES:
            raise SchemaValidationError(
                f"Unknown search mode: {params.mode}",
                [{"field": "mode", "message": f"must be one of {', '.join(SEARCH_MODES)}", "value": params.mode}]
            )

        plans = plan_visibility(principal, params.status, self.public_statuses, params.filters)
        if not plans:
            return paginate([], params.page, params.limit)

        query = (params.q or "").strip()
        if not query:
            items = await self._list(plans)
        elif mode == "fuzzy":
            items = await self._fuzzy(query, plans)
        else:
            items = await self._semantic(query, plans)

        page = paginate(items, params.page, params.limit)
        if query:
            page.items = await self._hydrate(page.items)
        page.items = await self.translator.ensure_translations(page.items, self.kind, params.lang)
        return page

    async def _hydrate(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Swap index snapshots for the stored documents.

        Index metadata is frozen at embed time and never sees translations
        written afterwards. Entities deleted since indexing keep their snapshot.
        """
        hydrated = []
        for item in items:
            current = await self.store.get(self.collection, item["id"])
            hydrated.append(current if current is not None else item)
        return hydrated

    async def _list(self, plans: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        result_sets = [await self.store.list(self.collection, plan) for plan in plans]
        return merge_by_id(result_sets)

    async def _fuzzy(self, query: str, plans: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Fuzzy search never embeds: it uses a ready index or scans the store."""
        if self.index.is_ready:
            result_sets = [self.index.search_fuzzy(query, self.candidate_cap, plan) for plan in plans]
        else:
            fields = FUZZY_FIELDS[self.collection]
            result_sets = [
                fuzzy_match(await self.store.list(self.collection, plan), query, fields, self.candidate_cap)
                for plan in plans
            ]
        return [result.metadata for result in merge_by_score(result_sets)]

    async def _semantic(self, query: str, plans: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        await self.index.ensure_built()

        text = await self.refiner.refine(query) if self.refiner else query
        try:
            vector = await self.embedder.embed_text(text)
        except Exception as e:
            logger.log_operation(
                "search.semantic", "degraded",
                {"collection": self.collection, "error": str(e), "fallback": "fuzzy"}
            )
            return await self._fuzzy(query, plans)

        result_sets = [self.index.search(vector, self.candidate_cap, plan) for plan in plans]
        results = merge_by_score(result_sets)
        logger.log_operation(
            "search.semantic", "success",
            {"collection": self.collection, "queries": len(plans), "hits": len(results)}
        )
        return [result.metadata for result in results]
