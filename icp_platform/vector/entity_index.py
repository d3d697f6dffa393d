"""
Per-collection entity index - lazily built, single-flight, kept current by
point upserts from the write paths.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Set

from .embeddings import IEmbeddingProvider
from .index import SimpleInMemoryVectorStore
from .types import QueryResult, VectorRecord
from ..core.config import VECTOR_MIN_SIMILARITY
from ..core.schema import FUZZY_FIELDS, PARTNERS, SOLUTIONS
from ..core.store import IDocumentStore
from ..util.logging import logger

UNINITIALIZED = "UNINITIALIZED"
BUILDING = "BUILDING"
READY = "READY"


def solution_text(solution: Dict[str, Any]) -> str:
    """Canonical text embedded for a solution."""
    return (
        f"Solution: {solution.get('name', '')} (ID: {solution.get('id', '')}). "
        f"Domain: {solution.get('domain', '')}. "
        f"Summary: {solution.get('summary', '')}. "
        f"Benefit: {solution.get('benefit', '')}."
    )


def partner_text(partner: Dict[str, Any]) -> str:
    """Canonical text embedded for a partner."""
    return (
        f"Partner: {partner.get('organizationName', '')} (ID: {partner.get('id', '')}). "
        f"Type: {partner.get('entityType', '')}. "
        f"Description: {partner.get('description') or ''}."
    )


TEXT_BUILDERS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    SOLUTIONS: solution_text,
    PARTNERS: partner_text,
}


class EntityIndex:
    """Similarity index over one collection.

    State machine: UNINITIALIZED -> BUILDING -> READY. Concurrent callers of
    ensure_built() share one build task. Upserts that land while a build is
    running win over the build's older snapshot of the same entity.
    """

    def __init__(self, collection: str, store: IDocumentStore, embedder: IEmbeddingProvider,
                 min_similarity: float = VECTOR_MIN_SIMILARITY):
        if collection not in TEXT_BUILDERS:
            raise ValueError(f"No canonical text builder for collection: {collection}")
        self.collection = collection
        self.store = store
        self.embedder = embedder
        self.min_similarity = min_similarity
        self.fuzzy_fields = FUZZY_FIELDS[collection]
        self._text = TEXT_BUILDERS[collection]
        self._vectors = SimpleInMemoryVectorStore()
        self._state = UNINITIALIZED
        self._build_task: Optional[asyncio.Task] = None
        self._touched_during_build: Set[str] = set()
        self._last_build: Dict[str, Any] = {}

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == READY

    def __len__(self) -> int:
        return len(self._vectors)

    async def ensure_built(self) -> None:
        """Build the index once. Safe to call from any number of concurrent requests."""
        if self._state == READY:
            return
        if self._build_task is None:
            self._state = BUILDING
            self._touched_during_build = set()
            self._build_task = asyncio.ensure_future(self._build())
        # A cancelled waiter must not cancel the shared build
        await asyncio.shield(self._build_task)

    async def rebuild(self) -> None:
        """Drop everything and build again from the store."""
        self.dispose()
        await self.ensure_built()

    def dispose(self) -> None:
        """Drop all entries and cancel an in-flight build."""
        if self._build_task is not None and not self._build_task.done():
            self._build_task.cancel()
        self._build_task = None
        self._vectors.clear()
        self._touched_during_build = set()
        self._state = UNINITIALIZED
        logger.log_vector_operation("dispose", self.collection)

    async def _embed_record(self, entity: Dict[str, Any]) -> VectorRecord:
        vector = await self.embedder.embed_text(self._text(entity))
        return VectorRecord(id=entity["id"], vector=vector, metadata=dict(entity))

    async def _build(self) -> None:
        start_time = time.time()
        try:
            entities = await self.store.list(self.collection)
            indexed = 0
            failed = 0
            for entity in entities:
                if not entity.get("id"):
                    continue
                try:
                    record = await self._embed_record(entity)
                except Exception as e:
                    # A single provider failure never aborts the build
                    failed += 1
                    logger.log_vector_operation(
                        "index", entity["id"], {"collection": self.collection, "error": str(e)}, status="failed"
                    )
                    continue
                if record.id in self._touched_during_build:
                    continue
                self._vectors.add(record)
                indexed += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Store failure: let the next caller retry from scratch
            self._state = UNINITIALIZED
            self._build_task = None
            logger.error(f"Index build for {self.collection} failed: {e}")
            raise

        end_time = time.time()
        self._state = READY
        self._touched_during_build = set()
        self._last_build = {
            "indexed": indexed,
            "failed": failed,
            "duration_ms": round((end_time - start_time) * 1000, 2),
        }
        logger.log_index_build(self.collection, start_time, end_time, indexed, failed)

    async def upsert(self, entity: Dict[str, Any]) -> bool:
        """Re-embed an entity and replace its entry.

        Skipped while UNINITIALIZED because the eventual build reads it from
        the store. Returns True when the entry was written.
        """
        if self._state == UNINITIALIZED or not entity.get("id"):
            return False
        try:
            record = await self._embed_record(entity)
        except Exception as e:
            logger.log_vector_operation(
                "upsert", entity["id"], {"collection": self.collection, "error": str(e)}, status="failed"
            )
            return False
        # dispose() may have run while embedding
        if self._state == UNINITIALIZED:
            return False
        if self._state == BUILDING:
            self._touched_during_build.add(record.id)
        self._vectors.add(record)
        logger.log_vector_operation("upsert", record.id, {"collection": self.collection})
        return True

    def remove(self, entity_id: str) -> None:
        """Drop an entry by ID."""
        if self._state == BUILDING:
            self._touched_during_build.add(entity_id)
        self._vectors.delete(entity_id)

    def search(self, query_vector, limit: int, filters: Dict[str, Any] = None) -> List[QueryResult]:
        """Cosine search above the minimum similarity, best first."""
        return self._vectors.search(query_vector, top_k=limit, filters=filters, min_score=self.min_similarity)

    def search_fuzzy(self, term: str, limit: int, filters: Dict[str, Any] = None) -> List[QueryResult]:
        """Literal, case-insensitive substring search over the collection's display fields."""
        return self._vectors.search_fuzzy(term, self.fuzzy_fields, top_k=limit, filters=filters)

    def get(self, entity_id: str) -> Optional[VectorRecord]:
        return self._vectors.get(entity_id)

    def stats(self) -> Dict[str, Any]:
        """Index state, size and the outcome of the last build."""
        return {
            "collection": self.collection,
            "state": self._state,
            "size": len(self._vectors),
            "min_similarity": self.min_similarity,
            "last_build": dict(self._last_build),
        }
