"""
In-memory vector store - similarity and fuzzy search over entity snapshots.
Non-canonical, advisory layer over the document store.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .types import QueryResult, VectorRecord

FUZZY_SCORE = 1.0


def cosine_similarity(a, b) -> float:
    """Cosine of the angle between a and b, 0.0 when either has zero norm."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def matches_filters(metadata: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Equality match on every non-None filter."""
    if not filters:
        return True
    return all(metadata.get(k) == v for k, v in filters.items() if v is not None)


def fuzzy_match(records: Iterable[Dict[str, Any]], term: str, fields: Sequence[str],
                limit: int, filters: Dict[str, Any] = None) -> List[QueryResult]:
    """Case-insensitive literal substring match of term over fields.

    The term is escaped, so regex metacharacters in user input match themselves.
    """
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    results = []
    for metadata in records:
        if len(results) >= limit:
            break
        if not matches_filters(metadata, filters):
            continue
        if any(pattern.search(str(metadata.get(f) or "")) for f in fields):
            results.append(QueryResult(id=metadata["id"], score=FUZZY_SCORE, metadata=metadata))
    return results


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    @abstractmethod
    def add(self, record: VectorRecord) -> None:
        """Add or replace a vector record."""
        pass

    @abstractmethod
    def search(self, query_vector, top_k: int = 5, filters: Dict[str, Any] = None,
               min_score: float = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass


class SimpleInMemoryVectorStore(IVectorStore):
    """In-memory IVectorStore using cosine similarity over normalized vectors."""

    def __init__(self):
        self._vectors: Dict[str, VectorRecord] = {}  # record_id -> VectorRecord
        self._index: Dict[str, np.ndarray] = {}      # record_id -> normalized vector

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._vectors

    def get(self, record_id: str) -> Optional[VectorRecord]:
        return self._vectors.get(record_id)

    def records(self) -> List[VectorRecord]:
        """Records in insertion order."""
        return list(self._vectors.values())

    def add(self, record: VectorRecord) -> None:
        # Replacing keeps the original insertion slot
        self._vectors[record.id] = record

        vector = np.asarray(record.vector, dtype=float)
        norm = np.linalg.norm(vector)
        self._index[record.id] = vector / norm if norm > 0 else np.zeros_like(vector)

    def search(self, query_vector, top_k: int = 5, filters: Dict[str, Any] = None,
               min_score: float = None) -> List[QueryResult]:
        """Filter, score, threshold, stable sort, truncate."""
        if not self._index or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        norm = np.linalg.norm(query)
        normalized_query = query / norm if norm > 0 else np.zeros_like(query)

        scored = []
        for record_id, record in self._vectors.items():
            if not matches_filters(record.metadata, filters):
                continue
            stored = self._index[record_id]
            if stored.shape != normalized_query.shape:
                continue
            score = float(np.clip(np.dot(normalized_query, stored), -1.0, 1.0))
            if min_score is not None and score < min_score:
                continue
            scored.append(QueryResult(id=record_id, score=score, metadata=record.metadata))

        # sorted() is stable, equal scores keep insertion order
        scored = sorted(scored, key=lambda r: r.score, reverse=True)
        return scored[:top_k]

    def search_fuzzy(self, term: str, fields: Sequence[str], top_k: int = 5,
                     filters: Dict[str, Any] = None) -> List[QueryResult]:
        """Literal substring search over metadata fields."""
        return fuzzy_match((r.metadata for r in self._vectors.values()), term, fields, top_k, filters)

    def delete(self, record_id: str) -> None:
        self._vectors.pop(record_id, None)
        self._index.pop(record_id, None)

    def clear(self) -> None:
        self._vectors.clear()
        self._index.clear()
