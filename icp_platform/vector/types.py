"""
Vector index record types. Entries are point-in-time copies of stored entities.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class VectorRecord:
    """Represents an indexed entity with its embedding."""

    id: str
    """Entity ID"""

    vector: Optional[np.ndarray]
    """Embedding of the entity's canonical text"""

    metadata: Dict[str, Any]
    """Snapshot of the entity at indexing time"""


@dataclass
class QueryResult:
    """Represents a search hit."""

    id: str
    """Identifier for the matching entity"""

    score: float
    """Cosine similarity in [-1, 1], or 1.0 for fuzzy matches"""

    metadata: Dict[str, Any]
    """Entity snapshot"""
