"""
Vector overlay - non-canonical, advisory layer over the document store.
"""

# Package initialization for vector module
from .index import IVectorStore, SimpleInMemoryVectorStore, cosine_similarity
from .types import VectorRecord, QueryResult
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, OllamaEmbedding, SentenceTransformerEmbedding
from .entity_index import EntityIndex

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'cosine_similarity',
    'VectorRecord',
    'QueryResult',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'OllamaEmbedding',
    'SentenceTransformerEmbedding',
    'EntityIndex'
]
