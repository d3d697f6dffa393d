"""
Embedding providers. Every provider is async; local models run in a worker thread.
"""

import asyncio
import hashlib
import re
from abc import ABC, abstractmethod
from typing import List

import ollama
from sentence_transformers import SentenceTransformer

from ..core.errors import DependencyDegradedError

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    async def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for development and tests.

    Each lowercase token is hashed into a signed bucket, so texts sharing
    vocabulary point in similar directions without any model download.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    async def embed_text(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN_RE.findall((text or "").lower()):
            digest = hashlib.md5(token.encode()).hexdigest()
            value = int(digest[:8], 16)
            bucket = value % self.dimension
            sign = 1.0 if int(digest[8:10], 16) % 2 == 0 else -1.0
            vector[bucket] += sign
        return vector

    def get_dimension(self) -> int:
        return self.dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Remote embeddings from an Ollama server."""

    def __init__(self, model_name: str = "nomic-embed-text", host: str = None):
        self.model_name = model_name
        self.host = host
        self._client = None
        self._dimension = None

    @property
    def client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    async def embed_text(self, text: str) -> List[float]:
        try:
            response = await self.client.embed(model=self.model_name, input=text)
        except (ollama.ResponseError, ConnectionError, OSError) as e:
            raise DependencyDegradedError(f"Ollama embedding failed: {e}") from e

        embeddings = response["embeddings"]
        if not embeddings:
            raise DependencyDegradedError("Ollama returned no embedding")
        vector = list(embeddings[0])
        self._dimension = len(vector)
        return vector

    def get_dimension(self) -> int:
        """Dimension of the last embedding returned, 0 before the first call."""
        return self._dimension or 0


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models."""

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    async def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        try:
            embedding = await asyncio.to_thread(self.model.encode, text, convert_to_tensor=False)
        except Exception as e:
            raise DependencyDegradedError(f"Sentence transformer embedding failed: {e}") from e
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
