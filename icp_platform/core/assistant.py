"""
Catalog assistant - retrieval-augmented chat over the public catalog.

Context comes from the same entity indexes that back semantic search,
restricted to what an anonymous visitor may see.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

import ollama

from .errors import DependencyDegradedError
from .schema import PARTNERS, PUBLIC_STATUSES, SOLUTIONS
from .visibility import merge_by_score, plan_visibility
from ..vector.embeddings import IEmbeddingProvider
from ..vector.entity_index import TEXT_BUILDERS, EntityIndex
from ..vector.types import QueryResult
from ..util.logging import logger

SYSTEM_PROMPT = """You are a helpful AI assistant for the ICP (Innovation Co-Pilot) platform.
Your goal is to help users find solutions and partners based on the context provided below.

CONTEXT:
{context}

INSTRUCTIONS:
- Answer the user's question based ONLY on the context provided.
- If the answer is not in the context, say you don't have enough information.
- Be concise and professional.
- Reference the specific solution or partner names when possible."""

CONTEXT_SEPARATOR = "\n---\n"


class IChatProvider(ABC):
    """Abstract interface for streaming chat models."""

    @abstractmethod
    def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Yield the reply to messages as text chunks."""
        pass


class OllamaChatProvider(IChatProvider):
    """Streaming replies from an Ollama chat model."""

    def __init__(self, model_name: str = "llama3.1:8b", host: str = None, temperature: float = 0.3):
        self.model_name = model_name
        self.host = host
        self.temperature = temperature
        self._client = None

    @property
    def client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    async def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat(
                model=self.model_name,
                messages=messages,
                stream=True,
                options={"temperature": self.temperature, "top_p": 0.9},
            )
            async for chunk in stream:
                content = chunk["message"]["content"]
                if content:
                    yield content
        except (ollama.ResponseError, ConnectionError, OSError) as e:
            raise DependencyDegradedError(f"Ollama chat failed: {e}") from e


class CatalogAssistant:
    """Answers questions about public solutions and partners."""

    def __init__(self, indexes: Dict[str, EntityIndex], embedder: IEmbeddingProvider,
                 provider: Optional[IChatProvider], context_limit: int = 5, history_limit: int = 10):
        self.indexes = indexes
        self.embedder = embedder
        self.provider = provider
        self.context_limit = context_limit
        self.history_limit = history_limit

    @property
    def available(self) -> bool:
        return self.provider is not None

    async def search(self, query: str, limit: int = 3) -> List[QueryResult]:
        """Best public solutions and partners for query, across both collections.

        An embedding failure yields no context rather than an error.
        """
        for index in self.indexes.values():
            await index.ensure_built()

        try:
            vector = await self.embedder.embed_text(query)
        except Exception as e:
            logger.log_operation("assistant.search", "degraded", {"error": str(e)})
            return []

        result_sets = []
        for collection, index in self.indexes.items():
            for plan in plan_visibility(None, None, PUBLIC_STATUSES[collection]):
                result_sets.append([
                    QueryResult(id=r.id, score=r.score, metadata={**r.metadata, "_collection": collection})
                    for r in index.search(vector, limit, plan)
                ])
        return merge_by_score(result_sets)[:limit]

    @staticmethod
    def context_text(results: List[QueryResult]) -> str:
        parts = []
        for result in results:
            entity = dict(result.metadata)
            collection = entity.pop("_collection")
            parts.append(TEXT_BUILDERS[collection](entity))
        return CONTEXT_SEPARATOR.join(parts)

    def build_messages(self, message: str, history: List[Dict[str, Any]],
                       results: List[QueryResult]) -> List[Dict[str, str]]:
        """System prompt with context, recent history, then the new message.

        History turns from the assistant use role "ai"; everything else is
        replayed as the user.
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT.format(context=self.context_text(results))}]

        recent = history[-self.history_limit:] if self.history_limit else []
        for turn in recent:
            role = "assistant" if turn.get("role") == "ai" else "user"
            messages.append({"role": role, "content": turn.get("content") or ""})

        messages.append({"role": "user", "content": message})
        return messages

    async def prepare(self, message: str, history: List[Dict[str, Any]] = None) -> List[Dict[str, str]]:
        """Retrieve context and assemble the prompt. Raises when no chat model is configured."""
        if not self.available:
            raise DependencyDegradedError("AI chat is not configured")

        results = await self.search(message, self.context_limit)
        logger.log_operation("assistant.chat", "context", {
            "documents": len(results),
            "solutions": sum(1 for r in results if r.metadata["_collection"] == SOLUTIONS),
            "partners": sum(1 for r in results if r.metadata["_collection"] == PARTNERS),
        })
        return self.build_messages(message, history or [], results)

    async def stream_reply(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Relay the model's reply. A failure after the first chunk ends the reply early."""
        chunks = 0
        try:
            async for chunk in self.provider.stream_chat(messages):
                chunks += 1
                yield chunk
        except DependencyDegradedError as e:
            logger.log_operation("assistant.chat", "failed", {"error": str(e), "chunks": chunks})
            if not chunks:
                raise
            return
        logger.log_operation("assistant.chat", "success", {"chunks": chunks})

    async def chat_stream(self, message: str, history: List[Dict[str, Any]] = None) -> AsyncIterator[str]:
        messages = await self.prepare(message, history)
        async for chunk in self.stream_reply(messages):
            yield chunk
