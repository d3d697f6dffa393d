"""
Query refinement - optional LLM rewrite of a free-text search query.
Soft dependency: any failure or slow answer falls back to the original text.
"""

import asyncio
from abc import ABC, abstractmethod

import ollama

from ..util.logging import logger


class QueryRefiner(ABC):
    """Rewrites a search query within a bounded wait."""

    def __init__(self, timeout_sec: float = 1.5):
        self.timeout_sec = timeout_sec

    @abstractmethod
    async def _rewrite(self, query: str) -> str:
        pass

    async def refine(self, query: str) -> str:
        """Return the rewritten query, or query itself on timeout, error or empty output."""
        try:
            refined = await asyncio.wait_for(self._rewrite(query), timeout=self.timeout_sec)
        except asyncio.TimeoutError:
            logger.log_operation("query.refine", "timeout", {"timeout_sec": self.timeout_sec})
            return query
        except Exception as e:
            logger.log_operation("query.refine", "failed", {"error": str(e)})
            return query

        refined = (refined or "").strip()
        return refined or query


class OllamaQueryRefiner(QueryRefiner):
    """Query rewrite through an Ollama chat model."""

    PROMPT = (
        "Rewrite the following search request into a short keyword query for a catalog of "
        "social-impact solutions and partner organizations. Reply with the query only.\n\n"
        "Request: {query}"
    )

    def __init__(self, model_name: str = "llama3.1:8b", host: str = None, timeout_sec: float = 1.5):
        super().__init__(timeout_sec)
        self.model_name = model_name
        self.client = ollama.AsyncClient(host=host)

    async def _rewrite(self, query: str) -> str:
        response = await self.client.generate(
            model=self.model_name,
            prompt=self.PROMPT.format(query=query),
            options={"temperature": 0},
        )
        return response["response"]
