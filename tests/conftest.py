"""
Shared fakes and fixtures: keyword embeddings, a counting translator and a
container over a temporary SQLite database.
"""

import asyncio
import re

import pytest

from icp_platform.core.container import AppContainer
from icp_platform.core.store import SQLiteDocumentStore
from icp_platform.core.translation import ITranslationProvider
from icp_platform.vector.embeddings import IEmbeddingProvider

VOCABULARY = [
    "water", "filter", "solar", "energy", "health", "clinic", "school",
    "education", "farm", "livelihood", "ngo", "academic", "corporate", "rain",
]


class KeywordEmbedding(IEmbeddingProvider):
    """One dimension per vocabulary word; counts occurrences."""

    def __init__(self, delay: float = 0.0, fail_on: str = None):
        self.calls = 0
        self.texts = []
        self.delay = delay
        self.fail_on = fail_on

    async def embed_text(self, text):
        self.calls += 1
        self.texts.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError("embedding backend unavailable")
        tokens = re.findall(r"\w+", text.lower())
        return [float(tokens.count(word)) for word in VOCABULARY]

    def get_dimension(self):
        return len(VOCABULARY)


class CountingTranslator(ITranslationProvider):
    """Prefixes every value with the language code."""

    def __init__(self, fail: bool = False, extra: dict = None):
        self.calls = 0
        self.requests = []
        self.fail = fail
        self.extra = extra or {}

    async def translate_structured(self, fields, target_lang):
        self.calls += 1
        self.requests.append((dict(fields), target_lang))
        if self.fail:
            raise RuntimeError("translation backend unavailable")
        result = {key: f"[{target_lang}] {value}" for key, value in fields.items()}
        result.update(self.extra)
        return result


def solution_payload(**overrides):
    data = {
        "name": "Clean Water Filter",
        "summary": "Affordable water filter for rural homes",
        "detail": "Ceramic filter assembled locally",
        "domain": "Water",
        "benefit": "Safe drinking water",
        "costAndEffort": "Low",
        "returnOnInvestment": "High",
    }
    data.update(overrides)
    return data


def partner_payload(**overrides):
    data = {
        "organizationName": "Rain Collective",
        "entityType": "NGO",
        "description": "Community rain water harvesting",
    }
    data.update(overrides)
    return data


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test_icp.db")


@pytest.fixture
def store(db_path):
    return SQLiteDocumentStore(db_path)


@pytest.fixture
def embedder():
    return KeywordEmbedding()


@pytest.fixture
def translator():
    return CountingTranslator()


@pytest.fixture
def container(store, embedder, translator):
    return AppContainer(
        store=store,
        embedder=embedder,
        translation_provider=translator,
        use_config_providers=False,
    )


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)
