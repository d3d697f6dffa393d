"""
Translation cache-aside layer.

Translated display fields live on the entity itself under
translations.{lang}. A language present in that map is never sent to the
provider again for the same entity.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import ollama

from .config import DEFAULT_LANGUAGE
from .errors import DependencyDegradedError, NotFoundError, SchemaValidationError
from .schema import COLLECTION_BY_KIND, TRANSLATABLE_FIELDS, LocalizedView
from .store import IDocumentStore
from ..util.logging import logger


class ITranslationProvider(ABC):
    """Abstract interface for bulk structured translation."""

    @abstractmethod
    async def translate_structured(self, fields: Dict[str, str], target_lang: str) -> Dict[str, str]:
        """Translate every value of fields into target_lang, keeping the keys."""
        pass


class OllamaTranslationProvider(ITranslationProvider):
    """Translation through an Ollama chat model constrained to JSON output."""

    def __init__(self, model_name: str = "llama3.1:8b", host: str = None):
        self.model_name = model_name
        self.host = host
        self._client = None

    @property
    def client(self) -> ollama.AsyncClient:
        if self._client is None:
            self._client = ollama.AsyncClient(host=self.host)
        return self._client

    def _build_messages(self, fields: Dict[str, str], target_lang: str) -> List[Dict[str, str]]:
        system_prompt = (
            "You are a professional translator. Translate every value of the JSON object "
            f"the user sends into the language with ISO code '{target_lang}'. "
            "Keep the keys unchanged, keep proper nouns and IDs as they are, and reply "
            "with a single JSON object only."
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": json.dumps(fields, ensure_ascii=False)},
        ]

    async def translate_structured(self, fields: Dict[str, str], target_lang: str) -> Dict[str, str]:
        try:
            response = await self.client.chat(
                model=self.model_name,
                messages=self._build_messages(fields, target_lang),
                format="json",
                options={"temperature": 0},
            )
        except (ollama.ResponseError, ConnectionError, OSError) as e:
            raise DependencyDegradedError(f"Ollama translation failed: {e}") from e

        content = response["message"]["content"]
        try:
            translated = json.loads(content)
        except json.JSONDecodeError as e:
            raise DependencyDegradedError(f"Translation output is not JSON: {e}") from e
        if not isinstance(translated, dict):
            raise DependencyDegradedError("Translation output is not a JSON object")
        return translated


def needs_translation(lang: Optional[str]) -> bool:
    """English (the storage language) and a missing language bypass translation."""
    return bool(lang) and lang.lower() != DEFAULT_LANGUAGE


def translatable_fields(collection: str, entity: Dict[str, Any]) -> Dict[str, str]:
    """Present, non-empty string display fields of an entity."""
    fields = {}
    for name in TRANSLATABLE_FIELDS.get(collection, ()):
        value = entity.get(name)
        if isinstance(value, str) and value:
            fields[name] = value
    return fields


class TranslationService:
    """Cache-aside translation of entity display fields.

    No lock is held around populate: two first requests for the same
    entity+language may both call the provider, and the later merge-write wins.
    """

    def __init__(self, store: IDocumentStore, provider: Optional[ITranslationProvider]):
        self.store = store
        self.provider = provider

    @staticmethod
    def _collection(kind: str) -> str:
        collection = COLLECTION_BY_KIND.get(kind)
        if collection not in TRANSLATABLE_FIELDS:
            raise SchemaValidationError(f"Entity kind '{kind}' is not translatable")
        return collection

    async def get_translated_entity(self, entity_id: str, kind: str, lang: Optional[str]) -> Dict[str, Any]:
        """Fetch an entity by ID and return it localized to lang."""
        collection = self._collection(kind)
        entity = await self.store.get(collection, entity_id)
        if entity is None:
            raise NotFoundError(f"{kind} {entity_id} not found")
        return await self.ensure_translation(entity, kind, lang)

    async def ensure_translation(self, entity: Dict[str, Any], kind: str, lang: Optional[str]) -> Dict[str, Any]:
        """Localize an in-hand entity snapshot, populating the cache on a miss."""
        if not needs_translation(lang):
            return entity
        view = await self.localize(entity, kind, lang.lower())
        return view.to_dict()

    async def ensure_translations(self, entities: List[Dict[str, Any]], kind: str, lang: Optional[str]) -> List[Dict[str, Any]]:
        """Localize a page of entities concurrently, preserving order."""
        if not needs_translation(lang) or not entities:
            return entities
        return list(await asyncio.gather(*(self.ensure_translation(e, kind, lang) for e in entities)))

    async def localize(self, entity: Dict[str, Any], kind: str, lang: str) -> LocalizedView:
        collection = self._collection(kind)
        entity_id = entity.get("id")

        cached = (entity.get("translations") or {}).get(lang)
        if cached is not None:
            logger.log_translation(collection, entity_id, lang, "hit")
            return LocalizedView(base=entity, overrides=dict(cached), language=lang)

        fields = translatable_fields(collection, entity)
        if not fields:
            return LocalizedView(base=entity, overrides={}, language=lang)

        overrides = await self._translate(collection, entity_id, fields, lang)
        if not overrides:
            return LocalizedView(base=entity, overrides={}, language=lang)

        if entity_id:
            try:
                await self.store.merge(collection, entity_id, {"translations": {lang: overrides}})
                logger.log_translation(collection, entity_id, lang, "stored", {"fields": sorted(overrides)})
            except NotFoundError:
                logger.log_translation(collection, entity_id, lang, "failed", {"error": "entity vanished before write"})

        return LocalizedView(base=entity, overrides=overrides, language=lang)

    async def _translate(self, collection: str, entity_id: Optional[str],
                         fields: Dict[str, str], lang: str) -> Dict[str, str]:
        """Call the provider once; failures degrade to no overrides."""
        if self.provider is None:
            return {}
        try:
            translated = await self.provider.translate_structured(fields, lang)
        except Exception as e:
            logger.log_translation(collection, entity_id, lang, "failed", {"error": str(e)})
            return {}

        # Only requested keys with string values are accepted
        return {
            key: value for key, value in (translated or {}).items()
            if key in fields and isinstance(value, str) and value
        }
