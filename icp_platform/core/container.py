"""
Application container - builds and owns every service instance.
"""

from typing import Optional

from . import config
from .approval import ApprovalWorkflow
from .assistant import CatalogAssistant, IChatProvider
from .catalog import PartnerService, SolutionService
from .common import BeneficiaryTypeService
from .refinement import QueryRefiner
from .schema import KIND_PARTNER, KIND_SOLUTION, PARTNERS, SOLUTIONS
from .search_service import EntitySearchService
from .stats import StatsService
from .store import IDocumentStore, SQLiteDocumentStore
from .translation import ITranslationProvider, TranslationService
from .users import UserService
from ..vector.embeddings import IEmbeddingProvider
from ..vector.entity_index import EntityIndex
from ..util.logging import logger


class AppContainer:
    """Wires store, providers, indexes and services. Every dependency is injectable."""

    def __init__(self, store: IDocumentStore = None, embedder: IEmbeddingProvider = None,
                 translation_provider: Optional[ITranslationProvider] = None,
                 refiner: Optional[QueryRefiner] = None,
                 chat_provider: Optional[IChatProvider] = None,
                 min_similarity: float = None, candidate_cap: int = None,
                 invalidate_on_edit: bool = None, use_config_providers: bool = True):
        self.store = store or SQLiteDocumentStore(config.DB_PATH)
        self.embedder = embedder or config.get_embedding_provider()
        if translation_provider is None and use_config_providers:
            translation_provider = config.get_translation_provider()
        if refiner is None and use_config_providers:
            refiner = config.get_query_refiner()
        if chat_provider is None and use_config_providers:
            chat_provider = config.get_chat_provider()
        self.translation_provider = translation_provider
        self.refiner = refiner
        self.chat_provider = chat_provider

        min_similarity = config.VECTOR_MIN_SIMILARITY if min_similarity is None else min_similarity
        candidate_cap = candidate_cap or config.SEARCH_CANDIDATE_CAP
        invalidate_on_edit = config.TRANSLATION_INVALIDATE_ON_EDIT if invalidate_on_edit is None else invalidate_on_edit

        self.solution_index = EntityIndex(SOLUTIONS, self.store, self.embedder, min_similarity)
        self.partner_index = EntityIndex(PARTNERS, self.store, self.embedder, min_similarity)
        self.indexes = {SOLUTIONS: self.solution_index, PARTNERS: self.partner_index}

        self.translator = TranslationService(self.store, translation_provider)
        self.workflow = ApprovalWorkflow(self.store, self.indexes)

        self.solution_search = EntitySearchService(
            KIND_SOLUTION, self.store, self.solution_index, self.embedder,
            self.translator, refiner, candidate_cap
        )
        self.partner_search = EntitySearchService(
            KIND_PARTNER, self.store, self.partner_index, self.embedder,
            self.translator, refiner, candidate_cap
        )

        self.solutions = SolutionService(
            self.store, self.solution_index, self.solution_search, self.translator,
            self.workflow, invalidate_on_edit
        )
        self.partners = PartnerService(
            self.store, self.partner_index, self.partner_search, self.translator,
            self.workflow, invalidate_on_edit, solution_search=self.solution_search
        )
        self.users = UserService(self.store, self.workflow)
        self.stats = StatsService(self.store, self.workflow)
        self.beneficiary_types = BeneficiaryTypeService(self.store)
        self.assistant = CatalogAssistant(
            self.indexes, self.embedder, chat_provider,
            config.CHAT_CONTEXT_LIMIT, config.CHAT_HISTORY_LIMIT
        )

    async def warm(self) -> None:
        """Build every index now instead of on the first semantic query."""
        for index in self.indexes.values():
            await index.ensure_built()
        logger.log_operation("container.warm", "success", {c: len(i) for c, i in self.indexes.items()})

    def dispose(self) -> None:
        for index in self.indexes.values():
            index.dispose()
