"""
Catalog services - create, read, update and search for solutions and partners.
"""

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from .approval import ApprovalWorkflow
from .config import TRANSLATION_INVALIDATE_ON_EDIT
from .errors import ForbiddenError, NotFoundError, SchemaValidationError
from .models import PartnerInput, PartnerUpdate, SolutionInput, SolutionUpdate, validate_input
from .permissions import can_edit, is_moderator, require_principal
from .schema import (
    ASSOCIATION_APPROVED, KIND_PARTNER, KIND_SOLUTION, OWNER_FIELD, PARTNERS, SOLUTIONS,
    STATUS_PROPOSED, TRANSLATABLE_FIELDS, USERS, Page, Principal,
)
from .search_service import EntitySearchService, SearchParams
from .store import IDocumentStore
from .translation import TranslationService
from ..vector.entity_index import EntityIndex
from ..util.logging import logger

# Derived or server-owned fields a caller can never write directly
SYSTEM_MANAGED_FIELDS = (
    "id", "createdAt", "updatedAt", OWNER_FIELD, "proposedByUserName",
    "providedByPartnerName", "translations",
)


def display_name(user: Optional[Dict[str, Any]], principal: Principal) -> str:
    """Name stamped on proposals: full name, else email, else the principal's own label."""
    if user:
        full = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
        if full:
            return full
        if user.get("email"):
            return user["email"]
    return principal.display_name or "Unknown"


class CatalogService:
    """Shared create/get/update/search flow; subclasses bind a collection."""

    collection: str = ""
    kind: str = ""
    input_model: Type[BaseModel] = BaseModel
    update_model: Type[BaseModel] = BaseModel

    def __init__(self, store: IDocumentStore, index: EntityIndex, search_service: EntitySearchService,
                 translator: TranslationService, workflow: ApprovalWorkflow,
                 invalidate_on_edit: bool = TRANSLATION_INVALIDATE_ON_EDIT):
        self.store = store
        self.index = index
        self.search_service = search_service
        self.translator = translator
        self.workflow = workflow
        self.invalidate_on_edit = invalidate_on_edit

    async def _prepare_create(self, principal: Principal, user: Optional[Dict[str, Any]],
                              data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    async def _prepare_update(self, principal: Principal, existing: Dict[str, Any],
                              updates: Dict[str, Any]) -> Dict[str, Any]:
        return updates

    async def create(self, principal: Optional[Principal], data: Any) -> Dict[str, Any]:
        """Validate, force PROPOSED, persist, open the approval ticket and index."""
        principal = require_principal(principal)
        validated = validate_input(self.input_model, data, f"{self.collection}.create")

        user = await self.store.get(USERS, principal.uid)
        enriched = await self._prepare_create(principal, user, validated)
        enriched["status"] = STATUS_PROPOSED
        enriched[OWNER_FIELD] = principal.uid
        enriched["proposedByUserName"] = display_name(user, principal)

        created = await self.store.create(self.collection, enriched)
        logger.log_entity_operation("create", self.collection, created["id"], principal.uid)

        await self.workflow.open_approval_ticket(self.collection, created, principal)
        await self.index.upsert(created)
        return created

    async def get(self, principal: Optional[Principal], entity_id: str, lang: Optional[str] = None) -> Dict[str, Any]:
        entity = await self.store.get(self.collection, entity_id)
        if entity is None:
            raise NotFoundError(f"{self.kind.capitalize()} {entity_id} not found")
        entity = await self._decorate(entity)
        return await self.translator.ensure_translation(entity, self.kind, lang)

    async def _decorate(self, entity: Dict[str, Any]) -> Dict[str, Any]:
        return entity

    async def update(self, principal: Optional[Principal], entity_id: str, data: Any) -> Dict[str, Any]:
        """Authorize fully before applying anything, then write, re-index and invalidate."""
        principal = require_principal(principal)
        existing = await self.store.get(self.collection, entity_id)
        if existing is None:
            raise NotFoundError(f"{self.kind.capitalize()} {entity_id} not found")
        if not can_edit(principal, existing):
            raise ForbiddenError(f"Not allowed to edit this {self.kind}")
        if isinstance(data, dict) and "status" in data and data["status"] != existing.get("status") \
                and not is_moderator(principal):
            raise ForbiddenError("Only moderators can change status")

        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in SYSTEM_MANAGED_FIELDS}
        updates = validate_input(self.update_model, data, f"{self.collection}.update", partial=True)
        cleared = [
            name for name, info in self.input_model.model_fields.items()
            if info.is_required() and name in updates and updates[name] is None
        ]
        if cleared:
            raise SchemaValidationError(
                "Required fields cannot be cleared",
                [{"field": name, "message": "field is required", "value": None} for name in cleared]
            )
        updates = await self._prepare_update(principal, existing, updates)
        if not updates:
            return existing

        if self.invalidate_on_edit and self._changes_translatable(existing, updates):
            updates["translations"] = {}

        updated = await self.store.update(self.collection, entity_id, updates)
        logger.log_entity_operation("update", self.collection, entity_id, principal.uid)
        await self.index.upsert(updated)
        return updated

    def _changes_translatable(self, existing: Dict[str, Any], updates: Dict[str, Any]) -> bool:
        return any(
            field in updates and updates[field] != existing.get(field)
            for field in TRANSLATABLE_FIELDS.get(self.collection, ())
        )

    async def search(self, principal: Optional[Principal], params: SearchParams) -> Page:
        return await self.search_service.search(principal, params)


class SolutionService(CatalogService):
    collection = SOLUTIONS
    kind = KIND_SOLUTION
    input_model = SolutionInput
    update_model = SolutionUpdate

    async def _resolve_partner(self, principal: Principal, user: Optional[Dict[str, Any]],
                               partner_id: str) -> str:
        """Check the providing partner exists and the caller speaks for it. Returns its name."""
        partner = await self.store.get(PARTNERS, partner_id)
        if partner is None:
            raise SchemaValidationError(
                "Invalid providedByPartnerId: partner not found",
                [{"field": "providedByPartnerId", "message": "partner not found", "value": partner_id}]
            )
        if not is_moderator(principal):
            associations = (user or {}).get("associatedPartners") or []
            if not any(a.get("partnerId") == partner_id and a.get("status") == ASSOCIATION_APPROVED
                       for a in associations):
                raise ForbiddenError("You are not associated with this partner")
        return partner.get("organizationName")

    async def _prepare_create(self, principal, user, data):
        if data.get("providedByPartnerId"):
            data["providedByPartnerName"] = await self._resolve_partner(principal, user, data["providedByPartnerId"])
        return data

    async def _prepare_update(self, principal, existing, updates):
        partner_id = updates.get("providedByPartnerId")
        if partner_id and partner_id != existing.get("providedByPartnerId"):
            user = await self.store.get(USERS, principal.uid)
            updates["providedByPartnerName"] = await self._resolve_partner(principal, user, partner_id)
        elif "providedByPartnerId" in updates and not partner_id:
            updates["providedByPartnerName"] = None
        return updates


class PartnerService(CatalogService):
    collection = PARTNERS
    kind = KIND_PARTNER
    input_model = PartnerInput
    update_model = PartnerUpdate

    def __init__(self, *args, solution_search: EntitySearchService = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.solution_search = solution_search

    async def _decorate(self, entity):
        if not entity.get("proposedByUserName") and entity.get(OWNER_FIELD):
            user = await self.store.get(USERS, entity[OWNER_FIELD])
            if user:
                full = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip()
                entity = {**entity, "proposedByUserName": full or user.get("email") or "Unknown"}
        return entity

    async def list_solutions(self, principal: Optional[Principal], partner_id: str,
                             params: SearchParams) -> Page:
        """Solutions provided by a partner, under the solution visibility rules."""
        if await self.store.get(PARTNERS, partner_id) is None:
            raise NotFoundError(f"Partner {partner_id} not found")
        params.filters = {**params.filters, "providedByPartnerId": partner_id}
        return await self.solution_search.search(principal, params)
