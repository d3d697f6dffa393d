"""
Shared lookup lists offered by entity forms.
"""

import hashlib
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConflictError, SchemaValidationError
from .permissions import require_principal
from .schema import BENEFICIARY_TYPES, Principal
from .store import IDocumentStore
from ..util.logging import logger


class BeneficiaryTypeService:
    """Registry of beneficiary type names. Adding an existing name is a no-op."""

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def list_types(self) -> List[str]:
        return sorted(doc["name"] for doc in await self.store.list(BENEFICIARY_TYPES))

    async def add_type(self, principal: Optional[Principal], name: Any) -> Tuple[Dict[str, str], bool]:
        """Register name (trimmed). Returns the name and whether it was new."""
        principal = require_principal(principal)
        if not isinstance(name, str) or not name.strip():
            raise SchemaValidationError(
                "Name is required",
                [{"field": "name", "message": "must be a non-empty string", "value": name}]
            )
        name = name.strip()

        existing = await self.store.list(BENEFICIARY_TYPES, {"name": name})
        if existing:
            return {"name": name}, False

        # ID derived from the name so concurrent adds collide in the store
        doc_id = hashlib.sha1(name.encode("utf-8")).hexdigest()
        try:
            await self.store.create(BENEFICIARY_TYPES, {"name": name}, doc_id=doc_id)
        except ConflictError:
            return {"name": name}, False
        logger.log_entity_operation("create", BENEFICIARY_TYPES, doc_id, principal.uid)
        return {"name": name}, True
