"""
User directory, partner associations and bookmarks.

Association and bookmark arrays live on the user document and are changed
only through versioned read-modify-write.
"""

from typing import Any, Dict, List, Optional

from .approval import ApprovalWorkflow
from .errors import ConflictError, ForbiddenError, NotFoundError
from .models import AssociationDecision, UserProfileUpdate, validate_input
from .permissions import require_admin, require_moderator, require_principal
from .schema import (
    ASSOCIATION_APPROVED, ASSOCIATION_PENDING, ASSOCIATION_REJECTED, PARTNERS, ROLE_ADMIN,
    ROLE_REGULAR, SOLUTIONS, TICKET_PARTNER_CONNECT, USERS, Page, Principal,
)
from .store import IDocumentStore, utc_now_iso
from .visibility import paginate
from ..util.logging import logger

# Not writable through profile update
PROTECTED_USER_FIELDS = ("id", "uid", "email", "bookmarks", "associatedPartners", "createdAt", "updatedAt")


class UserService:
    """Users, their partner associations and their bookmarks."""

    def __init__(self, store: IDocumentStore, workflow: ApprovalWorkflow):
        self.store = store
        self.workflow = workflow

    async def _load(self, uid: str) -> Dict[str, Any]:
        user = await self.store.get(USERS, uid)
        if user is None:
            raise NotFoundError(f"User {uid} not found")
        return user

    async def sync(self, principal: Optional[Principal], email: str = None,
                   profile: Dict[str, Any] = None) -> Dict[str, Any]:
        """Return the caller's record, creating a REGULAR user on first sight."""
        principal = require_principal(principal)
        existing = await self.store.get(USERS, principal.uid)
        if existing is not None:
            return existing

        profile = {k: v for k, v in (profile or {}).items() if k not in PROTECTED_USER_FIELDS and k != "role"}
        user = {
            "uid": principal.uid,
            "email": email or "",
            "firstName": "",
            "lastName": "",
            "language": "en",
            "discoverySource": "",
            **profile,
            "role": ROLE_REGULAR,
            "bookmarks": [],
            "associatedPartners": [],
        }
        try:
            created = await self.store.create(USERS, user, doc_id=principal.uid)
        except ConflictError:
            # Concurrent first request created it
            return await self._load(principal.uid)
        logger.log_entity_operation("create", USERS, principal.uid, principal.uid)
        return created

    async def get_user(self, principal: Optional[Principal], uid: str) -> Dict[str, Any]:
        principal = require_principal(principal)
        if principal.uid != uid and not principal.is_moderator:
            raise ForbiddenError("Not allowed to view this user")
        return await self._load(uid)

    async def update_profile(self, principal: Optional[Principal], uid: str, data: Any) -> Dict[str, Any]:
        """Self or ADMIN; only ADMIN may change a role."""
        principal = require_principal(principal)
        if principal.uid != uid and principal.role != ROLE_ADMIN:
            raise ForbiddenError("Not allowed to update this user")
        existing = await self._load(uid)

        if isinstance(data, dict):
            if "role" in data and data["role"] != existing.get("role") and principal.role != ROLE_ADMIN:
                raise ForbiddenError("Only administrators can change roles")
            data = {k: v for k, v in data.items() if k not in PROTECTED_USER_FIELDS}
        updates = validate_input(UserProfileUpdate, data, "users.update", partial=True)
        if not updates:
            return existing

        updated = await self.store.update(USERS, uid, updates)
        logger.log_entity_operation("update", USERS, uid, principal.uid)
        return updated

    async def list_users(self, principal: Optional[Principal], role: str = None, search: str = None,
                         page: int = 1, limit: int = 20) -> Page:
        require_admin(principal, "list users")
        users = await self.store.list(USERS, {"role": role})
        if search:
            term = search.lower()
            users = [
                u for u in users
                if term in (u.get("email") or "").lower()
                or term in (u.get("firstName") or "").lower()
                or term in (u.get("lastName") or "").lower()
            ]
        return paginate(users, page, limit)

    # Associations

    async def request_association(self, principal: Optional[Principal], uid: str, partner_id: str) -> Dict[str, Any]:
        """Ask to speak for a partner. Opens a PARTNER_CONNECT ticket for moderators."""
        principal = require_principal(principal)
        if principal.uid != uid:
            raise ForbiddenError("Associations can only be requested for yourself")
        partner = await self.store.get(PARTNERS, partner_id)
        if partner is None:
            raise NotFoundError(f"Partner {partner_id} not found")

        association = {
            "partnerId": partner_id,
            "partnerName": partner.get("organizationName"),
            "status": ASSOCIATION_PENDING,
            "requestedAt": utc_now_iso(),
        }

        def apply(doc):
            existing: List[Dict[str, Any]] = list(doc.get("associatedPartners") or [])
            for i, current in enumerate(existing):
                if current.get("partnerId") != partner_id:
                    continue
                if current.get("status") != ASSOCIATION_REJECTED:
                    raise ConflictError("Association already exists or is pending")
                # Re-request after rejection overwrites in place
                existing[i] = association
                break
            else:
                existing.append(association)
            doc["associatedPartners"] = existing
            return doc

        user = await self.store.mutate(USERS, uid, apply)

        name = f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip() or "User"
        partner_name = partner.get("organizationName")
        await self.workflow.create_ticket(principal, {
            "title": f"Association Request: {name} - {partner_name}",
            "description": f"User {name} ({user.get('email') or uid}) requested association with Partner {partner_name}",
            "type": TICKET_PARTNER_CONNECT,
            "partnerId": partner_id,
        })
        return association

    async def decide_association(self, principal: Optional[Principal], uid: str, partner_id: str,
                                 data: Any) -> Dict[str, Any]:
        """Moderator approves or rejects a pending association."""
        require_moderator(principal, "decide associations")
        decision = validate_input(AssociationDecision, data, "users.association")

        def apply(doc):
            existing = list(doc.get("associatedPartners") or [])
            for current in existing:
                if current.get("partnerId") == partner_id:
                    current["status"] = decision["status"]
                    if decision["status"] == ASSOCIATION_APPROVED:
                        current["approvedAt"] = utc_now_iso()
                    break
            else:
                raise NotFoundError(f"No association between user {uid} and partner {partner_id}")
            doc["associatedPartners"] = existing
            return doc

        user = await self.store.mutate(USERS, uid, apply)
        logger.log_approval_decision(f"{uid}:{partner_id}", decision["status"], principal.uid)
        return next(a for a in user["associatedPartners"] if a.get("partnerId") == partner_id)

    # Bookmarks

    def _require_self(self, principal: Optional[Principal], uid: str) -> Principal:
        principal = require_principal(principal)
        if principal.uid != uid:
            raise ForbiddenError("Bookmarks belong to their owner")
        return principal

    async def add_bookmark(self, principal: Optional[Principal], uid: str, solution_id: str) -> Dict[str, Any]:
        """Bookmark a solution. Bookmarking twice keeps the first entry."""
        self._require_self(principal, uid)
        if await self.store.get(SOLUTIONS, solution_id) is None:
            raise NotFoundError(f"Solution {solution_id} not found")

        bookmark = {"solutionId": solution_id, "bookmarkedAt": utc_now_iso()}

        def apply(doc):
            bookmarks = list(doc.get("bookmarks") or [])
            if not any(b.get("solutionId") == solution_id for b in bookmarks):
                bookmarks.append(bookmark)
            doc["bookmarks"] = bookmarks
            return doc

        user = await self.store.mutate(USERS, uid, apply)
        return next(b for b in user["bookmarks"] if b["solutionId"] == solution_id)

    async def remove_bookmark(self, principal: Optional[Principal], uid: str, solution_id: str) -> None:
        self._require_self(principal, uid)

        def apply(doc):
            doc["bookmarks"] = [b for b in doc.get("bookmarks") or [] if b.get("solutionId") != solution_id]
            return doc

        await self.store.mutate(USERS, uid, apply)

    async def list_bookmarks(self, principal: Optional[Principal], uid: str,
                             page: int = 1, limit: int = 20) -> Page:
        """Newest first, each enriched with the current solution name."""
        self._require_self(principal, uid)
        user = await self._load(uid)
        # Reversed first so equal timestamps still list the latest addition first
        bookmarks = sorted(
            reversed(user.get("bookmarks") or []), key=lambda b: b.get("bookmarkedAt", ""), reverse=True
        )

        result = paginate(bookmarks, page, limit)
        enriched = []
        for bookmark in result.items:
            solution = await self.store.get(SOLUTIONS, bookmark["solutionId"])
            enriched.append({**bookmark, "solutionName": solution.get("name") if solution else None})
        result.items = enriched
        return result
