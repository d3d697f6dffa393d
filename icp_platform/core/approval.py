"""
Approval workflow - tickets that route proposals and requests to moderators.
Resolving an approval ticket approves the linked solution or partner.
"""

import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .errors import ForbiddenError, NotFoundError, SchemaValidationError
from .models import CommentInput, TicketInput, TicketStatusChange, TicketUpdate, validate_input
from .permissions import is_moderator, require_moderator, require_principal
from .schema import (
    COMMENT_STATUS_CHANGE, PARTNERS, SOLUTIONS, STATUS_APPROVED, TICKET_NEW,
    TICKET_PARTNER_APPROVAL, TICKET_RESOLVED, TICKET_SOLUTION_APPROVAL, TICKETS, Page, Principal,
)
from .store import IDocumentStore, utc_now_iso
from .visibility import merge_by_id, paginate
from ..util.logging import logger

# Never writable through a generic ticket update
PROTECTED_TICKET_FIELDS = ("id", "ticketId", "createdByUserId", "createdAt", "status", "comments")

# Ticket type -> (collection, link field) approved on resolution
APPROVAL_TARGETS = {
    TICKET_SOLUTION_APPROVAL: (SOLUTIONS, "solutionId"),
    TICKET_PARTNER_APPROVAL: (PARTNERS, "partnerId"),
}


def new_ticket_id() -> str:
    """Human-facing ticket number."""
    return f"TKT-{int(time.time() * 1000)}"


@dataclass
class TicketComment:
    content: str
    userId: str
    createdAt: str
    type: Optional[str] = None
    newStatus: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage, omitting unset optional fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class ApprovalWorkflow:
    """Ticket lifecycle over the document store.

    Entity indexes are passed in so that approvals can re-index the entity
    they publish.
    """

    def __init__(self, store: IDocumentStore, indexes: Dict[str, Any] = None):
        self.store = store
        self.indexes = indexes or {}

    async def _insert(self, data: Dict[str, Any], creator_uid: str) -> Dict[str, Any]:
        ticket = dict(data)
        ticket["ticketId"] = new_ticket_id()
        ticket["status"] = TICKET_NEW
        ticket["createdByUserId"] = creator_uid
        ticket["comments"] = []
        created = await self.store.create(TICKETS, ticket)
        logger.log_approval_request(
            created["id"], created["type"], creator_uid,
            created.get("solutionId") or created.get("partnerId")
        )
        return created

    async def open_approval_ticket(self, collection: str, entity: Dict[str, Any], principal: Principal) -> Dict[str, Any]:
        """Create the one approval ticket that accompanies a new proposal."""
        if collection == SOLUTIONS:
            name = entity.get("name")
            data = {"type": TICKET_SOLUTION_APPROVAL, "solutionId": entity["id"]}
            noun = "solution"
        elif collection == PARTNERS:
            name = entity.get("organizationName")
            data = {"type": TICKET_PARTNER_APPROVAL, "partnerId": entity["id"]}
            noun = "partner"
        else:
            raise ValueError(f"No approval ticket type for collection: {collection}")

        data["title"] = f"Approval Request: {name}"
        data["description"] = f"Approval request for {noun}: {name}"
        return await self._insert(data, principal.uid)

    async def create_ticket(self, principal: Optional[Principal], data: Any) -> Dict[str, Any]:
        """User-submitted ticket; status is always NEW."""
        principal = require_principal(principal)
        validated = validate_input(TicketInput, data, "tickets.create")
        validate_ticket_links(validated)
        return await self._insert(validated, principal.uid)

    async def list_tickets(self, principal: Optional[Principal], status: str = None,
                           assigned_to_me: bool = False, page: int = 1, limit: int = 20) -> Page:
        principal = require_principal(principal)
        filters: Dict[str, Any] = {"status": status}

        if assigned_to_me:
            filters["assignedToUserId"] = principal.uid
        elif not principal.is_moderator:
            filters["createdByUserId"] = principal.uid

        tickets = merge_by_id([await self.store.list(TICKETS, filters)])
        # Newest first
        tickets.sort(key=lambda t: t.get("createdAt", ""), reverse=True)
        return paginate(tickets, page, limit)

    def _can_view(self, principal: Principal, ticket: Dict[str, Any]) -> bool:
        return (
            principal.is_moderator
            or ticket.get("createdByUserId") == principal.uid
            or ticket.get("assignedToUserId") == principal.uid
        )

    async def _load(self, ticket_id: str) -> Dict[str, Any]:
        ticket = await self.store.get(TICKETS, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def get_ticket(self, principal: Optional[Principal], ticket_id: str) -> Dict[str, Any]:
        principal = require_principal(principal)
        ticket = await self._load(ticket_id)
        if not self._can_view(principal, ticket):
            raise ForbiddenError("Not allowed to view this ticket")
        return ticket

    async def update_ticket(self, principal: Optional[Principal], ticket_id: str, data: Any) -> Dict[str, Any]:
        """Moderator edit of the non-protected ticket fields."""
        principal = require_principal(principal)
        await self._load(ticket_id)
        require_moderator(principal, "edit tickets")

        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in PROTECTED_TICKET_FIELDS}
        updates = validate_input(TicketUpdate, data, "tickets.update", partial=True)
        return await self.store.update(TICKETS, ticket_id, updates)

    async def change_status(self, principal: Optional[Principal], ticket_id: str, data: Any) -> Dict[str, Any]:
        """Moderator status transition with an audit comment and approval side effects."""
        principal = require_principal(principal)
        ticket = await self._load(ticket_id)
        require_moderator(principal, "change ticket status")
        change = validate_input(TicketStatusChange, data, "tickets.status")

        comment = TicketComment(
            content=change.get("comment", ""),
            userId=principal.uid,
            createdAt=utc_now_iso(),
            type=COMMENT_STATUS_CHANGE,
            newStatus=change["status"],
        )

        def apply(doc):
            doc["status"] = change["status"]
            doc["comments"] = list(doc.get("comments") or []) + [comment.to_dict()]
            return doc

        updated = await self.store.mutate(TICKETS, ticket_id, apply)
        logger.log_approval_decision(ticket_id, change["status"], principal.uid, change.get("comment", ""))

        if change["status"] == TICKET_RESOLVED:
            await self._apply_resolution(ticket)
        return updated

    async def _apply_resolution(self, ticket: Dict[str, Any]) -> None:
        target = APPROVAL_TARGETS.get(ticket.get("type"))
        if target is None:
            return
        collection, link_field = target
        entity_id = ticket.get(link_field)
        if not entity_id:
            return

        try:
            approved = await self.store.update(collection, entity_id, {"status": STATUS_APPROVED})
        except NotFoundError:
            logger.warning(f"Ticket {ticket['id']} resolved but {collection}/{entity_id} no longer exists")
            return

        logger.log_entity_operation("approve", collection, entity_id)
        index = self.indexes.get(collection)
        if index is not None:
            await index.upsert(approved)

    async def add_comment(self, principal: Optional[Principal], ticket_id: str, data: Any) -> Dict[str, Any]:
        """Append a comment. Moderators and the ticket creator may comment."""
        principal = require_principal(principal)
        ticket = await self._load(ticket_id)
        if not (is_moderator(principal) or ticket.get("createdByUserId") == principal.uid):
            raise ForbiddenError("Not allowed to comment on this ticket")
        validated = validate_input(CommentInput, data, "tickets.comment")

        comment = TicketComment(content=validated["content"], userId=principal.uid, createdAt=utc_now_iso())

        def apply(doc):
            doc["comments"] = list(doc.get("comments") or []) + [comment.to_dict()]
            return doc

        return await self.store.mutate(TICKETS, ticket_id, apply)

    async def count_visible(self, principal: Optional[Principal]) -> int:
        """Ticket count under the listing rules; anonymous callers see none."""
        if principal is None:
            return 0
        if principal.is_moderator:
            return await self.store.count(TICKETS)
        created = await self.store.list(TICKETS, {"createdByUserId": principal.uid})
        assigned = await self.store.list(TICKETS, {"assignedToUserId": principal.uid})
        return len(merge_by_id([created, assigned]))


def validate_ticket_links(data: Dict[str, Any]) -> None:
    """An approval ticket must reference the entity it approves."""
    target = APPROVAL_TARGETS.get(data.get("type"))
    if target and not data.get(target[1]):
        raise SchemaValidationError(
            f"{data['type']} tickets require {target[1]}",
            [{"field": target[1], "message": "required for this ticket type", "value": None}]
        )
