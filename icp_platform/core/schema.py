"""
Domain vocabulary - collections, statuses, roles and the typed value objects
passed between services.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Collections
SOLUTIONS = "solutions"
PARTNERS = "partners"
USERS = "users"
TICKETS = "tickets"
BENEFICIARY_TYPES = "beneficiary_types"

# Entity kinds as accepted by the translation layer and the schema endpoint
KIND_SOLUTION = "solution"
KIND_PARTNER = "partner"
KIND_USER = "user"
KIND_TICKET = "ticket"

COLLECTION_BY_KIND = {
    KIND_SOLUTION: SOLUTIONS,
    KIND_PARTNER: PARTNERS,
    KIND_USER: USERS,
    KIND_TICKET: TICKETS,
}

# Roles
ROLE_REGULAR = "REGULAR"
ROLE_ADMIN = "ADMIN"
ROLE_ICP_SUPPORT = "ICP_SUPPORT"
ROLES = (ROLE_REGULAR, ROLE_ADMIN, ROLE_ICP_SUPPORT)
MODERATOR_ROLES = frozenset({ROLE_ADMIN, ROLE_ICP_SUPPORT})

# Solution lifecycle
SOLUTION_STATUSES = ("PROPOSED", "DRAFT", "PENDING", "APPROVED", "MATURE", "PILOT", "REJECTED")
SOLUTION_DOMAINS = ("Water", "Health", "Energy", "Education", "Livelihood", "Sustainability")

# Partner lifecycle
PARTNER_STATUSES = ("PROPOSED", "APPROVED", "REJECTED", "MATURE")
PARTNER_ENTITY_TYPES = ("NGO", "Social Impact Entity", "Academic", "Corporate")

STATUS_PROPOSED = "PROPOSED"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"

# Statuses anyone may see, signed in or not
PUBLIC_STATUSES = {
    SOLUTIONS: frozenset({"MATURE"}),
    PARTNERS: frozenset({"APPROVED", "MATURE"}),
}

# Tickets
TICKET_STATUSES = ("NEW", "IN_PROGRESS", "PENDING", "RESOLVED", "REJECTED_NO_RESOLUTION", "CLOSED")
TICKET_TYPES = (
    "PROBLEM_SUBMISSION", "OPTIMIZATION", "FUNDING", "CAPACITY_BUILDING", "TRAINING",
    "SUCCESS_STORIES", "PARTNER_INFO", "USER_GROUP_CHANGE", "PARTNER_CONNECT",
    "SOLUTION_VALIDATION", "SOLUTION_APPROVAL", "PARTNER_APPROVAL",
)
TICKET_NEW = "NEW"
TICKET_RESOLVED = "RESOLVED"
TICKET_SOLUTION_APPROVAL = "SOLUTION_APPROVAL"
TICKET_PARTNER_APPROVAL = "PARTNER_APPROVAL"
TICKET_PARTNER_CONNECT = "PARTNER_CONNECT"
COMMENT_STATUS_CHANGE = "STATUS_CHANGE"

# Associations
ASSOCIATION_PENDING = "PENDING"
ASSOCIATION_APPROVED = "APPROVED"
ASSOCIATION_REJECTED = "REJECTED"
ASSOCIATION_STATUSES = (ASSOCIATION_PENDING, ASSOCIATION_APPROVED, ASSOCIATION_REJECTED)

# Display fields the translation layer rewrites
TRANSLATABLE_FIELDS = {
    SOLUTIONS: ("name", "summary", "detail", "benefit", "costAndEffort", "returnOnInvestment"),
    PARTNERS: ("organizationName",),
}

# Fields the fuzzy engine matches against
FUZZY_FIELDS = {
    SOLUTIONS: ("name", "summary", "domain"),
    PARTNERS: ("organizationName", "entityType", "description"),
}

OWNER_FIELD = "proposedByUserId"

SEARCH_MODES = ("semantic", "fuzzy")


@dataclass
class Principal:
    """Authenticated caller. Anonymous callers are represented by None."""

    uid: str
    role: str = ROLE_REGULAR
    display_name: Optional[str] = None

    @property
    def is_moderator(self) -> bool:
        return self.role in MODERATOR_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class Page:
    """One page of a fully merged result set."""

    items: List[Dict[str, Any]]
    total: int
    page: int
    total_pages: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "totalPages": self.total_pages,
        }


@dataclass
class LocalizedView:
    """An entity with translated display fields shadowing the stored ones."""

    base: Dict[str, Any]
    overrides: Dict[str, str] = field(default_factory=dict)
    language: str = "en"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as base fields, then overrides, plus the untouched original."""
        return {**self.base, **self.overrides, "original": self.base}
