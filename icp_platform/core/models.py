"""
Entity input models - pydantic validation for every write path.
"""

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import SchemaValidationError
from ..util.logging import logger

SolutionStatus = Literal["PROPOSED", "DRAFT", "PENDING", "APPROVED", "MATURE", "PILOT", "REJECTED"]
SolutionDomain = Literal["Water", "Health", "Energy", "Education", "Livelihood", "Sustainability"]
PartnerStatus = Literal["PROPOSED", "APPROVED", "REJECTED", "MATURE"]
PartnerEntityType = Literal["NGO", "Social Impact Entity", "Academic", "Corporate"]
TicketStatus = Literal["NEW", "IN_PROGRESS", "PENDING", "RESOLVED", "REJECTED_NO_RESOLUTION", "CLOSED"]
TicketType = Literal[
    "PROBLEM_SUBMISSION", "OPTIMIZATION", "FUNDING", "CAPACITY_BUILDING", "TRAINING",
    "SUCCESS_STORIES", "PARTNER_INFO", "USER_GROUP_CHANGE", "PARTNER_CONNECT",
    "SOLUTION_VALIDATION", "SOLUTION_APPROVAL", "PARTNER_APPROVAL",
]
Role = Literal["REGULAR", "ADMIN", "ICP_SUPPORT"]


class _Input(BaseModel):
    # Unknown keys are dropped rather than stored
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class SolutionInput(_Input):
    name: str = Field(min_length=3)
    summary: str = Field(min_length=1, max_length=200)
    detail: str
    domain: SolutionDomain
    verticalDomain: Optional[str] = None
    benefit: str
    costAndEffort: str
    returnOnInvestment: str
    launchYear: Optional[int] = None
    targetBeneficiaries: Optional[List[str]] = None
    references: Optional[List[str]] = None
    attachments: Optional[List[str]] = None
    providedByPartnerId: Optional[str] = None
    status: Optional[SolutionStatus] = None


class SolutionUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=3)
    summary: Optional[str] = Field(default=None, min_length=1, max_length=200)
    detail: Optional[str] = None
    domain: Optional[SolutionDomain] = None
    verticalDomain: Optional[str] = None
    benefit: Optional[str] = None
    costAndEffort: Optional[str] = None
    returnOnInvestment: Optional[str] = None
    launchYear: Optional[int] = None
    targetBeneficiaries: Optional[List[str]] = None
    references: Optional[List[str]] = None
    attachments: Optional[List[str]] = None
    providedByPartnerId: Optional[str] = None
    status: Optional[SolutionStatus] = None


class Contact(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('email')
    @classmethod
    def email_must_look_valid(cls, v):
        if v and "@" not in v:
            raise ValueError('email must contain @')
        return v


class Address(BaseModel):
    city: Optional[str] = None
    country: Optional[str] = None


class PartnerInput(_Input):
    organizationName: str = Field(min_length=3)
    entityType: PartnerEntityType
    websiteUrl: Optional[str] = None
    contact: Optional[Contact] = None
    address: Optional[Address] = None
    description: Optional[str] = None
    status: Optional[PartnerStatus] = None

    @field_validator('websiteUrl')
    @classmethod
    def website_must_be_http(cls, v):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError('websiteUrl must start with http:// or https://')
        return v


class PartnerUpdate(_Input):
    organizationName: Optional[str] = Field(default=None, min_length=3)
    entityType: Optional[PartnerEntityType] = None
    websiteUrl: Optional[str] = None
    contact: Optional[Contact] = None
    address: Optional[Address] = None
    description: Optional[str] = None
    status: Optional[PartnerStatus] = None

    @field_validator('websiteUrl')
    @classmethod
    def website_must_be_http(cls, v):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError('websiteUrl must start with http:// or https://')
        return v


class TicketInput(_Input):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: TicketType
    solutionId: Optional[str] = None
    partnerId: Optional[str] = None
    assignedToUserId: Optional[str] = None


class TicketUpdate(_Input):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    type: Optional[TicketType] = None
    solutionId: Optional[str] = None
    partnerId: Optional[str] = None
    assignedToUserId: Optional[str] = None


class TicketStatusChange(_Input):
    status: TicketStatus
    comment: str = ""


class CommentInput(_Input):
    content: str = Field(min_length=1)


class Phone(BaseModel):
    countryCode: Optional[str] = None
    number: Optional[str] = None


class UserProfileUpdate(_Input):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    language: Optional[str] = Field(default=None, min_length=2, max_length=8)
    phone: Optional[Phone] = None
    discoverySource: Optional[str] = None
    role: Optional[Role] = None


class AssociationDecision(_Input):
    status: Literal["APPROVED", "REJECTED"]


ENTITY_MODELS: Dict[str, Type[BaseModel]] = {
    "solution": SolutionInput,
    "partner": PartnerInput,
    "ticket": TicketInput,
    "user": UserProfileUpdate,
}


def validate_input(model: Type[BaseModel], data: Any, operation: str, partial: bool = False) -> Dict[str, Any]:
    """Validate a raw payload against model and return plain data.

    Raises SchemaValidationError with one entry per violated field. With
    partial=True only the keys the caller actually sent are returned.
    """
    if not isinstance(data, dict):
        error = SchemaValidationError(
            "Request body must be a JSON object",
            [{"field": "body", "message": "expected an object", "value": type(data).__name__}]
        )
        logger.log_schema_validation_error(operation, error.errors)
        raise error

    try:
        validated = model.model_validate(data)
    except ValidationError as e:
        error = SchemaValidationError.from_pydantic(e)
        logger.log_schema_validation_error(operation, error.errors, data)
        raise error

    return validated.model_dump(exclude_unset=partial, exclude_none=not partial)
