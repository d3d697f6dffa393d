"""
HTTP request and response models. Entity payload validation lives in core.models.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    indexes: Dict[str, Dict[str, Any]]


class PageResponse(BaseModel):
    items: List[Dict[str, Any]]
    total: int
    page: int
    totalPages: int


class StatsResponse(BaseModel):
    solutions: int
    partners: int
    tickets: int


class BookmarkRequest(BaseModel):
    solutionId: str

    @field_validator('solutionId')
    @classmethod
    def solution_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('solutionId cannot be empty')
        return v


class AssociationRequest(BaseModel):
    partnerId: str

    @field_validator('partnerId')
    @classmethod
    def partner_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('partnerId cannot be empty')
        return v


class ChatTurn(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str
    history: List[ChatTurn] = []

    @field_validator('message')
    @classmethod
    def message_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('Message is required')
        return v


# Error response models
class ValidationFieldError(BaseModel):
    field: str
    message: str
    value: Any = None


class ValidationErrorResponse(BaseModel):
    error_type: str = "VALIDATION_ERROR"
    message: str
    errors: List[ValidationFieldError]
    timestamp: datetime = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
