"""Common API schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    code: int = Field(default=0, description="Response code, 0 for success")
    message: str = Field(default="success", description="Response message")
    data: T | None = Field(default=None, description="Response data")


class CamelModel(BaseModel):
    """Base for payloads exchanged with the dashboard (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationInfo(CamelModel):
    """Offset pagination metadata."""

    offset: int = Field(default=0, ge=0, description="Offset of the first item")
    limit: int = Field(..., ge=1, description="Requested page size")
    total: int = Field(default=0, ge=0, description="Items in this page (the feed reports no total)")
    has_more: bool = Field(default=False, description="Whether a further page may exist")
