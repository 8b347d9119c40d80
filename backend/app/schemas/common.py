"""
Shared schema building blocks: camelCase base model, response envelope,
pagination metadata and sort direction.
"""
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Serialises as camelCase; accepts camelCase or snake_case on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationMeta(BaseModel):
    """Attached to every paginated listing."""

    current: int
    pages: int
    total: int
    limit: int


class Envelope(BaseModel, Generic[T]):
    """Success envelope: ``{success, message?, data?}``."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
