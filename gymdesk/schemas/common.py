"""
Shared schema pieces: camelCase wire format and money serialization
"""
from decimal import Decimal
from typing import Annotated, Optional, List, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Money travels as a JSON number rounded to cents
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base for every request and response body"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationInfo(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    pages: int
    has_next: bool
    has_prev: bool


class Envelope(CamelModel):
    """Response wrapper shared by every endpoint"""
    success: bool = True
    data: Any = None
    message: Optional[str] = None
    warnings: Optional[List[str]] = None
    pagination: Optional[PaginationInfo] = None


class ErrorBody(CamelModel):
    success: bool = False
    error: str
    message: str


class VersionedAction(CamelModel):
    """Optional body for lifecycle actions carrying the version the client last saw"""
    version: Optional[int] = Field(default=None, ge=1)
