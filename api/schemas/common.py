"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationParams(BaseModel):
    """Pagination query parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Ensure page_size is within bounds."""
        if v > 100:
            raise ValueError("Page size cannot exceed 100")
        return v

    @property
    def offset(self) -> int:
        """Calculate offset from page and page_size."""
        return (self.page - 1) * self.page_size


class PaginatedResponse(CamelModel, Generic[T]):
    """Paginated response wrapper."""

    items: list[T] = Field(description="List of items for this page")
    total: int = Field(ge=0, description="Total number of items matching the filters")
    page: int = Field(ge=1, description="Current page number")
    page_size: int = Field(ge=1, le=100, description="Items per page")
    total_pages: int = Field(ge=0, description="Total number of pages")

    @classmethod
    def create(
        cls,
        items: list[Any],
        total: int,
        pagination: PaginationParams,
    ) -> "PaginatedResponse[T]":
        """Create a paginated response."""
        total_pages = (total + pagination.page_size - 1) // pagination.page_size
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages,
        )


class DataResponse(CamelModel, Generic[T]):
    """Single-resource envelope."""

    data: T
    message: Optional[str] = None


class ErrorBody(BaseModel):
    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human readable message")
    path: Optional[str] = None
    method: Optional[str] = None
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorBody


# ==================== Embedded summaries ===================== #


class UserSummary(CamelModel):
    id: int
    custom_id: Optional[str] = None
    name: str
    email: str
    role: str
    status: str


class CandidateSummary(CamelModel):
    id: int
    user_id: int
    custom_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    total_experience: Optional[float] = None
    status: str


class JobSummary(CamelModel):
    id: int
    job_code: Optional[str] = None
    title: str
    location: Optional[str] = None
    status: str
    urgency: str
    created_by: int
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    skills: list[str] = Field(default_factory=list)
    salary_range: Optional[dict[str, Any]] = None


class CompanySummary(CamelModel):
    id: int
    company_code: Optional[str] = None
    name: str
    industry: Optional[str] = None
    location: Optional[str] = None


class TimestampMixin(CamelModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: datetime = Field(description="Timestamp when the resource was last updated")
