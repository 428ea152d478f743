"""Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


# ========== Request Schemas ==========


class RenderRequest(BaseModel):
    """Request model for POST /documents."""

    content: str = Field(..., min_length=1, description="Raw post source (front matter + body)")
    source: Optional[str] = Field(None, description="Source name used for error reports and updates")

    @field_validator("source")
    @classmethod
    def blank_source_is_anonymous(cls, v: Optional[str]) -> Optional[str]:
        """Treat a whitespace-only source name as no source."""
        if v is None or not v.strip():
            return None
        return v.strip()


# ========== Response Schemas ==========


class FieldWarning(BaseModel):
    """Metadata line skipped while parsing."""

    line: int = Field(..., description="1-based line number in the source")
    text: str = Field(..., description="Offending line")
    reason: str = Field(..., description="Why the line was skipped")


class DocumentSummaryResponse(BaseModel):
    """Listing entry."""

    identifier: str = Field(..., description="Permalink identifier")
    title: str = Field(..., description="Post title")
    published_at: datetime = Field(..., description="Publication date-time")
    categories: List[str] = Field(default_factory=list, description="Category labels")


class DocumentResponse(DocumentSummaryResponse):
    """Full rendered document."""

    slug: str = Field(..., description="Last path segment of the identifier")
    layout: Optional[str] = Field(None, description="Layout name from the front matter")
    source: Optional[str] = Field(None, description="Source name")
    rendered_body: str = Field(..., description="Body with directives expanded")
    warnings: List[FieldWarning] = Field(default_factory=list, description="Skipped metadata lines")


class RenderResponse(BaseModel):
    """Response model for POST /documents."""

    status: str = Field(..., description="inserted, updated or unchanged")
    document: DocumentResponse = Field(..., description="Rendered document")


class RemoveResponse(BaseModel):
    """Response model for DELETE /documents."""

    identifier: str = Field(..., description="Removed identifier")
    removed: bool = Field(..., description="Whether a document was removed")


class CategoryResponse(BaseModel):
    """Category with its document count."""

    label: str = Field(..., description="Category label as first seen")
    count: int = Field(..., ge=1, description="Number of documents in the category")


# ========== Error Schemas ==========


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(..., description="Error message with source location")
