"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TagSummary(BaseModel):
    """Schema for a tag embedded in a prompt response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class TagResponse(TagSummary):
    """Schema for full tag responses."""

    usage_count: int
    created_at: datetime
    updated_at: datetime


class TagCreate(BaseModel):
    """Schema for creating a tag (validated by the tag service)."""

    name: str


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    tags: list[TagResponse]
