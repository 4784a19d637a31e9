"""Pydantic schemas for prompt endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.prompt import AiProvider, Prompt, Visibility
from schemas.attachment import AttachmentResponse
from schemas.tag import TagSummary
from schemas.user import UserSummary


class PromptCreate(BaseModel):
    """
    Schema for creating a new prompt.

    Lengths are checked by the prompt service so that every violated field is
    reported in one response.
    """

    title: str | None = None
    content: str | None = None
    description: str | None = None
    visibility: Visibility = Visibility.PRIVATE
    category: str | None = None
    ai_provider: AiProvider = AiProvider.BOTH
    tag_ids: list[int] = Field(default_factory=list)


class PromptUpdate(BaseModel):
    """Schema for updating an existing prompt; omitted fields are left unchanged."""

    title: str | None = None
    content: str | None = None
    description: str | None = None
    visibility: Visibility | None = None
    category: str | None = None
    ai_provider: AiProvider | None = None
    tag_ids: list[int] | None = None
    change_description: str | None = Field(
        default=None,
        max_length=255,
        description="Note stored on the version created if content changes.",
    )


class RestoreVersionRequest(BaseModel):
    """Schema for restoring a prompt's content from one of its versions."""

    version_id: int


class VersionSummary(BaseModel):
    """Schema for a version listed inside a prompt detail response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    version_number: int
    change_description: str | None
    created_at: datetime


class PromptVersionResponse(VersionSummary):
    """Schema for a version with its content snapshot and editor."""

    prompt_id: int
    content: str
    changed_by: UserSummary | None


class PromptResponse(BaseModel):
    """Schema for prompt responses (list items and writes)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    content: str
    description: str | None
    visibility: Visibility
    category: str | None
    ai_provider: AiProvider
    usage_count: int
    like_count: int
    user: UserSummary
    tags: list[TagSummary]
    attachments: list[AttachmentResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_prompt(cls, prompt: Prompt) -> "PromptResponse":
        """Build a response from a prompt with user, tags, and attachments loaded."""
        return cls.model_validate(
            {
                **{
                    name: getattr(prompt, name)
                    for name in cls.model_fields
                    if name not in ("user", "tags", "attachments", "versions")
                },
                "user": UserSummary.model_validate(prompt.user),
                "tags": [TagSummary.model_validate(tag) for tag in prompt.tags],
                "attachments": [
                    AttachmentResponse.from_attachment(a) for a in prompt.attachments
                ],
            },
        )


class PromptDetailResponse(PromptResponse):
    """Schema for a single prompt, including its version list."""

    versions: list[VersionSummary]

    @classmethod
    def from_prompt(cls, prompt: Prompt) -> "PromptDetailResponse":
        """Build a detail response; requires versions to be loaded as well."""
        base = PromptResponse.from_prompt(prompt)
        return cls(
            **base.model_dump(),
            versions=[VersionSummary.model_validate(v) for v in prompt.versions],
        )


class PromptListResponse(BaseModel):
    """Schema for paginated prompt list responses."""

    items: list[PromptResponse]
    total: int  # Total count of prompts matching the query (before pagination)
    offset: int
    limit: int
    has_more: bool  # True if there are more results beyond this page


class UsageResponse(BaseModel):
    """Schema for the usage counter after it was incremented."""

    id: int
    usage_count: int
