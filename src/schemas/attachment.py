"""Pydantic schemas for attachment responses."""
from pydantic import BaseModel

from models.attachment import Attachment
from services.attachment_service import url_for


class AttachmentResponse(BaseModel):
    """Schema for an attachment with the URL it is served from."""

    id: int
    filename: str
    content_type: str | None
    byte_size: int
    url: str

    @classmethod
    def from_attachment(cls, attachment: Attachment) -> "AttachmentResponse":
        """Build a response, resolving the attachment's URL."""
        return cls(
            id=attachment.id,
            filename=attachment.filename,
            content_type=attachment.content_type,
            byte_size=attachment.byte_size,
            url=url_for(attachment),
        )
