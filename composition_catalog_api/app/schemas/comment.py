"""
Pydantic schemas for composition comments.

Content rules (non‑blank, bounded length) are checked by
``CommentService`` so that direct service callers get the same
``ValidationError`` as API clients.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    """Schema for adding a comment to a composition."""

    composition_id: int = Field(..., description="Identifier of the composition being commented on")
    content: str = Field(..., example="Lovely arrangement, the left hand is tricky in bar 12.")


class CommentUpdate(BaseModel):
    """Schema for editing a comment.  Only the content can change."""

    content: str


class CommentRead(BaseModel):
    """Schema for reading a comment from the API."""

    id: int
    author_user_id: Optional[int]
    content: str
    added_at: str
    composition_id: int

    model_config = {
        "from_attributes": True,
    }
