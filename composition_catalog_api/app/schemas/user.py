"""
Pydantic models for user data.

Users exist to authenticate callers; the catalogue only ever stores
their numeric ``id`` as the adder of a composition or the author of
a comment.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    email: str = Field(..., example="user@example.com")
    full_name: Optional[str] = Field(None, example="Clara Schumann")


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=1, example="strongpassword")


class UserLogin(BaseModel):
    email: str
    password: str


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role_id: int
    disabled: bool = False

    model_config = {
        "from_attributes": True,
    }
