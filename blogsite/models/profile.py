"""Profile data models."""

from datetime import datetime

from pydantic import BaseModel


class Profile(BaseModel):
    """Display metadata for an account (one-to-one with the auth user)."""

    id: str
    email: str = ""
    name: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    website: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProfileUpdate(BaseModel):
    name: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    website: str | None = None
