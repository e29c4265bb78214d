"""Blog post data models.

Field names are the literal column names of the ``posts`` table.
"""

from datetime import datetime

from pydantic import BaseModel, field_validator


class Post(BaseModel):
    """A stored blog post row."""

    id: int
    title: str
    slug: str
    content: str
    cover_url: str = ""
    user_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("cover_url", mode="before")
    @classmethod
    def _empty_cover(cls, value: str | None) -> str:
        """Older rows may carry NULL covers; expose them as empty strings."""
        return value or ""


class PostIndex(BaseModel):
    """A page of posts plus the total before slicing."""

    posts: list[Post]
    total: int


class PostCreate(BaseModel):
    """Admin form submission for a new post.

    Fields default to empty so that missing values surface as a
    ``ValidationError`` from the post service rather than a schema error.
    ``slug`` falls back to the title when left blank.
    """

    title: str = ""
    slug: str = ""
    content: str = ""
    cover_url: str | None = None


class PostUpdate(BaseModel):
    """Partial edit of an existing post. Only these columns are writable."""

    title: str | None = None
    slug: str | None = None
    content: str | None = None
    cover_url: str | None = None
