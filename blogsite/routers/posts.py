"""Public post endpoints (no session required)."""

import logging

from fastapi import APIRouter, Depends, Path, Query

from blogsite.errors import NotFound
from blogsite.models.post import Post, PostIndex
from blogsite.services.backend import Backend, get_backend
from blogsite.services.posts import get_post_by_slug, get_post_index

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("", response_model=PostIndex)
async def list_posts(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    search: str | None = Query(default=None, max_length=200),
    backend: Backend = Depends(get_backend),
):
    """All posts, newest first."""
    return await get_post_index(
        backend.tables, limit=limit, offset=offset, search=search
    )


@router.get("/{slug}", response_model=Post)
async def get_post(
    slug: str = Path(..., min_length=1, max_length=200),
    backend: Backend = Depends(get_backend),
):
    """Get a single post by its slug."""
    post = await get_post_by_slug(backend.tables, slug)
    if post is None:
        raise NotFound(f"No post with slug {slug!r}")
    return post
