"""Post service — every read and write of the ``posts`` table.

All functions take the table store as their first argument. Mutations that
target an existing post are always filtered by ``id`` AND ``user_id``, so a
post owned by someone else is never touched, whatever the advisory checks
decided beforehand.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from blogsite.errors import (
    NO_ROWS,
    BackendError,
    NotFound,
    PermissionDenied,
    ValidationError,
    translate_error,
)
from blogsite.models.post import Post, PostIndex
from blogsite.services.slugs import is_valid_slug, normalize
from blogsite.services.supabase_tables import SupabaseTables

logger = logging.getLogger(__name__)

TABLE = "posts"

# Columns an edit may change; id, user_id and created_at are fixed at creation.
WRITABLE_FIELDS = ("title", "slug", "content", "cover_url")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _require_slug(raw_slug: str | None) -> str:
    slug = normalize(raw_slug)
    if not is_valid_slug(slug):
        raise ValidationError(f"Slug {raw_slug!r} has no usable characters", fields=["slug"])
    return slug


def _owner_filter(post_id: int, owner_id: str) -> dict[str, Any]:
    return {"id": post_id, "user_id": owner_id}


async def _advisory_owner_check(store: SupabaseTables, post_id: int, owner_id: str) -> None:
    """Fail early with a precise error before mutating someone else's post.

    Only produces a clearer message; the owner filter on the mutation itself
    is what actually protects the row.
    """
    result = await store.select(
        TABLE, columns="id,user_id", filters={"id": post_id}, limit=1
    )
    if result.error:
        raise translate_error(result.error)
    rows = result.data or []
    if not rows:
        raise NotFound(f"Post {post_id} does not exist")
    if rows[0].get("user_id") != owner_id:
        logger.warning("User %s tried to modify post %s owned by someone else", owner_id, post_id)
        raise PermissionDenied(f"Post {post_id} belongs to another account")


async def create_post(
    store: SupabaseTables,
    title: str,
    raw_slug: str,
    content: str,
    cover_url: str | None,
    owner_id: str,
) -> Post:
    """Insert a new post owned by *owner_id*.

    Raises:
        ValidationError: a required field is blank or the slug normalizes
            to nothing. Nothing is sent to the backend.
        SlugConflict: another post already uses the slug.
        PermissionDenied: the backend's row policy rejected the insert.
        BackendError: any other backend failure.
    """
    missing = [
        name
        for name, value in (
            ("title", title),
            ("slug", raw_slug),
            ("content", content),
            ("user_id", owner_id),
        )
        if _blank(value)
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", fields=missing
        )
    slug = _require_slug(raw_slug)

    now = _now()
    row = {
        "title": title,
        "slug": slug,
        "content": content,
        "cover_url": cover_url or "",
        "user_id": owner_id,
        "created_at": now,
        "updated_at": now,
    }
    result = await store.insert(TABLE, [row], single=True)
    if result.error:
        raise translate_error(result.error, slug=slug)
    if not result.data:
        raise BackendError("Post was created but no row was returned")

    post = Post(**result.data)
    logger.info("Created post %d (%s) for %s", post.id, post.slug, owner_id)
    return post


async def update_post(
    store: SupabaseTables,
    post_id: int,
    owner_id: str,
    fields: Mapping[str, Any],
) -> Post:
    """Apply a partial edit to a post owned by *owner_id*.

    Unknown or immutable keys in *fields* are ignored. A provided slug is
    re-normalized; a provided ``cover_url`` of None is stored as ``""``,
    an absent one leaves the stored cover untouched.

    Raises:
        ValidationError: a provided title/content is blank or the slug
            normalizes to nothing.
        NotFound: no post with this id (or it vanished before the write).
        PermissionDenied: the post belongs to another account.
        SlugConflict: the new slug is already taken.
    """
    values = {key: fields[key] for key in WRITABLE_FIELDS if key in fields}
    ignored = sorted(set(fields) - set(WRITABLE_FIELDS))
    if ignored:
        logger.debug("Ignoring non-writable fields on post %s: %s", post_id, ignored)

    blank = [name for name in ("title", "content") if name in values and _blank(values[name])]
    if blank:
        raise ValidationError(f"Fields cannot be empty: {', '.join(blank)}", fields=blank)
    if "slug" in values:
        values["slug"] = _require_slug(values["slug"])
    if "cover_url" in values:
        values["cover_url"] = values["cover_url"] or ""
    values["updated_at"] = _now()

    await _advisory_owner_check(store, post_id, owner_id)

    result = await store.update(TABLE, values, filters=_owner_filter(post_id, owner_id))
    if result.error:
        raise translate_error(result.error, slug=values.get("slug"))
    rows = result.data or []
    if not rows:
        raise NotFound(f"Post {post_id} was not updated")

    logger.info("Updated post %s for %s", post_id, owner_id)
    return Post(**rows[0])


async def delete_post(store: SupabaseTables, post_id: int, owner_id: str) -> bool:
    """Delete a post owned by *owner_id*; True only if exactly one row went.

    A missing or foreign post is not an error. Backend and transport
    failures still raise.
    """
    if _blank(owner_id):
        return False
    result = await store.delete(TABLE, filters=_owner_filter(post_id, owner_id))
    if result.error:
        raise translate_error(result.error)
    removed = len(result.data or [])
    if removed:
        logger.info("Deleted post %s for %s", post_id, owner_id)
    return removed == 1


async def get_post_by_slug(store: SupabaseTables, slug: str) -> Post | None:
    """Public lookup. An unknown slug is a normal outcome and returns None."""
    if not slug:
        return None
    result = await store.select(TABLE, filters={"slug": slug}, single=True)
    if result.error:
        if result.error.code == NO_ROWS:
            return None
        raise translate_error(result.error)
    return Post(**result.data) if result.data else None


async def get_owned_post(store: SupabaseTables, post_id: int, owner_id: str) -> Post | None:
    result = await store.select(
        TABLE, filters=_owner_filter(post_id, owner_id), single=True
    )
    if result.error:
        if result.error.code == NO_ROWS:
            return None
        raise translate_error(result.error)
    return Post(**result.data) if result.data else None


async def list_owned_posts(store: SupabaseTables, owner_id: str) -> list[Post]:
    """Posts owned by *owner_id*, newest first."""
    if _blank(owner_id):
        return []
    result = await store.select(
        TABLE, filters={"user_id": owner_id}, order="created_at", descending=True
    )
    if result.error:
        raise translate_error(result.error)
    return [Post(**row) for row in result.data or []]


async def list_all_posts(
    store: SupabaseTables,
    *,
    limit: int | None = None,
    offset: int = 0,
    search: str | None = None,
) -> list[Post]:
    """Every post, newest first.

    Args:
        limit: Maximum number of posts to return (None = unlimited).
        offset: Number of posts to skip.
        search: Optional case-insensitive text matched against title and slug.
    """
    index = await get_post_index(store, limit=limit, offset=offset, search=search)
    return index.posts


async def get_post_index(
    store: SupabaseTables,
    *,
    limit: int | None = None,
    offset: int = 0,
    search: str | None = None,
) -> PostIndex:
    """A page of posts plus the total number of matches."""
    match_any = None
    if search and search.strip():
        term = search.strip()
        match_any = {"title": term, "slug": term}
    result = await store.select(
        TABLE,
        order="created_at",
        descending=True,
        limit=limit,
        offset=offset,
        match_any=match_any,
        count=True,
    )
    if result.error:
        raise translate_error(result.error)
    posts = [Post(**row) for row in result.data or []]
    total = result.count if result.count is not None else len(posts)
    return PostIndex(posts=posts, total=total)


async def count_owned_posts(store: SupabaseTables, owner_id: str) -> int:
    result = await store.count(TABLE, filters={"user_id": owner_id})
    if result.error:
        raise translate_error(result.error)
    return result.count or 0
