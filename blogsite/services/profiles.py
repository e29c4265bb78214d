"""Profile service — lazy creation and updates of the ``profiles`` table."""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from blogsite.errors import NO_ROWS, BackendError, translate_error
from blogsite.models.auth import AuthUser
from blogsite.models.profile import Profile
from blogsite.services.supabase_tables import SupabaseTables

logger = logging.getLogger(__name__)

TABLE = "profiles"

EDITABLE_FIELDS = ("name", "display_name", "avatar_url", "bio", "website")


def default_name(email: str) -> str:
    """Display name fallback: the local part of the email address."""
    return email.split("@", 1)[0] if email else "user"


async def get_or_create_profile(store: SupabaseTables, user: AuthUser) -> Profile:
    """Return the user's profile, creating a default one on first access."""
    result = await store.select(TABLE, filters={"id": user.id}, single=True)
    if result.ok and result.data:
        return Profile(**result.data)
    if result.error and result.error.code != NO_ROWS:
        raise translate_error(result.error)

    now = datetime.now(timezone.utc).isoformat()
    row = {
        "id": user.id,
        "email": user.email,
        "name": default_name(user.email),
        "created_at": now,
        "updated_at": now,
    }
    created = await store.upsert(TABLE, [row], single=True)
    if created.error:
        raise translate_error(created.error)
    if not created.data:
        raise BackendError("Profile was created but no row was returned")
    logger.info("Created profile for %s", user.id)
    return Profile(**created.data)


async def update_profile(
    store: SupabaseTables, user: AuthUser, fields: Mapping[str, Any]
) -> Profile:
    """Upsert the editable profile fields; id and email come from the session."""
    row = {key: fields[key] for key in EDITABLE_FIELDS if key in fields}
    row.update(
        {
            "id": user.id,
            "email": user.email,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    result = await store.upsert(TABLE, [row], single=True)
    if result.error:
        raise translate_error(result.error)
    if not result.data:
        raise BackendError("Profile update returned no row")
    return Profile(**result.data)
