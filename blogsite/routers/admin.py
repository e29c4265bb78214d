"""Admin endpoints — post management, cover uploads, profile.

Every endpoint depends on :func:`require_admin`, which re-applies the same
gate policy as ``SessionGateMiddleware`` inside the endpoint itself.
"""

import logging

from fastapi import APIRouter, Depends, File, Path, Request, UploadFile

from blogsite.config import get_settings
from blogsite.errors import NotFound
from blogsite.models.post import Post, PostCreate, PostUpdate
from blogsite.models.profile import Profile, ProfileUpdate
from blogsite.services.backend import Backend, get_backend
from blogsite.services.covers import upload_cover
from blogsite.services.posts import (
    count_owned_posts,
    create_post,
    delete_post,
    get_owned_post,
    list_owned_posts,
    update_post,
)
from blogsite.services.profiles import get_or_create_profile, update_profile
from blogsite.services.session_gate import (
    ResolvedSession,
    SessionRedirect,
    check_admin_access,
    end_session,
    resolve_session,
)
from blogsite.services.supabase_tables import SupabaseTables

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


async def require_admin(
    request: Request, backend: Backend = Depends(get_backend)
) -> ResolvedSession:
    """Resolve the caller's session and enforce the administrator policy."""
    settings = get_settings()
    resolved = getattr(request.state, "session", None)
    if resolved is None:
        resolved = await resolve_session(
            backend.auth,
            request.cookies.get(settings.access_cookie_name),
            request.cookies.get(settings.refresh_cookie_name),
        )
    decision = check_admin_access(
        request.url.path,
        resolved.user if resolved else None,
        admin_email=settings.admin_email,
        admin_prefix=settings.admin_path_prefix,
        login_path=settings.login_path,
    )
    if not decision.allowed:
        if decision.sign_out and resolved:
            await end_session(backend.auth, resolved.access_token)
        raise SessionRedirect(decision)
    return resolved


def _user_tables(backend: Backend, session: ResolvedSession) -> SupabaseTables:
    return backend.tables.as_user(session.access_token)


@router.get("")
async def dashboard(
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    """Summary for the admin landing page."""
    store = _user_tables(backend, session)
    profile = await get_or_create_profile(store, session.user)
    return {
        "user": session.user.model_dump(),
        "profile": profile.model_dump(mode="json"),
        "post_count": await count_owned_posts(store, session.user.id),
    }


@router.get("/posts", response_model=list[Post])
async def list_my_posts(
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    return await list_owned_posts(_user_tables(backend, session), session.user.id)


@router.post("/posts", response_model=Post, status_code=201)
async def create_my_post(
    body: PostCreate,
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    """Create a post. A blank slug is derived from the title."""
    return await create_post(
        _user_tables(backend, session),
        body.title,
        body.slug or body.title,
        body.content,
        body.cover_url,
        session.user.id,
    )


@router.get("/posts/{post_id}", response_model=Post)
async def get_my_post(
    post_id: int = Path(..., ge=1),
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    post = await get_owned_post(_user_tables(backend, session), post_id, session.user.id)
    if post is None:
        raise NotFound(f"Post {post_id} not found")
    return post


@router.patch("/posts/{post_id}", response_model=Post)
async def update_my_post(
    body: PostUpdate,
    post_id: int = Path(..., ge=1),
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    return await update_post(
        _user_tables(backend, session),
        post_id,
        session.user.id,
        body.model_dump(exclude_unset=True),
    )


@router.delete("/posts/{post_id}")
async def delete_my_post(
    post_id: int = Path(..., ge=1),
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    deleted = await delete_post(_user_tables(backend, session), post_id, session.user.id)
    return {"deleted": deleted, "id": post_id}


@router.post("/uploads/cover", status_code=201)
async def upload_post_cover(
    file: UploadFile = File(...),
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    """Upload a cover image; answers with a signed URL for ``cover_url``."""
    data = await file.read()
    url = await upload_cover(
        backend.storage.as_user(session.access_token),
        file.filename or "",
        data,
        file.content_type or "",
    )
    return {"cover_url": url}


@router.get("/profile", response_model=Profile)
async def get_my_profile(
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    return await get_or_create_profile(_user_tables(backend, session), session.user)


@router.put("/profile", response_model=Profile)
async def update_my_profile(
    body: ProfileUpdate,
    session: ResolvedSession = Depends(require_admin),
    backend: Backend = Depends(get_backend),
):
    return await update_profile(
        _user_tables(backend, session), session.user, body.model_dump(exclude_unset=True)
    )
