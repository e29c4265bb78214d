"""Server-rendered HTML pages: home, post view, not-found view, login."""

import html
import logging

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import HTMLResponse

from blogsite.config import get_settings
from blogsite.errors import MESSAGES
from blogsite.models.post import Post
from blogsite.services.backend import Backend, get_backend
from blogsite.services.posts import get_post_by_slug, list_all_posts
from blogsite.services.session_gate import UNAUTHORIZED, safe_redirect_target

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

SITE_NAME = "Blog"


def _page(title: str, body: str) -> str:
    title_esc = html.escape(title)
    return f"""<!DOCTYPE html>
<html lang="zh-Hant">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1" />
<title>{title_esc} — {SITE_NAME}</title>
</head>
<body>
<main>
{body}
</main>
</body>
</html>"""


def _paragraphs(text: str) -> str:
    blocks = [b.strip() for b in text.replace("\r\n", "\n").split("\n\n") if b.strip()]
    return "\n".join(
        f"<p>{html.escape(b).replace(chr(10), '<br />')}</p>" for b in blocks
    )


def render_post(post: Post) -> str:
    cover = ""
    if post.cover_url:
        cover = f'<img src="{html.escape(post.cover_url)}" alt="" />\n'
    published = post.created_at.strftime("%Y-%m-%d")
    body = f"""<article>
<h1>{html.escape(post.title)}</h1>
<time datetime="{post.created_at.isoformat()}">{published}</time>
{cover}{_paragraphs(post.content)}
</article>
<p><a href="/">&larr; Back</a></p>"""
    return _page(post.title, body)


def render_not_found(slug: str) -> str:
    body = f"""<h1>404</h1>
<p>找不到文章「{html.escape(slug)}」</p>
<p><a href="/">&larr; Back</a></p>"""
    return _page("Not found", body)


def render_login(redirect: str, error: str | None, locale: str) -> str:
    notice = ""
    if error == UNAUTHORIZED:
        table = MESSAGES.get(locale) or MESSAGES["en"]
        notice = f'<p role="alert" class="error">{html.escape(table[UNAUTHORIZED])}</p>\n'
    redirect_js = html.escape(redirect, quote=True)
    body = f"""<h1>Login</h1>
{notice}<form id="login" data-redirect="{redirect_js}">
<input name="email" type="email" autocomplete="email" required />
<input name="password" type="password" autocomplete="current-password" required />
<button type="submit">Login</button>
</form>
<p id="message" role="status"></p>
<script>
document.getElementById("login").addEventListener("submit", async (e) => {{
  e.preventDefault();
  const form = e.target;
  const target = encodeURIComponent(form.dataset.redirect);
  const resp = await fetch("/auth/login?redirect=" + target, {{
    method: "POST",
    headers: {{"Content-Type": "application/json"}},
    body: JSON.stringify({{email: form.email.value, password: form.password.value}}),
  }});
  const data = await resp.json();
  if (resp.ok) {{ window.location.assign(data.redirect_to); return; }}
  document.getElementById("message").textContent = data.detail;
}});
</script>"""
    return _page("Login", body)


@router.get("/", response_class=HTMLResponse)
async def home(backend: Backend = Depends(get_backend)):
    posts = await list_all_posts(backend.tables, limit=50)
    items = "\n".join(
        f'<li><a href="/blog/{html.escape(p.slug)}">{html.escape(p.title)}</a> '
        f'<time>{p.created_at.strftime("%Y-%m-%d")}</time></li>'
        for p in posts
    )
    body = f"<h1>{SITE_NAME}</h1>\n<ul>\n{items}\n</ul>" if posts else "<p>No posts yet.</p>"
    return HTMLResponse(content=_page(SITE_NAME, body))


@router.get("/blog/{slug}", response_class=HTMLResponse)
async def blog_post_page(
    slug: str = Path(..., min_length=1, max_length=200),
    backend: Backend = Depends(get_backend),
):
    """Render a post; unknown slugs get the not-found view, not an error."""
    post = await get_post_by_slug(backend.tables, slug)
    if post is None:
        return HTMLResponse(content=render_not_found(slug), status_code=404)
    return HTMLResponse(content=render_post(post))


@router.get("/login", response_class=HTMLResponse)
async def login_page(
    redirect: str | None = Query(default=None, max_length=500),
    error: str | None = Query(default=None, max_length=50),
):
    settings = get_settings()
    target = safe_redirect_target(redirect, settings.admin_path_prefix)
    return HTMLResponse(content=render_login(target, error, settings.locale))
