"""Slug normalization for post URLs.

Every create/update path calls :func:`normalize`; slugs are never stored
raw. Unicode word characters survive (titles are often Chinese), while
punctuation and symbols are dropped. Underscores count as separators, so
ASCII input always produces ``^[a-z0-9-]*$``.
"""

import re

_DISALLOWED_RE = re.compile(r"[^\w\s-]")
_SEPARATOR_RE = re.compile(r"[\s_]+")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")


def normalize(text: str | None) -> str:
    """Convert arbitrary title or user text into a URL-safe slug.

    Returns ``""`` for empty or all-punctuation input; callers must treat
    that as a validation failure, not as a usable slug.

    >>> normalize("  Hello, World!  ")
    'hello-world'
    >>> normalize("---a---b---")
    'a-b'
    """
    if not text:
        return ""
    slug = text.lower().strip()
    slug = _DISALLOWED_RE.sub("", slug)
    slug = _SEPARATOR_RE.sub("-", slug)
    slug = _HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")


def is_valid_slug(slug: str | None) -> bool:
    """True for a non-empty slug that is already in normalized form."""
    return bool(slug) and normalize(slug) == slug
