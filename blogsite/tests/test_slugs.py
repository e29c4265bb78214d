"""Tests for slug normalization."""

import re

import pytest

from blogsite.services.slugs import is_valid_slug, normalize

ASCII_SLUG_RE = re.compile(r"^[a-z0-9-]*$")

SAMPLES = [
    "",
    "   ",
    "!!!",
    "  Hello, World!  ",
    "---a---b---",
    "Already-a-slug",
    "snake_case_title",
    "Tabs\tand\nnewlines",
    "Mixed -- dashes  and   spaces",
    "C++ & Python: 2026 edition?",
    "'quoted' \"title\"",
    "-_-",
    "trailing---",
    "ÀÉÎ accents",
    "中文標題 測試",
    "Next.js 入門：第一章",
    "emoji 🎉 party",
]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("  Hello, World!  ", "hello-world"),
        ("---a---b---", "a-b"),
        ("!!!", ""),
        ("", ""),
        ("My First Post", "my-first-post"),
        ("snake_case_title", "snake-case-title"),
        ("C++ & Python: 2026 edition?", "c-python-2026-edition"),
        ("Mixed -- dashes  and   spaces", "mixed-dashes-and-spaces"),
    ],
)
def test_normalize_examples(text, expected):
    assert normalize(text) == expected


def test_normalize_none_is_empty():
    assert normalize(None) == ""


def test_normalize_preserves_cjk_characters():
    assert normalize("中文標題 測試") == "中文標題-測試"
    assert normalize("Next.js 入門：第一章") == "nextjs-入門第一章"


def test_normalize_drops_emoji_and_symbols():
    assert normalize("emoji 🎉 party") == "emoji-party"


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_is_idempotent(text):
    once = normalize(text)
    assert normalize(once) == once


@pytest.mark.parametrize("text", [s for s in SAMPLES if s.isascii()])
def test_ascii_input_yields_ascii_slug(text):
    assert ASCII_SLUG_RE.match(normalize(text))


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_never_has_edge_or_double_hyphens(text):
    slug = normalize(text)
    assert not slug.startswith("-")
    assert not slug.endswith("-")
    assert "--" not in slug
    assert not any(ch.isspace() for ch in slug)


def test_is_valid_slug():
    assert is_valid_slug("hello-world")
    assert is_valid_slug("中文-標題")
    assert not is_valid_slug("")
    assert not is_valid_slug(None)
    assert not is_valid_slug("Hello")
    assert not is_valid_slug("-leading")
    assert not is_valid_slug("a--b")
