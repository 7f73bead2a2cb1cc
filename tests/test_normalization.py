"""Tests for slug, email and name normalization."""

import pytest

from stepforms.utils.normalization import (
    is_reserved_slug,
    normalize_email,
    normalize_name,
    normalize_slug,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Floor Lead", "floor-lead"),
        ("  My Form!! 2026 ", "my-form-2026"),
        ("already-normal", "already-normal"),
        ("--Leading--and--trailing--", "leading-and-trailing"),
        ("a___b", "a-b"),
        ("Émigré Form", "migr-form"),
        ("!!!", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_slug(raw, expected):
    assert normalize_slug(raw) == expected


@pytest.mark.parametrize("raw", ["Floor Lead", "x--y", "-a-", "Hello_World 2"])
def test_normalize_slug_is_idempotent(raw):
    once = normalize_slug(raw)
    assert normalize_slug(once) == once


@pytest.mark.parametrize("slug", ["admin", "API", "apply", "_next", "forms", " Health "])
def test_reserved_slugs(slug):
    assert is_reserved_slug(slug)


@pytest.mark.parametrize("slug", ["floor-lead", "admins", "contact"])
def test_non_reserved_slugs(slug):
    assert not is_reserved_slug(slug)


def test_normalize_email():
    assert normalize_email("  Ada@Example.COM ") == "ada@example.com"
    assert normalize_email("") is None
    assert normalize_email(None) is None


def test_normalize_name():
    assert normalize_name("  Contact   Form ") == "Contact Form"
    assert normalize_name("   ") is None
    assert normalize_name(None) is None
