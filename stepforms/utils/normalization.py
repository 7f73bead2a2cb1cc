"""Data normalization utilities for slugs, names and emails."""

import re
from typing import Optional


# =============================================================================
# Slugs
# =============================================================================

# Route prefixes owned by the app or the frontend; a form may never claim them.
RESERVED_SLUGS = frozenset(
    {
        "admin",
        "api",
        "apply",
        "login",
        "logout",
        "auth",
        "_next",
        "static",
        "docs",
        "health",
        "internal",
        "files",
        "forms",
        "submissions",
    }
)

_SLUG_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_SLUG_REPEATED_HYPHENS = re.compile(r"-+")


def normalize_slug(slug: Optional[str]) -> str:
    """
    Normalize a form slug to lowercase ``[a-z0-9-]``.

    Invalid characters become hyphens, runs of hyphens collapse to one and
    leading/trailing hyphens are stripped. The result may be empty; callers
    decide whether that is acceptable.

    Args:
        slug: Raw slug input

    Returns:
        Normalized slug (possibly empty)
    """
    if not slug:
        return ""
    value = _SLUG_INVALID_CHARS.sub("-", slug.strip().lower())
    value = _SLUG_REPEATED_HYPHENS.sub("-", value)
    return value.strip("-")


def is_reserved_slug(slug: str) -> bool:
    # "_next" normalizes to "next"; check the raw value too.
    raw = (slug or "").strip().lower()
    return raw in RESERVED_SLUGS or normalize_slug(slug) in RESERVED_SLUGS


# =============================================================================
# Names & Emails
# =============================================================================


def normalize_email(email: Optional[str]) -> Optional[str]:
    """
    Normalize email to lowercase.

    Args:
        email: Raw email input

    Returns:
        Lowercased email or None if empty
    """
    if not email:
        return None
    return email.strip().lower()


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Strip whitespace and collapse internal runs of spaces."""
    if not name:
        return None
    collapsed = " ".join(name.split())
    return collapsed or None
