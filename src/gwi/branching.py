"""Helpers for issue branch naming."""

from __future__ import annotations

import re

MAX_SLUG_LENGTH = 50
FALLBACK_SLUG = "issue"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify_title(title: str, *, max_len: int = MAX_SLUG_LENGTH) -> str:
    """Return a lowercase, hyphenated slug for an issue title.

    Example:
        >>> slugify_title("Add user authentication!!")
        'add-user-authentication'
    """
    slug = _NON_ALNUM_RE.sub("-", title.lower()).strip("-")
    if max_len and len(slug) > max_len:
        slug = slug[:max_len].rstrip("-")
    return slug


def issue_branch_name(number: int, title: str) -> str:
    """Return the branch (and worktree directory) name for an issue.

    Example:
        >>> issue_branch_name(42, "Add user authentication!!")
        '42-add-user-authentication'
        >>> issue_branch_name(42, "!!!")
        '42-issue'
    """
    slug = slugify_title(title) or FALLBACK_SLUG
    return f"{number}-{slug}"
