"""Avatar URL derivation for people with an email address."""

from __future__ import annotations

import hashlib
from urllib.parse import urlencode

from tzpanel.util.constants import AVATAR_BASE_URL, AVATAR_DEFAULT_IMAGE


def email_hash(email: str) -> str:
    """SHA-256 hex digest of the trimmed, lower-cased address."""
    normalized = email.strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def avatar_url(
    email: str | None,
    size: int,
    *,
    base_url: str = AVATAR_BASE_URL,
    default_image: str = AVATAR_DEFAULT_IMAGE,
) -> str | None:
    """Return the avatar URL for *email*, or None when there is no address."""
    if not email or not email.strip():
        return None
    if not base_url.endswith("/"):
        base_url = f"{base_url}/"
    query = urlencode({"s": int(size), "d": default_image})
    return f"{base_url}{email_hash(email)}?{query}"


__all__ = ["avatar_url", "email_hash"]
