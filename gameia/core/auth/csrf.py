"""CSRF tokens for browser clients (the embedded player and admin UI).

The token lives in the signed Flask session and must be echoed back in the
``X-CSRF-Token`` header on mutating calls.
"""

from __future__ import annotations

import hmac
import secrets

from flask import session

CSRF_HEADER = "X-CSRF-Token"
_SESSION_KEY = "gameia_csrf"


def csrf_token() -> str:
    """Return the session's token, minting one on first use."""
    if not session.get(_SESSION_KEY):
        session[_SESSION_KEY] = secrets.token_urlsafe(32)
    return session[_SESSION_KEY]


def csrf_token_valid(candidate: str | None) -> bool:
    expected = session.get(_SESSION_KEY)
    return bool(candidate and expected) and hmac.compare_digest(candidate, expected)
