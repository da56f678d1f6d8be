"""Request identity helpers.

The organization is read once from the token and then passed explicitly into
services; nothing below the controllers looks at request state.
"""

from __future__ import annotations

from typing import Optional, Tuple

from flask_jwt_extended import get_jwt, get_jwt_identity


def current_identity() -> Tuple[str, Optional[str]]:
    """Return ``(user_id, organization_id)`` for the verified JWT."""
    user_id = str(get_jwt_identity())
    claims = get_jwt() or {}
    org_id = claims.get("org_id")
    return user_id, (str(org_id) if org_id else None)


def has_role(role: str) -> bool:
    claims = get_jwt() or {}
    roles = set(claims.get("roles") or [])
    return "admin" in roles or role in roles
