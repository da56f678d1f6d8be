"""Controller decorators."""

from __future__ import annotations

from functools import wraps

from flask import current_app, jsonify, request

from gameia.core.auth.csrf import CSRF_HEADER, csrf_token_valid


def csrf_protected(view):
    """Reject the call with 403 unless the session CSRF token is echoed back."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        enabled = current_app.config.get("WTF_CSRF_ENABLED", True)
        if enabled and not csrf_token_valid(request.headers.get(CSRF_HEADER)):
            return jsonify({"ok": False, "error": "csrf_failed"}), 403
        return view(*args, **kwargs)

    return wrapper
