"""Optional bearer-token gate for the API routes."""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, jsonify, request

from pagetranslate.ai.exceptions import AuthError
from pagetranslate.config import auth_enabled
from pagetranslate.logger import get_logger

logger = get_logger(__name__)


def verify_bearer_token(authorization: Optional[str], config: Dict[str, Any]) -> None:
    """
    Check an Authorization header against the configured master key.

    Raises:
        AuthError: 401 when the bearer token is missing, 403 when it does not match.
    """
    if not auth_enabled(config):
        return

    scheme, _, token = (authorization or "").strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Bearer Token authentication required.", status_code=401)

    if not hmac.compare_digest(token.encode("utf-8"), str(config["API_MASTER_KEY"]).encode("utf-8")):
        raise AuthError("Invalid API Key.", status_code=403)


def require_api_key(view):
    """Reject the request before the view runs unless it carries the master key."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            verify_bearer_token(
                request.headers.get("Authorization"),
                current_app.config["PAGETRANSLATE"],
            )
        except AuthError as e:
            logger.warning("Rejected %s %s: %s", request.method, request.path, e)
            return jsonify({"detail": str(e)}), e.status_code
        return view(*args, **kwargs)

    return wrapper
