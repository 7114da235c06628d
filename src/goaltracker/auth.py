"""Resolve the authenticated user for API requests.

Access tokens are issued and validated by the identity provider (Auth0) in
front of this service; requests arrive with the verified subject in a
trusted header. This module only maps that subject onto a local user row.
"""

from __future__ import annotations

from flask import current_app, g, request

from .config import BaseConfig
from .extensions import get_service
from .models.user import User


class AuthenticationRequired(Exception):
    """Raised when a request carries no authenticated subject."""


def current_user() -> User:
    """Return (and cache on ``g``) the user behind the current request."""

    cached = g.get("current_user")
    if cached is not None:
        return cached

    config: BaseConfig = current_app.config["GOALTRACKER_CONFIG"]
    sub = request.headers.get(config.AUTH_SUBJECT_HEADER, "").strip()
    if not sub:
        if not config.DEV_MODE:
            raise AuthenticationRequired("Missing authenticated subject")
        sub = config.DEV_SUBJECT

    user = get_service("users").ensure_user(
        sub,
        email=request.headers.get("X-Auth-Email") or None,
        name=request.headers.get("X-Auth-Name") or None,
    )
    g.current_user = user
    return user


def current_user_id() -> int:
    return current_user().id
