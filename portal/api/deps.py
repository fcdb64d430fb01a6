"""
portal.api.deps — FastAPI dependency injection
===============================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from portal.config import PortalConfig, load_config
from portal.constants import DEFAULT_DISABLED_MESSAGE
from portal.database.engine import create_db_engine
from portal.services.feature_service import check_feature

_WEAK_SECRETS = frozenset({
    "portal-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PortalConfig:
    return load_config(os.getenv("PORTAL_CONFIG", "config.yaml"))


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Validate the bearer JWT and return its payload. Raises 401 if invalid."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if "sub" not in payload:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return payload


def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Like :func:`get_current_user` but raises 403 unless ``is_admin``."""
    if not user.get("is_admin"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return user


def actor_id(user: dict) -> int:
    """The numeric user id carried in a token's ``sub`` claim."""
    try:
        return int(user["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token subject")


# ---------------------------------------------------------------------------
# Feature guard
# ---------------------------------------------------------------------------
def default_disabled_message() -> str:
    """Configured fallback copy, or the built-in one when no config file exists."""
    try:
        return get_config().default_disabled_message
    except FileNotFoundError:
        return DEFAULT_DISABLED_MESSAGE


def require_feature(feature_name: str):
    """Build a dependency that blocks the route while *feature_name* is off.

    The check fails open: any storage error lets the request through.  When
    the feature is disabled the stored message is returned verbatim::

        403 {"detail": {"error": "feature_disabled",
                        "feature": "gamification",
                        "message": "Em breve, novidades!"}}
    """

    def _guard(engine: Engine = Depends(get_engine)) -> None:
        result = check_feature(engine, feature_name, default_message=default_disabled_message())
        if not result.is_enabled:
            raise HTTPException(
                status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "feature_disabled",
                    "feature": feature_name,
                    "message": result.disabled_message,
                },
            )

    _guard.__name__ = f"require_{feature_name}"
    return _guard
