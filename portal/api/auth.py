"""
portal.api.auth — Google OAuth2 + JWT issuance
===============================================

Only institutional Google accounts (``allowed_email_domain`` in
``config.yaml``) may sign in.  On the first login the account is created
with the ``user`` role; admins are promoted in the database.
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

import httpx
import jwt
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy import delete, or_, select

from portal.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    get_config,
    get_current_user,
    get_engine,
)
from portal.config import PortalConfig
from portal.database.engine import get_session, run_db
from portal.database.models import OAuthState, User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPE = "openid email profile"

OAUTH_STATE_TTL_SECONDS = 600
TOKEN_TTL_HOURS = 12


def _oauth_env() -> tuple[str, str, str, str]:
    """Return required OAuth env vars or raise a clear 500."""
    names = ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI", "FRONTEND_URL")
    values = {name: os.getenv(name, "").strip() for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise HTTPException(
            status_code=500,
            detail="Google OAuth is not configured: missing " + ", ".join(missing),
        )
    return tuple(values[name] for name in names)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# State tokens
# ---------------------------------------------------------------------------
def _store_oauth_state(engine, state: str) -> None:
    """Persist an OAuth state token and prune stale entries."""
    cutoff = datetime.now(UTC) - timedelta(seconds=OAUTH_STATE_TTL_SECONDS)
    with get_session(engine) as session:
        session.execute(delete(OAuthState).where(OAuthState.created_at < cutoff))
        session.add(OAuthState(state=state, created_at=datetime.now(UTC)))


def _consume_oauth_state(engine, state: str) -> bool:
    """Consume a one-time OAuth state token if valid and unexpired."""
    cutoff = datetime.now(UTC) - timedelta(seconds=OAUTH_STATE_TTL_SECONDS)
    with get_session(engine) as session:
        session.execute(delete(OAuthState).where(OAuthState.created_at < cutoff))
        row = session.get(OAuthState, state)
        if row is None:
            return False
        session.delete(row)
        return True


# ---------------------------------------------------------------------------
# Accounts & tokens
# ---------------------------------------------------------------------------
def email_allowed(email: str, domain: str) -> bool:
    return email.lower().endswith("@" + domain.lower())


def upsert_google_user(engine, profile: dict) -> dict:
    """Create or refresh the account behind a Google profile.

    Matches on ``google_id`` first, then e-mail (accounts created by an
    admin before their first login).  Returns a plain dict snapshot.
    """
    google_id = str(profile["sub"])
    email = profile["email"].lower()
    with get_session(engine) as session:
        user = session.scalar(
            select(User).where(or_(User.google_id == google_id, User.email == email))
        )
        if user is None:
            user = User(email=email, name=profile.get("name") or email, google_id=google_id)
            session.add(user)
            logger.info("Created account for %s", email)
        else:
            user.google_id = google_id
            if profile.get("name"):
                user.name = profile["name"]
        if profile.get("picture"):
            user.photo_url = profile["picture"]
        session.flush()
        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "photo_url": user.photo_url,
            "is_active": user.is_active,
        }


def issue_token(user: dict, cfg: PortalConfig) -> str:
    payload = {
        "sub": str(user["id"]),
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
        "photo_url": user.get("photo_url"),
        "is_admin": user["role"] in cfg.admin_roles,
        "exp": datetime.now(UTC) + timedelta(hours=TOKEN_TTL_HOURS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("/login")
async def login(engine=Depends(get_engine)):
    """Redirect to the Google consent screen."""
    client_id, _, redirect_uri, _ = _oauth_env()

    state = secrets.token_urlsafe(32)
    await run_db(_store_oauth_state, engine, state)

    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPE,
            "state": state,
            "prompt": "select_account",
        }
    )
    return RedirectResponse(f"{GOOGLE_AUTHORIZE_URL}?{query}")


@router.get("/callback")
async def callback(
    code: str,
    state: str,
    cfg: PortalConfig = Depends(get_config),
    engine=Depends(get_engine),
):
    """Exchange the OAuth code for a portal JWT."""
    client_id, client_secret, redirect_uri, frontend_url = _oauth_env()

    if not await run_db(_consume_oauth_state, engine, state):
        raise HTTPException(400, "Invalid or expired OAuth state")

    transport = httpx.AsyncHTTPTransport(retries=1)
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        token_resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        if token_resp.status_code != 200:
            raise HTTPException(400, "OAuth token exchange failed")

        access_token = token_resp.json().get("access_token")
        if not access_token:
            raise HTTPException(400, "No access token returned")

        profile_resp = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    if profile_resp.status_code != 200:
        raise HTTPException(400, "Failed to fetch Google profile")

    profile = profile_resp.json()
    email = profile.get("email") or ""
    if not profile.get("email_verified") or not email_allowed(email, cfg.allowed_email_domain):
        logger.warning("Rejected login for %r (domain not allowed)", email)
        return RedirectResponse(f"{frontend_url}?auth_error=domain_not_allowed")

    user = await run_db(upsert_google_user, engine, profile)
    if not user["is_active"]:
        return RedirectResponse(f"{frontend_url}?auth_error=inactive")

    token = issue_token(user, cfg)
    return RedirectResponse(f"{frontend_url}/auth/callback?token={token}")


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    """Return the current authenticated user's info."""
    return {
        "id": user["sub"],
        "name": user.get("name", "Unknown"),
        "email": user.get("email"),
        "role": user.get("role", "user"),
        "photoUrl": user.get("photo_url"),
        "isAdmin": bool(user.get("is_admin")),
    }
