"""
portal.api.rate_limit — Per-Admin Mutation Rate Limiting
=========================================================

Admin write endpoints (feature toggles, point awards, challenge and
category edits) are limited to ``ADMIN_RATE_LIMIT`` mutations per
``ADMIN_RATE_WINDOW_SECONDS`` per admin (defaults: 30 per 60 s).

The sliding window lives in the ``admin_rate_limit_events`` table so it
survives restarts and is shared by every worker process.  Exceeding it
returns HTTP 429 with a ``Retry-After`` header.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from portal.api.deps import get_current_admin, get_engine
from portal.database.models import AdminRateLimitEvent

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 30
DEFAULT_WINDOW_SECONDS = 60

_MUTATION_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int
    limit: int


class AdminRateLimiter:
    """Sliding-window limiter keyed by the admin's JWT ``sub``."""

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        *,
        engine: Engine,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.engine = engine

    @staticmethod
    def _aware(value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    def _window(self, session: Session, admin_id: str, now: datetime) -> list[datetime]:
        """Prune expired events for *admin_id* and return the live timestamps."""
        cutoff = now - timedelta(seconds=self.window_seconds)
        session.execute(
            delete(AdminRateLimitEvent).where(
                AdminRateLimitEvent.admin_id == admin_id,
                AdminRateLimitEvent.timestamp < cutoff,
            )
        )
        return [
            self._aware(ts) for ts in session.scalars(
                select(AdminRateLimitEvent.timestamp)
                .where(AdminRateLimitEvent.admin_id == admin_id)
                .order_by(AdminRateLimitEvent.timestamp.asc())
            ).all()
        ]

    def hit(self, admin_id: str) -> RateDecision:
        """Check the window and, when allowed, record this request.

        Check and record happen in one transaction.
        """
        now = datetime.now(UTC)
        with Session(self.engine) as session:
            live = self._window(session, admin_id, now)
            if len(live) >= self.max_requests:
                session.commit()
                oldest = live[0]
                wait = (oldest + timedelta(seconds=self.window_seconds) - now).total_seconds()
                return RateDecision(False, 0, max(1, int(wait) + 1), self.max_requests)

            session.add(AdminRateLimitEvent(admin_id=admin_id, timestamp=now))
            session.commit()
        return RateDecision(
            True,
            self.max_requests - len(live) - 1,
            self.window_seconds,
            self.max_requests,
        )

    def remaining(self, admin_id: str) -> int:
        """Requests left in the current window, without recording one."""
        with Session(self.engine) as session:
            live = self._window(session, admin_id, datetime.now(UTC))
            session.commit()
        return max(0, self.max_requests - len(live))

    def reset(self, admin_id: str | None = None) -> None:
        """Clear limiter state for one admin, or for everyone."""
        stmt = delete(AdminRateLimitEvent)
        if admin_id is not None:
            stmt = stmt.where(AdminRateLimitEvent.admin_id == admin_id)
        with Session(self.engine) as session:
            session.execute(stmt)
            session.commit()


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
_limiter: AdminRateLimiter | None = None


def configure_rate_limiter(*, engine: Engine) -> AdminRateLimiter:
    """(Re)build the global limiter from env-configured limits."""
    global _limiter
    _limiter = AdminRateLimiter(
        max_requests=int(os.getenv("ADMIN_RATE_LIMIT", DEFAULT_RATE_LIMIT)),
        window_seconds=int(os.getenv("ADMIN_RATE_WINDOW_SECONDS", DEFAULT_WINDOW_SECONDS)),
        engine=engine,
    )
    return _limiter


def get_rate_limiter(engine: Engine) -> AdminRateLimiter:
    """Return the global limiter, building it lazily for *engine*."""
    if _limiter is None or _limiter.engine is not engine:
        return configure_rate_limiter(engine=engine)
    return _limiter


# ---------------------------------------------------------------------------
# FastAPI dependency: chains after get_current_admin
# ---------------------------------------------------------------------------
async def rate_limited_admin(
    request: Request,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
) -> dict:
    """Validate the admin JWT *and* enforce the mutation rate limit.

    Safe methods pass straight through.  Use ``Depends(rate_limited_admin)``
    in place of ``Depends(get_current_admin)`` on admin write endpoints.
    """
    if request.method not in _MUTATION_METHODS:
        return admin

    limiter = get_rate_limiter(engine)
    decision = await asyncio.to_thread(limiter.hit, str(admin["sub"]))

    if not decision.allowed:
        logger.warning(
            "Rate limit exceeded for admin %s: %d mutations per %ds",
            admin["sub"], limiter.max_requests, limiter.window_seconds,
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": (
                    f"Rate limit exceeded: {limiter.max_requests} mutations"
                    f" per {limiter.window_seconds} seconds."
                ),
                "retry_after": decision.retry_after,
            },
            headers={"Retry-After": str(decision.retry_after)},
        )
    return admin
