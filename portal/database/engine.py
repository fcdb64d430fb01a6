"""
portal.database.engine — Database Connection & Async Helper
============================================================

The ORM stack is synchronous (SQLAlchemy + psycopg2).  Plain ``def`` route
handlers run in Starlette's thread pool; ``async def`` handlers such as the
OAuth callback hand their queries to :func:`run_db` instead.

Usage::

    engine = create_db_engine()
    init_db(engine)
    user = await run_db(upsert_google_user, engine, profile)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from portal.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Pool sizing for a single-campus deployment.
_POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 10,
    "pool_recycle": 3600,
    "pool_pre_ping": True,
}


def create_db_engine(url: str | None = None) -> Engine:
    """Build the application :class:`Engine`.

    *url* defaults to the ``DATABASE_URL`` environment variable.  Pool
    options are only applied to server databases; a ``sqlite`` URL (local
    experiments) gets SQLAlchemy's defaults.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is unset.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at the portal's PostgreSQL database."
        )

    options = {} if url.startswith("sqlite") else dict(_POOL_OPTIONS)
    engine = create_engine(url, echo=False, **options)
    logger.info("Database engine ready (%s)", engine.url.render_as_string(hide_password=True))
    return engine


def init_db(engine: Engine) -> None:
    """Create missing tables, then seed the default feature switches.

    Alembic owns the production schema; ``create_all`` only fills gaps in
    dev and test databases.  Seeding never touches existing rows.
    """
    from portal.database.seed import seed_default_features

    Base.metadata.create_all(engine)
    seeded = seed_default_features(engine)
    logger.info("Schema checked; %d feature switch(es) seeded.", seeded)


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Unit of work: commit when the block exits cleanly, roll back otherwise."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a synchronous database call on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)
