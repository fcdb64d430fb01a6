"""
portal.database.seed — Default Feature Switches
================================================

Baseline feature rows seeded on first startup so the admin console lists
every switch with a sensible initial state.

Idempotent: only inserts features that have no row yet.  Switches toggled
later by admins are never overwritten.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from portal.constants import DEFAULT_DISABLED_MESSAGE, Feature
from portal.database.models import FeatureSetting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default catalogue
# ---------------------------------------------------------------------------
DEFAULT_FEATURES: dict[str, bool] = {
    Feature.COMMUNITY: True,
    Feature.IDEAS: True,
    Feature.GAMIFICATION: False,
}
"""Each entry maps ``feature_name`` → initial ``is_enabled``."""


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_default_features(engine: Engine) -> int:
    """Insert feature rows that don't yet exist.  Returns the number inserted."""
    session = Session(engine)
    inserted = 0
    try:
        existing = set(session.scalars(select(FeatureSetting.feature_name)).all())
        for name, enabled in DEFAULT_FEATURES.items():
            if name in existing:
                continue
            session.add(FeatureSetting(
                feature_name=str(name),
                is_enabled=enabled,
                show_in_header=True,
                disabled_message=DEFAULT_DISABLED_MESSAGE,
            ))
            inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default feature settings.", inserted)
    return inserted
