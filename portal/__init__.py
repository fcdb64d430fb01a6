"""
Portal — Institutional Portal Backend
======================================
Serves the feature switches that gate the portal's navigation and pages,
and the gamification read/write paths: point ledger, period windows,
challenges, user categories and the top-N ranking.

Package layout::

    portal/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Feature catalogue, ranking limit
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default feature rows
    ├── engine/
    │   ├── features.py    # Flag resolution + navigation filtering
    │   ├── periods.py     # Cycle / annual windows and progress
    │   └── ranking.py     # Points aggregation, ordering, truncation
    ├── services/
    │   ├── audit.py               # Audit-logged admin mutations
    │   ├── feature_service.py     # Feature settings CRUD + fail-open check
    │   ├── gamification_service.py  # Settings, ledger, ranking
    │   ├── challenge_service.py   # Challenge CRUD
    │   └── category_service.py    # User categories + assignments
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Google OAuth2 → JWT
        └── routes/        # Feature settings, gamification, admin
"""

__version__ = "0.1.0"
