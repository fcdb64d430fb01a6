"""
portal.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for **infrastructure-only** settings (portal identity,
login domain, admin roles, fallback copy).  Feature switches and
gamification periods live in the database and are edited from the admin
console.

Usage::

    from portal.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.portal_name)            # "Portal Institucional"
    print(cfg.allowed_email_domain)   # "cesurg.com"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from portal.constants import DEFAULT_DISABLED_MESSAGE


# ---------------------------------------------------------------------------
# Typed settings object: infrastructure/identity only.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PortalConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    portal_name: str

    # Login
    allowed_email_domain: str  # Only e-mails under this domain may sign in

    # Dashboard
    dashboard_port: int

    # Roles that receive ``is_admin`` in issued tokens
    admin_roles: tuple[str, ...] = field(default=("admin", "superadmin"))

    # Copy shown on guarded pages when an admin left the message blank
    default_disabled_message: str = DEFAULT_DISABLED_MESSAGE


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PortalConfig:
    """Read *path* and return a :class:`PortalConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    roles = raw.get("admin_roles") or ("admin", "superadmin")
    return PortalConfig(
        portal_name=raw["portal_name"],
        allowed_email_domain=str(raw["allowed_email_domain"]).lstrip("@").lower(),
        dashboard_port=int(raw["dashboard_port"]),
        admin_roles=tuple(str(r) for r in roles),
        default_disabled_message=(
            raw.get("default_disabled_message") or DEFAULT_DISABLED_MESSAGE
        ),
    )
