"""
portal.constants — Shared Constants
====================================

Single source of truth for the feature catalogue and gamification limits.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

import enum


# ---------------------------------------------------------------------------
# Feature catalogue: the fixed set of switchable portal areas
# ---------------------------------------------------------------------------
class Feature(enum.StrEnum):
    COMMUNITY = "community"
    IDEAS = "ideas"
    GAMIFICATION = "gamification"


FEATURE_LABELS: dict[str, str] = {
    Feature.COMMUNITY: "Comunidade",
    Feature.IDEAS: "Ideias",
    Feature.GAMIFICATION: "Gamificação",
}

FEATURE_DESCRIPTIONS: dict[str, str] = {
    Feature.COMMUNITY: "Sistema de grupos, posts e mensagens da comunidade",
    Feature.IDEAS: "Sistema de submissão e gerenciamento de ideias",
    Feature.GAMIFICATION: "Sistema de pontuação, desafios e ranking",
}

KNOWN_FEATURES: frozenset[str] = frozenset(f.value for f in Feature)

DEFAULT_DISABLED_MESSAGE = "Em breve, novidades!"


def is_known_feature(name: str) -> bool:
    return name in KNOWN_FEATURES


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------
RANKING_LIMIT = 20


class RankingPeriod(enum.StrEnum):
    CYCLE = "cycle"
    ANNUAL = "annual"


class PointsType(enum.StrEnum):
    PROVISIONAL = "provisional"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChallengeType(enum.StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"
