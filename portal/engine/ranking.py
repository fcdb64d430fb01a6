"""
portal.engine.ranking — Points Aggregation & Ordering
======================================================

Pure ranking pipeline.  No DB I/O inside the engine.

    eligible users + ledger totals → sort → truncate → positions

Ordering: total points descending, then user name (case-insensitive), then
user id.  Positions are 1-based and sequential, so two users with equal
totals still get distinct positions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from portal.constants import RANKING_LIMIT

__all__ = ["Participant", "RankingRow", "build_ranking"]


@dataclass(frozen=True, slots=True)
class Participant:
    """A user eligible to appear in the ranking."""

    user_id: int
    name: str
    email: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True, slots=True)
class RankingRow:
    user_id: int
    user_name: str
    total_points: int
    position: int
    user_email: str | None = None
    photo_url: str | None = None
    category_id: int | None = None
    category_name: str | None = None

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "userEmail": self.user_email,
            "photoUrl": self.photo_url,
            "totalPoints": self.total_points,
            "categoryId": self.category_id,
            "categoryName": self.category_name,
            "position": self.position,
        }


def _sort_key(p: Participant, totals: Mapping[int, int]) -> tuple:
    return (-totals.get(p.user_id, 0), p.name.casefold(), p.user_id)


def build_ranking(
    participants: Iterable[Participant],
    totals: Mapping[int, int],
    *,
    limit: int = RANKING_LIMIT,
    category: tuple[int, str] | None = None,
) -> list[RankingRow]:
    """Rank *participants* by their entry in *totals* (missing ⇒ 0).

    Returns at most *limit* rows.  *category* ``(id, name)`` is stamped on
    every row when the ranking was filtered by a user category.
    """
    if limit <= 0:
        return []
    # A participant listed twice must not take two slots.
    unique = {p.user_id: p for p in participants}
    ordered = sorted(unique.values(), key=lambda p: _sort_key(p, totals))[:limit]
    category_id, category_name = category if category else (None, None)
    return [
        RankingRow(
            user_id=p.user_id,
            user_name=p.name,
            total_points=int(totals.get(p.user_id, 0)),
            position=i + 1,
            user_email=p.email,
            photo_url=p.photo_url,
            category_id=category_id,
            category_name=category_name,
        )
        for i, p in enumerate(ordered)
    ]
