"""
portal.engine.features — Feature Flag Resolution
=================================================

Pure resolution logic.  No DB I/O inside the engine: callers pass in the
stored row (or ``None``) and get back the status the client acts on.

A feature with no stored row is **enabled** (fail-open).  While a feature
is enabled its ``disabled_message`` is withheld.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from portal.constants import DEFAULT_DISABLED_MESSAGE, FEATURE_DESCRIPTIONS, FEATURE_LABELS, Feature

__all__ = ["FeatureStatus", "NavItem", "build_navigation", "resolve_status"]


class _FlagRow(Protocol):
    feature_name: str
    is_enabled: bool
    show_in_header: bool
    disabled_message: str | None


@dataclass(frozen=True, slots=True)
class FeatureStatus:
    """Answer to "may this feature be used right now?"."""

    is_enabled: bool
    disabled_message: str | None = None

    def to_dict(self) -> dict:
        return {"isEnabled": self.is_enabled, "disabledMessage": self.disabled_message}


ENABLED = FeatureStatus(is_enabled=True)


def resolve_status(
    row: _FlagRow | None,
    *,
    default_message: str = DEFAULT_DISABLED_MESSAGE,
) -> FeatureStatus:
    """Turn a stored flag row into a :class:`FeatureStatus`.

    Missing rows resolve to enabled.  A disabled row with a blank message
    falls back to *default_message*.
    """
    if row is None or row.is_enabled:
        return ENABLED
    return FeatureStatus(
        is_enabled=False,
        disabled_message=row.disabled_message or default_message,
    )


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class NavItem:
    feature_name: str
    label: str
    is_enabled: bool
    show_in_header: bool
    description: str = ""

    @property
    def visible(self) -> bool:
        return self.is_enabled and self.show_in_header

    def to_dict(self) -> dict:
        return {
            "featureName": self.feature_name,
            "label": self.label,
            "description": self.description,
            "isEnabled": self.is_enabled,
            "showInHeader": self.show_in_header,
            "visible": self.visible,
        }


def build_navigation(
    rows: Iterable[_FlagRow],
    catalogue: Iterable[str] = tuple(f.value for f in Feature),
    labels: Mapping[str, str] = FEATURE_LABELS,
    descriptions: Mapping[str, str] = FEATURE_DESCRIPTIONS,
) -> list[NavItem]:
    """One entry per catalogue feature, in catalogue order.

    Features without a stored row are enabled and shown in the header.
    Rows for names outside the catalogue are ignored.
    """
    by_name = {r.feature_name: r for r in rows}
    items = []
    for name in catalogue:
        row = by_name.get(name)
        items.append(NavItem(
            feature_name=name,
            label=labels.get(name, name),
            is_enabled=True if row is None else bool(row.is_enabled),
            show_in_header=True if row is None else bool(row.show_in_header),
            description=descriptions.get(name, ""),
        ))
    return items
