"""
tests/test_feature_engine.py — Feature Flag Resolution Tests
=============================================================
Pure-function tests for portal.engine.features (no database).
"""

from __future__ import annotations

from types import SimpleNamespace

from portal.constants import DEFAULT_DISABLED_MESSAGE, Feature
from portal.engine.features import ENABLED, FeatureStatus, build_navigation, resolve_status


def _row(name="gamification", enabled=True, header=True, message=None):
    return SimpleNamespace(
        feature_name=name,
        is_enabled=enabled,
        show_in_header=header,
        disabled_message=message,
    )


class TestResolveStatus:
    def test_missing_row_is_enabled(self):
        assert resolve_status(None) == ENABLED
        assert resolve_status(None).is_enabled is True

    def test_enabled_row_withholds_message(self):
        status = resolve_status(_row(enabled=True, message="Em manutenção"))
        assert status.is_enabled is True
        assert status.disabled_message is None

    def test_disabled_row_returns_stored_message_verbatim(self):
        status = resolve_status(_row(enabled=False, message="  Volta em março!  "))
        assert status == FeatureStatus(False, "  Volta em março!  ")

    def test_disabled_row_with_blank_message_uses_default(self):
        assert resolve_status(_row(enabled=False, message="")).disabled_message == (
            DEFAULT_DISABLED_MESSAGE
        )
        custom = resolve_status(_row(enabled=False, message=None), default_message="Aguarde")
        assert custom.disabled_message == "Aguarde"

    def test_to_dict_uses_camel_case(self):
        assert FeatureStatus(False, "x").to_dict() == {"isEnabled": False, "disabledMessage": "x"}
        assert ENABLED.to_dict() == {"isEnabled": True, "disabledMessage": None}


class TestBuildNavigation:
    def test_no_rows_lists_every_feature_enabled(self):
        items = build_navigation([])
        assert [i.feature_name for i in items] == [f.value for f in Feature]
        assert all(i.is_enabled and i.show_in_header and i.visible for i in items)

    def test_disabled_feature_is_not_visible(self):
        items = {i.feature_name: i for i in build_navigation([_row("ideas", enabled=False)])}
        assert items["ideas"].visible is False
        assert items["community"].visible is True

    def test_hidden_from_header_but_enabled(self):
        items = {i.feature_name: i for i in build_navigation([_row("community", header=False)])}
        assert items["community"].is_enabled is True
        assert items["community"].visible is False

    def test_unknown_rows_are_ignored(self):
        items = build_navigation([_row("legacy-forum", enabled=False)])
        assert "legacy-forum" not in {i.feature_name for i in items}

    def test_labels_come_from_catalogue(self):
        items = build_navigation([], catalogue=["ideas", "extra"], labels={"ideas": "Ideias"})
        assert [i.label for i in items] == ["Ideias", "extra"]
        assert items[0].description.startswith("Sistema de submissão")
        assert items[1].description == ""
        assert items[0].to_dict()["visible"] is True
