"""
tests/test_gamification_routes.py — Gamification API Tests
===========================================================
Ranking, ledger, settings and challenge endpoints through the TestClient.
"""

from __future__ import annotations

import pytest
from conftest import auth, create_user

from portal.services import category_service, gamification_service


@pytest.fixture
def award_via_api(client, admin_token):
    def _award(user_id, points, entry_type="approved"):
        resp = client.post(
            "/api/gamification/points",
            json={"userId": user_id, "points": points, "description": "Evento", "type": entry_type},
            headers=auth(admin_token),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _award


@pytest.fixture
def enroll(db_engine, admin_id):
    """Put users in a general category so the default ranking includes them."""
    geral = category_service.create_category(db_engine, name="Geral", actor_id=admin_id)
    gamification_service.update_settings(
        db_engine, actor_id=admin_id, general_category_id=geral.id,
    )

    def _enroll(*user_ids):
        for uid in user_ids:
            category_service.assign_user(db_engine, geral.id, uid, actor_id=admin_id)
    return _enroll


# ===========================================================================
# Ranking
# ===========================================================================
class TestRankingEndpoint:
    def test_requires_login(self, client):
        assert client.get("/api/gamification/ranking").status_code == 401

    def test_ranking_shape_and_order(self, client, db_engine, member_token, award_via_api, enroll):
        ana = create_user(db_engine, name="Ana")
        bia = create_user(db_engine, name="Bia")
        enroll(ana, bia)
        award_via_api(ana, 10)
        award_via_api(bia, 25)
        award_via_api(ana, 5)

        resp = client.get("/api/gamification/ranking", headers=auth(member_token))
        assert resp.status_code == 200
        rows = resp.json()
        assert rows[0]["userId"] == bia
        assert rows[0]["totalPoints"] == 25
        assert rows[0]["position"] == 1
        assert rows[1] == {
            "userId": ana,
            "userName": "Ana",
            "userEmail": "ana@cesurg.com",
            "photoUrl": None,
            "totalPoints": 15,
            "categoryId": None,
            "categoryName": None,
            "position": 2,
        }
        totals = [r["totalPoints"] for r in rows]
        assert totals == sorted(totals, reverse=True)

    def test_at_most_twenty_rows(self, client, db_engine, member_token, enroll):
        enroll(*[create_user(db_engine, name=f"Pessoa {i:02d}") for i in range(30)])
        rows = client.get("/api/gamification/ranking?period=annual", headers=auth(member_token)).json()
        assert len(rows) == 20

    def test_no_configuration_yields_empty_ranking(self, client, member_token):
        resp = client.get("/api/gamification/ranking", headers=auth(member_token))
        assert resp.status_code == 200
        assert resp.json() == []

    def test_invalid_period(self, client, member_token):
        resp = client.get("/api/gamification/ranking?period=weekly", headers=auth(member_token))
        assert resp.status_code == 422

    def test_category_filter(self, client, db_engine, admin_token, member_token, award_via_api):
        ana = create_user(db_engine, name="Ana")
        bia = create_user(db_engine, name="Bia")
        award_via_api(bia, 40)
        cat = client.post(
            "/api/admin/user-categories", json={"name": "Técnicos"}, headers=auth(admin_token),
        ).json()
        client.post(f"/api/admin/user-categories/{cat['id']}/users/{ana}", headers=auth(admin_token))

        rows = client.get(
            f"/api/gamification/ranking?categoryId={cat['id']}", headers=auth(member_token),
        ).json()
        assert [r["userId"] for r in rows] == [ana]
        assert rows[0]["categoryName"] == "Técnicos"


# ===========================================================================
# Ledger
# ===========================================================================
class TestPointsEndpoints:
    def test_award_requires_admin(self, client, member_token, member_id):
        resp = client.post(
            "/api/gamification/points",
            json={"userId": member_id, "points": 5, "description": "x"},
            headers=auth(member_token),
        )
        assert resp.status_code == 403

    def test_award_unknown_user(self, client, admin_token):
        resp = client.post(
            "/api/gamification/points",
            json={"userId": 123456, "points": 5, "description": "x"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 404

    def test_award_rejects_unknown_type(self, client, admin_token, member_id):
        resp = client.post(
            "/api/gamification/points",
            json={"userId": member_id, "points": 5, "description": "x", "type": "bonus"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 422

    def test_extract_is_callers_own(self, client, member_id, member_token, db_engine, award_via_api):
        other = create_user(db_engine, name="Outra")
        award_via_api(member_id, 7)
        award_via_api(member_id, 3, "provisional")
        award_via_api(other, 100)

        body = client.get("/api/gamification/points/extract", headers=auth(member_token)).json()
        assert body["totalPoints"] == 10
        assert len(body["history"]) == 2
        assert {h["userId"] for h in body["history"]} == {member_id}

    def test_admin_list(self, client, admin_token, member_id, award_via_api):
        award_via_api(member_id, 2)
        rows = client.get(
            f"/api/gamification/points?userId={member_id}", headers=auth(admin_token),
        ).json()
        assert len(rows) == 1
        assert rows[0]["createdBy"] == "Admin Fixture"

    def test_no_delete_endpoint(self, client, admin_token, member_id, award_via_api):
        entry = award_via_api(member_id, 2)
        resp = client.delete(f"/api/gamification/points/{entry['id']}", headers=auth(admin_token))
        assert resp.status_code in (404, 405)


# ===========================================================================
# Settings & period
# ===========================================================================
class TestSettingsEndpoints:
    def test_get_before_configuration(self, client, member_token):
        resp = client.get("/api/gamification/settings", headers=auth(member_token))
        assert resp.status_code == 200
        assert resp.json() is None

    def test_put_then_get(self, client, admin_token, member_token):
        resp = client.put(
            "/api/gamification/settings",
            json={"cycleStartDate": "2026-03-01", "cycleEndDate": "2026-03-31"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 200
        got = client.get("/api/gamification/settings", headers=auth(member_token)).json()
        assert got["cycleStartDate"] == "2026-03-01"
        assert got["cycleEndDate"] == "2026-03-31"
        assert got["annualStartDate"] is None

    def test_put_rejects_inverted_range(self, client, admin_token):
        resp = client.put(
            "/api/gamification/settings",
            json={"annualStartDate": "2026-12-31", "annualEndDate": "2026-01-01"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 400

    def test_period_unconfigured(self, client, member_token):
        body = client.get("/api/gamification/period", headers=auth(member_token)).json()
        assert body["startDate"] is None
        assert body["progressPercentage"] == 0.0


# ===========================================================================
# Categories & challenges
# ===========================================================================
class TestCategoriesEndpoint:
    def test_only_enabled_active_categories(self, client, admin_token, member_token):
        a = client.post("/api/admin/user-categories", json={"name": "A"},
                        headers=auth(admin_token)).json()
        b = client.post("/api/admin/user-categories", json={"name": "B"},
                        headers=auth(admin_token)).json()
        client.post("/api/admin/user-categories", json={"name": "C"}, headers=auth(admin_token))
        client.put(f"/api/admin/user-categories/{b['id']}", json={"isActive": False},
                   headers=auth(admin_token))
        client.put("/api/gamification/settings",
                   json={"enabledCategoryIds": [a["id"], b["id"]]}, headers=auth(admin_token))

        names = [c["name"] for c in client.get(
            "/api/gamification/categories", headers=auth(member_token)).json()]
        assert names == ["A"]


class TestChallengeEndpoints:
    CHALLENGE = {
        "title": "Semana da leitura",
        "description": "Leia um livro",
        "points": 20,
        "startDate": "2026-05-04",
        "endDate": "2026-05-10",
        "type": "weekly",
    }

    def test_crud_cycle(self, client, admin_token, member_token):
        created = client.post(
            "/api/gamification/challenges", json=self.CHALLENGE, headers=auth(admin_token),
        )
        assert created.status_code == 201
        challenge = created.json()
        assert challenge["creatorName"] == "Admin Fixture"

        listed = client.get("/api/gamification/challenges?type=weekly",
                            headers=auth(member_token)).json()
        assert [c["id"] for c in listed] == [challenge["id"]]
        assert client.get("/api/gamification/challenges?type=monthly",
                          headers=auth(member_token)).json() == []

        updated = client.put(
            f"/api/gamification/challenges/{challenge['id']}",
            json={"points": 35}, headers=auth(admin_token),
        )
        assert updated.status_code == 200
        assert updated.json()["points"] == 35
        assert updated.json()["title"] == "Semana da leitura"

        deleted = client.delete(f"/api/gamification/challenges/{challenge['id']}",
                                headers=auth(admin_token))
        assert deleted.status_code == 200
        missing = client.get(f"/api/gamification/challenges/{challenge['id']}",
                             headers=auth(member_token))
        assert missing.status_code == 404

    def test_inverted_dates_rejected(self, client, admin_token):
        body = dict(self.CHALLENGE, startDate="2026-05-10", endDate="2026-05-04")
        resp = client.post("/api/gamification/challenges", json=body, headers=auth(admin_token))
        assert resp.status_code == 400

    def test_inactive_hidden_from_list(self, client, admin_token, member_token):
        body = dict(self.CHALLENGE, isActive=False)
        client.post("/api/gamification/challenges", json=body, headers=auth(admin_token))
        assert client.get("/api/gamification/challenges", headers=auth(member_token)).json() == []

    def test_update_missing(self, client, admin_token):
        resp = client.put("/api/gamification/challenges/999", json={"points": 1},
                          headers=auth(admin_token))
        assert resp.status_code == 404
