"""
tests/test_admin_routes.py — Admin API Tests
=============================================
Auth guards, user-category management and the audit log.
"""

from __future__ import annotations

import pytest
from conftest import auth, create_user


class TestAdminAuthGuards:
    """Admin endpoints must return 401/403 for missing/invalid/non-admin tokens."""

    ADMIN_GET_ENDPOINTS = [
        "/api/admin/audit",
        "/api/admin/user-categories",
        "/api/admin/user-categories/1/users",
        "/api/admin/users/1/categories",
        "/api/gamification/points",
    ]

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_get_rejects_no_auth(self, client, endpoint):
        assert client.get(endpoint).status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_get_rejects_invalid_token(self, client, endpoint):
        resp = client.get(endpoint, headers={"Authorization": "Bearer invalid"})
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_get_rejects_non_admin(self, client, member_token, endpoint):
        assert client.get(endpoint, headers=auth(member_token)).status_code == 403


class TestUserCategories:
    def test_create_and_list_with_member_count(self, client, db_engine, admin_token):
        ana = create_user(db_engine, name="Ana")
        resp = client.post(
            "/api/admin/user-categories",
            json={"name": "Docentes", "description": "Corpo docente"},
            headers=auth(admin_token),
        )
        assert resp.status_code == 201
        cat = resp.json()
        client.post(f"/api/admin/user-categories/{cat['id']}/users/{ana}", headers=auth(admin_token))

        listed = client.get("/api/admin/user-categories", headers=auth(admin_token)).json()
        assert listed[0]["name"] == "Docentes"
        assert listed[0]["memberCount"] == 1

    def test_duplicate_name(self, client, admin_token):
        client.post("/api/admin/user-categories", json={"name": "Docentes"},
                    headers=auth(admin_token))
        resp = client.post("/api/admin/user-categories", json={"name": "Docentes"},
                           headers=auth(admin_token))
        assert resp.status_code == 400

    def test_rename_clash(self, client, admin_token):
        client.post("/api/admin/user-categories", json={"name": "A"}, headers=auth(admin_token))
        b = client.post("/api/admin/user-categories", json={"name": "B"},
                        headers=auth(admin_token)).json()
        resp = client.put(f"/api/admin/user-categories/{b['id']}", json={"name": "A"},
                          headers=auth(admin_token))
        assert resp.status_code == 400

    def test_update_missing(self, client, admin_token):
        resp = client.put("/api/admin/user-categories/404", json={"name": "X"},
                          headers=auth(admin_token))
        assert resp.status_code == 404

    def test_assign_is_idempotent(self, client, db_engine, admin_token):
        ana = create_user(db_engine, name="Ana")
        cat = client.post("/api/admin/user-categories", json={"name": "A"},
                          headers=auth(admin_token)).json()
        url = f"/api/admin/user-categories/{cat['id']}/users/{ana}"
        assert client.post(url, headers=auth(admin_token)).json() == {"success": True, "created": True}
        assert client.post(url, headers=auth(admin_token)).json() == {"success": True, "created": False}

    def test_assign_unknown_user(self, client, admin_token):
        cat = client.post("/api/admin/user-categories", json={"name": "A"},
                          headers=auth(admin_token)).json()
        resp = client.post(f"/api/admin/user-categories/{cat['id']}/users/999",
                           headers=auth(admin_token))
        assert resp.status_code == 404

    def test_unassign(self, client, db_engine, admin_token):
        ana = create_user(db_engine, name="Ana")
        cat = client.post("/api/admin/user-categories", json={"name": "A"},
                          headers=auth(admin_token)).json()
        url = f"/api/admin/user-categories/{cat['id']}/users/{ana}"
        client.post(url, headers=auth(admin_token))
        assert client.delete(url, headers=auth(admin_token)).status_code == 200
        assert client.delete(url, headers=auth(admin_token)).status_code == 404

    def test_list_category_members(self, client, db_engine, admin_token):
        bia = create_user(db_engine, name="Bia")
        ana = create_user(db_engine, name="Ana")
        create_user(db_engine, name="Caio")
        cat = client.post("/api/admin/user-categories", json={"name": "Docentes"},
                          headers=auth(admin_token)).json()
        for uid in (bia, ana):
            client.post(f"/api/admin/user-categories/{cat['id']}/users/{uid}",
                        headers=auth(admin_token))

        resp = client.get(f"/api/admin/user-categories/{cat['id']}/users",
                          headers=auth(admin_token))
        assert resp.status_code == 200
        members = resp.json()
        assert [m["id"] for m in members] == [ana, bia]
        assert members[0] == {
            "id": ana, "name": "Ana", "email": "ana@cesurg.com",
            "photoUrl": None, "isActive": True,
        }

    def test_list_members_of_missing_category(self, client, admin_token):
        resp = client.get("/api/admin/user-categories/404/users", headers=auth(admin_token))
        assert resp.status_code == 404

    def test_list_user_categories(self, client, db_engine, admin_token):
        ana = create_user(db_engine, name="Ana")
        tec = client.post("/api/admin/user-categories", json={"name": "Técnicos"},
                          headers=auth(admin_token)).json()
        doc = client.post("/api/admin/user-categories", json={"name": "Docentes"},
                          headers=auth(admin_token)).json()
        client.post("/api/admin/user-categories", json={"name": "Discentes"},
                    headers=auth(admin_token))
        for cat in (tec, doc):
            client.post(f"/api/admin/user-categories/{cat['id']}/users/{ana}",
                        headers=auth(admin_token))

        resp = client.get(f"/api/admin/users/{ana}/categories", headers=auth(admin_token))
        assert resp.status_code == 200
        assert [c["name"] for c in resp.json()] == ["Docentes", "Técnicos"]

    def test_unassigned_user_has_no_categories(self, client, db_engine, admin_token):
        ana = create_user(db_engine, name="Ana")
        resp = client.get(f"/api/admin/users/{ana}/categories", headers=auth(admin_token))
        assert resp.json() == []

    def test_list_categories_of_missing_user(self, client, admin_token):
        resp = client.get("/api/admin/users/999/categories", headers=auth(admin_token))
        assert resp.status_code == 404


class TestAuditLog:
    def test_mutations_are_listed_newest_first(self, client, admin_token, admin_id):
        client.put("/api/feature-settings/ideas", json={"isEnabled": False},
                   headers=auth(admin_token))
        client.post("/api/admin/user-categories", json={"name": "A"}, headers=auth(admin_token))

        body = client.get("/api/admin/audit", headers=auth(admin_token)).json()
        assert body["total"] == 2
        assert [e["targetTable"] for e in body["entries"]] == ["user_categories", "feature_settings"]
        assert all(e["actorId"] == admin_id for e in body["entries"])

    def test_filter_by_table(self, client, admin_token):
        client.put("/api/feature-settings/ideas", json={"isEnabled": False},
                   headers=auth(admin_token))
        client.post("/api/admin/user-categories", json={"name": "A"}, headers=auth(admin_token))
        body = client.get("/api/admin/audit?target_table=feature_settings",
                          headers=auth(admin_token)).json()
        assert body["total"] == 1
        assert body["entries"][0]["targetId"] == "ideas"
