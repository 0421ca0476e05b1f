"""
Tests for the JSON API blueprint.

Reads are public; writes require the admin session.
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from resume_site.webui import sync
from resume_site.webui.models import db

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


class TestResumeEndpoint:
    """Tests for /api/resume."""

    def test_get_defaults(self, client):
        response = client.get("/api/resume")

        assert response.status_code == 200
        data = response.get_json()
        assert data["id"] == "default"
        assert data["experiences"] == []

    def test_post_requires_session(self, client):
        response = client.post("/api/resume", json={"name": "Mallory"})

        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized", "code": "unauthorized"}
        assert client.get("/api/resume").get_json()["name"] == ""

    def test_post_saves_document(self, admin_client):
        response = admin_client.post("/api/resume", json={
            "name": "Jane Doe",
            "experiences": [{"jobTitle": "B"}, {"jobTitle": "A"}],
        })

        assert response.status_code == 200
        assert response.get_json()["counts"] == {"experiences": 2}
        data = admin_client.get("/api/resume").get_json()
        assert data["name"] == "Jane Doe"
        assert [(e["jobTitle"], e["order"]) for e in data["experiences"]] == [("B", 0), ("A", 1)]

    def test_post_rejects_form_bodies(self, admin_client):
        response = admin_client.post("/api/resume", data={"name": "Jane"})

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_payload"

    def test_post_rejects_wrong_shape(self, admin_client):
        response = admin_client.post("/api/resume", json={"skills": {"name": "Python"}})

        assert response.status_code == 400

    def test_admin_view_dates(self, admin_client):
        admin_client.post("/api/resume", json={"experiences": [{"startDate": "2021-06-01"}]})

        admin_view = admin_client.get("/api/resume?view=admin").get_json()
        public_view = admin_client.get("/api/resume").get_json()
        assert admin_view["experiences"][0]["startDate"] == "2021-06-01"
        assert public_view["experiences"][0]["startDate"] == "2021-06-01T00:00:00.000Z"

    def test_store_failure_is_503(self, app, client):
        client.get("/api/resume")
        with app.app_context():
            db.drop_all()

        response = client.get("/api/resume")

        assert response.status_code == 503
        assert response.get_json()["code"] == "store_unavailable"

    def test_office_address_hidden_from_visitors(self, admin_client):
        admin_client.post("/api/resume", json={
            "experiences": [{"jobTitle": "CTO", "officeStreet": "1 Secret St", "officeZip": "12345"}],
        })

        admin_view = admin_client.get("/api/resume").get_json()
        assert admin_view["experiences"][0]["officeStreet"] == "1 Secret St"

        admin_client.post("/api/auth/signout")
        experience = admin_client.get("/api/resume").get_json()["experiences"][0]
        assert experience["jobTitle"] == "CTO"
        assert not any(key.startswith("office") for key in experience)

    def test_store_failure_on_save_is_500(self, admin_client, monkeypatch):
        def failing(collection, items):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(sync, "build_rows", failing)

        response = admin_client.post("/api/resume", json={"name": "Jane", "skills": [{"name": "A"}]})

        assert response.status_code == 500
        assert response.get_json() == {"error": "Failed to update resume data", "code": "store_error"}

    def test_session_dropped_from_allow_list(self, app, admin_client):
        app.config["ADMIN_EMAILS"] = ["someone-else@example.com"]

        response = admin_client.post("/api/resume", json={"name": "Jane"})

        assert response.status_code == 401


class TestPortfolioEndpoint:
    """Tests for /api/portfolio."""

    def test_drafts_hidden_from_visitors(self, admin_client):
        admin_client.post("/api/portfolio", json=[
            {"title": "Live", "isPublished": True},
            {"title": "Draft", "isPublished": False},
        ])

        assert len(admin_client.get("/api/portfolio").get_json()) == 2
        admin_client.post("/api/auth/signout")
        titles = [a["title"] for a in admin_client.get("/api/portfolio").get_json()]
        assert titles == ["Live"]
        assert [a["title"] for a in admin_client.get("/api/resume").get_json()["articles"]] == ["Live"]

    def test_put_creates_then_updates(self, admin_client):
        created = admin_client.put("/api/portfolio", json={"title": "One", "tags": ["ai"]})
        assert created.status_code == 200
        article = created.get_json()["article"]
        assert article["order"] == 0

        updated = admin_client.put("/api/portfolio", json={"id": article["id"], "title": "One v2"})

        assert updated.get_json()["article"]["title"] == "One v2"
        assert len(admin_client.get("/api/portfolio").get_json()) == 1

    def test_delete_by_query_and_body(self, admin_client):
        first = admin_client.put("/api/portfolio", json={"title": "One"}).get_json()["article"]
        second = admin_client.put("/api/portfolio", json={"title": "Two"}).get_json()["article"]

        assert admin_client.delete(f"/api/portfolio?id={first['id']}").status_code == 200
        assert admin_client.delete("/api/portfolio", json={"id": second["id"]}).status_code == 200
        assert admin_client.get("/api/portfolio").get_json() == []

    def test_delete_errors(self, admin_client):
        assert admin_client.delete("/api/portfolio?id=missing").status_code == 404
        assert admin_client.delete("/api/portfolio").status_code == 400

    @pytest.mark.parametrize("method", ["post", "put", "delete"])
    def test_writes_require_session(self, client, method):
        response = getattr(client, method)("/api/portfolio?id=x", json={"title": "Nope"})

        assert response.status_code == 401


class TestShowcaseEndpoint:
    def test_cap_at_six(self, admin_client):
        items = [{"title": f"Item {i}"} for i in range(9)]

        response = admin_client.post("/api/showcase", json=items)

        assert response.get_json()["counts"] == {"showcase": 6}
        assert len(admin_client.get("/api/showcase").get_json()) == 6

    def test_inactive_only_for_admin(self, admin_client):
        admin_client.post("/api/showcase", json=[{"title": "On"}, {"title": "Off", "isActive": False}])

        assert len(admin_client.get("/api/showcase?all=1").get_json()) == 2
        admin_client.post("/api/auth/signout")
        assert len(admin_client.get("/api/showcase?all=1").get_json()) == 1

    def test_requires_session(self, client):
        assert client.post("/api/showcase", json=[]).status_code == 401


class TestSessionEndpoints:
    def test_sign_in_and_out(self, client):
        assert client.get("/api/auth/session").get_json() == {"authenticated": False, "email": None}

        response = client.post("/api/auth/signin", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD})

        assert response.status_code == 200
        assert client.get("/api/auth/session").get_json() == {"authenticated": True, "email": ADMIN_EMAIL}

        client.post("/api/auth/signout")
        assert client.get("/api/auth/session").get_json()["authenticated"] is False

    def test_bad_password(self, client):
        response = client.post("/api/auth/signin", json={"email": ADMIN_EMAIL, "password": "wrong-password"})

        assert response.status_code == 401
        assert response.get_json() == {"error": "Invalid credentials", "code": "unauthorized"}
