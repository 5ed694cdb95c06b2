"""HTTP tests for the /api/suggestions router."""

import uuid

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from flowmatch.app.config import Settings
from flowmatch.app.routes import suggestions as suggestions_routes
from flowmatch.app.routes.suggestions import router
from flowmatch.domain.models import SuggestionInteraction
from flowmatch.infra.database import get_db
from flowmatch.services.auth_service import create_access_token

KM_PER_DEGREE_LAT = 111.195


@pytest.fixture
async def client(db_session):
    app = FastAPI()
    app.include_router(router)

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def requester(make_user, make_company):
    """A user whose company discards plastic, plus two recyclers that want it."""
    user = await make_user()
    await make_company(
        name="Provence Plasturgie",
        owner=user,
        sector="Plastics",
        latitude=43.0,
        longitude=5.0,
        outputs=[{"name": "PET offcuts", "family": "Plastic", "unit": "kg", "is_waste": True}],
    )
    near = await make_company(
        name="Recyclage du Garlaban",
        sector="Recycling",
        latitude=43.0 + 3 / KM_PER_DEGREE_LAT,
        longitude=5.0,
        inputs=[{"name": "Plastic scrap", "family": "Plastic", "unit": "kg"}],
    )
    far = await make_company(
        name="Palettes de l'Huveaune",
        sector="Logistics",
        latitude=43.0 + 20 / KM_PER_DEGREE_LAT,
        longitude=5.0,
        inputs=[{"name": "Stretch film", "family": "Plastic"}],
    )
    return user, near, far


def _auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# ---------------------------------------------------------------------------
# Auth and profile
# ---------------------------------------------------------------------------

class TestAccess:

    async def test_missing_token(self, client):
        resp = await client.get("/api/suggestions")
        assert resp.status_code == 401

    async def test_invalid_token(self, client):
        resp = await client.get("/api/suggestions", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    async def test_user_without_company(self, client, make_user):
        user = await make_user()
        resp = await client.get("/api/suggestions", headers=_auth(user))
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Create a company profile to receive suggestions"


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListSuggestions:

    async def test_default_listing(self, client, requester, db_session):
        user, near, far = requester

        resp = await client.get("/api/suggestions", headers=_auth(user))

        assert resp.status_code == 200
        body = resp.json()
        assert [s["company"]["id"] for s in body["suggestions"]] == [near.id, far.id]
        assert body["total"] == 2
        assert body["available"] == 2
        assert body["limit"] == 25
        assert body["appliedFilters"]["sort"] == "score"
        assert body["stats"]["active"] == 2

        top = body["suggestions"][0]
        assert top["status"] == "new"
        assert top["compatibility"]["badge"] == "top"
        assert top["distanceKm"] == pytest.approx(3.0, abs=0.01)
        assert top["meta"]["isFresh"] is True
        assert top["matches"]["forward"][0]["matchType"] == "family"

        rows = (await db_session.execute(select(SuggestionInteraction))).scalars().all()
        assert len(rows) == 2

    async def test_unknown_stored_status_does_not_fail_listing(self, client, requester, db_session):
        user, near, far = requester
        db_session.add(SuggestionInteraction(
            id=str(uuid.uuid4()), user_id=user.id, target_company_id=far.id, status="archived",
        ))
        await db_session.flush()

        resp = await client.get("/api/suggestions", headers=_auth(user))

        assert resp.status_code == 200
        assert [s["company"]["id"] for s in resp.json()["suggestions"]] == [near.id]

    async def test_filters_and_sort(self, client, requester):
        user, near, far = requester

        resp = await client.get(
            "/api/suggestions",
            params={"maxDistance": "10", "sort": "alpha", "tags": "Recycling, Logistics", "limit": "5"},
            headers=_auth(user),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [s["company"]["id"] for s in body["suggestions"]] == [near.id]
        assert body["appliedFilters"]["tags"] == ["Recycling", "Logistics"]
        assert body["appliedFilters"]["maxDistance"] == 10
        assert body["limit"] == 5

    @pytest.mark.parametrize("params", [
        {"minScore": "150"},
        {"maxDistance": "0"},
        {"maxDistance": "600"},
        {"limit": "0"},
        {"limit": "101"},
        {"sort": "popularity"},
        {"status": "archived"},
        {"search": "   "},
    ])
    async def test_invalid_params(self, client, requester, params):
        user, _, _ = requester
        resp = await client.get("/api/suggestions", params=params, headers=_auth(user))
        assert resp.status_code == 400

    async def test_limit_bounds_follow_settings(self, client, requester, monkeypatch):
        user, _, _ = requester
        settings = Settings(suggestion_default_limit=1, suggestion_max_limit=200)
        monkeypatch.setattr(suggestions_routes, "get_settings", lambda: settings)

        default = await client.get("/api/suggestions", headers=_auth(user))
        raised = await client.get("/api/suggestions", params={"limit": "150"}, headers=_auth(user))
        too_high = await client.get("/api/suggestions", params={"limit": "201"}, headers=_auth(user))

        assert default.json()["limit"] == 1
        assert len(default.json()["suggestions"]) == 1
        assert raised.status_code == 200
        assert raised.json()["limit"] == 150
        assert len(raised.json()["suggestions"]) == 2
        assert too_high.status_code == 400


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

class TestActions:

    async def test_save(self, client, requester):
        user, near, _ = requester

        resp = await client.post(
            f"/api/suggestions/{near.id}/save", json={"comment": "Call next week"}, headers=_auth(user),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "saved"
        assert body["message"] == "Suggestion saved"
        assert body["companyId"] == near.id

        listing = (await client.get("/api/suggestions", headers=_auth(user))).json()
        statuses = {s["company"]["id"]: s["status"] for s in listing["suggestions"]}
        assert statuses[near.id] == "saved"

    async def test_ignore_hides_until_requested(self, client, requester):
        user, near, far = requester

        resp = await client.post(f"/api/suggestions/{far.id}/ignore", headers=_auth(user))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Suggestion ignored"

        hidden = (await client.get("/api/suggestions", headers=_auth(user))).json()
        assert [s["company"]["id"] for s in hidden["suggestions"]] == [near.id]

        shown = (await client.get(
            "/api/suggestions", params={"includeIgnored": "true"}, headers=_auth(user),
        )).json()
        assert {s["company"]["id"] for s in shown["suggestions"]} == {near.id, far.id}

    async def test_contact(self, client, requester):
        user, near, _ = requester
        resp = await client.post(f"/api/suggestions/{near.id}/contact", json={}, headers=_auth(user))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Contact initiated"

    async def test_comment_too_long(self, client, requester):
        user, near, _ = requester
        resp = await client.post(
            f"/api/suggestions/{near.id}/save", json={"comment": "x" * 501}, headers=_auth(user),
        )
        assert resp.status_code == 400

    async def test_unknown_company(self, client, requester):
        user, _, _ = requester
        resp = await client.post("/api/suggestions/does-not-exist/save", headers=_auth(user))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Dashboard reads
# ---------------------------------------------------------------------------

class TestDashboard:

    async def test_stats_are_read_only(self, client, requester, db_session):
        user, near, _ = requester

        resp = await client.get("/api/suggestions/stats", headers=_auth(user))

        assert resp.status_code == 200
        body = resp.json()
        assert body["stats"]["active"] == 2
        assert body["engagement"] == {"saved": 0, "contacted": 0, "ignored": 0}
        assert body["bestMatches"][0]["company"]["id"] == near.id

        rows = (await db_session.execute(select(SuggestionInteraction))).scalars().all()
        assert rows == []

    async def test_filters(self, client, requester):
        user, _, _ = requester

        resp = await client.get("/api/suggestions/filters", headers=_auth(user))

        assert resp.status_code == 200
        facets = resp.json()["facets"]
        assert {f["value"] for f in facets["sectors"]} == {"Recycling", "Logistics"}
        assert facets["status"] == ["new", "saved", "ignored", "contacted"]
        assert facets["distance"][0] == {"label": "≤ 5 km", "maxDistance": 5}
