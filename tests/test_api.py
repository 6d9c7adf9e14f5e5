"""
End-to-end tests through the HTTP API: authentication, the error envelope,
the listing workflow, agency scoping and PDF documents.
"""

import pytest
from decimal import Decimal

from tests.factories import DEFAULT_PASSWORD, auth_headers


def listing_payload(**overrides):
    data = {
        "title": "Departamento con roof garden",
        "price": "28000",
        "bedrooms": 2,
        "bathrooms": "2",
        "area": "90",
        "location": "Aldea Zama, Tulum",
        "status": "rent",
        "condo_name": "Quinto Sol",
        "unit_number": "204",
    }
    data.update(overrides)
    return data


class TestAuthFlow:

    @pytest.mark.asyncio
    async def test_register_approve_login(self, async_client, master):
        response = await async_client.post("/api/auth/register", json={
            "email": "Nueva@Example.com",
            "password": "secreto123",
            "first_name": "Nueva",
            "last_name": "Propietaria",
        })
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["status"] == "pending"

        credentials = {"email": "nueva@example.com", "password": "secreto123"}
        response = await async_client.post("/api/auth/login", json=credentials)
        assert response.status_code == 403

        response = await async_client.post(f"/api/users/{user['id']}/approve", headers=auth_headers(master))
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = await async_client.post("/api/auth/login", json=credentials)
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["permissions"] == []
        token = response.cookies["homesapp_session"]
        assert token == body["access_token"]

        async_client.cookies.clear()
        response = await async_client.get("/api/auth/me", headers={"Cookie": f"homesapp_session={token}"})
        assert response.status_code == 200
        assert response.json()["email"] == "nueva@example.com"

    @pytest.mark.asyncio
    async def test_me_with_bearer_token(self, async_client, master):
        response = await async_client.get("/api/auth/me", headers=auth_headers(master))
        assert response.status_code == 200
        assert "users:approve" in response.json()["permissions"]

    @pytest.mark.asyncio
    async def test_bad_credentials(self, async_client, owner):
        response = await async_client.post(
            "/api/auth/login", json={"email": owner.email, "password": "wrongpassword1"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_refresh_and_logout(self, async_client, owner):
        login = await async_client.post("/api/auth/login", json={"email": owner.email, "password": DEFAULT_PASSWORD})
        refresh_token = login.json()["refresh_token"]

        response = await async_client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200
        assert response.json()["access_token"]

        response = await async_client.post("/api/auth/logout")
        assert response.status_code == 204


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_missing_token(self, async_client):
        response = await async_client.get("/api/auth/me")

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == "UNAUTHORIZED"
        assert error["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_unknown_route(self, async_client):
        response = await async_client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"

    @pytest.mark.asyncio
    async def test_body_validation(self, async_client, owner):
        response = await async_client.post("/api/properties", json={"title": "x"}, headers=auth_headers(owner))

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = {detail["field"] for detail in error["details"]}
        assert "body -> price" in fields

    @pytest.mark.asyncio
    async def test_plain_text_body_rejected(self, async_client, owner):
        response = await async_client.post(
            "/api/properties",
            content="title=Casa",
            headers={**auth_headers(owner), "Content-Type": "text/plain"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"


class TestPropertyWorkflow:

    @pytest.mark.asyncio
    async def test_create_submit_approve_publish(self, async_client, owner, master):
        response = await async_client.post("/api/properties", json=listing_payload(), headers=auth_headers(owner))
        assert response.status_code == 201
        listing = response.json()
        assert listing["approval_status"] == "draft"
        assert listing["slug"] == "quinto-sol-204"
        assert listing["available_actions"] == ["submit"]
        path = f"/api/properties/{listing['id']}"

        assert (await async_client.get(path)).status_code == 404

        response = await async_client.post(f"{path}/actions", json={"action": "submit"}, headers=auth_headers(owner))
        assert response.json()["approval_status"] == "pending_review"

        response = await async_client.post(f"{path}/actions", json={"action": "approve"}, headers=auth_headers(owner))
        assert response.status_code == 403

        for action, expected in (("approve", "approved"), ("publish", "published")):
            response = await async_client.post(f"{path}/actions", json={"action": action}, headers=auth_headers(master))
            assert response.status_code == 200
            assert response.json()["approval_status"] == expected

        response = await async_client.get(path)
        assert response.status_code == 200
        assert response.json()["display_title"] == "Quinto Sol - 204"

        response = await async_client.get("/api/properties", params={"max_price": "30000"})
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_unknown_action_rejected(self, async_client, owner, draft_property):
        response = await async_client.post(
            f"/api/properties/{draft_property.id}/actions", json={"action": "teleport"}, headers=auth_headers(owner)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_preview_and_patch(self, async_client, owner, draft_property):
        path = f"/api/properties/{draft_property.id}"

        response = await async_client.post(f"{path}/changes/preview", json={"bedrooms": 3}, headers=auth_headers(owner))
        preview = response.json()
        assert preview["has_changes"] is True
        assert preview["changes"] == [{"field": "bedrooms", "old": 2, "new": 3}]

        response = await async_client.patch(path, json={"bedrooms": 3}, headers=auth_headers(owner))
        assert response.status_code == 200
        assert response.json()["bedrooms"] == 3


class TestAgencyScope:

    @pytest.mark.asyncio
    async def test_admin_must_name_agency(self, async_client, master, agency):
        response = await async_client.get("/api/external/commissions/profile", headers=auth_headers(master))
        assert response.status_code == 422

        response = await async_client.get(
            "/api/external/commissions/profile", params={"agency_id": str(agency.id)}, headers=auth_headers(master)
        )
        assert response.status_code == 200
        profile = response.json()
        assert profile["id"] is None
        assert Decimal(profile["rental_commission_percent"]) == Decimal("10")

    @pytest.mark.asyncio
    async def test_staff_cannot_reach_other_agency(self, async_client, agency_seller, other_agency):
        response = await async_client.get(
            "/api/external/leads", params={"agency_id": str(other_agency.id)}, headers=auth_headers(agency_seller)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_duplicate_lead_reports_existing_id(self, async_client, agency_seller):
        lead = {"first_name": "María", "last_name": "Gómez", "phone": "+52 984 555 0101"}

        first = await async_client.post("/api/external/leads", json=lead, headers=auth_headers(agency_seller))
        assert first.status_code == 201

        second = await async_client.post("/api/external/leads", json=lead, headers=auth_headers(agency_seller))
        assert second.status_code == 409
        error = second.json()["error"]
        assert error["code"] == "DUPLICATE_RESOURCE"
        assert error["details"][0]["existing_id"] == first.json()["id"]

    @pytest.mark.asyncio
    async def test_resolve_commission_with_amount(self, async_client, agency_seller):
        response = await async_client.get(
            "/api/external/commissions/resolve",
            params={"commission_type": "rental", "amount": "30000"},
            headers=auth_headers(agency_seller),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "system_default"
        assert Decimal(body["commission_amount"]) == Decimal("3000.00")


class TestDocuments:

    @pytest.mark.asyncio
    async def test_rental_form_pdf(self, async_client, client_user, published_property):
        response = await async_client.post(
            f"/api/documents/rental-form/{published_property.id}",
            json={"full_name": "Luis Ruiz", "monthly_income": "60000"},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "aldea-zama-101" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_hidden_property_form(self, async_client, client_user, draft_property):
        response = await async_client.post(
            f"/api/documents/owner-form/{draft_property.id}",
            json={"full_name": "Olivia Mar"},
            headers=auth_headers(client_user),
        )
        assert response.status_code == 404
