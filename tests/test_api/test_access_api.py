"""Tests for GET /access, GET /users/{email}, /health and /."""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from conftest import InMemoryDirectory
from paywall.directory import UserField, UserRecord


class TestCheckAccess:
    async def test_active_user_has_access(
        self, client: AsyncClient, api_headers: dict, active_user: UserRecord
    ):
        response = await client.get(
            "/access", params={"email": "paid.user@example.com"}, headers=api_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["has_access"] is True
        assert data["plan"] == "pro"
        assert data["status"] == "active"
        assert data["current_period_end"] is not None

    @pytest.mark.parametrize(
        "email",
        ["paid.user@example.com", "PAID.USER@EXAMPLE.COM", "  Paid.User@Example.com  "],
    )
    async def test_lookup_is_case_insensitive(
        self, client: AsyncClient, api_headers: dict, active_user: UserRecord, email: str
    ):
        response = await client.get("/access", params={"email": email}, headers=api_headers)
        reference = await client.get(
            "/access", params={"email": "paid.user@example.com"}, headers=api_headers
        )
        assert response.json() == reference.json()
        assert response.json()["has_access"] is True

    async def test_unknown_email_is_not_an_error(self, client: AsyncClient, api_headers: dict):
        response = await client.get(
            "/access", params={"email": "nobody@example.com"}, headers=api_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "has_access": False,
            "plan": None,
            "status": None,
            "current_period_end": None,
        }

    async def test_expired_period_has_no_access(
        self, client: AsyncClient, api_headers: dict, directory: InMemoryDirectory, now: datetime
    ):
        directory.add(
            **{
                UserField.EMAIL: "expired@example.com",
                UserField.PLAN: "pro",
                UserField.STATUS: "active",
                UserField.CURRENT_PERIOD_END: now - timedelta(minutes=1),
            }
        )
        response = await client.get(
            "/access", params={"email": "expired@example.com"}, headers=api_headers
        )
        data = response.json()
        assert data["has_access"] is False
        assert data["status"] == "active"

    async def test_canceled_has_no_access_even_with_future_period(
        self, client: AsyncClient, api_headers: dict, directory: InMemoryDirectory, now: datetime
    ):
        directory.add(
            **{
                UserField.EMAIL: "canceled@example.com",
                UserField.PLAN: "pro",
                UserField.STATUS: "canceled",
                UserField.CURRENT_PERIOD_END: now + timedelta(days=5),
            }
        )
        response = await client.get(
            "/access", params={"email": "canceled@example.com"}, headers=api_headers
        )
        assert response.json()["has_access"] is False
        assert response.json()["status"] == "canceled"

    async def test_pending_user_has_no_access(
        self, client: AsyncClient, api_headers: dict, pending_user: UserRecord
    ):
        response = await client.get(
            "/access", params={"email": "pending@example.com"}, headers=api_headers
        )
        data = response.json()
        assert data["has_access"] is False
        assert data["current_period_end"] is None

    @pytest.mark.parametrize("params", [{}, {"email": ""}, {"email": "   "}])
    async def test_missing_email_is_bad_request(
        self, client: AsyncClient, api_headers: dict, params: dict
    ):
        response = await client.get("/access", params=params, headers=api_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Email is required"

    async def test_directory_failure_is_server_error(
        self, client: AsyncClient, api_headers: dict, directory: InMemoryDirectory
    ):
        directory.fail_on.add("list")
        response = await client.get("/access", params={"email": "a@x.com"}, headers=api_headers)
        assert response.status_code == 500
        assert response.json()["detail"] == "simulated list failure"

    async def test_unreadable_period_end_means_no_access(
        self, client: AsyncClient, api_headers: dict, directory: InMemoryDirectory
    ):
        directory.add(
            **{
                UserField.EMAIL: "bad@x.com",
                UserField.STATUS: "active",
                UserField.CURRENT_PERIOD_END: "soon",
            }
        )
        response = await client.get("/access", params={"email": "bad@x.com"}, headers=api_headers)
        assert response.status_code == 200
        assert response.json() == {
            "has_access": False,
            "plan": None,
            "status": "active",
            "current_period_end": None,
        }

    async def test_quote_in_email_is_treated_as_data(
        self, client: AsyncClient, api_headers: dict, active_user: UserRecord
    ):
        response = await client.get(
            "/access", params={"email": "x') OR TRUE() OR ('"}, headers=api_headers
        )
        assert response.status_code == 200
        assert response.json()["has_access"] is False


class TestGetUser:
    async def test_get_user(self, client: AsyncClient, api_headers: dict, active_user: UserRecord):
        response = await client.get("/users/PAID.USER@example.com", headers=api_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == active_user.id
        assert data["email"] == "Paid.User@Example.com"
        assert data["customer_id"] == "cus_active_123"
        assert data["subscription_id"] == "sub_active_123"

    async def test_get_user_not_found(self, client: AsyncClient, api_headers: dict):
        response = await client.get("/users/ghost@example.com", headers=api_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    async def test_get_user_requires_auth(self, client: AsyncClient, active_user: UserRecord):
        response = await client.get("/users/paid.user@example.com")
        assert response.status_code == 401


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "message" in data
        assert "timestamp" in data

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/nope")
        assert response.status_code == 404
