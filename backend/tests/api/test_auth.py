"""
Owner Sign-in API Tests
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from core.config import settings
from services.google_oauth_service import google_oauth_service

pytestmark = pytest.mark.api


def state_from(url: str) -> str:
    return parse_qs(urlparse(url).query)["state"][0]


class TestSignIn:

    @pytest.mark.asyncio
    async def test_login_url(self, client: AsyncClient):
        response = await client.get("/api/auth/login", params={"next": "https://evil.test"})

        state = google_oauth_service.validate_state(state_from(response.json()["url"]), "login")
        assert state["next"] == "/dashboard"

    @pytest.mark.asyncio
    async def test_callback_signs_in_and_stores_tokens(self, client: AsyncClient, db_session, mocker):
        url = (await client.get("/api/auth/login", params={"next": "/projects"})).json()["url"]
        mocker.patch.object(google_oauth_service, "exchange_code", AsyncMock(return_value={
            "access_token": "access-1", "refresh_token": "refresh-1",
            "expires_at": datetime.utcnow() + timedelta(hours=1),
        }))
        mocker.patch.object(google_oauth_service, "get_userinfo", AsyncMock(return_value={
            "sub": "google-42", "email": "new-owner@example.com", "name": "New Owner", "picture": None,
        }))

        response = await client.get("/api/auth/google/callback", params={"code": "c", "state": state_from(url)})

        assert response.status_code == 307
        assert response.headers["location"] == f"{settings.APP_URL}/projects"
        cookie = response.cookies.get(settings.SESSION_COOKIE_NAME)
        assert cookie

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {cookie}"})
        assert me.json()["email"] == "new-owner@example.com"
        assert me.json()["drive_connected"] is True

    @pytest.mark.asyncio
    async def test_callback_without_code(self, client: AsyncClient):
        response = await client.get("/api/auth/callback")

        assert response.status_code == 307
        assert response.headers["location"] == f"{settings.APP_URL}/login"

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self, client: AsyncClient):
        response = await client.post("/api/auth/logout")

        assert response.json() == {"success": True}
        assert settings.SESSION_COOKIE_NAME in response.headers.get("set-cookie", "")
