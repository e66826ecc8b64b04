"""
Health Check API Tests
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from core.exceptions import SenderNotVerifiedError
from models import HealthCheckLog

pytestmark = pytest.mark.api


class TestHealthCheck:
    """Test health check endpoints."""

    @pytest.mark.asyncio
    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_scheduled_check_sends_keepalive_email(self, client: AsyncClient, db_session, mock_mailer, mocker):
        mocker.patch("services.sendgrid_service.sendgrid_service", mock_mailer)

        response = await client.get("/api/health-check")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["services"]["database"]["status"] == "healthy"
        assert data["services"]["sendgrid"]["message"] == "Test email sent successfully"
        assert data["services"]["googleDrive"]["status"] == "info"
        mock_mailer.send_email.assert_awaited_once()
        assert mock_mailer.send_email.await_args.kwargs["to"] == "studio@example.com"
        logs = (await db_session.execute(select(HealthCheckLog))).scalars().all()
        assert len(logs) == 1

    @pytest.mark.asyncio
    async def test_recent_email_is_not_repeated(self, client: AsyncClient, db_session, mock_mailer, mocker):
        mocker.patch("services.sendgrid_service.sendgrid_service", mock_mailer)
        db_session.add(HealthCheckLog(check_type="sendgrid", email_sent_at=datetime.utcnow() - timedelta(days=3)))
        await db_session.commit()

        response = await client.get("/api/health-check")

        assert response.status_code == 200
        assert response.json()["services"]["sendgrid"]["nextEmailIn"] == "27 days"
        mock_mailer.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_failure_is_500(self, client: AsyncClient, mock_mailer, mocker):
        mock_mailer.send_email = AsyncMock(side_effect=SenderNotVerifiedError())
        mocker.patch("services.sendgrid_service.sendgrid_service", mock_mailer)

        response = await client.get("/api/health-check")

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["services"]["sendgrid"]["status"] == "error"

    @pytest.mark.asyncio
    async def test_cron_secret(self, client: AsyncClient, mock_mailer, mocker):
        mocker.patch("api.health.settings.CRON_SECRET", "cron-123")
        mocker.patch("services.sendgrid_service.sendgrid_service", mock_mailer)

        denied = await client.get("/api/health-check")
        allowed = await client.get("/api/health-check", headers={"Authorization": "Bearer cron-123"})

        assert denied.status_code == 401
        assert allowed.status_code == 200


class TestAPIInfo:

    @pytest.mark.asyncio
    async def test_openapi_json(self, client: AsyncClient):
        response = await client.get("/openapi.json")

        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/upload" in paths
        assert "/api/portal/{link_id}" in paths
