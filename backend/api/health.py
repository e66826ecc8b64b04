"""
AssetDrop - Health Check API
Liveness probe plus the scheduled keep-alive check for the database and SendGrid
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from typing import Dict, Any
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text, desc

from core.database import get_db
from core.config import settings
from core.exceptions import AssetDropError
from core.logging import get_logger
from core.security import passwords_match
from models.auth_models import HealthCheckLog
from services import sendgrid_service as sendgrid_module

router = APIRouter(tags=["Health"])
logger = get_logger("assetdrop.api.health")

SENDGRID_CHECK = "sendgrid"


async def check_database(db: AsyncSession) -> Dict[str, Any]:
    """Check database connectivity"""
    try:
        start = datetime.utcnow()
        await db.execute(text("SELECT 1"))
        latency = (datetime.utcnow() - start).total_seconds() * 1000
        return {
            "status": "healthy",
            "latency_ms": round(latency, 2),
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}", action="health_db_failed")
        return {
            "status": "error",
            "latency_ms": None,
            "message": str(e)
        }


async def last_health_email_at(db: AsyncSession):
    result = await db.execute(
        select(HealthCheckLog.email_sent_at)
        .where(HealthCheckLog.check_type == SENDGRID_CHECK)
        .order_by(desc(HealthCheckLog.email_sent_at))
        .limit(1)
    )
    return result.scalar_one_or_none()


def _health_email(database_status: str, now: datetime) -> Dict[str, str]:
    stamp = now.strftime("%Y-%m-%d %H:%M UTC")
    text_body = (
        "This is an automated health check email to keep your SendGrid account active.\n\n"
        "AssetDrop Status Report:\n"
        f"- Date: {stamp}\n"
        f"- Database: {database_status}\n"
        "- SendGrid: Active (this email proves it!)\n"
        "- Google Drive API: Ready\n\n"
        "No action required.\n\n"
        "---\nAssetDrop Automated Health Check\n"
    )
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h2 style="color: #4CAF50;">AssetDrop Health Check</h2>
      <p>All systems are active and healthy!</p>
      <ul>
        <li><strong>Date:</strong> {stamp}</li>
        <li><strong>Database:</strong> {database_status}</li>
        <li><strong>SendGrid:</strong> Active</li>
        <li><strong>Google Drive:</strong> Ready</li>
      </ul>
      <p style="color: #666; font-size: 14px;">This email is sent once per month to prevent service inactivity.</p>
    </div>
    """
    return {"text": text_body, "html": html_body}


async def check_sendgrid(db: AsyncSession, database_status: str) -> Dict[str, Any]:
    """Send the keep-alive email when the last one is older than the interval"""
    now = datetime.utcnow()
    interval = settings.HEALTH_EMAIL_INTERVAL_DAYS
    try:
        last_sent = await last_health_email_at(db)
        days_since = (now - last_sent).days if last_sent else None

        if days_since is not None and days_since < interval:
            return {
                "status": "healthy",
                "message": f"Skipped (last email sent {days_since} days ago)",
                "nextEmailIn": f"{interval - days_since} days",
            }

        mailer = sendgrid_module.sendgrid_service
        body = _health_email(database_status, now)
        await mailer.send_email(
            to=mailer.from_email or "",
            subject="AssetDrop Health Check - All Systems Active",
            html=body["html"],
            text=body["text"],
        )
        db.add(HealthCheckLog(check_type=SENDGRID_CHECK, email_sent_at=now))
        await db.commit()
        return {
            "status": "healthy",
            "message": "Test email sent successfully",
            "lastEmailSent": now.isoformat() + "Z",
        }
    except AssetDropError as e:
        logger.error(f"SendGrid health check failed: {e.message}", action="health_sendgrid_failed")
        return {"status": "error", "message": e.message}


@router.get("/health")
async def health_check():
    """Basic liveness endpoint"""
    return {
        "status": "healthy",
        "service": "assetdrop",
        "timestamp": datetime.utcnow().isoformat() + "Z"
    }


@router.get("/api/health-check")
async def scheduled_health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Keep-alive check called by the cron scheduler.

    Pings the database and sends a SendGrid test email at most once per
    interval. Requires `Authorization: Bearer <CRON_SECRET>` when a secret
    is configured. Returns 500 when any service check fails.
    """
    start = datetime.utcnow()

    if settings.CRON_SECRET:
        auth_header = request.headers.get("Authorization", "")
        if not passwords_match(auth_header, f"Bearer {settings.CRON_SECRET}"):
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    database = await check_database(db)
    sendgrid = await check_sendgrid(db, database["status"])

    services = {
        "database": database,
        "sendgrid": sendgrid,
        "googleDrive": {
            "status": "info",
            "message": "OAuth tokens refresh automatically on use. Ensure the consent screen is published.",
        },
    }
    success = database["status"] == "healthy" and sendgrid["status"] == "healthy"
    results = {
        "timestamp": start.isoformat() + "Z",
        "services": services,
        "success": success,
        "totalTime": round((datetime.utcnow() - start).total_seconds() * 1000, 2),
    }

    logger.info("Health check complete", action="health_check", success=success)
    return JSONResponse(status_code=200 if success else 500, content=results)
