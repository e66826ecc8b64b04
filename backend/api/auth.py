"""
AssetDrop - Authentication API
Google sign-in for project owners
"""
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.exceptions import AssetDropError, NotFoundError
from core.logging import get_logger
from core.security import get_current_user
from services.account_service import AccountService
from services.drive_credentials_service import DriveCredentialsService
from services.google_oauth_service import google_oauth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger("assetdrop.api.auth")

DEFAULT_NEXT = "/dashboard"


def safe_next(next_path: Optional[str]) -> str:
    """Only same-site relative paths are allowed as post-login targets"""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return DEFAULT_NEXT
    return next_path


def app_redirect(path: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.APP_URL.rstrip('/')}{path}", status_code=307)


def login_error(reason: str) -> RedirectResponse:
    return app_redirect(f"/login?error={quote(reason)}")


@router.get("/login")
async def login(next: Optional[str] = Query(None), connect_drive: bool = Query(True)):
    """Google consent URL for owner sign-in"""
    url = google_oauth_service.get_login_auth_url(safe_next(next), store_drive_tokens=connect_drive)
    return {"url": url}


async def _complete_sign_in(
    db: AsyncSession,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    store_tokens: bool,
) -> RedirectResponse:
    if error:
        return login_error(error)
    if not code:
        return app_redirect("/login")

    state_data = google_oauth_service.validate_state(state, "login")
    if state_data is None:
        return login_error("invalid_state")

    try:
        tokens = await google_oauth_service.exchange_code(code, state_data["redirect_uri"])
        userinfo = await google_oauth_service.get_userinfo(tokens["access_token"])
        profile = await AccountService(db).upsert_profile(userinfo)

        if store_tokens and tokens.get("access_token"):
            await DriveCredentialsService(db).save_tokens(
                profile.id, tokens["access_token"], tokens.get("refresh_token"), tokens["expires_at"]
            )
    except AssetDropError as e:
        logger.error(f"Sign-in failed: {e.message}", action="login_failed")
        return login_error("authentication_failed")

    response = app_redirect(safe_next(state_data.get("next")))
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=AccountService.issue_session(profile),
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    logger.info("Owner signed in", action="login_success", user_id=profile.id)
    return response


@router.get("/callback")
async def auth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Sign-in callback that only establishes the session"""
    return await _complete_sign_in(db, code, state, error, store_tokens=False)


@router.get("/google/callback")
async def google_auth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Sign-in callback that also keeps the Google tokens for Drive access"""
    return await _complete_sign_in(db, code, state, error, store_tokens=True)


@router.get("/me")
async def me(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await AccountService(db).get_profile(current_user["id"])
    if profile is None:
        raise NotFoundError("Profile not found")
    data = profile.to_dict()
    data["drive_connected"] = await DriveCredentialsService(db).is_connected(profile.id)
    return data


@router.post("/logout")
async def logout():
    response = JSONResponse(content={"success": True})
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response
