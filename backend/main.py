"""
AssetDrop - Client Asset Collection
Shareable collection links | Google Drive storage | Review & notify
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
from dotenv import load_dotenv

load_dotenv()

from core.config import settings

# Setup structured logging
from core.logging import setup_logging, get_logger, log_request

setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT == "json"
)

logger = get_logger("assetdrop.main")

from core.exceptions import AssetDropError
from core.sentry import init_sentry, capture_exception
from middleware.rate_limit import limiter, rate_limit_exceeded_handler
from services.review_batcher_service import review_batcher
from api import (
    auth_router,
    google_drive_router,
    health_router,
    notifications_router,
    portal_router,
    projects_router,
    submissions_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("AssetDrop starting...", action="app_startup")
    init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT)
    if not settings.TESTING:
        review_batcher.initialize()
    yield
    review_batcher.shutdown()
    logger.info("AssetDrop shutting down...", action="app_shutdown")


app = FastAPI(
    title="AssetDrop",
    description="Collect, review and approve client assets stored in Google Drive",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    if request.url.path == "/health":
        return await call_next(request)

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    if request.url.path.startswith("/api/"):
        await log_request(
            request=request,
            response_status=response.status_code,
            duration_ms=duration_ms
        )

    return response


# ===========================================
# Error handlers
# ===========================================

@app.exception_handler(AssetDropError)
async def assetdrop_error_handler(request: Request, exc: AssetDropError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path}: {exc.message}", action="request_failed",
                     status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}", action="unhandled_error")
    capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
        for err in exc.errors()
    ]


# ===========================================
# Routers
# ===========================================

app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(google_drive_router, prefix="/api")
app.include_router(projects_router, prefix="/api")
app.include_router(submissions_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(portal_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
