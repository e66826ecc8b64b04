"""
AssetDrop - Structured Logging Configuration
"""
import logging
import sys
import json
from datetime import datetime
from fastapi import Request
import traceback


# Keyword fields promoted to top-level keys in the JSON record
STRUCTURED_FIELDS = [
    "user_id",
    "project_id",
    "asset_id",
    "request_id",
    "action",
    "duration_ms",
    "status_code",
]


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)
        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


class AssetDropLogger:
    """Logger wrapper that accepts structured keyword fields"""

    def __init__(self, name: str = "assetdrop"):
        self.logger = logging.getLogger(name)

    def _split(self, kwargs: dict) -> dict:
        extra = {}
        for key in STRUCTURED_FIELDS:
            if key in kwargs:
                value = kwargs.pop(key)
                extra[key] = str(value) if key.endswith("_id") and value is not None else value
        if kwargs:
            extra["extra_data"] = kwargs
        return extra

    def _log(self, level: int, message: str, **kwargs):
        self.logger.log(level, message, extra=self._split(kwargs))

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback"""
        self.logger.exception(message, extra=self._split(kwargs))


def setup_logging(level: str = "INFO", json_format: bool = True):
    """
    Route every logger to stdout.

    json_format switches between one JSON object per line (production) and a
    plain single-line format for local development.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JSONFormatter() if json_format
        else logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    # Third-party chatter
    for noisy in ("uvicorn", "uvicorn.access", "httpx", "httpcore", "aiohttp",
                  "sqlalchemy.engine", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str = "assetdrop") -> AssetDropLogger:
    """Get an AssetDrop logger instance"""
    return AssetDropLogger(name)


async def log_request(request: Request, response_status: int, duration_ms: float):
    """Log API request"""
    logger = get_logger("assetdrop.api")
    logger.info(
        f"{request.method} {request.url.path}",
        status_code=response_status,
        duration_ms=round(duration_ms, 2),
        request_id=request.headers.get("X-Request-ID"),
        action=f"api_{request.method.lower()}",
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent", "")[:100]
    )
