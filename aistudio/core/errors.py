"""Error normalization and handlers."""

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from aistudio.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.extra = extra or {}


class ConfigurationError(AppError):
    """A vendor key or secret the route needs is not set."""
    code = "configuration_error"
    status_code = 500


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class QuotaExceededError(AppError):
    """Free allowance for a usage kind is used up; body carries the counters."""
    code = "quota_exceeded"
    status_code = 429

    def __init__(self, message: str, *, limit: Optional[int], used: int, remaining: int, upgrade_url: str = "/dashboard"):
        super().__init__(
            message,
            extra={"limit": limit, "used": used, "remaining": remaining, "upgrade_url": upgrade_url},
        )
        self.limit = limit
        self.used = used
        self.remaining = remaining
        self.upgrade_url = upgrade_url


class UpstreamError(AppError):
    """A vendor call failed; the vendor's own text is passed through."""
    code = "upstream_error"
    status_code = 500

    def __init__(self, message: str, *, vendor: str, status_code: Optional[int] = None, vendor_error: Optional[str] = None):
        super().__init__(
            message,
            status_code=status_code,
            extra={"vendor": vendor, "vendor_error": vendor_error},
        )
        self.vendor = vendor
        self.vendor_error = vendor_error


class SignatureVerificationError(AppError):
    code = "invalid_signature"
    status_code = 400


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, extra: Optional[Dict[str, Any]] = None) -> dict:
    payload = {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }
    if extra:
        for key, value in extra.items():
            if value is not None or key == "limit":
                payload[key] = value
    return payload


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.extra)
    logger = logging.getLogger("aistudio")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    payload = _error_payload("validation_error", message, rid)
    logging.getLogger("aistudio").warning(
        "request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400}
    )
    response = JSONResponse(status_code=400, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("aistudio")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("aistudio")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
