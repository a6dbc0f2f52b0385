"""
Unified Error Governance

Centrally handles exception classification, structured logging and
metrics so every failure leaves the API in the same sanitized shape.
"""

import json
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from techstock.shared.core.config import get_settings
from techstock.shared.core.exceptions import (
    DatabaseError,
    InternalError,
    TechStockException,
)
from techstock.shared.core.ops_metrics import API_ERRORS_TOTAL

logger = structlog.get_logger()

DATABASE_ERROR_MESSAGE = "Database error occurred"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def _json_safe(value: Any) -> Any:
    if isinstance(value, Exception):
        return str(value)
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def sanitize_validation_errors(errors: Sequence[Any]) -> List[Dict[str, Any]]:
    sanitized = []
    for err in errors:
        clean = dict(err)
        if "ctx" in clean and isinstance(clean["ctx"], dict):
            clean["ctx"] = {k: _json_safe(v) for k, v in clean["ctx"].items()}
        if "input" in clean:
            clean["input"] = _json_safe(clean["input"])
        sanitized.append(clean)
    return sanitized


def classify_exception(exc: Exception, is_prod: bool) -> TechStockException:
    """Map any exception onto the public error taxonomy with a safe message."""
    if isinstance(exc, DatabaseError):
        # Backend error text never leaves the process.
        return TechStockException(
            DATABASE_ERROR_MESSAGE, code=exc.code, status_code=exc.status_code
        )
    if isinstance(exc, InternalError):
        return TechStockException(
            INTERNAL_ERROR_MESSAGE, code=exc.code, status_code=exc.status_code
        )
    if isinstance(exc, TechStockException):
        return exc
    if isinstance(exc, RequestValidationError):
        return TechStockException(
            "The request body or parameters are invalid.",
            code="validation_error",
            status_code=422,
            details={"errors": sanitize_validation_errors(exc.errors())},
        )
    if isinstance(exc, StarletteHTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if is_prod and exc.status_code >= 500:
            detail = INTERNAL_ERROR_MESSAGE
        return TechStockException(detail, code="http_error", status_code=exc.status_code)
    if isinstance(exc, ValueError):
        msg = "Invalid request parameters" if is_prod else str(exc)
        return TechStockException(msg, code="value_error", status_code=400)
    return TechStockException(
        INTERNAL_ERROR_MESSAGE, code="internal_error", status_code=500
    )


def error_body(
    status_code: int,
    message: str,
    code: str,
    error_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Error envelope shared by exception handlers and middleware."""
    return {
        "success": False,
        "status": status_code,
        "error": {
            "message": message,
            "code": code,
            "id": error_id,
            "details": details,
        },
    }


def handle_exception(
    request: Request, exc: Exception, error_id: Optional[str] = None
) -> JSONResponse:
    """
    Classifies and records exceptions, returning a standardized JSON response.
    """
    error_id = error_id or str(uuid4())
    settings = get_settings()
    is_prod = settings.ENVIRONMENT in ("production", "staging")

    public_exc = classify_exception(exc, is_prod)

    # Log the original cause for internal debugging
    if public_exc.status_code >= 500:
        logger.error(
            "api_error",
            error_id=error_id,
            code=public_exc.code,
            status_code=public_exc.status_code,
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=not isinstance(exc, TechStockException),
        )
    else:
        logger.warning(
            "api_client_error",
            error_id=error_id,
            code=public_exc.code,
            status_code=public_exc.status_code,
            path=request.url.path,
            error=public_exc.message,
        )

    API_ERRORS_TOTAL.labels(
        path=request.url.path,
        method=request.method,
        status_code=public_exc.status_code,
    ).inc()

    response_details: Optional[Dict[str, Any]] = public_exc.details or None
    if public_exc.status_code >= 500:
        response_details = None

    return JSONResponse(
        status_code=public_exc.status_code,
        content=error_body(
            public_exc.status_code,
            public_exc.message,
            public_exc.code,
            error_id=error_id,
            details=response_details,
        ),
    )
