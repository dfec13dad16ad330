import logging
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...errors import AnalysisError, ThemisScanError

logger = logging.getLogger(__name__)

ERROR_LABELS = {
    400: "Invalid request",
    404: "Not found",
    405: "Method not allowed",
    413: "Payload too large",
    429: "Rate limited",
    502: "Upstream error",
    503: "Service unavailable",
}


def error_payload(
    error: str,
    message: Optional[str],
    request_id: str,
    details: Any = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": error, "message": message, "request_id": request_id}
    if details is not None:
        payload["details"] = details
    return payload


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


async def themisscan_error_handler(request: Request, exc: ThemisScanError) -> JSONResponse:
    """Map analysis errors onto the {error, message} envelope."""
    status_code = exc.status_code
    error_type = exc.error_type if isinstance(exc, AnalysisError) else type(exc).__name__
    if error_type == "CredentialError" or error_type == "ConfigError":
        label = "Configuration error"
        status_code = 500
    else:
        label = ERROR_LABELS.get(status_code, "Analysis failed")

    if status_code >= 500:
        logger.warning("Analysis failed (%s, %s): %s", status_code, error_type, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=error_payload(label, exc.message, _request_id(request), exc.detail),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    label = ERROR_LABELS.get(exc.status_code, "Request failed")
    if isinstance(detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                str(detail.get("error") or label),
                detail.get("message"),
                _request_id(request),
            ),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(label, str(detail), _request_id(request)),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_payload(
            "Invalid request",
            "Request body must be JSON with a contractText (or text) string",
            _request_id(request),
        ),
    )
