"""
HTTP middleware: error bodies, request ids and request timing.

Every error leaving the service is JSON with an `error` string, the request
id and the status code. Service errors keep their own status; anything else
is a 500 carrying the exception message.
"""
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Tuple

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.exceptions import MatchServiceError, error_body
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def resolve_error(exc: Exception) -> Tuple[int, Dict[str, Any]]:
    """Status code and body for an exception that escaped a route"""
    if isinstance(exc, MatchServiceError):
        return exc.status_code, error_body(exc)
    if isinstance(exc, HTTPException):
        return exc.status_code, {"error": str(exc.detail), "error_code": "HTTP_ERROR"}
    if isinstance(exc, ValidationError):
        # a stored row that no longer fits its model
        return 500, {"error": "Data validation failed", "error_code": "DATA_VALIDATION_ERROR",
                     "details": {"message": str(exc)}}
    return 500, {"error": str(exc) or exc.__class__.__name__, "error_code": "INTERNAL_ERROR"}


def error_response(request_id: str, status_code: int, body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": request_id,
            "status_code": status_code,
            **body,
        },
        headers={REQUEST_ID_HEADER: request_id},
    )


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns the request id and turns escaped exceptions into error bodies"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as exc:
            status_code, body = resolve_error(exc)
            context = {
                "request_id": request_id,
                "status_code": status_code,
                "error_code": body.get("error_code"),
                "exception_type": exc.__class__.__name__,
            }
            where = f"{request.method} {request.url.path}"
            if status_code < 500:
                logger.warning(f"{where} rejected: {body['error']}", extra=context)
            elif isinstance(exc, MatchServiceError):
                logger.error(f"{where} failed: {body['error']}", extra=context)
            else:
                logger.exception(f"Unhandled exception in {where}", extra=context)
            return error_response(request_id, status_code, body)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and stamps X-Processing-Time"""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        context = {"request_id": getattr(request.state, "request_id", None), "status_code": response.status_code}
        line = f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s"
        if elapsed > self.slow_request_threshold:
            logger.warning(f"Slow request: {line}", extra=context)
        else:
            logger.info(line, extra=context)

        response.headers["X-Processing-Time"] = f"{elapsed:.3f}"
        return response
