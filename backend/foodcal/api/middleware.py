"""
Request logging, body size limit and error handlers for the Food Calorie API.
"""

import logging
import time
from uuid import uuid4

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from foodcal.core.exceptions import AnalyzeError, GENERIC_ERROR_MESSAGE, MissingImageError

logger = logging.getLogger("foodcal.middleware")

BODY_TOO_LARGE_MESSAGE = "Request body too large"
INVALID_JSON_MESSAGE = "Request body is not valid JSON"
INVALID_BODY_MESSAGE = "Invalid request body"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with an id and timing; adds X-Request-ID / X-Process-Time."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id

        logger.info("Request started %s %s id=%s", request.method, request.url.path, request_id)
        start_time = time.time()

        try:
            response: Response = await call_next(request)
        except Exception:
            process_time = time.time() - start_time
            logger.error(
                "Request failed %s %s id=%s after %.4fs",
                request.method,
                request.url.path,
                request_id,
                process_time,
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            "Request completed %s %s id=%s status=%s in %.4fs",
            request.method,
            request.url.path,
            request_id,
            response.status_code,
            process_time,
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response


class BodySizeLimitMiddleware:
    """
    Rejects request bodies above max_bytes (base64 photos get big).

    A declared Content-Length over the limit is refused before anything is read;
    chunked bodies are counted as they arrive and cut off once they pass it.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None:
            try:
                too_large = int(length) > self.max_bytes
            except ValueError:
                too_large = False
            if too_large:
                logger.warning("Rejected %s bytes on %s (limit %s)", length, scope.get("path"), self.max_bytes)
                response = JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"error": BODY_TOO_LARGE_MESSAGE},
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning("Streamed body on %s passed %s bytes", scope.get("path"), self.max_bytes)
                    # FastAPI re-raises HTTPException from body reading untouched
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=BODY_TOO_LARGE_MESSAGE,
                    )
            return message

        await self.app(scope, limited_receive, send)


# ============================================================================
# Error Handlers
# ============================================================================


async def analyze_error_handler(request: Request, exc: AnalyzeError):
    if exc.http_status >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Body validation failures keep the {"error": message} shape, always as a 400."""
    errors = exc.errors()
    logger.warning("Validation error on %s: %s", request.url.path, errors)

    if any(e.get("type") == "json_invalid" for e in errors):
        message = INVALID_JSON_MESSAGE
    elif any("imageBase64" in e.get("loc", ()) for e in errors):
        message = MissingImageError.default_message
    else:
        message = INVALID_BODY_MESSAGE

    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Error processing %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": GENERIC_ERROR_MESSAGE},
    )
