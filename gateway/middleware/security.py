"""
Hardening and CORS headers on every response, including unexpected failures.
"""
import logging
from typing import Dict, Optional

import sentry_sdk
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from ..core.config import Settings

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Content-Security-Policy": "default-src 'none'",
}


def allowed_origin(settings: Settings, origin: Optional[str]) -> Optional[str]:
    """Value for Access-Control-Allow-Origin: ``*``, the echoed origin, or None."""
    if "*" in settings.CORS_ORIGINS:
        return "*"
    if origin and origin in settings.CORS_ORIGINS:
        return origin
    return None


def cors_headers(settings: Settings, origin: Optional[str]) -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Methods": ", ".join(settings.CORS_ALLOW_METHODS),
        "Access-Control-Allow-Headers": ", ".join(settings.CORS_ALLOW_HEADERS),
        "Access-Control-Max-Age": str(settings.CORS_MAX_AGE),
    }
    allow = allowed_origin(settings, origin)
    if allow is not None:
        headers["Access-Control-Allow-Origin"] = allow
    if allow != "*":
        headers["Vary"] = "Origin"
    return headers


def internal_error_response(settings: Settings, exc: Exception) -> JSONResponse:
    message = "An internal error occurred" if settings.is_production() else str(exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "message": message})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Answers every OPTIONS request with 204 and stamps CORS and hardening headers.

    CORS headers already set by the inner CORSMiddleware are kept as they are.
    Unhandled errors from the app become an opaque 500 here so they carry the
    same headers.
    """

    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
                sentry_sdk.capture_exception(exc)
                response = internal_error_response(self.settings, exc)
        for name, value in cors_headers(self.settings, request.headers.get("origin")).items():
            if name.lower() not in response.headers:
                response.headers[name] = value
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response
