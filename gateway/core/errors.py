"""
Gateway error taxonomy.

Each error maps to one HTTP status. Messages are shown to callers, so they
must never carry registry contents, secrets or upstream credentials.
"""
from typing import Any, Dict, Iterable, List, Optional


class GatewayError(Exception):
    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}
        self.extra = extra

    def to_content(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.extra}


class AuthenticationError(GatewayError):
    status_code = 401
    error = "Unauthorized"


class AuthorizationError(GatewayError):
    status_code = 403
    error = "Forbidden"


class RateLimitError(GatewayError):
    status_code = 429
    error = "Rate limit exceeded"

    def __init__(self, retry_after: int, limit: int):
        super().__init__(
            f"Too many requests, retry in {retry_after} seconds",
            headers={
                "Retry-After": str(retry_after),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
            },
            retryAfter=retry_after,
        )
        self.retry_after = retry_after


class ValidationError(GatewayError):
    status_code = 400
    error = "Validation failed"

    def __init__(self, errors: Iterable[str], message: str = "Request is invalid"):
        self.errors: List[str] = list(errors)
        super().__init__(message, errors=self.errors)


class NotFoundError(GatewayError):
    status_code = 404
    error = "Not Found"


class ConflictError(GatewayError):
    """The resource existed but has been consumed (HTTP 410 Gone)."""
    status_code = 410
    error = "Gone"


class UpstreamError(GatewayError):
    status_code = 502
    error = "Upstream API error"
