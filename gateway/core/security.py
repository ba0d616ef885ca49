"""
Caller credential checks: app token registry, secret comparison and origin matching.
"""
import hmac
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional
from urllib.parse import urlsplit

from ..models.callers import CallerRegistration

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def secrets_match(presented: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time comparison; empty values never match."""
    if not presented or not expected:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def extract_app_token(app_token_header: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """Token from X-App-Token, else from a 'Bearer ' Authorization header."""
    if app_token_header:
        return app_token_header
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):] or None
    return None


@dataclass(frozen=True)
class TokenValidation:
    valid: bool
    caller_id: Optional[str] = None
    config: Optional[CallerRegistration] = None


INVALID_TOKEN = TokenValidation(valid=False)


class CallerRegistry:
    """Registry of authorized callers keyed by caller id."""

    def __init__(self, callers: Mapping[str, CallerRegistration]):
        self._callers = dict(callers)

    def __len__(self) -> int:
        return len(self._callers)

    def validate(self, token: Optional[str]) -> TokenValidation:
        if not token:
            return INVALID_TOKEN
        # Scan every entry so timing does not reveal the match position.
        match = INVALID_TOKEN
        for caller_id, config in self._callers.items():
            if secrets_match(token, config.secret.get_secret_value()) and config.active:
                if not match.valid:
                    match = TokenValidation(valid=True, caller_id=caller_id, config=config)
        if not match.valid:
            logger.info("Rejected app token")
        return match


def origin_of(url: Optional[str]) -> Optional[str]:
    """Normalize a URL or Origin header to scheme://host[:port]."""
    if not url:
        return None
    parts = urlsplit(url.strip())
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def host_of(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return urlsplit(url.strip()).hostname


def request_from_host(host: str, origin: Optional[str], referer: Optional[str]) -> bool:
    """True when Origin or Referer points at exactly ``host``."""
    host = host.lower()
    return host_of(origin) == host or host_of(referer) == host


def request_from_origins(allowed: Iterable[str], origin: Optional[str], referer: Optional[str]) -> bool:
    allowed_origins = {o for o in (origin_of(a) for a in allowed) if o}
    return origin_of(origin) in allowed_origins or origin_of(referer) in allowed_origins
