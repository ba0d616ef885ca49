"""
Who is calling: ordered, short-circuiting authorization rules.

A policy is a list of named rules. Each rule looks at the request's
credentials and either returns a ``Principal`` or passes. The first rule that
returns a principal decides; later rules never run. Keeping the order in a
list makes the priority explicit and lets each rule be tested on its own.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..core.auth import decode_session_token
from ..core.config import Settings
from ..core.errors import AuthenticationError, AuthorizationError
from ..core.security import CallerRegistry, request_from_host, secrets_match

logger = logging.getLogger(__name__)

ADMIN = "admin"
USER = "user"
APP = "app"
FRONTEND = "frontend"

FRONTEND_CALLER_ID = "official-frontend"


@dataclass(frozen=True)
class Principal:
    kind: str
    subject: str
    rate_limit: Optional[int] = None


@dataclass(frozen=True)
class RequestCredentials:
    app_token: Optional[str] = None
    auth_token: Optional[str] = None
    admin_token: Optional[str] = None
    origin: Optional[str] = None
    referer: Optional[str] = None

    def presented(self) -> List[str]:
        return [t for t in (self.admin_token, self.auth_token, self.app_token) if t]


Rule = Callable[[RequestCredentials], Optional[Principal]]


class AuthorizationPolicy:
    def __init__(self, rules: Sequence[Tuple[str, Rule]]):
        self.rules = list(rules)

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.rules]

    def resolve(self, creds: RequestCredentials) -> Optional[Principal]:
        for name, rule in self.rules:
            principal = rule(creds)
            if principal is not None:
                logger.debug("Authorization rule %s matched %s", name, principal.subject)
                return principal
        return None


def admin_rule(settings: Settings) -> Rule:
    def check(creds: RequestCredentials) -> Optional[Principal]:
        if settings.ADMIN_TOKEN is None:
            return None
        expected = settings.ADMIN_TOKEN.get_secret_value()
        # Evaluate every candidate so timing does not depend on which header carried it.
        matches = [secrets_match(token, expected) for token in creds.presented()]
        return Principal(kind=ADMIN, subject="admin") if any(matches) else None
    return check


def user_session_rule(settings: Settings) -> Rule:
    def check(creds: RequestCredentials) -> Optional[Principal]:
        session = decode_session_token(settings, creds.auth_token)
        return Principal(kind=USER, subject=session.sub) if session else None
    return check


def app_token_rule(registry: CallerRegistry) -> Rule:
    def check(creds: RequestCredentials) -> Optional[Principal]:
        validation = registry.validate(creds.app_token)
        if not validation.valid:
            return None
        return Principal(kind=APP, subject=validation.caller_id, rate_limit=validation.config.rate_limit)
    return check


def official_frontend_rule(settings: Settings) -> Rule:
    def check(creds: RequestCredentials) -> Optional[Principal]:
        if request_from_host(settings.OFFICIAL_FRONTEND_HOST, creds.origin, creds.referer):
            return Principal(kind=FRONTEND, subject=FRONTEND_CALLER_ID,
                             rate_limit=settings.OFFICIAL_FRONTEND_RATE_LIMIT)
        return None
    return check


def proxy_policy(settings: Settings, registry: CallerRegistry) -> AuthorizationPolicy:
    return AuthorizationPolicy([
        ("official-frontend", official_frontend_rule(settings)),
        ("app", app_token_rule(registry)),
    ])


def quiz_create_policy(settings: Settings, registry: CallerRegistry) -> AuthorizationPolicy:
    return AuthorizationPolicy([
        ("admin", admin_rule(settings)),
        ("user", user_session_rule(settings)),
        ("app", app_token_rule(registry)),
    ])


def quiz_delete_policy(settings: Settings) -> AuthorizationPolicy:
    return AuthorizationPolicy([("admin", admin_rule(settings))])


def require_principal(policy: AuthorizationPolicy, creds: RequestCredentials) -> Principal:
    """Resolve a caller or fail with 401."""
    principal = policy.resolve(creds)
    if principal is None:
        raise AuthenticationError(
            "Valid X-App-Token header required" if not creds.presented() else "Invalid credentials"
        )
    return principal


def require_admin(policy: AuthorizationPolicy, creds: RequestCredentials) -> Principal:
    """Resolve the admin or fail with 403, whoever else is calling."""
    principal = policy.resolve(creds)
    if principal is None or principal.kind != ADMIN:
        logger.warning("Admin-only operation refused")
        raise AuthorizationError("Admin credentials required")
    return principal
