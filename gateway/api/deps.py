from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from ..core.errors import RateLimitError
from ..core.rate_limit import RateLimitResult
from ..core.security import extract_app_token
from ..services.authorization import Principal, RequestCredentials, require_admin, require_principal
from ..services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_credentials(
    x_app_token: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None),
    x_admin_token: Optional[str] = Header(None),
    origin: Optional[str] = Header(None),
    referer: Optional[str] = Header(None),
) -> RequestCredentials:
    return RequestCredentials(
        app_token=extract_app_token(x_app_token, authorization),
        auth_token=x_auth_token,
        admin_token=x_admin_token,
        origin=origin,
        referer=referer,
    )


@dataclass(frozen=True)
class CallerContext:
    principal: Principal
    rate_limit: RateLimitResult


def rate_limited_caller(
    creds: RequestCredentials = Depends(get_credentials),
    services: Services = Depends(get_services),
) -> CallerContext:
    principal = require_principal(services.proxy_policy, creds)
    limiter = services.rate_limiter
    result = limiter.check(principal.subject, principal.rate_limit)
    if not result.allowed:
        raise RateLimitError(retry_after=result.retry_after(limiter.clock()), limit=result.limit)
    return CallerContext(principal=principal, rate_limit=result)


def quiz_creator(
    creds: RequestCredentials = Depends(get_credentials),
    services: Services = Depends(get_services),
) -> Principal:
    return require_principal(services.create_policy, creds)


def quiz_admin(
    creds: RequestCredentials = Depends(get_credentials),
    services: Services = Depends(get_services),
) -> Principal:
    return require_admin(services.delete_policy, creds)
