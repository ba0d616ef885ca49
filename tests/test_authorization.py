import pytest

from gateway.core.auth import create_session_token
from gateway.core.errors import AuthenticationError, AuthorizationError
from gateway.core.security import CallerRegistry
from gateway.services.authorization import (
    ADMIN,
    APP,
    FRONTEND,
    USER,
    RequestCredentials,
    proxy_policy,
    quiz_create_policy,
    quiz_delete_policy,
    require_admin,
    require_principal,
)

from .conftest import ADMIN_TOKEN, APP_TOKEN, FRONTEND as FRONTEND_ORIGIN, make_settings


@pytest.fixture
def registry(settings):
    return CallerRegistry(settings.APP_TOKENS)


def test_create_policy_order_is_admin_user_app(settings, registry):
    assert quiz_create_policy(settings, registry).names == ["admin", "user", "app"]
    assert proxy_policy(settings, registry).names == ["official-frontend", "app"]


def test_admin_wins_over_other_credentials(settings, registry):
    policy = quiz_create_policy(settings, registry)
    session = create_session_token(settings, "sam")
    creds = RequestCredentials(app_token=APP_TOKEN, auth_token=session, admin_token=ADMIN_TOKEN)
    assert policy.resolve(creds).kind == ADMIN
    # The admin token is also accepted through X-Auth-Token.
    assert policy.resolve(RequestCredentials(auth_token=ADMIN_TOKEN)).kind == ADMIN


def test_user_session_beats_app_token(settings, registry):
    policy = quiz_create_policy(settings, registry)
    session = create_session_token(settings, "sam")
    principal = policy.resolve(RequestCredentials(app_token=APP_TOKEN, auth_token=session))
    assert (principal.kind, principal.subject) == (USER, "sam")


def test_app_token_is_last_resort(settings, registry):
    policy = quiz_create_policy(settings, registry)
    principal = policy.resolve(RequestCredentials(app_token=APP_TOKEN, auth_token="garbage"))
    assert (principal.kind, principal.subject, principal.rate_limit) == (APP, "alpha", 5)


def test_expired_or_foreign_session_is_ignored(settings, registry):
    policy = quiz_create_policy(settings, registry)
    expired = create_session_token(settings, "sam", ttl_minutes=-5)
    foreign = create_session_token(make_settings(SESSION_SECRET="another-secret-of-decent-length"), "eve")
    assert policy.resolve(RequestCredentials(auth_token=expired)) is None
    assert policy.resolve(RequestCredentials(auth_token=foreign)) is None


def test_no_match_is_authentication_error(settings, registry):
    policy = quiz_create_policy(settings, registry)
    with pytest.raises(AuthenticationError):
        require_principal(policy, RequestCredentials())
    with pytest.raises(AuthenticationError):
        require_principal(policy, RequestCredentials(app_token="bogus"))


def test_delete_requires_admin(settings, registry):
    policy = quiz_delete_policy(settings)
    assert require_admin(policy, RequestCredentials(admin_token=ADMIN_TOKEN)).kind == ADMIN
    session = create_session_token(settings, "sam")
    for creds in (RequestCredentials(), RequestCredentials(app_token=APP_TOKEN),
                  RequestCredentials(auth_token=session)):
        with pytest.raises(AuthorizationError):
            require_admin(policy, creds)


def test_admin_disabled_without_configured_token(registry):
    settings = make_settings(ADMIN_TOKEN=None)
    policy = quiz_create_policy(settings, registry)
    assert policy.resolve(RequestCredentials(admin_token="anything")) is None


def test_frontend_origin_bypasses_token_with_its_own_quota(settings, registry):
    policy = proxy_policy(settings, registry)
    principal = policy.resolve(RequestCredentials(origin=FRONTEND_ORIGIN, app_token="bogus"))
    assert (principal.kind, principal.subject, principal.rate_limit) == (FRONTEND, "official-frontend", 3)
    by_referer = policy.resolve(RequestCredentials(referer=FRONTEND_ORIGIN + "/OpenNotesAPI/"))
    assert by_referer.kind == FRONTEND
    assert policy.resolve(RequestCredentials(origin="https://nagusamecs.github.io.evil.test")) is None
