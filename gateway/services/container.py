"""
Wiring of the gateway's components, chosen once at startup from settings.

Nothing downstream branches on which backends were picked here.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
import redis
from sqlalchemy.engine import Engine

from ..core.cache import create_redis_client
from ..core.config import Settings
from ..core.database import init_db, make_engine, make_sessionmaker
from ..core.rate_limit import InMemoryWindowStore, RateLimiter, RedisWindowStore, WindowStore
from ..core.security import CallerRegistry
from .auth_codes import AuthCodeBroker, CodeStore, InMemoryCodeStore, RedisCodeStore
from .authorization import AuthorizationPolicy, proxy_policy, quiz_create_policy, quiz_delete_policy
from .quiz_store import InMemoryQuizStore, QuizStore, SqlQuizStore
from .seed import seed_quizzes
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    registry: CallerRegistry
    rate_limiter: RateLimiter
    broker: AuthCodeBroker
    quiz_store: QuizStore
    upstream: UpstreamClient
    proxy_policy: AuthorizationPolicy
    create_policy: AuthorizationPolicy
    delete_policy: AuthorizationPolicy
    engine: Optional[Engine] = None

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


def build_services(
    settings: Settings,
    redis_client: Optional[redis.Redis] = None,
    quiz_store: Optional[QuizStore] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    registry = CallerRegistry(settings.APP_TOKENS)

    window_store: WindowStore
    code_store: CodeStore
    if settings.STATE_BACKEND == "redis":
        client = redis_client or create_redis_client(settings)
        window_store = RedisWindowStore(client)
        code_store = RedisCodeStore(client)
    else:
        window_store = InMemoryWindowStore()
        code_store = InMemoryCodeStore()

    engine = None
    if quiz_store is None:
        if settings.QUIZ_STORE_URL:
            engine = make_engine(settings.QUIZ_STORE_URL, echo=settings.QUIZ_STORE_ECHO)
            init_db(engine)
            quiz_store = SqlQuizStore(make_sessionmaker(engine))
        else:
            logger.warning("QUIZ_STORE_URL not set, quizzes are kept in memory only")
            quiz_store = InMemoryQuizStore()
    if settings.SEED_QUIZZES:
        seed_quizzes(quiz_store)

    desktop_secret = settings.DESKTOP_CLIENT_SECRET.get_secret_value() if settings.DESKTOP_CLIENT_SECRET else None
    if desktop_secret is None:
        logger.warning("DESKTOP_CLIENT_SECRET not set, auth code redemption is disabled")

    logger.info(
        "Gateway state backend=%s, quiz store=%s, %d registered callers",
        settings.STATE_BACKEND, type(quiz_store).__name__, len(registry),
    )
    return Services(
        settings=settings,
        registry=registry,
        rate_limiter=RateLimiter(
            window_store,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            default_limit=settings.RATE_LIMIT_DEFAULT,
            clock=clock,
        ),
        broker=AuthCodeBroker(
            code_store,
            allowed_origins=settings.AUTH_CODE_ALLOWED_ORIGINS,
            desktop_secret=desktop_secret,
            ttl_seconds=settings.AUTH_CODE_TTL_SECONDS,
            clock=clock,
        ),
        quiz_store=quiz_store,
        upstream=UpstreamClient(settings, transport=upstream_transport),
        proxy_policy=proxy_policy(settings, registry),
        create_policy=quiz_create_policy(settings, registry),
        delete_policy=quiz_delete_policy(settings),
        engine=engine,
    )
