import redis

from .config import Settings


def create_redis_client(settings: Settings) -> redis.Redis:
    """Shared Redis connection for rate windows and auth codes."""
    return redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
