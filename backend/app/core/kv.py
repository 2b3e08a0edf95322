"""Key-value store access (Upstash Redis over REST).

The client is created lazily so the app can start, and serve chat and market
data, without store credentials.
"""

from upstash_redis.asyncio import Redis

from app.core.config import settings


class ConfigurationError(RuntimeError):
    """Raised when the key-value store is used without credentials."""


_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        if not settings.upstash_redis_rest_url or not settings.upstash_redis_rest_token:
            raise ConfigurationError(
                "Missing Upstash Redis configuration. Set CRYPTO_CHAT_UPSTASH_REDIS_REST_URL "
                "and CRYPTO_CHAT_UPSTASH_REDIS_REST_TOKEN."
            )
        _redis = Redis(
            url=settings.upstash_redis_rest_url,
            token=settings.upstash_redis_rest_token,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.close()
        _redis = None
