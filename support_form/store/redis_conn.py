from functools import lru_cache

from redis import ConnectionPool, Redis
from support_form.settings import settings


@lru_cache(maxsize=None)
def _pool(url: str, decode_responses: bool) -> ConnectionPool:
    return ConnectionPool.from_url(url, decode_responses=decode_responses)


def get_redis(decode_responses: bool = True) -> Redis:
    """Client on a pool shared per process. RQ needs raw bytes; everything else reads text."""
    return Redis(connection_pool=_pool(settings.REDIS_URL, decode_responses))
