import uuid
from contextlib import contextmanager
from typing import Iterator

import redis

from app.domain.errors import ConcurrencyConflictError
from app.utils.retry import redis_retry
from app.utils.settings import REDIS_URL, CHECKOUT_LOCK_TTL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje lua atomowo, nie da sie wcisnac miedzy GET a DEL
#wiec nie skasujemy locka ktory w miedzyczasie wygasl i przejal go ktos inny


class LockService:
    """
    -blokada checkoutu koszyka (dwa rownolegle checkouty tego samego koszyka)
    -zwalnianie tylko przez wlasciciela tokenu
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def checkout_key(cart_id: int) -> str:
        return f"cart:{cart_id}:checkout"

    @redis_retry()
    def acquire(self, key: str, token: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key}")
        #SET cart:1:checkout "<token>" NX EX 30
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def hold(self, key: str, ttl: int = CHECKOUT_LOCK_TTL_SECONDS) -> Iterator[str]:
        token = uuid.uuid4().hex
        if not self.acquire(key, token, ttl):
            raise ConcurrencyConflictError("Another checkout for this cart is already in progress")
        try:
            yield token
        finally:
            try:
                self.release(key, token)
            except redis.RedisError as e:
                #lock i tak wygasnie po ttl
                logger.warning(f"Failed to release lock {key}: {e}")
