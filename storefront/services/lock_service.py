# storefront/services/lock_service.py
import redis

from storefront.utils.logging import get_logger
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie mozna wcisnac sie miedzy GET a DEL,
#wiec lock zwalnia tylko ten kto go zalozyl


class LockService:
    """
    Short lived Redis locks around a checkout.

    -acquire: SET checkout:<key>:lock <owner> NX EX <ttl>
    -release: compare-and-delete in lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def checkout_key(idempotency_key: str) -> str:
        return f"checkout:{idempotency_key}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, idempotency_key: str, owner: str, ttl: int) -> bool:
        key = self.checkout_key(idempotency_key)
        logger.info(f"Acquire lock {key} for {owner}")
        #nx - tylko jesli klucz nie istnieje, ex - wygasa sam po ttl sekundach
        return bool(self.redis.set(name=key, value=owner, nx=True, ex=ttl))

    @redis_retry()
    def release_checkout_lock(self, idempotency_key: str, owner: str) -> bool:
        key = self.checkout_key(idempotency_key)
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
