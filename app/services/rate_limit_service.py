"""
Rate Limit Service

Per-policy moving-window limits for sensitive endpoints (signup, login,
password reset, orders, checkout), built on ``limits``, the engine behind
slowapi. Windows live in Redis when REDIS_URL is set and in process memory
otherwise.

Clients are identified by their socket address (slowapi's
``get_remote_address``). Forwarded-for headers are only honoured when uvicorn
is started with ``--forwarded-allow-ips`` for a trusted proxy, which rewrites
the client address before it reaches the app.

Redis being unreachable never blocks a request; the limiter fails open and
logs a warning. The app-wide slowapi limiter (app.middleware.rate_limit)
still applies.
"""

import logging
import math
import time
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItem, RateLimitItemPerMinute, RateLimitItemPerHour
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from redis.exceptions import RedisError
from slowapi.util import get_remote_address

from app.config import settings
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    limit: RateLimitItem

    @property
    def max_requests(self) -> int:
        return self.limit.amount

    @property
    def window_seconds(self) -> int:
        return self.limit.get_expiry()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int
    remaining: int


POLICIES = {
    "signup": RateLimitPolicy("signup", RateLimitItemPerHour(5)),
    "login": RateLimitPolicy("login", RateLimitItemPerMinute(5, 15)),
    "forgot_password": RateLimitPolicy("forgot_password", RateLimitItemPerHour(3)),
    "order": RateLimitPolicy("order", RateLimitItemPerMinute(20)),
    "checkout": RateLimitPolicy("checkout", RateLimitItemPerMinute(10)),
}


def build_storage(redis_url: str | None) -> Storage:
    if not redis_url:
        return MemoryStorage()
    # redis-py's asyncio client, already a dependency for the global limiter
    return storage_from_string(f"async+{redis_url}", implementation="redispy")


class RateLimiter:
    """Moving-window limiter; pass ``storage`` to share or fake the backend."""

    def __init__(self, storage: Storage | None = None, redis_url: str | None = None):
        self.storage = storage or build_storage(redis_url if redis_url is not None else settings.redis_url)
        self.strategy = MovingWindowRateLimiter(self.storage)

    async def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        try:
            allowed = await self.strategy.hit(policy.limit, policy.name, identifier)
            stats = await self.strategy.get_window_stats(policy.limit, policy.name, identifier)
        except (RedisError, OSError) as e:
            logger.warning("Rate limiter unavailable (%s); allowing %s request", e, policy.name)
            return RateLimitDecision(allowed=True, retry_after=0, remaining=policy.max_requests)

        if allowed:
            return RateLimitDecision(allowed=True, retry_after=0, remaining=stats.remaining)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        return RateLimitDecision(allowed=False, retry_after=retry_after, remaining=0)

    async def reset(self) -> None:
        await self.storage.reset()


rate_limiter = RateLimiter()


def client_address(request: Request) -> str:
    return get_remote_address(request)


async def enforce(identifier: str, policy_name: str, limiter: RateLimiter | None = None) -> RateLimitDecision:
    """Check ``policy_name`` for ``identifier`` and raise RateLimitExceededError when over."""
    policy = POLICIES[policy_name]
    decision = await (limiter or rate_limiter).check(identifier, policy)
    if not decision.allowed:
        logger.warning(
            "Rate limit exceeded: policy=%s identifier=%s retry_after=%d",
            policy.name,
            identifier,
            decision.retry_after,
        )
        raise RateLimitExceededError(retry_after=decision.retry_after)
    return decision


def rate_limit(policy_name: str):
    """Dependency factory limiting a route per client address."""
    if policy_name not in POLICIES:
        raise ValueError(f"Unknown rate limit policy: {policy_name}")

    async def _rate_limit(request: Request) -> None:
        limiter = getattr(request.app.state, "rate_limiter", None)
        await enforce(client_address(request), policy_name, limiter)

    return _rate_limit
