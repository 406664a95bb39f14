import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

import redis.asyncio as aioredis

from hookflow.constants import (
    MANUAL_EXECUTION_LIMIT,
    RATE_LIMIT_ENTERPRISE_ASYNC,
    RATE_LIMIT_ENTERPRISE_SYNC,
    RATE_LIMIT_FREE_ASYNC,
    RATE_LIMIT_FREE_SYNC,
    RATE_LIMIT_PRO_ASYNC,
    RATE_LIMIT_PRO_SYNC,
    RATE_LIMIT_TEAM_ASYNC,
    RATE_LIMIT_TEAM_SYNC,
    RATE_LIMIT_TEST_MULTIPLIER,
    RATE_LIMIT_WINDOW_MS,
    REDIS_URL,
)
from hookflow.enums import RedisChannel, SubscriptionPlan, TriggerType

# Executions per window, by plan and by sync/async execution
PLAN_RATE_LIMITS = {
    SubscriptionPlan.FREE.value: {"sync": RATE_LIMIT_FREE_SYNC, "async": RATE_LIMIT_FREE_ASYNC},
    SubscriptionPlan.PRO.value: {"sync": RATE_LIMIT_PRO_SYNC, "async": RATE_LIMIT_PRO_ASYNC},
    SubscriptionPlan.TEAM.value: {"sync": RATE_LIMIT_TEAM_SYNC, "async": RATE_LIMIT_TEAM_ASYNC},
    SubscriptionPlan.ENTERPRISE.value: {
        "sync": RATE_LIMIT_ENTERPRISE_SYNC,
        "async": RATE_LIMIT_ENTERPRISE_ASYNC,
    },
}

# Conditional increment: the counter is only bumped while under the ceiling,
# so concurrent callers can never push it past the limit
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local ttl_ms = tonumber(ARGV[2])

local current = tonumber(redis.call('GET', key) or '0')
if current >= limit then
    return {0, current}
end

current = redis.call('INCR', key)
if current == 1 then
    redis.call('PEXPIRE', key, ttl_ms)
end
return {1, current}
"""


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check for one (user, trigger type) window."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime

    def to_dict(self) -> dict:
        return {
            "limit": self.limit,
            "remaining": self.remaining,
            "resetAt": self.reset_at.isoformat(),
        }


class RateLimiter:
    """Fixed window rate limiter for workflow executions, tiered by subscription plan"""

    def __init__(self, window_ms: int = RATE_LIMIT_WINDOW_MS):
        self.redis_client: Optional[aioredis.Redis] = None
        self.window_ms = window_ms

    async def _get_redis(self) -> aioredis.Redis:
        """Get or create Redis connection"""
        if self.redis_client is None:
            self.redis_client = await aioredis.from_url(
                REDIS_URL, decode_responses=True
            )
        return self.redis_client

    def get_limit(
        self,
        subscription,
        trigger_type: TriggerType,
        is_async: bool = True,
        is_test_mode: bool = False,
    ) -> int:
        """Ceiling for one window given the user's subscription.

        Users without a subscription get the free plan. Test traffic gets a
        larger ceiling because it is counted in a bucket of its own.
        """
        if trigger_type == TriggerType.MANUAL:
            return MANUAL_EXECUTION_LIMIT

        plan = getattr(subscription, "plan", None) or SubscriptionPlan.FREE.value
        limits = PLAN_RATE_LIMITS.get(plan, PLAN_RATE_LIMITS[SubscriptionPlan.FREE.value])
        limit = limits["async" if is_async else "sync"]

        if is_test_mode:
            return limit * RATE_LIMIT_TEST_MULTIPLIER
        return limit

    def _current_window(self) -> tuple[int, datetime]:
        """Start of the current window (ms since epoch) and when it resets.

        Windows are aligned to multiples of window_ms so every process agrees
        on the boundaries without coordination.
        """
        now_ms = int(time.time() * 1000)
        window_start = now_ms - (now_ms % self.window_ms)
        reset_at = datetime.fromtimestamp((window_start + self.window_ms) / 1000, UTC)
        return window_start, reset_at

    def _key(
        self, user_id: int, trigger_type: TriggerType, window_start: int, is_test_mode: bool
    ) -> str:
        scope = "test" if is_test_mode else "live"
        return (
            f"{RedisChannel.WEBHOOK_RATE_LIMIT.value}:{scope}:{user_id}:"
            f"{TriggerType(trigger_type).value}:{window_start}"
        )

    async def check_rate_limit_with_subscription(
        self,
        user_id: int,
        subscription,
        trigger_type: TriggerType,
        is_test_mode: bool = False,
        is_async: bool = True,
    ) -> RateLimitResult:
        """
        Count one execution against the user's window if it fits.

        Args:
            user_id: Owner of the workflow being executed
            subscription: The user's highest priority subscription, or None
            trigger_type: Which kind of trigger started the execution
            is_test_mode: Count against the separate test bucket
            is_async: Use the async (queued) ceiling instead of the sync one

        Returns:
            RateLimitResult; when allowed is False nothing was counted

        Raises:
            redis.exceptions.RedisError: If Redis is unreachable
        """
        limit = self.get_limit(subscription, trigger_type, is_async, is_test_mode)
        window_start, reset_at = self._current_window()
        key = self._key(user_id, trigger_type, window_start, is_test_mode)

        redis_client = await self._get_redis()
        allowed, count = await redis_client.eval(
            FIXED_WINDOW_SCRIPT,
            1,
            key,
            limit,
            self.window_ms * 2,  # outlive the window so late readers still see it
        )

        return RateLimitResult(
            allowed=bool(int(allowed)),
            limit=limit,
            remaining=max(0, limit - int(count)),
            reset_at=reset_at,
        )

    async def get_rate_limit_status(
        self,
        user_id: int,
        subscription,
        trigger_type: TriggerType,
        is_test_mode: bool = False,
        is_async: bool = True,
    ) -> RateLimitResult:
        """Read the current window without counting anything."""
        limit = self.get_limit(subscription, trigger_type, is_async, is_test_mode)
        window_start, reset_at = self._current_window()
        key = self._key(user_id, trigger_type, window_start, is_test_mode)

        redis_client = await self._get_redis()
        count = int(await redis_client.get(key) or 0)

        return RateLimitResult(
            allowed=count < limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=reset_at,
        )

    async def close(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None


# Global rate limiter instance
rate_limiter = RateLimiter()
