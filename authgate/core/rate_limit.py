"""
Rate Limiting for authgate.

Fixed-window counters from the `limits` library (MemoryStorage with the
fixed-window strategy), keyed by (tier, client address), in three
independently configured tiers:

    general  every /api request               100 per 15 minutes
    auth     login / registration endpoints   5 failures per 15 minutes
    strict   sensitive admin operations       10 per hour

The general tier is applied by RateLimitMiddleware. Endpoints join the auth
or strict tier through a route dependency:

    @router.post("/login", dependencies=[Depends(rate_limit(TIER_AUTH))])

The auth tier reserves a slot before the handler runs and hands it back when
the handler succeeds, so only failed attempts stay counted and concurrent
attempts hold their slots while in flight.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from authgate.core.errors import RateLimitError, error_response

logger = logging.getLogger(__name__)


TIER_GENERAL = "general"
TIER_AUTH = "auth"
TIER_STRICT = "strict"

DEFAULT_MESSAGE = "Too many requests, please try again later"


# =============================================================================
# Client Identification
# =============================================================================

def client_address(request: Request, trust_proxy_headers: bool = False) -> str:
    """
    Address used to key rate-limit windows.

    X-Forwarded-For is client-controlled, so its first hop is only used when
    the service runs behind a proxy that sets it.
    """
    if trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    return get_remote_address(request)


# =============================================================================
# Tiers
# =============================================================================

@dataclass(frozen=True)
class RateLimitTier:
    """One throttling policy, written in the limits notation ("5/15 minutes")."""
    name: str
    item: RateLimitItem
    count_failures_only: bool = False
    message: str = DEFAULT_MESSAGE

    @classmethod
    def from_string(
        cls,
        name: str,
        spec: str,
        count_failures_only: bool = False,
        message: Optional[str] = None,
    ) -> "RateLimitTier":
        return cls(
            name=name,
            item=parse(spec),
            count_failures_only=count_failures_only,
            message=message or DEFAULT_MESSAGE,
        )

    @property
    def limit(self) -> int:
        return self.item.amount

    @property
    def window_seconds(self) -> int:
        return self.item.get_expiry()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    tier: RateLimitTier
    count: int
    remaining: int
    reset_at: float
    now: float

    @property
    def exceeded(self) -> bool:
        """The counter is past the ceiling, counting this request."""
        return self.count > self.tier.limit

    @property
    def reset_after(self) -> int:
        return max(0, math.ceil(self.reset_at - self.now))

    def headers(self, rejected: bool = False) -> dict[str, str]:
        """Standard RateLimit-* headers (no legacy X-RateLimit-*)."""
        headers = {
            "RateLimit-Limit": str(self.tier.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if rejected or not self.allowed:
            headers["Retry-After"] = str(self.reset_after)
        return headers


# =============================================================================
# Limiter
# =============================================================================

class RateLimiter:
    """
    Applies named tiers against an injected `limits` storage.

    The storage defaults to an in-process MemoryStorage; any other `limits`
    storage (redis://, memcached://) can be passed in instead.
    """

    def __init__(
        self,
        tiers: list[RateLimitTier],
        storage: Optional[Storage] = None,
        enabled: bool = True,
        trust_proxy_headers: bool = False,
    ):
        self.tiers = {tier.name: tier for tier in tiers}
        self.storage = storage if storage is not None else MemoryStorage()
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.enabled = enabled
        self.trust_proxy_headers = trust_proxy_headers

    @classmethod
    def from_settings(cls, settings, storage: Optional[Storage] = None) -> "RateLimiter":
        tiers = [
            RateLimitTier.from_string(TIER_GENERAL, settings.rate_limit_general),
            RateLimitTier.from_string(
                TIER_AUTH,
                settings.rate_limit_auth,
                count_failures_only=True,
                message="Too many failed login or registration attempts, please try again later",
            ),
            RateLimitTier.from_string(
                TIER_STRICT,
                settings.rate_limit_strict,
                message="Too many sensitive operations, please try again later",
            ),
        ]
        return cls(
            tiers,
            storage=storage,
            enabled=settings.rate_limit_enabled,
            trust_proxy_headers=settings.trust_proxy_headers,
        )

    def tier(self, name: str) -> RateLimitTier:
        try:
            return self.tiers[name]
        except KeyError:
            raise ValueError(f"Unknown rate limit tier: {name}") from None

    def client_for(self, request: Request) -> str:
        return client_address(request, self.trust_proxy_headers)

    def _decision(self, tier: RateLimitTier, client: str, allowed: bool, count: int) -> RateLimitDecision:
        stats = self.strategy.get_window_stats(tier.item, tier.name, client)
        return RateLimitDecision(
            allowed=allowed,
            tier=tier,
            count=count,
            remaining=stats.remaining,
            reset_at=stats.reset_time,
            now=time.time(),
        )

    def hit(self, tier_name: str, client: str) -> RateLimitDecision:
        """Count one request, then decide. Exactly `limit` hits per window are allowed."""
        tier = self.tier(tier_name)
        allowed = self.strategy.hit(tier.item, tier.name, client)
        count = self.storage.get(tier.item.key_for(tier.name, client))
        return self._decision(tier, client, allowed, count)

    def reserve(self, tier_name: str, client: str) -> RateLimitDecision:
        """
        Take a slot for a request whose outcome is not known yet.

        Counted failures and attempts still in flight share one counter. An
        attempt is admitted while the attempts ahead of it are within the
        ceiling: after `limit` failures one more attempt still runs, and its
        outcome decides. A failure that leaves the decision `exceeded` is
        answered with 429; a success goes through release().
        """
        tier = self.tier(tier_name)
        count = self.storage.incr(tier.item.key_for(tier.name, client), tier.item.get_expiry())
        return self._decision(tier, client, count - 1 <= tier.limit, count)

    def release(self, tier_name: str, client: str) -> None:
        """Hand back a reserved slot."""
        tier = self.tier(tier_name)
        self.storage.decr(tier.item.key_for(tier.name, client))

    def clear(self, tier_name: str, client: str) -> None:
        tier = self.tier(tier_name)
        self.strategy.clear(tier.item, tier.name, client)


def _rejection(request: Request, client: str, decision: RateLimitDecision) -> RateLimitError:
    logger.warning(
        "Rate limit exceeded: tier=%s client=%s on %s %s",
        decision.tier.name,
        client,
        request.method,
        request.url.path,
        extra={"client_ip": client, "path": request.url.path, "tier": decision.tier.name},
    )
    return RateLimitError(decision.tier.message, headers=decision.headers(rejected=True))


# =============================================================================
# Route Dependency
# =============================================================================

def rate_limit(tier_name: str):
    """
    Put an endpoint in a rate-limit tier.

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit(TIER_AUTH))])
        async def login(...):
            ...

    List it before identity and permission dependencies so throttling runs
    first. For a failures-only tier, an endpoint that raises has failed and
    one that returns has succeeded.
    """
    async def limit_route(request: Request, response: Response):
        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or not limiter.enabled:
            yield
            return

        tier = limiter.tier(tier_name)
        client = limiter.client_for(request)
        if tier.count_failures_only:
            decision = limiter.reserve(tier.name, client)
        else:
            decision = limiter.hit(tier.name, client)
        if not decision.allowed:
            raise _rejection(request, client, decision)

        response.headers.update(decision.headers())
        try:
            yield
        except Exception as exc:
            if tier.count_failures_only and decision.exceeded:
                raise _rejection(request, client, decision) from exc
            raise
        else:
            if tier.count_failures_only:
                limiter.release(tier.name, client)

    return limit_route


# =============================================================================
# Middleware
# =============================================================================

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply the general tier to every request under `prefix`.

    The limiter is read from app.state.rate_limiter on each request. When a
    route tier already set RateLimit-* headers, the tighter of the two wins.
    """

    def __init__(self, app, default_tier: str = TIER_GENERAL, prefix: str = "/api"):
        super().__init__(app)
        self.default_tier = default_tier
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or not limiter.enabled or not request.url.path.startswith(self.prefix):
            return await call_next(request)

        client = limiter.client_for(request)
        decision = limiter.hit(self.default_tier, client)
        if not decision.allowed:
            return error_response(_rejection(request, client, decision))

        response = await call_next(request)

        route_remaining = response.headers.get("RateLimit-Remaining")
        if route_remaining is None or int(route_remaining) > decision.remaining:
            response.headers.update(decision.headers())
        return response
