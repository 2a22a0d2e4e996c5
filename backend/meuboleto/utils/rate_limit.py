import ipaddress
import time
from collections import deque
from threading import Lock
from typing import Optional

from fastapi import HTTPException, Request

from meuboleto.core.config import get_settings

_MAX_BUCKETS = 50_000
_PRUNE_INTERVAL_SECONDS = 60


class SlidingWindowRateLimiter:
    def __init__(
        self,
        *,
        max_buckets: int = _MAX_BUCKETS,
        prune_interval_seconds: int = _PRUNE_INTERVAL_SECONDS,
    ) -> None:
        self._buckets: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._max_buckets = max_buckets
        self._prune_interval_seconds = max(1, int(prune_interval_seconds))
        self._last_prune_at = 0.0

    def allow(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        if limit <= 0 or window_seconds <= 0:
            return True, 0
        now = time.monotonic()
        with self._lock:
            if len(self._buckets) > self._max_buckets or (now - self._last_prune_at) >= self._prune_interval_seconds:
                self._prune_stale(now, window_seconds)
                self._last_prune_at = now

            bucket = self._buckets.setdefault(key, deque())
            cutoff = now - window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= limit:
                return False, len(bucket)
            bucket.append(now)
            return True, len(bucket)

    def _prune_stale(self, now: float, window_seconds: int) -> None:
        """Drop buckets with no entry inside the window (called under lock)."""
        cutoff = now - window_seconds
        stale_keys = []
        for key, bucket in self._buckets.items():
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if not bucket:
                stale_keys.append(key)
        for key in stale_keys:
            del self._buckets[key]

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_prune_at = 0.0


rate_limiter = SlidingWindowRateLimiter()


def _ip_in_networks(ip: str, networks: list[str]) -> bool:
    try:
        ip_obj = ipaddress.ip_address(ip)
    except ValueError:
        return ip in networks
    for entry in networks:
        try:
            if ip_obj in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def get_client_ip(request: Request, trusted_proxy_cidrs: Optional[list[str]] = None) -> Optional[str]:
    """Client IP for audit and rate limiting.

    ``X-Forwarded-For`` is honoured only when the direct peer is a trusted proxy.
    """
    peer_ip = request.client.host if request.client else None
    trusted = trusted_proxy_cidrs if trusted_proxy_cidrs is not None else get_settings().trusted_proxy_cidrs
    if peer_ip and trusted and _ip_in_networks(peer_ip, trusted):
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # Rightmost entry was appended by our own proxy.
            parts = [p.strip() for p in forwarded.split(",") if p.strip()]
            if parts:
                return parts[-1]
    return peer_ip


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent") if request else None


def enforce_analyze_limit(user_id: str) -> None:
    """Per-user cap on AI analysis requests; raises 429 when exceeded."""
    settings = get_settings()
    if not settings.rate_limit_analyze_enabled:
        return
    allowed, _ = rate_limiter.allow(f"analyze:{user_id}", settings.rate_limit_analyze_per_min, 60)
    if not allowed:
        raise HTTPException(429, "Muitas análises em pouco tempo. Aguarde um minuto.")
