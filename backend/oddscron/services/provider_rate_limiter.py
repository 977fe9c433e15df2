"""
backend/oddscron/services/provider_rate_limiter.py

Purpose:
    Rate limiting for outbound odds-provider traffic.

    - TokenBucket: requests-per-minute cap for one provider. Buckets come
      from the module-level `provider_buckets` registry, so every endpoint and
      every run of that provider share one bucket inside the process.
    - EventThrottle: fixed pause between consecutive per-event requests in a
      batch run. The interval is data, so it can be tuned without touching
      the pipeline loop.

Dependencies:
    - asyncio
    - time
"""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger("oddscron.rate_limiter")


class TokenBucket:
    """Process-local RPM bucket. rpm <= 0 turns it into a no-op."""

    def __init__(self, name: str, rpm: int) -> None:
        self.name = name
        self._lock = asyncio.Lock()
        self._tokens = 0.0
        self._stamp = time.monotonic()
        self.configure(rpm)
        self._tokens = self._capacity

    def configure(self, rpm: int) -> None:
        self.rpm = max(0, int(rpm or 0))
        self._capacity = float(max(1, self.rpm))
        self._refill_per_second = self._capacity / 60.0
        self._tokens = min(self._tokens, self._capacity)

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._stamp
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_per_second)
        self._stamp = now

    async def acquire(self) -> None:
        if self.rpm <= 0:
            return
        # Holding the lock across the sleep keeps waiters in FIFO order.
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                deficit = 1.0 - self._tokens
                wait_seconds = deficit / self._refill_per_second
                logger.debug("[%s] bucket empty, waiting %.2fs", self.name, wait_seconds)
                await asyncio.sleep(wait_seconds)
                self._refill()
            self._tokens = max(0.0, self._tokens - 1.0)


class ProviderBuckets:
    """One TokenBucket per provider name. Later lookups re-apply the RPM."""

    def __init__(self) -> None:
        self._buckets: dict[str, TokenBucket] = {}

    def get(self, provider: str, rpm: int) -> TokenBucket:
        key = str(provider or "").strip().lower()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(key, rpm)
            self._buckets[key] = bucket
        else:
            bucket.configure(rpm)
        return bucket


class EventThrottle:
    """Fixed-interval pause between sequential requests of one batch."""

    def __init__(self, interval_seconds: float = 1.0) -> None:
        self.interval_seconds = max(0.0, float(interval_seconds))
        self.waits = 0

    async def wait(self) -> None:
        self.waits += 1
        if self.interval_seconds > 0:
            await asyncio.sleep(self.interval_seconds)


provider_buckets = ProviderBuckets()
