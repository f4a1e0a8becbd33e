"""Rolling-window cap on job starts, shared by every worker via Redis."""

from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

import redis

from app.config import get_settings


class JobStartLimiter:
    """
    Sliding-window log in a Redis sorted set: at most ``max_starts`` admissions
    per ``window_seconds`` across all workers.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        max_starts: Optional[int] = None,
        window_seconds: Optional[float] = None,
        key: str = "scan:job-starts",
        clock: Callable[[], float] = time.time,
    ) -> None:
        settings = get_settings()
        self._client = client or redis.Redis.from_url(settings.redis_url, decode_responses=True)
        self.max_starts = max(1, int(max_starts if max_starts is not None else settings.scan_rate_limit_max_jobs))
        self.window_seconds = float(window_seconds if window_seconds is not None else settings.scan_rate_limit_window_seconds)
        self.key = key
        self._clock = clock

    def try_acquire(self) -> float:
        """Admit one start. Returns 0.0 when admitted, else seconds to wait."""
        now = self._clock()
        window_start = now - self.window_seconds
        with self._client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(self.key)
                    pipe.zremrangebyscore(self.key, "-inf", window_start)
                    count = pipe.zcard(self.key)
                    if count >= self.max_starts:
                        oldest = pipe.zrange(self.key, 0, 0, withscores=True)
                        pipe.unwatch()
                        if not oldest:
                            return self.window_seconds
                        return max(0.1, float(oldest[0][1]) + self.window_seconds - now)
                    pipe.multi()
                    pipe.zadd(self.key, {f"{now:.6f}:{uuid.uuid4().hex}": now})
                    pipe.expire(self.key, max(1, int(self.window_seconds) + 1))
                    pipe.execute()
                    return 0.0
                except redis.WatchError:
                    continue
