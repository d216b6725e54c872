"""HTTP middleware: журнал запросов и ограничение частоты запросов к /api/."""
from __future__ import annotations

import logging
import math
import threading
import time
from functools import lru_cache
from typing import Awaitable, Callable, Dict, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from .deps import client_meta
from .env_settings import get_env

log = logging.getLogger("ad_gateway.access")

RATE_LIMITED_PREFIX = "/api/"
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

# Сколько клиентов держим в памяти до чистки истёкших окон
_MAX_TRACKED = 10000

CallNext = Callable[[Request], Awaitable[Response]]


class RateLimiter:
    """Fixed window per client key: at most `max_requests` per `window_s` seconds.

    `max_requests <= 0` disables the limit.
    """

    def __init__(self, max_requests: int, window_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (начало окна, число запросов в окне)
        self._windows: Dict[str, Tuple[float, int]] = {}

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0 and self.window_s > 0

    def hit(self, key: str) -> Tuple[bool, int]:
        """Count one request. Returns (allowed, retry_after_seconds)."""
        if not self.enabled:
            return True, 0
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_s:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            if len(self._windows) > _MAX_TRACKED:
                self._prune(now)
        if count > self.max_requests:
            return False, max(1, math.ceil(started + self.window_s - now))
        return True, 0

    def _prune(self, now: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_s]
        for k in expired:
            del self._windows[k]


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    env = get_env()
    return RateLimiter(env.rate_limit_max_requests, env.rate_limit_window_s)


async def rate_limit(request: Request, call_next: CallNext) -> Response:
    if request.url.path.startswith(RATE_LIMITED_PREFIX):
        ip, _ = client_meta(request)
        allowed, retry_after = get_rate_limiter().hit(ip)
        if not allowed:
            log.warning("Лимит запросов превышен: ip=%s %s %s", ip, request.method, request.url.path)
            return JSONResponse(
                {"error": RATE_LIMIT_MESSAGE},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
    return await call_next(request)


async def log_requests(request: Request, call_next: CallNext) -> Response:
    started = time.perf_counter()
    ip, _ = client_meta(request)
    response = await call_next(request)
    log.info(
        "%s %s - %s -> %d (%.1f ms)",
        request.method,
        request.url.path,
        ip,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response
