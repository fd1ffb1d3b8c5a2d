from __future__ import annotations

import hashlib
import logging
import time
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from eventdesk.core.config import settings
from eventdesk.db.redis import redis_client

logger = logging.getLogger(__name__)

_EXEMPT_PREFIXES = ("/health", "/metrics")


class RedisRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit_per_minute: int | None = None):
        super().__init__(app)
        self.limit_per_minute = limit_per_minute or settings.rate_limit_per_minute

    @staticmethod
    def _resolve_subject(request: Request) -> str:
        auth = (request.headers.get("authorization") or "").strip()
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
            if token:
                return "jwt:" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]

        if request.headers.get("x-mirror-token"):
            return "mirror"

        forwarded = (request.headers.get("x-forwarded-for") or "").strip()
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"

        ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"

    @staticmethod
    def _exempt(request: Request) -> bool:
        path = request.url.path
        if path.startswith(_EXEMPT_PREFIXES):
            return True
        # Image reads are served to browsers and template sites without a session.
        return request.method == "GET" and path == f"{settings.api_prefix}/upload"

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable]):
        if self._exempt(request):
            return await call_next(request)

        subject = self._resolve_subject(request)
        minute_bucket = int(time.time() // 60)
        key = f"rl:{subject}:{minute_bucket}"

        try:
            count = await redis_client.incr(key)
            if count == 1:
                await redis_client.expire(key, 65)
            if count > self.limit_per_minute:
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded"},
                    headers={"Retry-After": "60"},
                )
        except Exception:
            # Fail-open when Redis is unavailable.
            logger.debug("Rate limiter unavailable, request let through", exc_info=True)

        return await call_next(request)
