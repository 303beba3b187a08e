"""Request context middleware: request ids, timing, access logs and rate limiting.

One pass per HTTP request:
- propagate or mint ``X-Request-ID`` and expose it to the log formatter
- enforce a per-client token bucket (API-key callers get their own bucket)
- time the request and emit one structured access log line

``check_rate_limit`` is a pure function over an explicit bucket dict so it
can be exercised without the middleware.
"""

import logging
import threading
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var

logger = logging.getLogger(__name__)


# {client_key: (available_tokens, last_refill_timestamp)}
_rate_buckets: dict[str, tuple[float, float]] = {}
_rate_lock = threading.Lock()

_rate_call_count = 0
_EVICT_EVERY = 100
_EVICT_AGE = 120.0


def check_rate_limit(
    bucket: dict[str, tuple[float, float]],
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Check whether a request from *key* is allowed under the token bucket.

    Args:
        bucket: Mutable dict holding per-key state. Modified in place.
        key: Client identifier.
        max_per_minute: Sustained rate cap. ``<= 0`` disables limiting.
        now: Injectable clock, defaults to ``time.monotonic()``.

    Returns:
        ``(allowed, retry_after)`` where *retry_after* is the number of
        seconds until the next token, or 0.0 when allowed.
    """
    global _rate_call_count

    if max_per_minute <= 0:
        return True, 0.0

    if now is None:
        now = time.monotonic()

    _rate_call_count += 1
    if _rate_call_count % _EVICT_EVERY == 0:
        cutoff = now - _EVICT_AGE
        for stale in [k for k, (_, ts) in bucket.items() if ts < cutoff]:
            del bucket[stale]

    refill_rate = max_per_minute / 60.0

    if key in bucket:
        tokens, last_refill = bucket[key]
        tokens = min(max_per_minute, tokens + (now - last_refill) * refill_rate)
    else:
        tokens = float(max_per_minute)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / refill_rate


_EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


def _client_key(request: Request) -> str:
    """Rate-limit key: the API key prefix when one is presented, else the client IP."""
    api_key = request.headers.get("x-api-key")
    if api_key:
        # "sk_<8hex>" identifies the key without holding the secret part.
        return "key:" + api_key[:11]
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, timing, access logging and rate limiting for HTTP requests."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)

        if request.url.path not in _EXEMPT_PATHS:
            key = _client_key(request)
            with _rate_lock:
                allowed, retry_after = check_rate_limit(
                    _rate_buckets, key, settings.rate_limit_per_minute
                )
            if not allowed:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client": key, "path": request.url.path, "retry_after": round(retry_after, 1)},
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "RATE_LIMITED",
                        "message": "Too many requests",
                        "details": {"retry_after": round(retry_after, 1)},
                    },
                    headers={
                        "Retry-After": str(int(retry_after) + 1),
                        "X-Request-ID": rid,
                    },
                )

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        return response
