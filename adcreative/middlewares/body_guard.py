"""Keep inline image payloads and oversized bodies away from the API routes.

Creative images are referenced by URL. A request that smuggles a data URL or a
long base64 run in its body is refused before it reaches pydantic, so large
payloads never get parsed.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("adcreative.body_guard")

DEFAULT_MAX_BODY_BYTES = 2 * 1024 * 1024
DEFAULT_MAX_INLINE_BASE64_BYTES = 128 * 1024

GUARDED_METHODS = frozenset({"POST", "PUT", "PATCH"})
GUARDED_PREFIX = "/api/"

_DATA_URL = re.compile(r"data:image/[a-z0-9.+-]+;base64,[A-Za-z0-9+/=\s]{256,}", re.I)
_BASE64_RUN = re.compile(r"[A-Za-z0-9+/]{8000,}={0,2}")

_HINT = "Upload the image to object storage and send its URL instead."


def _limit(value: Optional[int], fallback: int) -> Optional[int]:
    """``None`` means use the fallback; zero or less disables the check."""

    value = fallback if value is None else value
    return value if value > 0 else None


def inspect_body(
    body: bytes,
    *,
    declared_length: Optional[int] = None,
    max_body_bytes: Optional[int] = DEFAULT_MAX_BODY_BYTES,
    max_inline_base64_bytes: Optional[int] = DEFAULT_MAX_INLINE_BASE64_BYTES,
) -> Optional[str]:
    """Return why ``body`` must be refused, or ``None`` when it may pass."""

    if max_body_bytes is not None:
        size = max(len(body), declared_length or 0)
        if size > max_body_bytes:
            return f"oversize:{size}"

    text = body.decode("utf-8", errors="ignore")
    if _DATA_URL.search(text):
        return "base64"
    if max_inline_base64_bytes is not None and len(body) <= max_inline_base64_bytes:
        return None
    if _BASE64_RUN.search(text):
        return "base64"
    return None


def _declared_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class BodyGuardMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: Any,
        *,
        max_body_bytes: Optional[int] = None,
        max_inline_base64_bytes: Optional[int] = None,
    ) -> None:
        super().__init__(app)
        self.max_body_bytes = _limit(max_body_bytes, DEFAULT_MAX_BODY_BYTES)
        self.max_inline_base64_bytes = _limit(
            max_inline_base64_bytes, DEFAULT_MAX_INLINE_BASE64_BYTES
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method not in GUARDED_METHODS or not request.url.path.startswith(GUARDED_PREFIX):
            return await call_next(request)

        body = await request.body()
        reason = inspect_body(
            body,
            declared_length=_declared_length(request),
            max_body_bytes=self.max_body_bytes,
            max_inline_base64_bytes=self.max_inline_base64_bytes,
        )
        if reason is None:
            return await call_next(request)

        logger.warning(
            "request body blocked",
            extra={
                "path": request.url.path,
                "method": request.method,
                "bytes": len(body),
                "reason": reason,
            },
        )
        return JSONResponse(
            status_code=413 if reason.startswith("oversize") else 422,
            content={
                "ok": False,
                "error": "REQUEST_BODY_BLOCKED",
                "reason": reason,
                "hint": _HINT,
            },
        )


__all__ = ["BodyGuardMiddleware", "inspect_body"]
