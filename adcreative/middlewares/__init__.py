"""ASGI middleware for the creative API."""
from __future__ import annotations

from .body_guard import BodyGuardMiddleware

__all__ = ["BodyGuardMiddleware"]
