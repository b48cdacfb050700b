"""Optional pipeline middlewares."""

from .authentication import AUTH_RETRY_KEY, AuthMiddleware, default_should_refresh
from .retry import RETRY_META_KEY, RetryMiddleware, RetryOverride, RetryPolicy

__all__ = [
    "AUTH_RETRY_KEY",
    "AuthMiddleware",
    "RETRY_META_KEY",
    "RetryMiddleware",
    "RetryOverride",
    "RetryPolicy",
    "default_should_refresh",
]
