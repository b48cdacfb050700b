"""Token storage contract.

The auth controller depends only on :class:`TokenStore`; concrete media
(cookies, files, secret managers) live outside this package. An in-memory
implementation is provided for services and tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class TokenMeta:
    """Metadata stored next to a token."""

    expires_at: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, leeway_seconds: float = 0.0, now: Optional[datetime] = None) -> bool:
        """Check if the token is expired or will expire within the leeway."""
        if self.expires_at is None:
            return False
        now = now or utcnow()
        return now + timedelta(seconds=leeway_seconds) >= _aware(self.expires_at)


@dataclass(frozen=True)
class TokenRecord:
    """A token together with its metadata."""

    token: Optional[str] = None
    meta: Optional[TokenMeta] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self.meta.expires_at if self.meta else None


class TokenStore(ABC):
    """Abstract base class for token storage implementations."""

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """Return the stored token, or None."""

    @abstractmethod
    async def set_token(self, token: str, meta: Optional[TokenMeta] = None) -> None:
        """Store ``token`` with optional expiry metadata."""

    @abstractmethod
    async def clear_token(self) -> None:
        """Remove the stored token and its metadata."""

    async def get_meta(self) -> Optional[TokenMeta]:
        """Return stored metadata; stores without metadata return None."""
        return None

    async def get_record(self) -> TokenRecord:
        """Return token and metadata together."""
        return TokenRecord(token=await self.get_token(), meta=await self.get_meta())

    async def set_record(self, record: TokenRecord) -> None:
        if record.token is None:
            await self.clear_token()
        else:
            await self.set_token(record.token, record.meta)


class InMemoryTokenStore(TokenStore):
    """Thread-safe in-memory token storage."""

    def __init__(self, token: Optional[str] = None, meta: Optional[TokenMeta] = None):
        self._lock = threading.Lock()
        self._token = token
        self._meta = meta

    async def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    async def set_token(self, token: str, meta: Optional[TokenMeta] = None) -> None:
        with self._lock:
            self._token = token
            self._meta = meta
        logger.debug("Stored token (expires_at=%s)", meta.expires_at if meta else None)

    async def clear_token(self) -> None:
        with self._lock:
            self._token = None
            self._meta = None
        logger.info("Cleared stored token")

    async def get_meta(self) -> Optional[TokenMeta]:
        with self._lock:
            return self._meta

    async def get_record(self) -> TokenRecord:
        with self._lock:
            return TokenRecord(token=self._token, meta=self._meta)
