"""Token lifecycle coordination.

:class:`AuthController` owns the one piece of state shared by every call that
uses it: the in-flight refresh task. Concurrent callers asking for a refresh
all await the same task; a new refresh starts only after the previous one has
settled.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional, Union

from .token_store import TokenMeta, TokenRecord, TokenStore, utcnow

logger = logging.getLogger(__name__)

RefreshResult = Union[str, TokenRecord]
RefreshFn = Callable[[], Awaitable[RefreshResult]]


def normalize_refresh_result(result: RefreshResult) -> TokenRecord:
    """Accept a bare token string or a :class:`TokenRecord`."""
    if isinstance(result, TokenRecord):
        if not result.token:
            raise ValueError("refresh_token returned a record without a token")
        return result
    if isinstance(result, str) and result:
        return TokenRecord(token=result)
    raise ValueError(f"refresh_token returned an invalid value: {type(result).__name__}")


class AuthController:
    """Read, proactively refresh and single-flight refresh a bearer token.

    :param store: Token store collaborator
    :param refresh_token: Async function obtaining a new token
    :param refresh_leeway: Seconds before expiry at which a token is refreshed
    :param clock: Returns the current aware datetime (injectable for tests)
    """

    def __init__(
        self,
        store: TokenStore,
        refresh_token: RefreshFn,
        refresh_leeway: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self._refresh_token = refresh_token
        self.refresh_leeway = refresh_leeway
        self._clock = clock
        self._refreshing: Optional[asyncio.Task] = None

    @property
    def refreshing(self) -> bool:
        return self._refreshing is not None

    async def refresh(self) -> str:
        """Refresh the token, joining a refresh already in flight.

        :return: The new token
        :raises Exception: Whatever ``refresh_token`` raised
        """
        task = self._refreshing
        if task is None:
            # No await between the check above and publishing the task.
            task = asyncio.ensure_future(self._run_refresh())
            self._refreshing = task
        return await asyncio.shield(task)

    async def _run_refresh(self) -> str:
        logger.debug("Refreshing token")
        try:
            result = self._refresh_token()
            if inspect.isawaitable(result):
                result = await result
            record = normalize_refresh_result(result)
            await self.store.set_record(record)
            logger.debug("Token refreshed (expires_at=%s)", record.expires_at)
            return record.token
        finally:
            self._refreshing = None

    def is_expiring(self, meta: Optional[TokenMeta]) -> bool:
        if meta is None or meta.expires_at is None:
            return False
        return meta.is_expired(self.refresh_leeway, now=self._clock())

    async def ensure_valid_token(self) -> Optional[str]:
        """Return a usable token, refreshing first if it is inside the leeway.

        A store without expiry metadata returns whatever token it holds,
        possibly None.
        """
        record = await self.store.get_record()
        if self.is_expiring(record.meta):
            logger.debug(
                "Token expires at %s (leeway %ss), refreshing",
                record.expires_at,
                self.refresh_leeway,
            )
            return await self.refresh()
        return record.token

    def expires_in(self, seconds: float) -> TokenMeta:
        """Build metadata for a token expiring ``seconds`` from now."""
        return TokenMeta(expires_at=self._clock() + timedelta(seconds=seconds))
