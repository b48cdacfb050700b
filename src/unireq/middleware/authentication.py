"""Bearer token middleware.

Attaches the current token to each outgoing request, refreshes it
proactively when it is about to expire and, when a call fails with an
authentication error, refreshes once and retries the remainder of the chain
with the new token.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..auth.controller import AuthController, RefreshFn
from ..auth.token_store import TokenStore
from ..config.settings import ClientSettings
from ..core.context import Context, create_bag_key
from ..core.pipeline import fork_next
from ..core.request import Request
from ..core.response import Response
from ..core.types import Handler
from ..exceptions import RequestError, is_http_status

logger = logging.getLogger(__name__)

AUTH_RETRY_KEY = create_bag_key("auth_retry")

ShouldRefresh = Callable[[Exception, Request, Context], bool]


def default_should_refresh(error: Exception, request: Request, ctx: Context) -> bool:
    """Refresh on HTTP 401 only."""
    return is_http_status(error, 401)


class AuthMiddleware:
    """Attach, refresh and retry bearer credentials.

    :param store: Token store collaborator
    :param refresh_token: Async function returning a token or a ``TokenRecord``
    :param refresh_leeway: Seconds before expiry that trigger a proactive refresh
    :param should_refresh: Classifier deciding whether an error warrants refresh
    :param header_name: Header carrying the credential
    :param token_prefix: Prefix prepended to the token in the header value
    :param on_refresh_failed: Called with the refresh error after the token is cleared
    :param max_retry: Refresh-and-retry budget per call
    :param controller: Shared controller; built from ``store`` and
                       ``refresh_token`` when omitted
    """

    def __init__(
        self,
        store: TokenStore,
        refresh_token: Optional[RefreshFn] = None,
        *,
        refresh_leeway: float = 60.0,
        should_refresh: Optional[ShouldRefresh] = None,
        header_name: str = "Authorization",
        token_prefix: str = "Bearer ",
        on_refresh_failed: Optional[Callable[[Exception], None]] = None,
        max_retry: int = 1,
        controller: Optional[AuthController] = None,
    ):
        if controller is None:
            if refresh_token is None:
                raise RequestError.config(
                    "AuthMiddleware needs either refresh_token or controller"
                )
            controller = AuthController(store, refresh_token, refresh_leeway)
        self.controller = controller
        self.store = store
        self.should_refresh = should_refresh or default_should_refresh
        self.header_name = header_name
        self.token_prefix = token_prefix
        self.on_refresh_failed = on_refresh_failed
        self.max_retry = max(0, max_retry)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        store: TokenStore,
        refresh_token: RefreshFn,
        **options: Any,
    ) -> "AuthMiddleware":
        """Build a middleware using the ``auth_*`` settings.

        Keyword options override the corresponding settings.
        """
        config: Dict[str, Any] = {
            "refresh_leeway": settings.auth_refresh_leeway,
            "max_retry": settings.auth_max_retry,
            "header_name": settings.auth_header_name,
            "token_prefix": settings.auth_token_prefix,
        }
        config.update(options)
        return cls(store, refresh_token, **config)

    def authorize(self, request: Request, token: Optional[str]) -> Request:
        if not token:
            return request
        return request.with_changes(
            headers={self.header_name: f"{self.token_prefix}{token}"}
        )

    async def handle(
        self, request: Request, ctx: Context, call_next: Handler
    ) -> Response:
        token = await self.controller.ensure_valid_token()
        authed = self.authorize(request, token)

        try:
            return await call_next(authed, ctx)
        except Exception as error:
            if not self.should_refresh(error, authed, ctx):
                raise
            used = ctx.get(AUTH_RETRY_KEY, 0)
            if used >= self.max_retry:
                raise
            ctx.set(AUTH_RETRY_KEY, used + 1)

            logger.debug(
                "Authentication failed for %s %s [%s], refreshing token",
                request.method,
                request.url,
                ctx.id,
            )
            try:
                new_token = await self.controller.refresh()
            except Exception as refresh_error:
                logger.warning("Token refresh failed: %s", type(refresh_error).__name__)
                await self.store.clear_token()
                if self.on_refresh_failed is not None:
                    self.on_refresh_failed(refresh_error)
                raise

        return await fork_next(call_next)(self.authorize(authed, new_token), ctx)
