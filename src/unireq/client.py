"""Request orchestrator.

:class:`RequestClient` turns a request description into a decoded
:class:`~unireq.core.response.Response`:

1. Merge client defaults (headers, timeout, meta) with per-call overrides
2. Build a fresh :class:`~unireq.core.context.Context` with one merged
   cancellation signal (caller signal + timeout timer)
3. Resolve the final URL before entering the pipeline
4. Dispatch through the middlewares in onion order to a terminal handler
   that sends via the transport and decodes the result
5. Classify failures through the error mapper and emit lifecycle events

Examples:
    >>> async with RequestClient(base_url="https://api.example.com") as client:
    ...     response = await client.get("/users", query={"page": 1})
"""

import asyncio
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .config.settings import ClientSettings
from .core.context import TIMEOUT_BAG_KEY, Context
from .core.events import (
    AbortPayload,
    EndPayload,
    ErrorPayload,
    EventBus,
    RequestEvent,
    StartPayload,
)
from .core.headers import HeadersLike, HeadersPatch, header_items, merge_headers, to_headers
from .core.pipeline import Pipeline
from .core.request import QueryLike, Request
from .core.response import Response, ResponseType
from .core.signals import AbortController, AbortSignal, race
from .core.types import (
    BodySerializer,
    ErrorMapper,
    Middleware,
    Plugin,
    ProgressCallback,
    QuerySerializer,
    ResponseDecoder,
    Transport,
    UrlResolver,
)
from .defaults import (
    DefaultBodySerializer,
    DefaultErrorMapper,
    DefaultResponseDecoder,
    DefaultUrlResolver,
    HttpxTransport,
)
from .defaults.transport import DOWNLOAD_PROGRESS_META, UPLOAD_PROGRESS_META
from .middleware.retry import RetryMiddleware
from .utils.log_sanitizer import setup_logging

logger = logging.getLogger(__name__)


def link_signals(
    controller: AbortController,
    ctx: Context,
    signal: Optional[AbortSignal],
    timeout: Optional[float],
) -> Callable[[], None]:
    """Abort ``controller`` when ``signal`` aborts or ``timeout`` elapses.

    The timeout flag is written to the context bag before aborting, which is
    how the error mapper tells a timeout from a cancellation. Returns the
    cleanup function that detaches the listener and cancels the timer.
    """

    def on_abort(source: AbortSignal) -> None:
        controller.abort(source.reason)

    if signal is not None:
        signal.add_listener(on_abort)

    timer: Optional[asyncio.TimerHandle] = None
    if timeout is not None and timeout > 0:

        def on_timeout() -> None:
            ctx.bag[TIMEOUT_BAG_KEY] = True
            controller.abort("timeout")

        timer = asyncio.get_running_loop().call_later(timeout, on_timeout)

    def cleanup() -> None:
        if signal is not None:
            signal.remove_listener(on_abort)
        if timer is not None:
            timer.cancel()

    return cleanup


class Registry:
    """Extension surface handed to plugins."""

    def __init__(self, client: "RequestClient"):
        self._client = client

    @property
    def events(self) -> EventBus:
        return self._client.events

    def use(self, middleware: Middleware) -> None:
        self._client.use(middleware)

    def set_transport(self, transport: Transport) -> None:
        self._client._transport = transport

    def set_url_resolver(self, resolver: UrlResolver) -> None:
        self._client._url_resolver = resolver

    def set_body_serializer(self, serializer: BodySerializer) -> None:
        self._client._serializer = serializer
        # The default transport serializes bodies itself; keep it in sync.
        if isinstance(self._client._transport, HttpxTransport):
            self._client._transport.serializer = serializer

    def set_decoder(self, decoder: ResponseDecoder) -> None:
        self._client._decoder = decoder

    def set_error_mapper(self, mapper: ErrorMapper) -> None:
        self._client._error_mapper = mapper


class RequestClient:
    """Extensible HTTP request client.

    :param transport: Network collaborator; defaults to :class:`HttpxTransport`
    :param url_resolver: Defaults to :class:`DefaultUrlResolver` on ``base_url``
    :param body_serializer: Defaults to :class:`DefaultBodySerializer`
    :param decoder: Defaults to :class:`DefaultResponseDecoder`
    :param error_mapper: Defaults to :class:`DefaultErrorMapper`
    :param middlewares: Initial middlewares, outermost first
    :param events: Event bus; a new :class:`EventBus` by default
    :param base_url: Base URL for relative request paths
    :param headers: Default headers for every request
    :param timeout: Default timeout in seconds
    :param meta: Default request metadata
    :param default_response_type: Decoder fallback response type
    :param strict_decode: Decoder strict mode
    :param query_serializer: Custom ``(query, url) -> url`` function
    """

    def __init__(
        self,
        *,
        transport: Optional[Transport] = None,
        url_resolver: Optional[UrlResolver] = None,
        body_serializer: Optional[BodySerializer] = None,
        decoder: Optional[ResponseDecoder] = None,
        error_mapper: Optional[ErrorMapper] = None,
        middlewares: Sequence[Middleware] = (),
        events: Optional[EventBus] = None,
        base_url: Optional[str] = None,
        headers: Optional[HeadersLike] = None,
        timeout: Optional[float] = None,
        meta: Optional[Mapping[str, Any]] = None,
        default_response_type: Optional[Union[ResponseType, str]] = None,
        strict_decode: bool = False,
        query_serializer: Optional[QuerySerializer] = None,
    ):
        self.events = events or EventBus()
        self._serializer: BodySerializer = body_serializer or DefaultBodySerializer()
        self._transport: Transport = transport or HttpxTransport(self._serializer)
        self._url_resolver: UrlResolver = url_resolver or DefaultUrlResolver(
            base_url, query_serializer
        )
        self._decoder: ResponseDecoder = decoder or DefaultResponseDecoder(
            default_response_type=default_response_type,
            strict_decode=strict_decode,
        )
        self._error_mapper: ErrorMapper = error_mapper or DefaultErrorMapper()
        self._default_headers = to_headers(headers)
        self._default_timeout = timeout
        self._default_meta = dict(meta or {})
        self._pipeline = Pipeline()
        for middleware in middlewares:
            self._pipeline.use(middleware)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        *,
        configure_logging: bool = False,
        **options: Any,
    ) -> "RequestClient":
        """Build a client from :class:`ClientSettings`.

        Keyword options override the corresponding settings. A positive
        ``retry_count`` installs a :class:`RetryMiddleware` unless
        ``middlewares`` is given. With ``configure_logging`` the sanitizing
        log handler is installed at ``log_level``.
        """
        settings = settings or ClientSettings()
        if configure_logging:
            setup_logging(settings.log_level)
        config: dict = {
            "base_url": settings.base_url,
            "timeout": settings.timeout,
            "default_response_type": settings.default_response_type,
            "strict_decode": settings.strict_decode,
        }
        config.update(options)
        if "transport" not in options:
            serializer = config.get("body_serializer") or DefaultBodySerializer()
            config["body_serializer"] = serializer
            config["transport"] = HttpxTransport(
                serializer, timeout=settings.create_timeout()
            )
        if "middlewares" not in options and settings.retry_count > 0:
            config["middlewares"] = [RetryMiddleware.from_settings(settings)]
        return cls(**config)

    # Extension surface

    @property
    def registry(self) -> Registry:
        return Registry(self)

    @property
    def middlewares(self) -> List[Middleware]:
        return self._pipeline.middlewares

    def use(self, middleware: Middleware) -> "RequestClient":
        self._pipeline.use(middleware)
        return self

    def apply(self, plugin: Plugin) -> "RequestClient":
        plugin.setup(self.registry)
        return self

    # Entry points

    async def execute(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Optional[HeadersPatch] = None,
        query: Optional[QueryLike] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        signal: Optional[AbortSignal] = None,
        meta: Optional[Mapping[str, Any]] = None,
        on_upload_progress: Optional[ProgressCallback] = None,
        on_download_progress: Optional[ProgressCallback] = None,
    ) -> Response:
        """Build a request from defaults plus overrides and run it.

        Header overrides win over defaults (``None`` removes a default
        header); meta is merged shallowly with overrides winning.
        """
        merged_meta = {**self._default_meta, **(meta or {})}
        if on_upload_progress is not None:
            merged_meta[UPLOAD_PROGRESS_META] = on_upload_progress
        if on_download_progress is not None:
            merged_meta[DOWNLOAD_PROGRESS_META] = on_download_progress

        request = Request(
            method=method,
            url=url,
            header_items=header_items(merge_headers(self._default_headers, headers)),
            query=query,
            body=body,
            timeout=timeout if timeout is not None else self._default_timeout,
            signal=signal,
            meta=merged_meta,
        )
        return await self.request(request)

    async def get(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="GET", **kwargs)

    async def post(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="POST", **kwargs)

    async def put(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="PUT", **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="PATCH", **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="DELETE", **kwargs)

    async def head(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="HEAD", **kwargs)

    async def options(self, url: str, **kwargs: Any) -> Response:
        return await self.execute(url, method="OPTIONS", **kwargs)

    async def request(self, request: Request) -> Response:
        """Run a fully built :class:`Request` through the pipeline.

        :raises RequestError: For every failure, classified by the error mapper
        :raises asyncio.CancelledError: When the calling task is cancelled
        """
        controller = AbortController()
        ctx = Context(signal=controller.signal)
        cleanup = link_signals(controller, ctx, request.signal, request.timeout)

        transport = self._transport
        decoder = self._decoder
        error_mapper = self._error_mapper

        async def terminal(req: Request, c: Context) -> Response:
            async def send_and_decode() -> Response:
                result = await transport.send(req, c)
                return await decoder.decode(req, result, c)

            return await race(send_and_decode(), c.signal)

        handler = self._pipeline.compose(terminal)
        current = request
        started = False

        try:
            current = self._resolve(request, ctx)
            self._emit(RequestEvent.START, StartPayload(request=current, context=ctx))
            started = True
            logger.debug("Dispatching %s %s [%s]", current.method, current.url, ctx.id)

            response = await handler(current, ctx)

            self._emit(
                RequestEvent.END,
                EndPayload(
                    request=current,
                    response=response,
                    context=ctx,
                    elapsed_ms=ctx.elapsed * 1000,
                    attempt=ctx.attempt,
                ),
            )
            return response
        except asyncio.CancelledError:
            if not started:
                self._emit(RequestEvent.START, StartPayload(request=current, context=ctx))
            self._emit_abort(current, ctx)
            raise
        except Exception as error:
            if not started:
                self._emit(RequestEvent.START, StartPayload(request=current, context=ctx))
            mapped = error_mapper.map(error, current, ctx)

            if ctx.signal.aborted:
                self._emit_abort(current, ctx)
            else:
                logger.debug(
                    "Request %s %s [%s] failed: %r",
                    current.method,
                    current.url,
                    ctx.id,
                    mapped,
                )
                self._emit(
                    RequestEvent.ERROR,
                    ErrorPayload(
                        request=current,
                        error=mapped,
                        context=ctx,
                        elapsed_ms=ctx.elapsed * 1000,
                        attempt=ctx.attempt,
                    ),
                )
            if mapped is error:
                raise
            raise mapped from error
        finally:
            cleanup()

    def _resolve(self, request: Request, ctx: Context) -> Request:
        url = self._url_resolver.resolve(request, ctx)
        if url == request.url:
            return request
        return request.with_changes(url=url)

    def _emit(self, event: RequestEvent, payload: Any) -> None:
        self.events.emit(event, payload)

    def _emit_abort(self, request: Request, ctx: Context) -> None:
        self._emit(
            RequestEvent.ABORT,
            AbortPayload(
                request=request,
                context=ctx,
                elapsed_ms=ctx.elapsed * 1000,
                attempt=ctx.attempt,
            ),
        )

    # Lifecycle

    async def aclose(self) -> None:
        """Close the transport if it holds resources."""
        close = getattr(self._transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "RequestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_client(**options: Any) -> RequestClient:
    return RequestClient(**options)
