"""httpx-backed transport.

The transport serializes the body, merges the serializer's header
instructions below the request headers, sends the request and fully reads the
body so the decoder can work on it. The merged cancellation signal is raced
against the network operation, so aborting cancels the in-flight request.
"""

import logging
from typing import Any, List, Optional

import httpx

from ..core.context import Context
from ..core.request import Request
from ..core.response import TransportResult
from ..core.signals import race
from ..core.types import BodySerializer, ProgressCallback, ProgressInfo
from ..exceptions import RequestError
from ..utils.log_sanitizer import sanitize_headers
from .body_serializer import DefaultBodySerializer

logger = logging.getLogger(__name__)

UPLOAD_PROGRESS_META = "on_upload_progress"
DOWNLOAD_PROGRESS_META = "on_download_progress"


def size_of_body(body: Any) -> Optional[int]:
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray)):
        return len(body)
    if isinstance(body, memoryview):
        return body.nbytes
    return None


async def read_with_progress(
    response: httpx.Response, on_progress: ProgressCallback
) -> httpx.Response:
    """Read ``response`` chunk by chunk, reporting download progress.

    Returns a new, fully read response carrying the same raw bytes.
    """
    total_header = response.headers.get("content-length")
    total = int(total_header) if total_header and total_header.isdigit() else None

    if response.is_stream_consumed:
        # Body was loaded before it reached us (e.g. httpx.MockTransport)
        content = await response.aread()
        on_progress(
            ProgressInfo(
                loaded=len(content),
                total=total,
                progress=len(content) / total if total else None,
                type="download",
            )
        )
        return response

    chunks: List[bytes] = []
    loaded = 0
    try:
        async for chunk in response.aiter_raw():
            chunks.append(chunk)
            loaded += len(chunk)
            on_progress(
                ProgressInfo(
                    loaded=loaded,
                    total=total,
                    progress=loaded / total if total else None,
                    type="download",
                )
            )
    finally:
        await response.aclose()

    rebuilt = httpx.Response(
        status_code=response.status_code,
        headers=response.headers,
        content=b"".join(chunks),
        request=response.request,
        extensions=response.extensions,
    )
    await rebuilt.aread()
    return rebuilt


class HttpxTransport:
    """Default transport on top of :class:`httpx.AsyncClient`.

    :param serializer: Body serializer; defaults to :class:`DefaultBodySerializer`
    :param client: Optional client to use; when omitted the transport creates
                   one lazily and closes it in :meth:`aclose`
    :param timeout: httpx timeout for a client created by the transport
    """

    def __init__(
        self,
        serializer: Optional[BodySerializer] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        **client_kwargs: Any,
    ):
        self.serializer = serializer or DefaultBodySerializer()
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._client_kwargs = client_kwargs

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            config = dict(self._client_kwargs)
            if self._timeout is not None:
                config["timeout"] = self._timeout
            self._client = httpx.AsyncClient(**config)
            logger.debug("Created httpx.AsyncClient for transport")
        return self._client

    def build_request(self, request: Request, ctx: Context) -> httpx.Request:
        serialized = self.serializer.serialize(request, ctx)
        headers = httpx.Headers(serialized.headers or {})
        headers.update(request.headers)

        on_upload = request.meta.get(UPLOAD_PROGRESS_META)
        if on_upload is not None:
            total = size_of_body(serialized.content)
            if total is not None:
                on_upload(
                    ProgressInfo(loaded=total, total=total, progress=1.0, type="upload")
                )

        return self.client.build_request(
            request.method,
            request.url,
            headers=headers,
            content=serialized.content,
            data=serialized.data,
            files=serialized.files,
        )

    async def send(self, request: Request, ctx: Context) -> TransportResult:
        outgoing = self.build_request(request, ctx)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "=== SEND %s %s [%s] headers=%s",
                outgoing.method,
                outgoing.url,
                ctx.id,
                sanitize_headers(outgoing.headers),
            )
        return await race(self._send(outgoing, request), ctx.signal)

    async def _send(self, outgoing: httpx.Request, request: Request) -> TransportResult:
        try:
            response = await self.client.send(outgoing, stream=True)
        except httpx.TimeoutException as e:
            raise RequestError.timeout(cause=e) from e

        on_download = request.meta.get(DOWNLOAD_PROGRESS_META)
        try:
            if on_download is not None:
                response = await read_with_progress(response, on_download)
            else:
                await response.aread()
        except httpx.TimeoutException as e:
            raise RequestError.timeout(cause=e) from e
        finally:
            await response.aclose()

        return TransportResult(
            status=response.status_code,
            headers=response.headers,
            url=str(response.url),
            raw=response,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
