"""Default response decoding.

Non-2xx statuses become HTTP errors with a best-effort body preview. For
successful responses the response type is picked in this order: explicit
``response_type`` in request meta, content-type sniffing, the configured
default, then either a strict-mode failure or a raw passthrough.
"""

import json
import logging
from typing import Any, Optional, Union

import httpx

from ..core.context import Context
from ..core.request import Request
from ..core.response import Response, ResponseType, TransportResult
from ..exceptions import RequestError

logger = logging.getLogger(__name__)

RESPONSE_TYPE_META = "response_type"


async def read_body(raw: Any) -> bytes:
    """Return the body bytes of a transport payload."""
    if isinstance(raw, httpx.Response):
        try:
            return raw.content
        except httpx.ResponseNotRead:
            return await raw.aread()
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return raw.encode("utf-8")
    if raw is None:
        return b""
    raise TypeError(f"Cannot read body from {type(raw).__name__}")


async def read_text(raw: Any) -> str:
    if isinstance(raw, httpx.Response):
        await read_body(raw)
        return raw.text
    return (await read_body(raw)).decode("utf-8")


def content_type_of(result: TransportResult) -> str:
    return (result.headers.get("content-type") or "").lower()


def sniff_response_type(content_type: str) -> Optional[ResponseType]:
    if "application/json" in content_type or content_type.endswith("+json"):
        return ResponseType.JSON
    if content_type.startswith("text/") or "text/" in content_type:
        return ResponseType.TEXT
    return None


class DefaultResponseDecoder:
    """Turn a :class:`TransportResult` into a :class:`Response`.

    :param default_response_type: Used when content-type sniffing fails
    :param strict_decode: Fail instead of falling back to a raw passthrough
    """

    def __init__(
        self,
        default_response_type: Optional[Union[ResponseType, str]] = None,
        strict_decode: bool = False,
    ):
        self.default_response_type = (
            ResponseType(default_response_type) if default_response_type else None
        )
        self.strict_decode = strict_decode

    async def decode(
        self, request: Request, result: TransportResult, ctx: Context
    ) -> Response:
        if result.status < 200 or result.status >= 300:
            preview = await self._preview(result)
            raise RequestError.http(
                status=result.status,
                url=result.url,
                body_preview=preview,
                headers=result.headers,
            )

        response_type = self.pick_response_type(request, result)
        if response_type is ResponseType.RAW:
            return self._build(result, None)

        try:
            if response_type is ResponseType.JSON:
                data = json.loads(await read_body(result.raw))
            elif response_type is ResponseType.TEXT:
                data = await read_text(result.raw)
            else:
                data = await read_body(result.raw)
        except (ValueError, TypeError, httpx.HTTPError) as e:
            raise RequestError.decode(
                response_type=response_type.value,
                status=result.status,
                url=result.url,
                cause=e,
            ) from e
        return self._build(result, data)

    def pick_response_type(
        self, request: Request, result: TransportResult
    ) -> ResponseType:
        explicit = request.meta.get(RESPONSE_TYPE_META)
        if explicit:
            try:
                return ResponseType(explicit)
            except ValueError as e:
                raise RequestError.config(
                    f"Unknown response type: {explicit!r}", cause=e
                ) from e

        sniffed = sniff_response_type(content_type_of(result))
        if sniffed is not None:
            return sniffed
        if self.default_response_type is not None:
            return self.default_response_type
        if self.strict_decode:
            raise RequestError.decode(
                response_type="unknown",
                status=result.status,
                url=result.url,
                message="Unable to determine response type",
            )
        return ResponseType.RAW

    async def _preview(self, result: TransportResult) -> Any:
        try:
            if "application/json" in content_type_of(result):
                return json.loads(await read_body(result.raw))
            return await read_text(result.raw)
        except Exception:
            logger.debug("Could not build error body preview", exc_info=True)
            return None

    @staticmethod
    def _build(result: TransportResult, data: Any) -> Response:
        return Response.create(
            status=result.status,
            url=result.url,
            headers=result.headers,
            data=data,
            raw=result.raw,
        )
