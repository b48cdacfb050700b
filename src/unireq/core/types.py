"""Collaborator contracts and shared type aliases.

Each collaborator is a narrow protocol so any object with the right method
can be plugged into :class:`~unireq.client.RequestClient`.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx

from .context import Context
from .request import QueryLike, Request
from .response import Response, TransportResult

Handler = Callable[[Request, Context], Awaitable[Response]]
QuerySerializer = Callable[[QueryLike, str], str]


@dataclass(frozen=True)
class ProgressInfo:
    """Progress report passed to upload/download callbacks."""

    loaded: int
    type: str
    total: Optional[int] = None
    progress: Optional[float] = None


ProgressCallback = Callable[[ProgressInfo], None]


@dataclass(frozen=True)
class SerializedBody:
    """Result of :meth:`BodySerializer.serialize`.

    ``headers`` are header instructions for the transport to merge below the
    request's own headers; the request is never mutated.
    """

    content: Any = None
    headers: Optional[httpx.Headers] = None
    data: Any = None
    files: Any = None


@dataclass(frozen=True)
class FormData:
    """Multipart form body: plain fields plus optional files."""

    fields: Any = field(default_factory=dict)
    files: Any = None


class Middleware(Protocol):
    async def handle(self, request: Request, ctx: Context, call_next: Handler) -> Response:
        """Process ``request``; call ``call_next`` to continue the chain."""
        ...


class Transport(Protocol):
    async def send(self, request: Request, ctx: Context) -> TransportResult:
        ...


class UrlResolver(Protocol):
    def resolve(self, request: Request, ctx: Context) -> str:
        ...


class BodySerializer(Protocol):
    def serialize(self, request: Request, ctx: Context) -> SerializedBody:
        ...


class ResponseDecoder(Protocol):
    async def decode(
        self, request: Request, result: TransportResult, ctx: Context
    ) -> Response:
        ...


class ErrorMapper(Protocol):
    def map(
        self,
        error: BaseException,
        request: Request,
        ctx: Context,
        result: Optional[TransportResult] = None,
    ) -> Exception:
        ...


class Plugin(Protocol):
    def setup(self, registry: Any) -> None:
        ...
