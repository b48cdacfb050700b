"""unireq: an extensible asyncio HTTP request client.

A :class:`RequestClient` runs every call through an onion of middlewares
around pluggable collaborators (URL resolver, body serializer, transport,
response decoder, error mapper) and reports every failure as a
:class:`RequestError`.

:var __version__: Current package version
:type __version__: str
"""

from .api_client import ApiClient, PerCallOptions, RequestSpec, api_client_scope, get_api_client
from .client import Registry, RequestClient, create_client
from .config import ClientSettings
from .core import (
    AbortController,
    AbortSignal,
    BagKey,
    Context,
    EventBus,
    FormData,
    ProgressInfo,
    Request,
    RequestEvent,
    Response,
    ResponseType,
    TransportResult,
    create_bag_key,
)
from .exceptions import ErrorKind, RequestError

__version__ = "0.1.0"

__all__ = [
    "AbortController",
    "AbortSignal",
    "ApiClient",
    "BagKey",
    "ClientSettings",
    "Context",
    "ErrorKind",
    "EventBus",
    "FormData",
    "PerCallOptions",
    "ProgressInfo",
    "Registry",
    "Request",
    "RequestClient",
    "RequestError",
    "RequestEvent",
    "RequestSpec",
    "Response",
    "ResponseType",
    "TransportResult",
    "api_client_scope",
    "create_bag_key",
    "create_client",
    "get_api_client",
]
