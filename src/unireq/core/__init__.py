"""Core value objects, pipeline and event primitives."""

from .context import (
    TIMEOUT_BAG_KEY,
    BagKey,
    Context,
    assert_bag_key,
    create_bag_key,
)
from .events import (
    AbortPayload,
    EndPayload,
    ErrorPayload,
    EventBus,
    RequestEvent,
    StartPayload,
)
from .pipeline import Next, Pipeline, fork_next
from .request import HTTP_METHODS, QueryLike, Request
from .response import Response, ResponseType, TransportResult
from .signals import AbortController, AbortError, AbortSignal, race
from .types import (
    BodySerializer,
    ErrorMapper,
    FormData,
    Handler,
    Middleware,
    Plugin,
    ProgressCallback,
    ProgressInfo,
    ResponseDecoder,
    SerializedBody,
    Transport,
    UrlResolver,
)

__all__ = [
    "AbortController",
    "AbortError",
    "AbortPayload",
    "AbortSignal",
    "BagKey",
    "BodySerializer",
    "Context",
    "EndPayload",
    "ErrorMapper",
    "ErrorPayload",
    "EventBus",
    "FormData",
    "HTTP_METHODS",
    "Handler",
    "Middleware",
    "Next",
    "Pipeline",
    "Plugin",
    "ProgressCallback",
    "ProgressInfo",
    "QueryLike",
    "Request",
    "RequestEvent",
    "Response",
    "ResponseDecoder",
    "ResponseType",
    "SerializedBody",
    "StartPayload",
    "TIMEOUT_BAG_KEY",
    "Transport",
    "TransportResult",
    "UrlResolver",
    "assert_bag_key",
    "create_bag_key",
    "fork_next",
    "race",
]
