"""Lifecycle events emitted by the client.

Delivery is a synchronous fan-out. Each listener runs inside its own
exception boundary: a failing observer is logged and skipped, and can never
change the outcome of the call it observes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from .context import Context
from .request import Request
from .response import Response

logger = logging.getLogger(__name__)


class RequestEvent(str, Enum):
    START = "request:start"
    END = "request:end"
    ERROR = "request:error"
    ABORT = "request:abort"


@dataclass(frozen=True)
class StartPayload:
    request: Request
    context: Context


@dataclass(frozen=True)
class EndPayload:
    request: Request
    response: Response
    context: Context
    elapsed_ms: float
    attempt: int


@dataclass(frozen=True)
class ErrorPayload:
    request: Request
    error: BaseException
    context: Context
    elapsed_ms: float
    attempt: int


@dataclass(frozen=True)
class AbortPayload:
    request: Request
    context: Context
    elapsed_ms: float
    attempt: int


Listener = Callable[[Any], None]


class EventBus:
    """Best-effort publish/subscribe for :class:`RequestEvent`."""

    def __init__(self) -> None:
        self._listeners: Dict[RequestEvent, List[Listener]] = {}

    def on(
        self, event: Union[RequestEvent, str], listener: Listener
    ) -> Callable[[], None]:
        """Subscribe ``listener``; returns a function that unsubscribes it."""
        name = RequestEvent(event)
        self._listeners.setdefault(name, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def emit(self, event: Union[RequestEvent, str], payload: Any) -> None:
        name = RequestEvent(event)
        for listener in list(self._listeners.get(name, ())):
            try:
                listener(payload)
            except Exception:
                logger.warning(
                    "Listener %r for %s failed", listener, name.value, exc_info=True
                )

    def listener_count(self, event: Optional[Union[RequestEvent, str]] = None) -> int:
        if event is None:
            return sum(len(v) for v in self._listeners.values())
        return len(self._listeners.get(RequestEvent(event), ()))
