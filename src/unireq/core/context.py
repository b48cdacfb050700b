"""Per-call execution context and its extensible bag."""

import time
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from ..exceptions import RequestError
from .signals import AbortSignal


class BagKey:
    """Unforgeable key for :attr:`Context.bag`.

    Keys compare by identity, so two middlewares that both create a key named
    ``"retry"`` never collide.
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"BagKey({self.name!r})"


def create_bag_key(name: str) -> BagKey:
    return BagKey(name)


def assert_bag_key(key: Any) -> BagKey:
    """Return ``key`` if it is a :class:`BagKey`, else raise a config error."""
    if not isinstance(key, BagKey):
        raise RequestError.config("Bag key must be a BagKey instance")
    return key


TIMEOUT_BAG_KEY = BagKey("timeout")


def create_call_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Context:
    """State shared by the orchestrator and middlewares for one call.

    A context lives exactly as long as one :meth:`RequestClient.request` call
    and is never reused. ``attempt`` is written by retry logic and readable by
    any middleware, transport or event listener.
    """

    signal: AbortSignal
    id: str = field(default_factory=create_call_id)
    attempt: int = 0
    start_time: float = field(default_factory=time.monotonic)
    bag: Dict[BagKey, Any] = field(default_factory=dict)

    @property
    def bag_view(self) -> Mapping[BagKey, Any]:
        """Read-only snapshot of the bag."""
        return MappingProxyType(dict(self.bag))

    @property
    def elapsed(self) -> float:
        """Seconds since the call started."""
        return time.monotonic() - self.start_time

    def get(self, key: BagKey, default: Any = None) -> Any:
        return self.bag.get(assert_bag_key(key), default)

    def set(self, key: BagKey, value: Any) -> None:
        self.bag[assert_bag_key(key)] = value
