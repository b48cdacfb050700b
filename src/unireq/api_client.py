"""Typed adapter for generated API functions.

Generated endpoint functions describe a call as a :class:`RequestSpec` and
leave per-call concerns (extra headers, timeout, cancellation) to
:class:`PerCallOptions`. :class:`ApiClient` maps both onto
:meth:`RequestClient.execute` and returns the decoded data only.

The client used by generated code is bound explicitly for a scope::

    with api_client_scope(ApiClient(client)):
        users = await list_users()   # calls get_api_client() internally
"""

import contextlib
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

from .client import RequestClient
from .core.request import QueryLike
from .core.signals import AbortSignal
from .exceptions import RequestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestSpec:
    """Static description of an endpoint call."""

    method: str
    path: str
    query: Optional[QueryLike] = None
    headers: Optional[Mapping[str, str]] = None
    body: Any = None
    meta: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class PerCallOptions:
    """Caller-supplied overrides for one call."""

    headers: Optional[Mapping[str, str]] = None
    query: Optional[QueryLike] = None
    timeout: Optional[float] = None
    signal: Optional[AbortSignal] = None
    meta: Optional[Mapping[str, Any]] = None


def merge_records(
    base: Optional[Mapping[str, Any]], override: Optional[Mapping[str, Any]]
) -> Optional[Dict[str, Any]]:
    """Shallow merge with ``override`` winning; None when both are absent."""
    if base is None and override is None:
        return None
    return {**(base or {}), **(override or {})}


def merge_query(
    base: Optional[QueryLike], override: Optional[QueryLike]
) -> Optional[QueryLike]:
    """Merge mapping queries; any other shape is replaced by ``override``."""
    if override is None:
        return base
    if base is None:
        return override
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        return {**base, **override}
    return override


class ApiClient:
    """Execute :class:`RequestSpec` values through a :class:`RequestClient`.

    :param client: The underlying request client
    """

    def __init__(self, client: RequestClient):
        self.client = client

    async def execute(
        self, spec: RequestSpec, options: Optional[PerCallOptions] = None
    ) -> Any:
        """Run ``spec`` and return the decoded response data.

        :raises RequestError: For every failure
        """
        options = options or PerCallOptions()
        logger.debug("Executing %s %s", spec.method, spec.path)
        response = await self.client.execute(
            spec.path,
            method=spec.method,
            headers=merge_records(spec.headers, options.headers),
            query=merge_query(spec.query, options.query),
            body=spec.body,
            timeout=options.timeout,
            signal=options.signal,
            meta=merge_records(spec.meta, options.meta),
        )
        return response.data


_current_api_client: ContextVar[Optional[ApiClient]] = ContextVar(
    "unireq_api_client", default=None
)


@contextlib.contextmanager
def api_client_scope(client: ApiClient) -> Iterator[ApiClient]:
    """Bind ``client`` as the default API client for the enclosed code.

    Scopes nest; leaving a scope restores the previous binding. Tasks created
    inside the scope inherit it.
    """
    token = _current_api_client.set(client)
    try:
        yield client
    finally:
        _current_api_client.reset(token)


def get_api_client() -> ApiClient:
    """Return the API client bound by the innermost :func:`api_client_scope`.

    :raises RequestError: CONFIG error when no client is bound
    """
    client = _current_api_client.get()
    if client is None:
        raise RequestError.config(
            "No ApiClient is bound; wrap the call in api_client_scope()"
        )
    return client
