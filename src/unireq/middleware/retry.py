"""Bounded retry middleware.

Retries the remainder of the pipeline after a failure, sequentially, with an
optional delay policy and retry predicate. A request can replace the policy
for a single call through ``meta[RETRY_META_KEY]``::

    await client.get("/items", meta={RETRY_META_KEY: RetryOverride(disable=True)})

When an override is present it replaces the whole policy for that call;
fields it leaves unset fall back to "no retries", "no delay" and "no
predicate", not to the middleware's configuration.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from ..config.settings import ClientSettings
from ..core.context import Context
from ..core.pipeline import fork_next
from ..core.request import Request
from ..core.response import Response
from ..core.signals import sleep
from ..core.types import Handler

logger = logging.getLogger(__name__)

RETRY_META_KEY = "unireq.retry"

DelayFn = Callable[[int, Exception, Request, Context], float]
Delay = Union[float, DelayFn]
RetryPredicate = Callable[[Exception, Request, Context], bool]


@dataclass(frozen=True)
class RetryPolicy:
    """Effective retry policy for one call.

    :param retries: Extra attempts after the first one
    :param delay: Seconds to wait, or ``f(attempt, error, request, ctx)``
                  where ``attempt`` is the number of the upcoming retry (1-based)
    :param retry_on: Predicate deciding whether an error is retryable
    """

    retries: int = 0
    delay: Optional[Delay] = None
    retry_on: Optional[RetryPredicate] = None

    def delay_for(
        self, attempt: int, error: Exception, request: Request, ctx: Context
    ) -> float:
        if self.delay is None:
            return 0.0
        if callable(self.delay):
            return float(self.delay(attempt, error, request, ctx))
        return float(self.delay)


@dataclass(frozen=True)
class RetryOverride:
    """Per-call replacement policy stored under :data:`RETRY_META_KEY`."""

    disable: bool = False
    retries: Optional[int] = None
    delay: Optional[Delay] = None
    retry_on: Optional[RetryPredicate] = None


def read_override(request: Request) -> Optional[RetryOverride]:
    value: Any = request.meta.get(RETRY_META_KEY)
    if value is None:
        return None
    if isinstance(value, RetryOverride):
        return value
    if isinstance(value, Mapping):
        return RetryOverride(
            disable=bool(value.get("disable", False)),
            retries=value.get("retries"),
            delay=value.get("delay"),
            retry_on=value.get("retry_on"),
        )
    logger.debug("Ignoring malformed retry override %r", value)
    return None


class RetryMiddleware:
    """Retry failed calls up to ``retries`` extra times.

    :param retries: Maximum number of retries (``0`` disables retrying)
    :param delay: Fixed delay in seconds or a delay function
    :param retry_on: Optional predicate; errors it rejects are raised at once
    """

    def __init__(
        self,
        retries: int,
        delay: Optional[Delay] = None,
        retry_on: Optional[RetryPredicate] = None,
    ):
        self.policy = RetryPolicy(retries=max(0, retries), delay=delay, retry_on=retry_on)

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, retry_on: Optional[RetryPredicate] = None
    ) -> "RetryMiddleware":
        """Build a middleware from ``retry_count`` and ``retry_delay``."""
        return cls(
            retries=settings.retry_count,
            delay=settings.retry_delay or None,
            retry_on=retry_on,
        )

    def policy_for(self, request: Request) -> RetryPolicy:
        override = read_override(request)
        if override is None:
            return self.policy
        if override.disable:
            return RetryPolicy()
        return RetryPolicy(
            retries=max(0, override.retries or 0),
            delay=override.delay,
            retry_on=override.retry_on,
        )

    async def handle(
        self, request: Request, ctx: Context, call_next: Handler
    ) -> Response:
        policy = self.policy_for(request)
        attempt_next = call_next
        attempt = 0
        while True:
            ctx.attempt = attempt
            try:
                return await attempt_next(request, ctx)
            except Exception as error:
                if attempt >= policy.retries or ctx.signal.aborted:
                    raise
                if policy.retry_on is not None and not policy.retry_on(error, request, ctx):
                    raise

                delay = policy.delay_for(attempt + 1, error, request, ctx)
                logger.debug(
                    "Retry %d/%d for %s %s after %s (delay %.3fs)",
                    attempt + 1,
                    policy.retries,
                    request.method,
                    request.url,
                    type(error).__name__,
                    delay,
                )
                if delay > 0:
                    await sleep(delay, ctx.signal)
            attempt += 1
            attempt_next = fork_next(call_next)
