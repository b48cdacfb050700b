"""Onion composition of middlewares around a terminal handler.

For middlewares ``m1..mN`` registered in that order, a call runs
``m1-before, ..., mN-before, terminal, mN-after, ..., m1-after``.

Each middleware receives a :class:`Next` continuation. A continuation may be
called once; calling it again (or entering any stage that the current run has
already passed) raises immediately. Middlewares that need to run the rest of
the chain again, such as retry, ask for a fresh continuation with
:meth:`Next.fork` once the previous one has settled.
"""

import logging
from typing import List, Sequence

from ..exceptions import RequestError
from .context import Context
from .request import Request
from .response import Response
from .types import Handler, Middleware

logger = logging.getLogger(__name__)


class _Run:
    """Monotonic stage tracker for one pass through the chain."""

    __slots__ = ("stage",)

    def __init__(self, stage: int):
        self.stage = stage


class Next:
    """Single-use continuation into stage ``index`` of a composed chain."""

    __slots__ = ("_chain", "_index", "_run", "_in_flight")

    def __init__(self, chain: "_Chain", index: int, run: _Run):
        self._chain = chain
        self._index = index
        self._run = run
        self._in_flight = False

    async def __call__(self, request: Request, ctx: Context) -> Response:
        if self._index <= self._run.stage:
            raise RequestError.config("call_next() called multiple times")
        self._run.stage = self._index
        self._in_flight = True
        try:
            return await self._chain.dispatch(self._index, request, ctx, self._run)
        finally:
            self._in_flight = False

    def fork(self) -> "Next":
        """Return a fresh continuation for the same stage.

        :raises RequestError: If this continuation is still in flight
        """
        if self._in_flight:
            raise RequestError.config(
                "Cannot fork call_next() while the previous call is in flight"
            )
        return Next(self._chain, self._index, _Run(self._index - 1))


def fork_next(call_next: Handler) -> Handler:
    """Fresh continuation for ``call_next``; plain callables are reused."""
    if isinstance(call_next, Next):
        return call_next.fork()
    return call_next


class _Chain:
    def __init__(self, middlewares: Sequence[Middleware], final: Handler):
        self._middlewares = tuple(middlewares)
        self._final = final

    async def dispatch(
        self, index: int, request: Request, ctx: Context, run: _Run
    ) -> Response:
        if index >= len(self._middlewares):
            return await self._final(request, ctx)
        middleware = self._middlewares[index]
        return await middleware.handle(request, ctx, Next(self, index + 1, run))


class Pipeline:
    """Ordered middleware list."""

    def __init__(self, middlewares: Sequence[Middleware] = ()):
        self._middlewares: List[Middleware] = list(middlewares)

    def use(self, middleware: Middleware) -> None:
        if not callable(getattr(middleware, "handle", None)):
            raise RequestError.config(
                f"Middleware {middleware!r} has no handle() method"
            )
        self._middlewares.append(middleware)
        logger.debug("Registered middleware %s", type(middleware).__name__)

    @property
    def middlewares(self) -> List[Middleware]:
        return list(self._middlewares)

    def compose(self, final: Handler) -> Handler:
        """Snapshot the middleware list and wrap ``final``.

        Later :meth:`use` calls do not affect handlers already composed.
        """
        chain = _Chain(self._middlewares, final)

        async def handler(request: Request, ctx: Context) -> Response:
            return await Next(chain, 0, _Run(-1))(request, ctx)

        return handler
