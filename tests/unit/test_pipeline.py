"""Unit tests for middleware composition."""

import pytest

from unireq.core.context import Context
from unireq.core.pipeline import Next, Pipeline, fork_next
from unireq.core.request import Request
from unireq.core.response import Response
from unireq.core.signals import AbortController
from unireq.exceptions import ErrorKind, RequestError


class Recorder:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    async def handle(self, request, ctx, call_next):
        self.log.append(f"{self.name}:before")
        try:
            return await call_next(request, ctx)
        finally:
            self.log.append(f"{self.name}:after")


def make_ctx():
    return Context(signal=AbortController().signal)


def make_terminal(log, calls=None):
    async def terminal(request, ctx):
        log.append("terminal")
        if calls is not None:
            calls.append(request)
        return Response.create(200, request.url)

    return terminal


@pytest.mark.asyncio
async def test_onion_order():
    log = []
    pipeline = Pipeline([Recorder("a", log), Recorder("b", log)])
    pipeline.use(Recorder("c", log))
    handler = pipeline.compose(make_terminal(log))

    await handler(Request.create("GET", "https://x"), make_ctx())

    assert log == [
        "a:before",
        "b:before",
        "c:before",
        "terminal",
        "c:after",
        "b:after",
        "a:after",
    ]


@pytest.mark.asyncio
async def test_after_code_runs_in_reverse_on_failure():
    log = []

    async def failing(request, ctx):
        log.append("terminal")
        raise RequestError.network()

    handler = Pipeline([Recorder("a", log), Recorder("b", log)]).compose(failing)
    with pytest.raises(RequestError):
        await handler(Request.create("GET", "https://x"), make_ctx())
    assert log == ["a:before", "b:before", "terminal", "b:after", "a:after"]


@pytest.mark.asyncio
async def test_calling_next_twice_raises_without_second_terminal_call():
    calls = []

    class Twice:
        async def handle(self, request, ctx, call_next):
            await call_next(request, ctx)
            return await call_next(request, ctx)

    handler = Pipeline([Twice()]).compose(make_terminal([], calls))
    with pytest.raises(RequestError) as exc_info:
        await handler(Request.create("GET", "https://x"), make_ctx())
    assert exc_info.value.kind is ErrorKind.CONFIG
    assert "multiple times" in str(exc_info.value)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fork_allows_sequential_redispatch():
    calls = []

    class Again:
        async def handle(self, request, ctx, call_next):
            await call_next(request, ctx)
            return await fork_next(call_next)(request, ctx)

    log = []
    handler = Pipeline([Again(), Recorder("inner", log)]).compose(
        make_terminal(log, calls)
    )
    await handler(Request.create("GET", "https://x"), make_ctx())
    assert len(calls) == 2
    assert log == [
        "inner:before",
        "terminal",
        "inner:after",
        "inner:before",
        "terminal",
        "inner:after",
    ]


@pytest.mark.asyncio
async def test_fork_while_in_flight_raises():
    seen = {}

    class ForkInside:
        async def handle(self, request, ctx, call_next):
            seen["next"] = call_next
            return await call_next(request, ctx)

    async def terminal(request, ctx):
        seen["next"].fork()
        return Response.create(200, request.url)

    handler = Pipeline([ForkInside()]).compose(terminal)
    with pytest.raises(RequestError) as exc_info:
        await handler(Request.create("GET", "https://x"), make_ctx())
    assert exc_info.value.kind is ErrorKind.CONFIG
    assert isinstance(seen["next"], Next)


@pytest.mark.asyncio
async def test_compose_snapshots_middleware_list():
    log = []
    pipeline = Pipeline([Recorder("a", log)])
    handler = pipeline.compose(make_terminal(log))
    pipeline.use(Recorder("late", log))

    await handler(Request.create("GET", "https://x"), make_ctx())
    assert "late:before" not in log
    assert len(pipeline.middlewares) == 2


def test_use_rejects_objects_without_handle():
    with pytest.raises(RequestError):
        Pipeline().use(object())


def test_fork_next_returns_plain_callables_unchanged():
    async def plain(request, ctx):
        return None

    assert fork_next(plain) is plain


@pytest.mark.asyncio
async def test_middleware_sees_context_mutations_from_outer_layers():
    seen = []

    class Outer:
        async def handle(self, request, ctx, call_next):
            ctx.attempt = 3
            return await call_next(request, ctx)

    class Inner:
        async def handle(self, request, ctx, call_next):
            seen.append(ctx.attempt)
            return await call_next(request, ctx)

    handler = Pipeline([Outer(), Inner()]).compose(make_terminal([]))
    await handler(Request.create("GET", "https://x"), make_ctx())
    assert seen == [3]
