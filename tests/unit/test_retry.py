"""Unit tests for the retry middleware."""

import asyncio

import pytest

from conftest import make_result
from unireq.client import RequestClient
from unireq.config import ClientSettings
from unireq.core.signals import AbortController
from unireq.exceptions import ErrorKind, RequestError
from unireq.middleware.retry import RETRY_META_KEY, RetryMiddleware, RetryOverride


def fails_then_succeeds(failures, error=None):
    state = {"n": 0}

    def handler(request, ctx):
        state["n"] += 1
        if state["n"] <= failures:
            raise error or RequestError.network(f"failure {state['n']}")
        return make_result(data={"attempt": ctx.attempt})

    return handler


def always_fails(request, ctx):
    raise RequestError.network("down")


@pytest.mark.asyncio
async def test_retries_until_success(stub_transport):
    transport = stub_transport(fails_then_succeeds(2))
    client = RequestClient(transport=transport, middlewares=[RetryMiddleware(retries=2)])

    response = await client.get("https://api.example.com/x")

    assert transport.calls == 3
    assert response.data == {"attempt": 2}


@pytest.mark.asyncio
async def test_exhausted_retries_raise_underlying_error(stub_transport):
    transport = stub_transport(fails_then_succeeds(2))
    client = RequestClient(transport=transport, middlewares=[RetryMiddleware(retries=1)])

    with pytest.raises(RequestError) as exc_info:
        await client.get("https://api.example.com/x")

    assert transport.calls == 2
    assert exc_info.value.kind is ErrorKind.NETWORK
    assert str(exc_info.value) == "failure 2"


@pytest.mark.asyncio
async def test_untyped_error_is_classified_after_retries(stub_transport):
    cause = ConnectionError("refused")
    transport = stub_transport(fails_then_succeeds(5, error=cause))
    client = RequestClient(transport=transport, middlewares=[RetryMiddleware(retries=1)])

    with pytest.raises(RequestError) as exc_info:
        await client.get("https://api.example.com/x")

    assert exc_info.value.kind is ErrorKind.NETWORK
    assert exc_info.value.cause is cause


@pytest.mark.asyncio
async def test_meta_override_disables_retries(stub_transport):
    transport = stub_transport(always_fails)
    client = RequestClient(transport=transport, middlewares=[RetryMiddleware(retries=2)])

    with pytest.raises(RequestError):
        await client.get(
            "https://api.example.com/x",
            meta={RETRY_META_KEY: RetryOverride(disable=True)},
        )
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_mapping_override_replaces_whole_policy(stub_transport):
    transport = stub_transport(always_fails)
    middleware = RetryMiddleware(retries=0, retry_on=lambda e, r, c: False)
    client = RequestClient(transport=transport, middlewares=[middleware])

    with pytest.raises(RequestError):
        await client.get("https://api.example.com/x", meta={RETRY_META_KEY: {"retries": 3}})
    # The override has no predicate, so the middleware's predicate is not used.
    assert transport.calls == 4


@pytest.mark.asyncio
async def test_predicate_rejecting_error_stops_immediately(stub_transport):
    transport = stub_transport(fails_then_succeeds(1, error=RequestError.http(400, "u")))
    middleware = RetryMiddleware(
        retries=3,
        retry_on=lambda error, request, ctx: error.kind is not ErrorKind.HTTP,
    )
    client = RequestClient(transport=transport, middlewares=[middleware])

    with pytest.raises(RequestError) as exc_info:
        await client.get("https://api.example.com/x")
    assert exc_info.value.kind is ErrorKind.HTTP
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_delay_function_receives_attempt_number(stub_transport):
    seen = []

    def delay(attempt, error, request, ctx):
        seen.append(attempt)
        return 0.001

    transport = stub_transport(fails_then_succeeds(2))
    client = RequestClient(
        transport=transport, middlewares=[RetryMiddleware(retries=2, delay=delay)]
    )
    await client.get("https://api.example.com/x")
    assert seen == [1, 2]


@pytest.mark.asyncio
async def test_attempt_counter_visible_to_transport(stub_transport):
    attempts = []

    def handler(request, ctx):
        attempts.append(ctx.attempt)
        if len(attempts) < 3:
            raise RequestError.network()
        return make_result(data={})

    client = RequestClient(
        transport=stub_transport(handler), middlewares=[RetryMiddleware(retries=2)]
    )
    await client.get("https://api.example.com/x")
    assert attempts == [0, 1, 2]


@pytest.mark.asyncio
async def test_abort_during_delay_stops_retrying(stub_transport):
    transport = stub_transport(always_fails)
    client = RequestClient(
        transport=transport, middlewares=[RetryMiddleware(retries=5, delay=10)]
    )
    controller = AbortController()
    asyncio.get_running_loop().call_later(0.01, controller.abort)

    with pytest.raises(RequestError) as exc_info:
        await client.get("https://api.example.com/x", signal=controller.signal)

    assert exc_info.value.kind is ErrorKind.CANCELED
    assert transport.calls == 1


@pytest.mark.asyncio
async def test_end_event_reports_final_attempt(stub_transport, mock_listener):
    client = RequestClient(
        transport=stub_transport(fails_then_succeeds(1)),
        middlewares=[RetryMiddleware(retries=2)],
    )
    client.events.on("request:end", mock_listener)
    await client.get("https://api.example.com/x")
    assert mock_listener.call_args.args[0].attempt == 1


def test_negative_retries_are_clamped():
    assert RetryMiddleware(retries=-1).policy.retries == 0


def test_from_settings():
    middleware = RetryMiddleware.from_settings(ClientSettings(retry_count=4, retry_delay=0.5))
    assert middleware.policy.retries == 4
    assert middleware.policy.delay == 0.5
