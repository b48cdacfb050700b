"""Unit tests for the default URL resolver."""

import httpx
import pytest

from unireq.core.context import Context
from unireq.core.request import Request
from unireq.core.signals import AbortController
from unireq.defaults.url_resolver import DefaultUrlResolver, apply_query, is_absolute_url
from unireq.exceptions import ErrorKind, RequestError


@pytest.fixture
def ctx():
    return Context(signal=AbortController().signal)


def resolve(resolver, ctx, url, query=None):
    return resolver.resolve(Request.create("GET", url, query=query), ctx)


def test_joins_relative_path_onto_base(ctx):
    resolver = DefaultUrlResolver("https://api.example.com/v1/")
    assert resolve(resolver, ctx, "users") == "https://api.example.com/v1/users"


def test_absolute_url_ignores_base(ctx):
    resolver = DefaultUrlResolver("https://api.example.com")
    assert resolve(resolver, ctx, "https://other.example.com/x") == "https://other.example.com/x"


def test_relative_url_without_base_is_config_error(ctx):
    with pytest.raises(RequestError) as exc_info:
        resolve(DefaultUrlResolver(), ctx, "/users")
    assert exc_info.value.kind is ErrorKind.CONFIG


def test_mapping_query_with_list_values(ctx):
    resolver = DefaultUrlResolver("https://api.example.com")
    url = resolve(resolver, ctx, "/search", {"a": 1, "b": ["x", "y"]})
    assert httpx.URL(url).params.multi_items() == [("a", "1"), ("b", "x"), ("b", "y")]
    assert url.startswith("https://api.example.com/search?")


def test_mapping_query_overrides_existing_param():
    url = apply_query("https://x/path?a=1&c=3", {"a": 2})
    assert httpx.URL(url).params.multi_items() == [("a", "2"), ("c", "3")]


def test_mapping_query_drops_none_and_formats_booleans():
    url = apply_query("https://x/", {"skip": None, "flag": True, "off": False})
    assert httpx.URL(url).params.multi_items() == [("flag", "true"), ("off", "false")]


def test_pair_list_query_sets_each_key():
    url = apply_query("https://x/?a=0", [("a", "1"), ("b", "2")])
    assert httpx.URL(url).params.multi_items() == [("a", "1"), ("b", "2")]


def test_query_params_and_string_forms():
    params = httpx.QueryParams([("tag", "a"), ("tag", "b")])
    url = apply_query("https://x/?tag=old&keep=1", params)
    assert httpx.URL(url).params.multi_items() == [("tag", "b"), ("keep", "1")]

    url = apply_query("https://x/", "?q=hello")
    assert httpx.URL(url).params["q"] == "hello"


def test_custom_query_serializer_replaces_default(ctx):
    calls = []

    def serializer(query, url):
        calls.append((query, url))
        return url + "?custom=1"

    resolver = DefaultUrlResolver("https://api.example.com", query_serializer=serializer)
    url = resolve(resolver, ctx, "/x", {"a": 1})
    assert url == "https://api.example.com/x?custom=1"
    assert calls == [({"a": 1}, "https://api.example.com/x")]


def test_is_absolute_url():
    assert is_absolute_url("https://example.com/a")
    assert not is_absolute_url("/a")


@pytest.mark.parametrize(
    "query", [httpx.QueryParams([("a", "1"), ("a", "2")]), "a=1&a=2"]
)
def test_repeated_key_in_prebuilt_query_keeps_last_value(query):
    url = apply_query("https://x/", query)
    assert httpx.URL(url).params.get_list("a") == ["2"]
