"""Unit tests for the default body serializer."""

import json

import httpx
import pytest
from pydantic import BaseModel, Field

from unireq.core.context import Context
from unireq.core.request import Request
from unireq.core.signals import AbortController
from unireq.core.types import FormData
from unireq.defaults.body_serializer import DefaultBodySerializer
from unireq.exceptions import ErrorKind, RequestError


class Item(BaseModel):
    item_id: int = Field(alias="itemId")
    name: str


@pytest.fixture
def serialize():
    serializer = DefaultBodySerializer()
    ctx = Context(signal=AbortController().signal)

    def run(body, headers=None):
        return serializer.serialize(
            Request.create("POST", "https://x", body=body, headers=headers), ctx
        )

    return run


def test_no_body(serialize):
    out = serialize(None)
    assert out.content is None
    assert out.headers is None


@pytest.mark.parametrize("body", ["text", b"bytes", bytearray(b"ba"), memoryview(b"mv")])
def test_native_bodies_pass_through(serialize, body):
    out = serialize(body)
    assert out.content is body
    assert out.headers is None


def test_structured_body_is_json_encoded(serialize):
    out = serialize({"a": 1, "b": [1, 2]})
    assert json.loads(out.content) == {"a": 1, "b": [1, 2]}
    assert out.headers["content-type"] == "application/json"


def test_existing_content_type_is_respected(serialize):
    out = serialize({"a": 1}, headers={"Content-Type": "application/vnd.api+json"})
    assert json.loads(out.content) == {"a": 1}
    assert out.headers is None


def test_pydantic_model_uses_aliases(serialize):
    out = serialize(Item(itemId=7, name="x"))
    assert json.loads(out.content) == {"itemId": 7, "name": "x"}


def test_query_params_body_is_form_encoded(serialize):
    out = serialize(httpx.QueryParams({"a": "1", "b": "two"}))
    assert out.content == "a=1&b=two"
    assert out.headers["content-type"] == "application/x-www-form-urlencoded"


def test_form_data_is_passed_as_data_and_files(serialize):
    files = {"upload": ("a.txt", b"hello", "text/plain")}
    out = serialize(FormData(fields={"name": "x"}, files=files))
    assert out.data == {"name": "x"}
    assert out.files is files
    assert out.content is None


def test_unserializable_body_raises_serialize_error(serialize):
    cyclic = {}
    cyclic["self"] = cyclic
    with pytest.raises(RequestError) as exc_info:
        serialize(cyclic)
    assert exc_info.value.kind is ErrorKind.SERIALIZE
    assert exc_info.value.cause is not None


def test_request_is_not_mutated(serialize):
    serializer = DefaultBodySerializer()
    request = Request.create("POST", "https://x", body={"a": 1})
    serializer.serialize(request, Context(signal=AbortController().signal))
    assert "content-type" not in request.headers
