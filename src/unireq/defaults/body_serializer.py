"""Default request body serialization."""

import json
from typing import Any

import httpx
from pydantic import BaseModel

from ..core.context import Context
from ..core.request import Request
from ..core.types import FormData, SerializedBody
from ..exceptions import RequestError

NATIVE_BODY_TYPES = (str, bytes, bytearray, memoryview)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _is_stream(body: Any) -> bool:
    return hasattr(body, "__aiter__") or (
        hasattr(body, "__iter__") and hasattr(body, "__next__")
    )


class DefaultBodySerializer:
    """Pass transport-native bodies through, JSON-encode everything else.

    A ``content-type`` header is only suggested (via
    :attr:`SerializedBody.headers`) when the request does not set one.
    """

    def __init__(self, ensure_ascii: bool = False):
        self.ensure_ascii = ensure_ascii

    def serialize(self, request: Request, ctx: Context) -> SerializedBody:
        body = request.body
        if body is None:
            return SerializedBody()

        if isinstance(body, NATIVE_BODY_TYPES) or _is_stream(body):
            return SerializedBody(content=body)

        has_content_type = "content-type" in request.headers

        if isinstance(body, FormData):
            return SerializedBody(data=body.fields, files=body.files)

        if isinstance(body, httpx.QueryParams):
            headers = None if has_content_type else httpx.Headers(
                {"content-type": FORM_CONTENT_TYPE}
            )
            return SerializedBody(content=str(body), headers=headers)

        try:
            if isinstance(body, BaseModel):
                body = body.model_dump(mode="json", by_alias=True)
            content = json.dumps(body, ensure_ascii=self.ensure_ascii)
        except (TypeError, ValueError, RecursionError) as e:
            raise RequestError.serialize(cause=e) from e

        if has_content_type:
            return SerializedBody(content=content)
        return SerializedBody(
            content=content,
            headers=httpx.Headers({"content-type": JSON_CONTENT_TYPE}),
        )
