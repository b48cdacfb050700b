"""Structured exception type for unireq.

Every failure that reaches a caller of :class:`~unireq.client.RequestClient`
is a :class:`RequestError`. Instead of a class per failure mode, the error
carries a discriminant :class:`ErrorKind` plus the payload fields relevant to
that kind, so callers can branch on ``err.kind`` exhaustively.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorKind(str, Enum):
    """Discriminant for :class:`RequestError`."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELED = "canceled"
    HTTP = "http"
    CONFIG = "config"
    SERIALIZE = "serialize"
    DECODE = "decode"


class RequestError(Exception):
    """Tagged error raised for every failed request.

    Variant payloads:

    - ``HTTP``: ``status``, ``url``, ``headers``, ``body_preview``
    - ``DECODE``: ``response_type``, ``status``, ``url``
    - all kinds: optional ``cause`` (also chained as ``__cause__``)

    :param kind: Failure classification
    :param message: Human-readable error message
    :param cause: Optional underlying exception or value
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
        url: Optional[str] = None,
        headers: Optional[httpx.Headers] = None,
        body_preview: Any = None,
        response_type: Optional[str] = None,
    ):
        """Initialize the error with its kind, message and variant payload."""
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.cause = cause
        self.status = status
        self.url = url
        self.body_preview = body_preview
        self.response_type = response_type
        self._headers = httpx.Headers(headers) if headers is not None else None
        if isinstance(cause, BaseException):
            self.__cause__ = cause

    @property
    def headers(self) -> Optional[httpx.Headers]:
        """Copy of the response headers (``HTTP`` kind only)."""
        if self._headers is None:
            return None
        return httpx.Headers(self._headers)

    @property
    def code(self) -> str:
        """Stable upper-case code, e.g. ``HTTP_ERROR``."""
        return f"{self.kind.name}_ERROR"

    @property
    def details(self) -> Dict[str, Any]:
        """Variant payload as a plain dictionary."""
        details: Dict[str, Any] = {}
        if self.status is not None:
            details["status"] = self.status
        if self.url is not None:
            details["url"] = self.url
        if self.response_type is not None:
            details["response_type"] = self.response_type
        if self.cause is not None:
            details["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return details

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to dictionary format.

        :return: Dictionary containing error code, message, and details
        """
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Convert the error to a JSON string."""
        return json.dumps(self.to_dict())

    def __repr__(self) -> str:
        return f"RequestError(kind={self.kind.value!r}, message={self.message!r})"

    # Variant constructors

    @classmethod
    def network(
        cls, message: str = "Network error", cause: Optional[BaseException] = None
    ) -> "RequestError":
        return cls(ErrorKind.NETWORK, message, cause=cause)

    @classmethod
    def timeout(
        cls, message: str = "Request timed out", cause: Optional[BaseException] = None
    ) -> "RequestError":
        return cls(ErrorKind.TIMEOUT, message, cause=cause)

    @classmethod
    def canceled(
        cls, message: str = "Request canceled", cause: Optional[BaseException] = None
    ) -> "RequestError":
        return cls(ErrorKind.CANCELED, message, cause=cause)

    @classmethod
    def http(
        cls,
        status: int,
        url: str,
        body_preview: Any = None,
        headers: Optional[httpx.Headers] = None,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> "RequestError":
        return cls(
            ErrorKind.HTTP,
            message or f"HTTP {status}",
            cause=cause,
            status=status,
            url=url,
            headers=headers,
            body_preview=body_preview,
        )

    @classmethod
    def config(
        cls, message: str, cause: Optional[BaseException] = None
    ) -> "RequestError":
        return cls(ErrorKind.CONFIG, message, cause=cause)

    @classmethod
    def serialize(
        cls,
        message: str = "Failed to serialize request body",
        cause: Optional[BaseException] = None,
    ) -> "RequestError":
        return cls(ErrorKind.SERIALIZE, message, cause=cause)

    @classmethod
    def decode(
        cls,
        response_type: str,
        status: int,
        url: str,
        message: str = "Failed to decode response body",
        cause: Optional[BaseException] = None,
    ) -> "RequestError":
        return cls(
            ErrorKind.DECODE,
            message,
            cause=cause,
            status=status,
            url=url,
            response_type=response_type,
        )


def is_http_status(error: BaseException, status: int) -> bool:
    """Return True when ``error`` is an HTTP-kind error with ``status``."""
    return (
        isinstance(error, RequestError)
        and error.kind is ErrorKind.HTTP
        and error.status == status
    )
