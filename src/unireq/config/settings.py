"""Configuration settings for unireq clients.

Settings are loaded from environment variables prefixed with ``UNIREQ_`` and
from an optional ``.env`` file. Explicit constructor arguments to
:class:`~unireq.client.RequestClient` always take precedence.
"""

from typing import Literal, Optional

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.response import ResponseType


class ClientSettings(BaseSettings):
    """Client settings loaded from environment variables.

    :param base_url: Base URL joined with relative request paths
    :type base_url: Optional[str]
    :param timeout: Default per-call timeout in seconds (``None`` disables it)
    :type timeout: Optional[float]
    :param default_response_type: Fallback when content-type sniffing fails
    :type default_response_type: Optional[str]
    :param strict_decode: Fail when no response type can be determined
    :type strict_decode: bool
    :param log_level: Logging level for :func:`~unireq.utils.log_sanitizer.setup_logging`
    :type log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    """

    model_config = SettingsConfigDict(
        env_prefix="UNIREQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: Optional[str] = Field(None, description="Base URL for relative paths")
    timeout: Optional[float] = Field(
        None, description="Default per-call timeout in seconds"
    )
    default_response_type: Optional[str] = Field(
        None, description="Response type used when content-type is not recognized"
    )
    strict_decode: bool = Field(
        False, description="Raise when the response type cannot be determined"
    )

    # httpx transport timeouts
    connect_timeout: float = Field(5.0, description="Connect timeout in seconds")
    read_timeout: float = Field(30.0, description="Read timeout in seconds")
    write_timeout: float = Field(10.0, description="Write timeout in seconds")
    pool_timeout: float = Field(5.0, description="Pool timeout in seconds")

    # Retry defaults
    retry_count: int = Field(0, ge=0, description="Default number of retries")
    retry_delay: float = Field(0.0, ge=0, description="Delay between retries")

    # Authentication defaults
    auth_refresh_leeway: float = Field(
        60.0, ge=0, description="Refresh tokens this many seconds before expiry"
    )
    auth_max_retry: int = Field(
        1, ge=0, description="Refresh-and-retry budget per call"
    )
    auth_header_name: str = Field("Authorization", description="Credential header")
    auth_token_prefix: str = Field("Bearer ", description="Credential value prefix")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Require an absolute http(s) base URL when one is given."""
        if v is None or not v.strip():
            return None
        url = httpx.URL(v.strip())
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"base_url must be an absolute http(s) URL: {v}")
        return str(url)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("connect_timeout", "read_timeout", "write_timeout", "pool_timeout")
    @classmethod
    def validate_transport_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("transport timeouts must be positive")
        return v

    @field_validator("default_response_type")
    @classmethod
    def validate_response_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return ResponseType(v.lower()).value

    def create_timeout(self) -> httpx.Timeout:
        """Build the httpx timeout used by the default transport."""
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )
