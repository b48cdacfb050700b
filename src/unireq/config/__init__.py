"""Configuration for unireq."""

from .settings import ClientSettings

__all__ = ["ClientSettings"]
