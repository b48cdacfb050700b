"""Utility helpers for unireq."""

from .log_sanitizer import SanitizingFormatter, sanitize_headers, sanitize_string, setup_logging

__all__ = ["SanitizingFormatter", "sanitize_headers", "sanitize_string", "setup_logging"]
