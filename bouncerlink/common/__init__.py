"""Common utilities for BouncerLink."""

from .validators import is_valid_url, is_valid_short_code, is_valid_email
from .headers import extract_forwarded_headers, build_base_url, get_client_ip
from .url_builder import build_short_url, short_url_for_request
from .logging_config import setup_logging, get_logger

__all__ = [
    "is_valid_url",
    "is_valid_short_code",
    "is_valid_email",
    "extract_forwarded_headers",
    "build_base_url",
    "get_client_ip",
    "build_short_url",
    "short_url_for_request",
    "setup_logging",
    "get_logger",
]
