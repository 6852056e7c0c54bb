"""Utility functions and helpers."""

from scaleturbo_api.utils.logging import JSONFormatter, configure_json_logging
from scaleturbo_api.utils.sanitize import (
    mask_email,
    payload_hash_bytes,
    redact_url,
    sanitize_obj,
    sanitize_str,
    truncate_text,
)

__all__ = [
    "JSONFormatter",
    "configure_json_logging",
    "mask_email",
    "payload_hash_bytes",
    "redact_url",
    "sanitize_obj",
    "sanitize_str",
    "truncate_text",
]
