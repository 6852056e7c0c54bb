"""Log sanitizer for payment notifications and webhook deliveries.

What must never reach a log line:
- Mercado Pago access tokens and Supabase session JWTs
- payer email addresses (masked to a***@domain)
- query strings of user webhook URLs (users embed their own secrets there)

Strings longer than MAX_STR_LOG are replaced by length + sha256 prefix
without running any regex.
"""

import hashlib
import re
import traceback
from typing import Any
from urllib.parse import urlsplit, urlunsplit

MAX_STR_LOG: int = 2048
MAX_DEPTH: int = 6

# Lower-cased dict keys whose values are dropped entirely.
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization", "token", "access_token", "refresh_token",
    "secret", "sb_secret_key", "service_role_key", "apikey",
    "email", "payer", "identification", "card",
})

_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"Bearer \S+"),
    re.compile(r"(?:access_token|token|secret|signature)=[^\s&]+"),
    # Mercado Pago credentials: APP_USR-... (live) / TEST-... (sandbox)
    re.compile(r"APP_USR-[0-9A-Za-z-]+"),
    re.compile(r"TEST-[0-9]{6,}[0-9A-Za-z-]*"),
]

_EMAIL_RE = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})")


def payload_hash_bytes(raw: bytes) -> str:
    """Return sha256 hex digest of raw bytes."""
    return hashlib.sha256(raw).hexdigest()


def truncate_text(s: str, limit: int) -> str:
    """Return at most ``limit`` leading characters of ``s``."""
    if limit < 0:
        raise ValueError("limit must be non-negative")
    return s[:limit]


def mask_email(email: str | None) -> str | None:
    """Mask the local part of an email address for log output (a***@x.com)."""
    if not email or "@" not in email:
        return email
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def redact_url(url: str) -> str:
    """Webhook URL without credentials, query or fragment, for log output.

    >>> redact_url("https://bob:pw@ex.com/hook?token=abc")
    'https://ex.com/hook'
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return "[INVALID_URL]"
    host = parts.hostname or ""
    if port:
        host = f"{host}:{port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


def sanitize_str(s: str) -> str:
    """Redact credentials and mask emails; oversized strings become a digest."""
    if not isinstance(s, str):
        return s  # type: ignore[return-value]

    n = len(s)
    if n > MAX_STR_LOG:
        digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
        return f"[TRUNCATED len={n} sha256={digest}]"

    result = s
    for pattern in _PATTERNS:
        result = pattern.sub("[REDACTED]", result)
    return _EMAIL_RE.sub(r"\1***@\2", result)


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively sanitize a log ``extra`` value."""
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"

    if isinstance(obj, dict):
        result: dict[str, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS:
                result[key] = "[REDACTED]"
            else:
                result[key] = sanitize_obj(value, depth + 1)
        return result

    if isinstance(obj, (list, tuple)):
        return [sanitize_obj(item, depth + 1) for item in obj]

    if isinstance(obj, str):
        return sanitize_str(obj)

    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Format an exc_info tuple into a sanitized traceback string.

    Uses capture_locals=False so local variable values never reach the log.
    """
    _type, value, _tb = exc_info
    if value is None:
        return ""
    try:
        te = traceback.TracebackException.from_exception(value, capture_locals=False)
        return sanitize_str("".join(te.format()))
    except Exception:
        return "[TRACEBACK_FORMAT_ERROR]"
