"""Validation for user-supplied webhook destinations."""

from urllib.parse import urlparse

ALLOWED_SCHEMES = frozenset({"http", "https"})


def is_valid_webhook_url(url: str) -> bool:
    """Absolute http(s) URL with a host.

    >>> is_valid_webhook_url("https://ex.com/hook")
    True
    >>> is_valid_webhook_url("ftp://ex.com/hook")
    False
    >>> is_valid_webhook_url("/relative/path")
    False
    """
    if not url or url != url.strip():
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.hostname)
