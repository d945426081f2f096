"""Post-authentication redirect validation.

Confines redirects to the application's own origin to prevent open
redirects. Pure and side-effect free.
"""

from urllib.parse import urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(url: str) -> tuple[str, str, int | None] | None:
    """Return (scheme, host, effective port) or None if url is not absolute."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if not scheme or not host:
        return None
    return scheme, host, port if port is not None else _DEFAULT_PORTS.get(scheme)


def resolve_redirect(url: str | None, base_url: str) -> str:
    """Resolve a requested redirect target against the app's base URL.

    - A relative path (``/...``) is appended to base_url.
    - An absolute URL on the same origin as base_url is returned unchanged.
    - Anything else (foreign origin, unparsable, empty) falls back to base_url.

    A path is always joined onto base_url, so ``//host`` stays on the app
    origin as ``base//host``.

    Args:
        url: Requested redirect target.
        base_url: Application origin, e.g. "https://example.com".

    Returns:
        Safe redirect URL.
    """
    if not url:
        return base_url
    if url.startswith("/"):
        return f"{base_url.rstrip('/')}{url}"

    target = _origin(url)
    if target is not None and target == _origin(base_url):
        return url
    return base_url
