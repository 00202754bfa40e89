"""URL to domain normalization."""

from __future__ import annotations

from urllib.parse import urlparse

_ALLOWED_SCHEMES = {"http", "https"}


def extract_domain(url: str | None) -> str | None:
    """Return the lowercase host with one leading ``www.`` removed, or None."""
    raw = (url or "").strip()
    if not raw:
        return None
    try:
        parsed = urlparse(raw)
        host = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None

    domain = host.strip().lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain or None


def is_excluded_url(url: str | None) -> bool:
    """True for browser-internal pages (chrome://, extensions, file:// ...)."""
    raw = (url or "").strip().lower()
    if not raw:
        return True
    scheme, sep, _ = raw.partition("://")
    if not sep:
        return True
    return scheme not in _ALLOWED_SCHEMES


def is_excluded_domain(domain: str, excluded_domains: list[str] | None) -> bool:
    for blocked in excluded_domains or []:
        b = blocked.strip().lower()
        if not b:
            continue
        if domain == b or domain.endswith(f".{b}"):
            return True
    return False
