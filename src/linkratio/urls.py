"""
URL helpers: validation, resolution and the same-domain predicate.
"""
from __future__ import annotations

from typing import Optional, Sequence, Tuple
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse


def _origin(url: str, base_url: str) -> Optional[Tuple[str, str]]:
    """Return (scheme, hostname) of url resolved against base_url, or None."""
    try:
        parsed = urlparse(urljoin(base_url, url))
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    return parsed.scheme, hostname


def same_domain(url_a: str, url_b: str, base_url: str) -> bool:
    """
    Check if two URLs share scheme and hostname.

    Both URLs are resolved against base_url first so relative forms work.
    Subdomains count as different domains. Malformed input returns False.
    """
    origin_a = _origin(url_a, base_url)
    if origin_a is None:
        return False
    return origin_a == _origin(url_b, base_url)


def is_valid_url(url: str) -> bool:
    """Check if url is absolute (has a scheme and a network location)."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """
    Join href against base_url and drop the fragment.

    An empty path on a URL with a host becomes "/", so "https://a.com"
    and "https://a.com/" resolve to the same string.
    """
    if not href or not href.strip():
        return None
    try:
        joined, _ = urldefrag(urljoin(base_url, href.strip()))
        parsed = urlparse(joined)
        parsed.port  # raises on a malformed netloc
    except ValueError:
        return None
    if parsed.netloc and not parsed.path:
        joined = urlunparse(parsed._replace(path="/"))
    return joined or None


def same_domain_ratio(links: Sequence[str], page_url: str) -> float:
    """Fraction of links that share the page's own scheme and hostname."""
    if not links:
        return 0.0
    local = sum(1 for link in links if same_domain(link, page_url, page_url))
    return local / len(links)
