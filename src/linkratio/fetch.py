"""
Page fetching and link extraction.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup, SoupStrainer

from linkratio.config import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT
from linkratio.urls import is_valid_url, resolve_url

log = logging.getLogger(__name__)

# Extensions that still denote an HTML page (frozen set for O(1) lookup)
CRAWLABLE_EXTENSIONS: frozenset[str] = frozenset((
    "html", "htm", "xhtml", "shtml",
    "php", "asp", "aspx", "jsp", "cgi",
))

EXTENSION_RE = re.compile(r"\.([a-z0-9]+)$")

# Fallback when the HTML parser gives up
ANCHOR_HREF_RE = re.compile(r"""<a[^>]+href=["']([^"']+)["'][^>]*>""", re.IGNORECASE)

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)


def is_likely_file_url(url: str) -> bool:
    """Check if the URL path ends in an extension that is not an HTML page."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    match = EXTENSION_RE.search(path)
    if not match:
        return False
    ext = match.group(1)
    # Numbers-only extensions (e.g. /release/1.2) are treated as pages
    if ext.isdigit():
        return False
    return ext not in CRAWLABLE_EXTENSIONS


def new_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    return session


def fetch_page(
    url: str,
    timeout: float = DEFAULT_TIMEOUT_S,
    session: Optional[requests.Session] = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Optional[str]:
    """
    Fetch an HTML page body.

    Returns None for file-like URLs, invalid URLs, non-2xx responses,
    non-HTML content and any request failure. Never raises.
    """
    if is_likely_file_url(url):
        log.debug("skip file url=%s", url)
        return None
    if not is_valid_url(url):
        log.debug("skip invalid url=%s", url)
        return None

    try:
        if session is None:
            resp = requests.get(
                url,
                timeout=timeout,
                headers={"User-Agent": user_agent},
                allow_redirects=True,
            )
        else:
            resp = session.get(url, timeout=timeout, allow_redirects=True)
    except requests.Timeout:
        log.info("timeout url=%s after %.1fs", url, timeout)
        return None
    except requests.RequestException as e:
        log.error("request failed url=%s err=%s", url, e)
        return None

    if not 200 <= resp.status_code < 300:
        log.warning("http error url=%s status=%s %s", url, resp.status_code, resp.reason)
        return None

    content_type = (resp.headers.get("content-type") or "").lower()
    if "text/html" not in content_type:
        log.info("skip non-html url=%s content_type=%s", url, content_type or "missing")
        return None

    return resp.text


def _extract_with_regex(html: str, base_url: str) -> List[str]:
    links = []
    for href in ANCHOR_HREF_RE.findall(html):
        absolute = resolve_url(href, base_url)
        if absolute:
            links.append(absolute)
    return links


def extract_links(html: str, base_url: str) -> List[str]:
    """
    Extract absolute URLs of all <a href> tags, in document order.

    Duplicates are kept since every link counts towards the page ratio.
    """
    try:
        soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
        hrefs = [a["href"] for a in soup.find_all("a") if a.get("href")]
    except Exception as e:
        log.warning("html parse failed base=%s err=%s, using regex fallback", base_url, e)
        try:
            return _extract_with_regex(html, base_url)
        except Exception as e2:
            log.error("link extraction failed base=%s err=%s", base_url, e2)
            return []

    links = []
    for href in hrefs:
        absolute = resolve_url(href, base_url)
        if absolute:
            links.append(absolute)
    return links
