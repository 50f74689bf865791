from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests

from linkratio import fetch as fetch_mod
from linkratio.fetch import extract_links, fetch_page, is_likely_file_url, new_session


def make_response(status=200, content_type="text/html; charset=utf-8", text="<html></html>"):
    return SimpleNamespace(
        ok=status < 400,  # requests semantics: 3xx counts as ok
        status_code=status,
        reason="OK" if status < 300 else "Not Found",
        headers={"content-type": content_type} if content_type else {},
        text=text,
    )


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


@pytest.mark.parametrize("url,expected", [
    ("https://example.com/", False),
    ("https://example.com/page", False),
    ("https://example.com/page.html", False),
    ("https://example.com/index.PHP", False),
    ("https://example.com/release/1.2", False),
    ("https://example.com/image.png", True),
    ("https://example.com/doc.pdf", True),
    ("https://example.com/a.css?v=3", True),
])
def test_is_likely_file_url(url, expected):
    assert is_likely_file_url(url) is expected


def test_fetch_returns_html_body():
    session = FakeSession(make_response(text="<a href='/x'>x</a>"))
    assert fetch_page("https://example.com/", timeout=3, session=session) == "<a href='/x'>x</a>"
    url, kwargs = session.calls[0]
    assert url == "https://example.com/"
    assert kwargs["timeout"] == 3


def test_fetch_without_session_uses_requests_get(monkeypatch):
    seen = {}

    def fake_get(url, **kwargs):
        seen.update(kwargs, url=url)
        return make_response(text="ok")

    monkeypatch.setattr(fetch_mod.requests, "get", fake_get)
    assert fetch_page("https://example.com/", user_agent="TestBot/1") == "ok"
    assert seen["headers"]["User-Agent"] == "TestBot/1"
    assert seen["timeout"] == 10.0


@pytest.mark.parametrize("status", [404, 500])
def test_fetch_http_error_returns_none(status):
    assert fetch_page("https://example.com/", session=FakeSession(make_response(status=status))) is None


@pytest.mark.parametrize("status", [300, 304])
def test_fetch_unfollowed_redirect_returns_none(status):
    # requests reports these as ok, but they carry no page
    session = FakeSession(make_response(status=status))
    assert fetch_page("https://example.com/", session=session) is None


def test_fetch_accepts_any_2xx():
    session = FakeSession(make_response(status=203, text="partial"))
    assert fetch_page("https://example.com/", session=session) == "partial"


@pytest.mark.parametrize("content_type", ["application/json", "image/png", None])
def test_fetch_non_html_returns_none(content_type):
    session = FakeSession(make_response(content_type=content_type))
    assert fetch_page("https://example.com/", session=session) is None


@pytest.mark.parametrize("exc", [requests.Timeout("slow"), requests.ConnectionError("refused")])
def test_fetch_request_failure_returns_none(exc):
    assert fetch_page("https://example.com/", session=FakeSession(exc=exc)) is None


def test_fetch_skips_files_and_invalid_urls_without_request():
    session = FakeSession(make_response())
    assert fetch_page("https://example.com/photo.jpg", session=session) is None
    assert fetch_page("not-a-url", session=session) is None
    assert session.calls == []


def test_new_session_sets_user_agent():
    with new_session("TestBot/2") as session:
        assert session.headers["User-Agent"] == "TestBot/2"


def test_extract_links_resolves_and_keeps_duplicates():
    html = """
    <html><body>
      <a href="/a">A</a>
      <a href="https://other.org/x#frag">X</a>
      <a>no href</a>
      <a href="">empty</a>
      <p><a href="b.html">B</a></p>
      <a href="/a">A again</a>
      <link href="/style.css">
    </body></html>
    """
    assert extract_links(html, "https://example.com/dir/") == [
        "https://example.com/a",
        "https://other.org/x",
        "https://example.com/dir/b.html",
        "https://example.com/a",
    ]


def test_extract_links_tolerates_broken_markup():
    html = "<div><a href='/one'>1<a href=\"/two\"><<<>"
    assert extract_links(html, "https://example.com/") == [
        "https://example.com/one",
        "https://example.com/two",
    ]


def test_extract_links_empty_document():
    assert extract_links("", "https://example.com/") == []


def test_extract_links_falls_back_to_regex(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(fetch_mod, "BeautifulSoup", broken)
    html = '<a class="x" href="/one">1</a> <A HREF=\'https://other.org/\'>2</A>'
    assert extract_links(html, "https://example.com/") == [
        "https://example.com/one",
        "https://other.org/",
    ]
