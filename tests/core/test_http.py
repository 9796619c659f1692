"""Tests for navfolio.core.http."""

import http.client as http_client
import io
import urllib.error

import pytest

from navfolio.core import http
from navfolio.core.exceptions import NotFound, RateLimited, SchemaChanged, Unavailable
from navfolio.core.http import NO_RETRY, RetryPolicy, build_url, classify_status, get_json


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class TestGetJson:
    def test_decodes_body(self, monkeypatch):
        monkeypatch.setattr(http.urllib.request, "urlopen", lambda req, timeout: _Response(b'{"nav": "12.5"}'))
        assert get_json("https://example.test/nav") == {"nav": "12.5"}

    def test_sends_user_agent(self, monkeypatch):
        seen = {}

        def fake_urlopen(req, timeout):
            seen["ua"] = req.get_header("User-agent")
            seen["timeout"] = timeout
            return _Response(b"{}")

        monkeypatch.setattr(http.urllib.request, "urlopen", fake_urlopen)
        get_json("https://example.test", timeout=3)
        assert seen == {"ua": http.USER_AGENT, "timeout": 3}

    @pytest.mark.parametrize("status, error", [(404, NotFound), (429, RateLimited), (503, Unavailable)])
    def test_http_errors(self, monkeypatch, status, error):
        def fake_urlopen(req, timeout):
            raise urllib.error.HTTPError(req.full_url, status, "boom", {}, io.BytesIO(b"detail"))

        monkeypatch.setattr(http.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(error):
            get_json("https://example.test")

    def test_network_error(self, monkeypatch):
        def fake_urlopen(req, timeout):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(http.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(Unavailable, match="connection refused"):
            get_json("https://example.test")

    def test_timeout(self, monkeypatch):
        def fake_urlopen(req, timeout):
            raise TimeoutError()

        monkeypatch.setattr(http.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(Unavailable, match="timed out"):
            get_json("https://example.test")

    @pytest.mark.parametrize(
        "error",
        [
            http_client.RemoteDisconnected("Remote end closed connection without response"),
            ConnectionResetError(104, "Connection reset by peer"),
            http_client.IncompleteRead(b"{", 100),
        ],
    )
    def test_dropped_connection(self, monkeypatch, error):
        def fake_urlopen(req, timeout):
            raise error

        monkeypatch.setattr(http.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(Unavailable, match="failed"):
            get_json("https://example.test")

    def test_truncated_body(self, monkeypatch):
        class Truncated(_Response):
            def read(self, *args):
                raise http_client.IncompleteRead(b'{"na', 40)

        monkeypatch.setattr(http.urllib.request, "urlopen", lambda req, timeout: Truncated(b""))
        with pytest.raises(Unavailable):
            get_json("https://example.test")

    @pytest.mark.parametrize("body", [b"", b"   ", b"<html>rate limit</html>"])
    def test_unparseable_body(self, monkeypatch, body):
        monkeypatch.setattr(http.urllib.request, "urlopen", lambda req, timeout: _Response(body))
        with pytest.raises(Unavailable):
            get_json("https://example.test")


def test_classify_status():
    assert isinstance(classify_status(404, "x"), NotFound)
    assert isinstance(classify_status(429, "x"), RateLimited)
    assert isinstance(classify_status(500, "x"), Unavailable)


def test_build_url():
    assert build_url("https://h/", "/a/b") == "https://h/a/b"
    assert build_url("https://h", "chart", {"range": "5d", "interval": "1d"}) == "https://h/chart?range=5d&interval=1d"


class TestRetryPolicy:
    def test_retries_transient_errors(self):
        attempts = []
        sleeps = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise RateLimited("429")
            return "ok"

        assert RetryPolicy(retries=2, delay=0.5).run(flaky, sleep=sleeps.append) == "ok"
        assert len(attempts) == 3
        assert sleeps == [0.5, 1.0]

    def test_gives_up_after_retries(self):
        attempts = []

        def down():
            attempts.append(1)
            raise Unavailable("down")

        with pytest.raises(Unavailable):
            RetryPolicy(retries=2, delay=0).run(down, sleep=lambda s: None)
        assert len(attempts) == 3

    def test_permanent_errors_are_not_retried(self):
        attempts = []

        def broken():
            attempts.append(1)
            raise SchemaChanged("no chart")

        with pytest.raises(SchemaChanged):
            RetryPolicy(retries=5, delay=0).run(broken, sleep=lambda s: None)
        assert len(attempts) == 1

    def test_no_retry(self):
        attempts = []

        def down():
            attempts.append(1)
            raise Unavailable("down")

        with pytest.raises(Unavailable):
            NO_RETRY.run(down)
        assert len(attempts) == 1
