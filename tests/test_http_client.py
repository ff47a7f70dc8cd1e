import pytest

from anime_sync.core import http_client as hc
from anime_sync.core.errors import NetworkError, ServerError, QueryTooShort


class DummyResponse:
    def __init__(self, status_code=200, json_data=None, content=b""):
        self.status_code = status_code
        self._json = json_data or {}
        self.content = content

    def json(self):
        return self._json


def test_http_get_success(monkeypatch):
    calls = {"n": 0}

    def fake_request(method, url, timeout=None, headers=None, **kw):
        calls["n"] += 1
        assert method == "GET"
        assert url == "https://example.com"
        assert headers["User-Agent"] == hc.UA
        return DummyResponse(200, {"ok": True})

    monkeypatch.setattr(hc.requests, "request", fake_request)

    r = hc.http_get("https://example.com")
    assert isinstance(r, DummyResponse)
    assert r.json()["ok"] is True
    assert calls["n"] == 1


def test_http_get_does_not_retry_on_5xx(monkeypatch):
    calls = {"n": 0}

    def fake_request(method, url, timeout=None, headers=None, **kw):
        calls["n"] += 1
        return DummyResponse(503, {})

    monkeypatch.setattr(hc.requests, "request", fake_request)

    r = hc.http_get("https://api.service/test")
    assert r.status_code == 503
    assert calls["n"] == 1


def test_request_exception_becomes_network_error(monkeypatch):
    class Boom(hc.requests.RequestException):
        pass

    def fake_request(method, url, timeout=None, headers=None, **kw):
        raise Boom("network down")

    monkeypatch.setattr(hc.requests, "request", fake_request)

    with pytest.raises(NetworkError) as ei:
        hc.http_get("https://down.example")
    assert isinstance(ei.value.__cause__, Boom)
    assert not ei.value.is_timeout


def test_timeout_maps_to_timeout_payload(monkeypatch):
    def fake_request(method, url, timeout=None, headers=None, **kw):
        raise hc.requests.Timeout("slow")

    monkeypatch.setattr(hc.requests, "request", fake_request)

    with pytest.raises(NetworkError) as ei:
        hc.http_get("https://slow.example", timeout=3)
    assert ei.value.is_timeout
    assert hc.err_from_exc("content", ei.value)["error"]["code"] == "TIMEOUT"


def test_fetch_bytes_raises_on_non_2xx(monkeypatch):
    monkeypatch.setattr(hc.requests, "request",
                        lambda method, url, **kw: DummyResponse(404))
    with pytest.raises(ServerError) as ei:
        hc.fetch_bytes("https://img.example/x.jpg")
    assert ei.value.is_not_found
    assert ei.value.code == "UPSTREAM_404"


def test_fetch_bytes_returns_content(monkeypatch):
    monkeypatch.setattr(hc.requests, "request",
                        lambda method, url, **kw: DummyResponse(200, content=b"\x89PNG"))
    assert hc.fetch_bytes("https://img.example/x.png") == b"\x89PNG"


def test_err_from_exc_codes():
    assert hc.err_from_exc("content", QueryTooShort())["error"]["code"] == "BAD_REQUEST"
    assert hc.err_from_exc("content", ValueError("nope"))["error"]["code"] == "BAD_REQUEST"
    out = hc.err_from_exc("anilist", RuntimeError("boom"))
    assert out["schemaVersion"] == "1.0.0"
    assert out["error"] == {"code": "UNEXPECTED", "message": "boom", "source": "anilist"}
