"""Request ids on the full app stack, alongside the anonymous session cookie."""

import pytest
from fastapi import Request
from starlette.requests import Request as StarletteRequest
from starlette.responses import PlainTextResponse

from aistudio.core.logging import request_id_ctx_var
from aistudio.core.middleware.request_id import RequestIdMiddleware


@pytest.fixture
def rid_client(make_app):
    from fastapi.testclient import TestClient

    app = make_app()

    @app.get("/echo-ids")
    async def echo_ids(request: Request):
        return {
            "request_id": getattr(request.state, "request_id", None),
            "session_id": getattr(request.state, "session_id", None),
        }

    with TestClient(app) as test_client:
        yield test_client


def _scope(headers=()):
    return {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("testserver", 80),
        "path": "/",
        "root_path": "",
        "query_string": b"",
        "headers": list(headers),
    }


def test_generated_id_reaches_handler_and_header(rid_client):
    resp = rid_client.get("/echo-ids")

    assert resp.status_code == 200
    body = resp.json()
    assert body["request_id"]
    assert resp.headers["x-request-id"] == body["request_id"]
    assert body["session_id"].startswith("anon_")
    assert resp.headers["set-cookie"].startswith("anon_session=")


def test_incoming_id_is_kept(rid_client):
    resp = rid_client.get("/echo-ids", headers={"X-Request-Id": "studio-rid-7"})

    assert resp.headers["x-request-id"] == "studio-rid-7"
    assert resp.json()["request_id"] == "studio-rid-7"


def test_error_responses_echo_request_id(rid_client):
    resp = rid_client.get("/api/video-gen/status/job_missing", headers={"X-Request-Id": "studio-rid-404"})

    assert resp.status_code == 404
    assert resp.headers["x-request-id"] == "studio-rid-404"
    assert resp.json()["error"]["request_id"] == "studio-rid-404"


def test_validation_errors_echo_request_id(rid_client):
    resp = rid_client.post("/api/video-gen/unified-v5", json={}, headers={"X-Request-Id": "studio-rid-400"})

    assert resp.status_code == 400
    assert resp.headers["x-request-id"] == "studio-rid-400"
    assert resp.json()["error"]["request_id"] == "studio-rid-400"


async def test_context_is_reset_after_success():
    middleware = RequestIdMiddleware(app=None)
    seen = {}

    async def call_next(request):
        seen["rid"] = request_id_ctx_var.get()
        return PlainTextResponse("ok")

    request = StarletteRequest(_scope([(b"x-request-id", b"rid-ok")]))
    response = await middleware.dispatch(request, call_next)

    assert seen["rid"] == "rid-ok"
    assert response.headers["x-request-id"] == "rid-ok"
    assert request_id_ctx_var.get() is None


async def test_context_is_reset_when_handler_raises():
    middleware = RequestIdMiddleware(app=None)

    async def call_next(request):
        assert request_id_ctx_var.get() == "rid-boom"
        raise RuntimeError("handler blew up")

    with pytest.raises(RuntimeError):
        await middleware.dispatch(StarletteRequest(_scope([(b"x-request-id", b"rid-boom")])), call_next)

    assert request_id_ctx_var.get() is None
