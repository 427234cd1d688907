from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from aistudio.core.middleware.session import AnonymousSessionMiddleware, new_session_id


def _make_app(**kwargs):
    app = FastAPI()
    app.add_middleware(AnonymousSessionMiddleware, **kwargs)

    @app.get("/whoami")
    async def whoami(request: Request):
        return {"session_id": getattr(request.state, "session_id", None)}

    @app.get("/static/logo.png")
    async def logo(request: Request):
        return {"session_id": getattr(request.state, "session_id", None)}

    return app


def test_new_session_id_shape():
    prefix, ms, suffix = new_session_id().split("_")
    assert prefix == "anon"
    assert ms.isdigit()
    assert suffix


def test_first_request_sets_cookie():
    client = TestClient(_make_app())
    resp = client.get("/whoami")

    cookie = resp.headers["set-cookie"]
    assert cookie.startswith("anon_session=")
    assert "HttpOnly" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "Max-Age=31536000" in cookie
    assert "Secure" not in cookie
    assert resp.json()["session_id"].startswith("anon_")


def test_session_is_stable_across_requests():
    client = TestClient(_make_app())
    first = client.get("/whoami").json()["session_id"]
    second = client.get("/whoami")
    assert second.json()["session_id"] == first
    assert "set-cookie" not in second.headers


def test_static_paths_get_no_session():
    client = TestClient(_make_app())
    resp = client.get("/static/logo.png")
    assert resp.json()["session_id"] is None
    assert "set-cookie" not in resp.headers


def test_secure_flag_in_production():
    client = TestClient(_make_app(secure=True))
    assert "Secure" in client.get("/whoami").headers["set-cookie"]
