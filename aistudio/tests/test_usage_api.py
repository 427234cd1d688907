def test_me_reports_fresh_session(client):
    body = client.get("/api/usage/me").json()
    assert body["session_id"].startswith("anon_")
    assert body["has_payment"] is False
    assert body["usage"]["cover_art"] == {"used": 0, "limit": 3, "remaining": 3}


def test_track_then_can_use(client):
    for _ in range(3):
        assert client.post("/api/usage/track", json={"kind": "cover_art"}).status_code == 200

    body = client.get("/api/usage/can-use", params={"kind": "cover_art"}).json()
    assert body["allowed"] is False
    assert body["used"] == 3
    assert body["reason"]


def test_track_quantity(client):
    resp = client.post("/api/usage/track", json={"kind": "chat_messages", "quantity": 4})
    assert resp.json()["used"] == 4


def test_track_rejects_bad_input(client):
    assert client.post("/api/usage/track", json={"kind": "chat_messages", "quantity": 0}).status_code == 400
    assert client.post("/api/usage/track", json={"kind": "nope"}).status_code == 400
    assert client.get("/api/usage/can-use", params={"kind": "nope"}).status_code == 400
