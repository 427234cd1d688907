"""Tests for structured logging and request_id propagation."""

import json
import logging

from aistudio.core.logging import JsonFormatter, log_event, request_id_ctx_var, short_session_id


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="aistudio"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert len({r.request_id for r in records}) == 1


def test_request_id_in_error_response(client):
    response = client.get("/api/video-gen/status/job_missing")
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert rid
    assert response.json()["error"]["request_id"] == rid


def test_log_event_truncates_session_and_picks_up_request_id(caplog):
    token = request_id_ctx_var.set("rid-42")
    try:
        with caplog.at_level(logging.INFO, logger="aistudio"):
            log_event(
                "info",
                "usage.tracked",
                session_id="anon_1760870400000_abcdef123456",
                event_type="usage.tracked",
                extra={"note": "x" * 600},
            )
    finally:
        request_id_ctx_var.reset(token)

    record = caplog.records[-1]
    assert record.request_id == "rid-42"
    assert record.session_id == "anon_1760870400000_a"
    assert record.note.endswith("...<truncated>")


def test_short_session_id():
    assert short_session_id(None) is None
    assert len(short_session_id("anon_" + "9" * 40)) == 20


def test_json_formatter_emits_structured_fields():
    record = logging.LogRecord("aistudio", logging.INFO, __file__, 1, "video.job_created", None, None)
    record.request_id = "rid-1"
    record.job_id = "job_1_abc"
    record.event_type = "job.created"

    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "video.job_created"
    assert payload["job_id"] == "job_1_abc"
    assert payload["event_type"] == "job.created"
    assert "session_id" not in payload
