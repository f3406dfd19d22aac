from filebox.models.logging import AppErrorLog


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert r.headers.get("X-Request-ID")


def test_request_id_is_echoed(client):
    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_errors_use_envelope_and_are_recorded(client, db_session):
    r = client.get("/files", headers={"X-Request-ID": "req-401"})
    assert r.status_code == 401
    assert r.json() == {"statusCode": 401, "error": "Unauthorized", "message": "Unauthorized"}
    assert r.headers["X-Request-ID"] == "req-401"

    row = db_session.query(AppErrorLog).filter(AppErrorLog.RequestID == "req-401").first()
    assert row is not None
    assert row.StatusCode == 401
    assert row.Path == "/files"
    assert row.Method == "GET"


def test_openapi_lists_album_routes(client):
    paths = client.get("/openapi.json").json()["paths"]
    assert "/album/{album_uuid}" in paths
    assert "/album/{identifier}/view" in paths
    assert "/upload" in paths


def test_json_log_lines_carry_extra_fields():
    import json
    import logging

    from filebox.core.logging_utils import JsonFormatter

    record = logging.LogRecord("audit", logging.INFO, __file__, 1, "album.created", (), None)
    record.album_uuid = "a-1"
    record.user_id = 7
    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "album.created"
    assert line["logger"] == "audit"
    assert line["album_uuid"] == "a-1"
    assert line["user_id"] == 7
    assert "msg" not in line and "args" not in line


def test_settings_carry_no_signing_key():
    from filebox.core.settings import Settings

    # Sessions are opaque database rows; nothing is signed
    assert "SECRET_KEY" not in Settings.model_fields
