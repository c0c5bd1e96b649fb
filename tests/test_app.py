import logging
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

import database
from main import create_app, resolve_log_level


def test_root_is_plain_text(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "AirCNC Server is running.."
    assert response.headers["content-type"].startswith("text/plain")


def test_cors_allows_any_origin_with_credentials(client):
    response = client.get("/", headers={"Origin": "http://localhost:5173"})
    assert response.headers["access-control-allow-origin"] in ("*", "http://localhost:5173")
    assert response.headers["access-control-allow-credentials"] == "true"


def test_unconfigured_database():
    client = TestClient(create_app())
    response = client.get("/rooms")
    assert response.status_code == 500
    assert response.json() == {"error": True, "message": "Database not configured"}
    assert client.get("/test").json()["database"] == "Not Available"


def test_storage_failure_becomes_500():
    db = MagicMock()
    db.__getitem__.return_value.find.side_effect = ServerSelectionTimeoutError("no servers")
    client = TestClient(create_app(db))
    response = client.get("/rooms")
    assert response.status_code == 500
    assert response.json() == {"error": True, "message": "Database operation failed"}


def test_startup_pings_database():
    db = MagicMock()
    with TestClient(create_app(db)):
        pass
    db.client.admin.command.assert_called_once_with("ping")


def test_failed_ping_does_not_stop_startup():
    db = MagicMock()
    db.client.admin.command.side_effect = ConnectionFailure("unreachable")
    with TestClient(create_app(db)) as client:
        assert client.get("/").status_code == 200


def test_diagnostics_lists_collections(client):
    client.post("/rooms", json={"title": "Cabin"})
    body = client.get("/test").json()
    assert body["connection_status"] == "Connected"
    assert body["database_name"] == "aircncDB"
    assert "rooms" in body["collections"]


def test_database_url_from_credentials(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_USER", "air")
    monkeypatch.setenv("DB_PASS", "p@ss")
    url = database.build_database_url()
    assert url.startswith("mongodb+srv://air:p%40ss@")
    assert "retryWrites=true" in url


def test_no_credentials_means_no_database(monkeypatch):
    for name in ("DATABASE_URL", "DB_USER", "DB_PASS"):
        monkeypatch.delenv(name, raising=False)
    assert database.connect() is None


def access_records(caplog):
    return [record for record in caplog.records if record.name == "aircnc.access"]


def test_access_log_levels_follow_status(client, caplog):
    caplog.set_level(logging.INFO, logger="aircnc.access")
    client.get("/")
    client.get("/rooms/h@x.com")
    levels = [(record.levelno, record.getMessage().split()[2]) for record in access_records(caplog)]
    assert levels == [(logging.INFO, "200"), (logging.WARNING, "401")]


def test_unhandled_error_is_500_and_logged(caplog):
    caplog.set_level(logging.INFO, logger="aircnc.access")
    db = MagicMock()
    db.__getitem__.return_value.find.side_effect = ValueError("boom")
    client = TestClient(create_app(db), raise_server_exceptions=False)

    response = client.get("/rooms")
    assert response.status_code == 500
    assert response.json() == {"error": True, "message": "Internal Server Error"}

    records = access_records(caplog)
    assert len(records) == 1
    assert records[0].levelno == logging.ERROR
    assert "GET /rooms 500" in records[0].getMessage()


def test_unknown_log_level_falls_back_to_info():
    assert resolve_log_level("loud") == "INFO"
    assert resolve_log_level(None) == "INFO"
    assert resolve_log_level("debug") == "DEBUG"
