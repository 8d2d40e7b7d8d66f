"""
HTTP-level tests: verbs and paths mapped onto the repository and status codes.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Make the users_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from users_api.app import create_app  # noqa: E402
from users_api.core import config as core_config  # noqa: E402
from users_api.core.logging import HANDLER_NAME, configure_logging  # noqa: E402
from users_api.repositories.json_storage import StoreWriteError  # noqa: E402


@pytest.fixture()
def users_file(tmp_path, monkeypatch):
    """Point USERS_FILE at a temporary file and reset the cached settings."""
    path = tmp_path / "users.json"
    monkeypatch.setenv("USERS_FILE", str(path))
    core_config.get_settings.cache_clear()
    yield path
    core_config.get_settings.cache_clear()


@pytest.fixture()
def client(users_file):
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _create(client, **fields):
    payload = {"name": "Ana", "email": "ana@example.com", "age": 29}
    payload.update(fields)
    resp = client.post("/users", json=payload)
    assert resp.status_code == 201
    return resp.json()


def test_settings_read_users_file_from_env(users_file):
    assert core_config.get_settings().users_file == users_file


def test_empty_service(client):
    assert client.get("/users").json() == []
    resp = client.get("/users/sorted")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "No users found"}
    assert client.get("/health").json() == {"status": "ok", "users": 0}


def test_create_single_and_get(client, users_file):
    created = _create(client)
    assert set(created) == {"id", "name", "email", "age"}

    resp = client.get(f"/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created
    assert json.loads(users_file.read_text(encoding="utf-8")) == [created]


def test_create_batch_returns_created_records(client):
    _create(client, name="Existing")
    resp = client.post(
        "/users",
        json=[
            {"name": "Bob", "email": "bob@x.com", "age": 20},
            {"name": "Carol", "email": "carol@x.com", "age": 30},
        ],
    )
    assert resp.status_code == 201
    assert [u["name"] for u in resp.json()] == ["Bob", "Carol"]
    assert len(client.get("/users").json()) == 3


def test_invalid_batch_is_400_and_admits_nothing(client):
    resp = client.post(
        "/users",
        json=[
            {"name": "Bob", "email": "bob@x.com", "age": 20},
            {"name": "NoMail", "age": 20},
        ],
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Invalid user data"
    assert body["errors"] == [{"field": "email", "message": "must be a non-empty string", "index": 1}]
    assert client.get("/users").json() == []


@pytest.mark.parametrize("content", [b"{broken", b""])
def test_malformed_or_missing_body_is_400(client, content):
    resp = client.post("/users", content=content, headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_unknown_user_is_404(client):
    for method in ("get", "delete"):
        resp = getattr(client, method)("/users/nope")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "User not found"}
    assert client.put("/users/nope", json={"age": 3}).status_code == 404


def test_update_partial(client):
    created = _create(client, name="X", email="x@y.com", age=30)
    resp = client.put(f"/users/{created['id']}", json={"age": 31})
    assert resp.status_code == 200
    assert resp.json() == dict(created, age=31)

    resp = client.put(f"/users/{created['id']}", json={})
    assert resp.json() == dict(created, age=31)


def test_update_with_zero_age_is_400(client):
    created = _create(client)
    assert client.put(f"/users/{created['id']}", json={"age": 0}).status_code == 400


def test_delete_then_get(client):
    created = _create(client)
    resp = client.delete(f"/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created
    assert client.get(f"/users/{created['id']}").status_code == 404


def test_sorted_age_and_domain_routes(client):
    _create(client, name="Bob", email="bob@sub.example.com", age=40)
    _create(client, name="alice", email="alice@other.com", age=20)
    _create(client, name="Carol", email="carol@example.com", age=35)

    assert [u["name"] for u in client.get("/users/sorted").json()] == ["alice", "Bob", "Carol"]
    assert [u["name"] for u in client.get("/users/age/30").json()] == ["Bob", "Carol"]
    resp = client.get("/users/age/not-a-number")
    assert resp.status_code == 200
    assert resp.json() == []
    assert [u["name"] for u in client.get("/users/domain/example.com").json()] == ["Bob", "Carol"]
    assert client.get("/users/domain/nowhere.org").json() == []


def test_write_failure_is_500(client, monkeypatch):
    repo = client.app.state.user_repository

    def broken_save(_users):
        raise StoreWriteError("disk full")

    monkeypatch.setattr(repo.store, "save", broken_save)
    resp = client.post("/users", json={"name": "X", "email": "x@y.com", "age": 3})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Error writing users"}
    assert client.get("/users").json() == []


def test_existing_file_is_loaded_at_startup(users_file):
    stored = [{"id": "abc", "name": "Stored", "email": "s@x.com", "age": 50}]
    users_file.write_text(json.dumps(stored), encoding="utf-8")
    with TestClient(create_app()) as test_client:
        assert test_client.get("/users/abc").json() == stored[0]


def test_empty_batch_is_201_with_empty_list(client, users_file):
    resp = client.post("/users", json=[])
    assert resp.status_code == 201
    assert resp.json() == []
    assert not users_file.exists()


def test_configure_logging_installs_one_handler():
    first = configure_logging("DEBUG")
    second = configure_logging("INFO")
    assert first is second
    assert [h.get_name() for h in second.handlers].count(HANDLER_NAME) == 1
    assert second.level == logging.INFO
