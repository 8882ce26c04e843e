import json

from fastapi.testclient import TestClient

from conftest import PIN

LISTS = {
    "Groceries": [
        {"text": "Milk", "completed": False},
        {"text": "Bread", "completed": True},
    ],
    "Work": [],
}


def _authed(client: TestClient) -> TestClient:
    assert client.post("/api/verify-pin", json={"pin": PIN}).status_code == 200
    return client


def test_store_starts_empty(client):
    _authed(client)
    r = client.get("/api/todos")
    assert r.status_code == 200
    assert r.json() == {}


def test_save_replaces_whole_document(client, tmp_path):
    _authed(client)
    r = client.post("/api/todos", json=LISTS)
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert client.get("/api/todos").json() == LISTS

    client.post("/api/todos", json={"Only": [{"text": "x", "completed": False}]})
    assert client.get("/api/todos").json() == {"Only": [{"text": "x", "completed": False}]}

    on_disk = json.loads((tmp_path / "todos.json").read_text(encoding="utf-8"))
    assert on_disk == {"Only": [{"text": "x", "completed": False}]}


def test_missing_completed_defaults_false(client):
    _authed(client)
    client.post("/api/todos", json={"L": [{"text": "a"}]})
    assert client.get("/api/todos").json() == {"L": [{"text": "a", "completed": False}]}


def test_malformed_document_is_422(client):
    _authed(client)
    assert client.post("/api/todos", json=[{"text": "a"}]).status_code == 422
    assert client.post("/api/todos", json={"L": [{"completed": True}]}).status_code == 422


def test_save_requires_json_content_type(client):
    _authed(client)
    r = client.post("/api/todos", content=b"{}", headers={"Content-Type": "text/plain"})
    assert r.status_code == 415


def test_put_and_delete_are_refused(client):
    _authed(client)
    assert client.put("/api/todos", json={}).status_code == 405
    assert client.delete("/api/todos").status_code == 405


def test_todos_gated_without_trust(client):
    assert client.get("/api/todos").status_code == 401
    assert client.post("/api/todos", json=LISTS).status_code == 401


def test_storage_failure_is_500(make_app, tmp_path):
    # A directory where the file should be makes every read and write fail.
    (tmp_path / "todos.json").mkdir()
    with TestClient(make_app(pin=PIN)) as client:
        _authed(client)
        read = client.get("/api/todos")
        assert read.status_code == 500
        assert read.json() == {"error": "Failed to read todos"}

        write = client.post("/api/todos", json=LISTS)
        assert write.status_code == 500
        assert write.json() == {"error": "Failed to save todos"}


def test_startup_creates_data_file(make_app, tmp_path):
    data_dir = tmp_path / "nested" / "data"
    with TestClient(make_app(data_dir=str(data_dir))):
        pass
    assert json.loads((data_dir / "todos.json").read_text(encoding="utf-8")) == {}
