import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from envvault.core.vault import swap_vault
from envvault.main import app


@pytest.fixture
def client(settings):
    swap_vault(settings)
    with TestClient(app) as c:
        yield c


def test_health_reports_open_store(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["store_open"] is True


def test_add_list_and_reveal(client):
    resp = client.post("/api/secrets", json={"key": "OPENAI_API_KEY", "value": "sk-abc123"})
    assert resp.json() == {"ok": True}

    listed = client.get("/api/secrets").json()
    assert listed == [{"id": 1, "key": "OPENAI_API_KEY", "value_masked": "sk-a***23"}]

    full = client.get("/api/secrets/1/value").json()
    assert full == {"id": 1, "value": "sk-abc123"}


def test_reveal_unknown_id_is_404(client):
    assert client.get("/api/secrets/7/value").status_code == 404


def test_add_empty_key_is_400(client):
    resp = client.post("/api/secrets", json={"key": "", "value": "x"})
    assert resp.status_code == 400


def test_search_and_limit(client):
    client.post("/api/import", json={"content": "API_BASE=1\nOPENAI_API_KEY=2\nOTHER=3\n"})
    keys = [s["key"] for s in client.get("/api/secrets/search", params={"q": "api"}).json()]
    assert keys == ["API_BASE", "OPENAI_API_KEY"]
    limited = client.get("/api/secrets/search", params={"q": "", "limit": 1}).json()
    assert len(limited) == 1


def test_update_and_delete(client):
    client.post("/api/secrets", json={"key": "TOKEN", "value": "one"})
    assert client.put("/api/secrets/1", json={"value": "two"}).json() == {"ok": True}
    assert client.get("/api/secrets/1/value").json()["value"] == "two"
    assert client.delete("/api/secrets/1").json() == {"ok": True}
    assert client.delete("/api/secrets/1").json() == {"ok": False}


def test_import_export_round_trip(client):
    resp = client.post("/api/import", json={"content": 'FOO=bar\n# c\n\nBAD_LINE\nBAZ="qux quux"'})
    assert resp.json() == {"applied": 2, "skipped": 1}
    export = client.get("/api/export")
    assert export.headers["content-type"].startswith("text/plain")
    assert export.text == 'FOO=bar\nBAZ="qux quux"\n'


def test_sync_and_path(client, home):
    client.post("/api/secrets", json={"key": "A", "value": "1"})
    assert client.post("/api/sync").json() == {"ok": True}
    path = client.get("/api/sync/path").json()["path"]
    assert path == str((home / ".envvault").resolve())
    assert Path(path).read_text() == "A=1\n"


def test_init_route_is_idempotent(client):
    assert client.post("/api/init").json() == {"ok": True}
