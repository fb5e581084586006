# recordops/tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from recordops.api import create_app
from recordops.config.app_config import Settings
from recordops.engine.orchestrator import BulkDeleteEngine
from recordops.exceptions import StoreError
from recordops.export import BOM
from recordops.store.memory import MemoryDocumentStore
from recordops.tests.conftest import fast_options

BASE = "/app/api/bulk-delete"
AAA = {"collection": "employees", "conditions": [{"field": "company", "operator": "==", "value": "AAA"}]}


@pytest.fixture
def client(engine):
    app = create_app(settings=Settings(LOG_REQUESTS=False), engine=engine)
    with TestClient(app) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.text == "ok"
    assert r.headers.get("X-Correlation-ID")


def test_correlation_id_is_echoed(client):
    r = client.get("/health", headers={"X-Correlation-ID": "abc123"})
    assert r.headers["X-Correlation-ID"] == "abc123"


def test_validate(client):
    ok = client.post(f"{BASE}/validate", json=AAA).json()
    assert ok == {"ok": True, "error": None}

    bad = client.post(f"{BASE}/validate", json={"collection": "employees", "conditions": []}).json()
    assert bad["ok"] is False
    assert "at least one" in bad["error"]

    unknown_op = {"collection": "employees", "conditions": [{"field": "a", "operator": "~", "value": 1}]}
    body = client.post(f"{BASE}/validate", json=unknown_op).json()
    assert body["ok"] is False
    assert "unknown operator" in body["error"]


def test_preview_json(client, store):
    r = client.post(f"{BASE}/preview", json=AAA)
    assert r.status_code == 200
    body = r.json()
    assert body["collection"] == "employees"
    assert body["count"] == 10
    assert body["records"][0]["id"] == "e00000"
    assert body["records"][0]["company"] == "AAA"
    assert body["estimated_seconds"] > 0
    assert store.count("employees") == 17


def test_preview_csv(client):
    r = client.post(f"{BASE}/preview?format=csv", json=AAA)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "employees_preview.csv" in r.headers["content-disposition"]
    lines = r.text.lstrip(BOM).splitlines()
    assert lines[0].split(",")[0] == "id"
    assert len(lines) == 11


def test_preview_rejects_bad_conditions(client):
    r = client.post(f"{BASE}/preview", json={"collection": "employees", "conditions": []})
    assert r.status_code == 422


def test_execute_and_undo(client, store):
    body = dict(AAA, options={"batch_size": 4, "enable_undo": True})
    r = client.post(f"{BASE}/execute", json=body)
    assert r.status_code == 200
    stats = r.json()
    assert (stats["found"], stats["deleted"], stats["failed"]) == (10, 10, 0)
    assert stats["batches_processed"] == 3
    assert stats["can_undo"] is True
    assert store.count("employees") == 7

    state = client.get(f"{BASE}/state").json()
    assert state["state"] == "idle"
    assert state["can_undo"] is True
    assert state["undo_collection"] == "employees"
    assert state["undo_records"] == 10
    assert state["last_stats"]["deleted"] == 10

    assert client.post(f"{BASE}/undo").json() == {"ok": True, "error": None}
    assert store.count("employees") == 17

    again = client.post(f"{BASE}/undo").json()
    assert again["ok"] is False
    assert again["error"] == "no delete to undo"


def test_execute_dry_run(client, store):
    r = client.post(f"{BASE}/execute", json=dict(AAA, options={"dry_run": True}))
    assert r.json()["found"] == 10
    assert r.json()["deleted"] == 0
    assert store.count("employees") == 17


def test_quick_delete(client, store):
    r = client.post(
        f"{BASE}/quick", json={"collection": "employees", "field": "status", "value": "inactive"}
    )
    assert r.status_code == 200
    assert r.json()["deleted"] == 2
    assert store.count("employees") == 15

    bad = client.post(
        f"{BASE}/quick",
        json={"collection": "employees", "field": "status", "value": "x", "operator": "like"},
    )
    assert bad.status_code == 422


def test_query_failure_maps_to_502():
    class BrokenStore(MemoryDocumentStore):
        def query(self, collection, predicates):
            raise StoreError("store unreachable")

    engine = BulkDeleteEngine(BrokenStore(), defaults=fast_options())
    app = create_app(settings=Settings(LOG_REQUESTS=False), engine=engine)
    with TestClient(app) as c:
        r = c.post(f"{BASE}/execute", json=AAA)
    assert r.status_code == 502
    assert r.json()["detail"] == "store unreachable"
    assert r.json()["stats"]["found"] == 0


def test_busy_engine_maps_to_409(client, engine):
    engine._mutation_lock.acquire()
    try:
        r = client.post(f"{BASE}/execute", json=AAA)
    finally:
        engine._mutation_lock.release()
    assert r.status_code == 409


def test_estimate(client):
    r = client.get(f"{BASE}/estimate", params={"item_count": 1000, "batch_size": 500})
    body = r.json()
    assert body["estimated_seconds"] == pytest.approx(50.6)
    assert body["cost"]["batches"] == 2
    assert body["cost"]["estimated_cost"] == 20.0

    assert client.get(f"{BASE}/estimate", params={"item_count": -1}).status_code == 422
