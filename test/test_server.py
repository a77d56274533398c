"""
HTTP surface tests.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from csop.core.capability import FunctionCapability
from csop.core.dispatcher import Dispatcher
from csop.server import create_app


def make_client(tmp_path):
    app = create_app(config={"storage": {"db_path": str(tmp_path / "api.db")}})
    return TestClient(app)


class TestDispatchEndpoint:

    def test_save_and_get(self, tmp_path):
        with make_client(tmp_path) as client:
            resp = client.post("/api/dispatch", json={
                "action": "storage.save",
                "payload": {"key": "u1", "data": {"n": "a"}},
            })
            assert resp.status_code == 200
            body = resp.json()
            assert body["status"] == "ok"
            assert body["data"]["tier"] == "local"
            assert "error" not in body

            resp = client.post("/api/dispatch", json={"action": "storage.get", "payload": {"key": "u1"}})
            assert resp.json()["data"] == {"n": "a"}

    def test_error_envelope_is_http_200(self, tmp_path):
        with make_client(tmp_path) as client:
            resp = client.post("/api/dispatch", json={"action": "nodot"})
            assert resp.status_code == 200
            body = resp.json()
            assert body["status"] == "error"
            assert body["error"] == {
                "code": "INVALID_ACTION",
                "message": 'Action must be in format "domain.operation", got "nodot"',
                "retryable": False,
            }
            assert "data" not in body

    def test_options_are_forwarded(self, tmp_path):
        calls = []

        def fail(payload):
            calls.append(1)
            raise RuntimeError("down")

        dispatcher = Dispatcher()
        app = create_app(dispatcher, config={"storage": {"db_path": str(tmp_path / "api.db")}})
        with TestClient(app) as client:
            dispatcher.register("flaky", FunctionCapability({"op": fail}))
            resp = client.post("/api/dispatch", json={
                "action": "flaky.op",
                "options": {"max_retries": 1, "timeout_ms": 500},
            })
        assert resp.json()["error"]["code"] == "EXECUTION_FAILED"
        assert len(calls) == 2

    def test_wire_keys_are_camel_case(self, tmp_path):
        with make_client(tmp_path) as client:
            body = client.post("/api/dispatch", json={
                "action": "storage.save",
                "payload": {"key": "u1", "data": {"n": "a"}},
            }).json()
        assert set(body) == {"id", "status", "data", "durationMillis"}
        assert isinstance(body["durationMillis"], int)
        assert body["data"] == {"key": "u1", "tier": "local", "sizeBytes": len('{"n":"a"}')}

    def test_camel_case_options_are_accepted(self, tmp_path):
        calls = []

        def fail(payload):
            calls.append(1)
            raise RuntimeError("down")

        dispatcher = Dispatcher()
        app = create_app(dispatcher, config={"storage": {"db_path": str(tmp_path / "api.db")}})
        with TestClient(app) as client:
            dispatcher.register("flaky", FunctionCapability({"op": fail}))
            client.post("/api/dispatch", json={
                "action": "flaky.op",
                "options": {"maxRetries": 2, "timeoutMillis": 500},
            })
        assert len(calls) == 3

    def test_missing_action_is_rejected(self, tmp_path):
        with make_client(tmp_path) as client:
            resp = client.post("/api/dispatch", json={"payload": {}})
            assert resp.status_code == 422


class TestInfoEndpoint:

    def test_info(self, tmp_path):
        with make_client(tmp_path) as client:
            body = client.get("/api/info").json()
        assert body["initialized"] is True
        assert "storage" in body["capabilities"]

    def test_dispatch_without_lifespan_returns_503(self):
        client = TestClient(create_app())
        resp = client.post("/api/dispatch", json={"action": "storage.get", "payload": {"key": "k"}})
        assert resp.status_code == 503
        assert resp.json()["code"] == "NOT_INITIALIZED"
