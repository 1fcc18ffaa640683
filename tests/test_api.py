import pytest

from app.recordstore import create_app
from app.recordstore.db import session_scope
from app.recordstore.models import Base, StoreEvent

ADMIN = "0xadmin"
HASH_1 = "eb95c37027cc6f462e4de8c355a9dc552a150f83971605d4f1cf0c445ab16317"


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("ADMIN_PRINCIPAL", ADMIN)
    monkeypatch.delenv("PRINCIPAL_HEADER", raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    return app.test_client()


def _as(principal):
    return {"X-Principal": principal}


def _seed(client):
    r = client.post("/api/users", json={"user_id": "u1", "name": "Alice", "email": "a@x.com"}, headers=_as(ADMIN))
    assert r.status_code == 201
    r = client.post("/api/users", json={"user_id": "u2", "name": "Bob", "email": "b@x.com"}, headers=_as(ADMIN))
    assert r.status_code == 201
    r = client.post(
        "/api/users/u1/documents",
        json={"content_hash": HASH_1, "document_id": "d1"},
        headers=_as(ADMIN),
    )
    assert r.status_code == 201


def test_administrator_endpoint(client):
    r = client.get("/api/administrator", headers=_as(ADMIN))
    assert r.status_code == 200
    assert r.json["administrator"] == ADMIN
    assert r.json["caller_is_administrator"] is True

    r = client.get("/api/administrator")
    assert r.json["caller_is_administrator"] is False


def test_mutations_without_principal_are_401(client):
    r = client.post("/api/users", json={"user_id": "u1", "name": "Alice", "email": "a@x.com"})
    assert r.status_code == 401


def test_mutations_by_other_principal_are_403(client):
    r = client.post(
        "/api/users",
        json={"user_id": "u1", "name": "Alice", "email": "a@x.com"},
        headers=_as("0xother"),
    )
    assert r.status_code == 403
    assert r.json == {
        "ok": False,
        "error": "unauthorized",
        "message": "Only the administrator can perform this action.",
    }


def test_user_and_document_flow(client):
    _seed(client)

    r = client.get("/api/users/u1")
    assert r.status_code == 200
    assert r.json["name"] == "Alice"
    assert r.json["documents"] == [{"document_id": "d1", "content_hash": HASH_1}]

    r = client.get("/api/users/u1/documents")
    assert r.json["documents"] == [{"document_id": "d1", "content_hash": HASH_1}]

    r = client.post("/api/users", json={"user_id": "u1", "name": "Alice", "email": "a@x.com"}, headers=_as(ADMIN))
    assert r.status_code == 409
    assert r.json["error"] == "already_exists"

    r = client.post(
        "/api/users/u2/documents",
        json={"content_hash": HASH_1, "document_id": "d2"},
        headers=_as(ADMIN),
    )
    assert r.status_code == 409
    assert r.json["error"] == "duplicate_hash"

    r = client.get("/api/users/nobody/documents")
    assert r.status_code == 404
    assert r.json["message"] == "User does not exist."


def test_user_row_for_unknown_id(client):
    r = client.get("/api/users/nobody/row")
    assert r.status_code == 200
    assert r.json["name"] == ""
    assert r.json["exists"] is False


def test_audit_entries_flow(client):
    r = client.post(
        "/api/audit-entries",
        json={
            "document_ids": ["d1", "d1"],
            "user_ids": ["u1", "u2"],
            "actions": ["Document Signed", "Document Updated"],
            "timestamps": [1700000000, 1700000005],
        },
        headers=_as(ADMIN),
    )
    assert r.status_code == 201
    assert r.json["added"] == 2

    r = client.get("/api/documents/d1/audit-history")
    assert r.json["entries"] == [
        {"timestamp": 1700000000, "action": "Document Signed", "performed_by": "u1"},
        {"timestamp": 1700000005, "action": "Document Updated", "performed_by": "u2"},
    ]

    r = client.get("/api/documents/never-created/audit-history")
    assert r.status_code == 200
    assert r.json["entries"] == []


def test_audit_entries_errors(client):
    r = client.post(
        "/api/audit-entries",
        json={"document_ids": ["d1"], "user_ids": ["u1"], "actions": ["a", "b"], "timestamps": [1]},
        headers=_as(ADMIN),
    )
    assert r.status_code == 400
    assert r.json["error"] == "length_mismatch"

    r = client.post(
        "/api/audit-entries",
        json={"document_ids": ["d1", ""], "user_ids": ["u1", "u1"], "actions": ["a", "b"], "timestamps": [1, 2]},
        headers=_as(ADMIN),
    )
    assert r.status_code == 400
    assert r.json["error"] == "invalid_field"
    assert r.json["message"] == "Invalid document ID."
    assert r.json["index"] == 1

    r = client.get("/api/documents/d1/audit-history")
    assert r.json["entries"] == []

    r = client.post(
        "/api/audit-entries",
        json={"document_ids": ["d1"], "user_ids": ["u1"], "actions": ["a"], "timestamps": ["soon"]},
        headers=_as(ADMIN),
    )
    assert r.status_code == 400


def test_audit_entries_timestamp_out_of_range_is_400(client):
    r = client.post(
        "/api/audit-entries",
        json={"document_ids": ["d1", "d1"], "user_ids": ["u1", "u1"], "actions": ["a", "b"], "timestamps": [1, 2**70]},
        headers=_as(ADMIN),
    )
    assert r.status_code == 400
    assert r.json["error"] == "invalid_field"
    assert r.json["field"] == "timestamp"
    assert r.json["index"] == 1

    r = client.get("/api/documents/d1/audit-history")
    assert r.json["entries"] == []

    r = client.post(
        "/api/audit-entries",
        json={"document_ids": ["d1"], "user_ids": ["u1"], "actions": ["a"], "timestamps": [2**63 - 1]},
        headers=_as(ADMIN),
    )
    assert r.status_code == 201
    r = client.get("/api/documents/d1/audit-history")
    assert r.json["entries"][0]["timestamp"] == 2**63 - 1


def test_malformed_body_is_400(client):
    r = client.post("/api/users", data="not json", content_type="application/json", headers=_as(ADMIN))
    assert r.status_code == 400
    assert r.json["ok"] is False


def test_share_flow(client):
    _seed(client)

    r = client.get("/api/documents/d1/access/u2")
    assert r.json["has_access"] is False

    r = client.get("/api/shares/u1/u2/d1", headers=_as(ADMIN))
    assert r.status_code == 403
    assert r.json["error"] == "access_denied"

    r = client.post(
        "/api/shares",
        json={"user_id": "u1", "shared_with_user_id": "u2", "document_id": "d1"},
        headers=_as(ADMIN),
    )
    assert r.status_code == 201

    r = client.get("/api/documents/d1/access/u2")
    assert r.json["has_access"] is True
    r = client.get("/api/documents/d2/access/u2")
    assert r.json["has_access"] is False

    r = client.get("/api/shares/u1/u2/d1", headers=_as(ADMIN))
    assert r.status_code == 200
    assert r.json["document"] == {"document_id": "d1", "content_hash": HASH_1}

    r = client.post(
        "/api/shares",
        json={"user_id": "u1", "shared_with_user_id": "nobody", "document_id": "d1"},
        headers=_as(ADMIN),
    )
    assert r.status_code == 404
    assert r.json["message"] == "Shared user does not exist."


def test_journal_carries_request_id(client):
    r = client.post(
        "/api/users",
        json={"user_id": "u1", "name": "Alice", "email": "a@x.com"},
        headers={"X-Principal": ADMIN, "X-Request-Id": "req-123"},
    )
    assert r.status_code == 201

    with session_scope(client.application) as s:
        events = s.query(StoreEvent).order_by(StoreEvent.id.asc()).all()
        assert [(e.event, e.request_id, e.caller) for e in events] == [("user.created", "req-123", ADMIN)]


def test_failing_sink_still_returns_201(client):
    class Broken:
        def emit(self, event):
            raise RuntimeError("downstream unavailable")

    client.application.extensions["record_store"].bus.subscribe(Broken())

    r = client.post("/api/users", json={"user_id": "u1", "name": "Alice", "email": "a@x.com"}, headers=_as(ADMIN))
    assert r.status_code == 201
    r = client.get("/api/users/u1")
    assert r.status_code == 200
    assert r.json["name"] == "Alice"
