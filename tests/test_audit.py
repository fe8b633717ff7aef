"""Tests for the audit sequencer and the append-only log."""
import threading

import pytest

from app.registry import audit, create_app
from app.registry.audit import AppendOnlyViolation
from app.registry.constants import ENTERPRISE_SCOPE, AuditAction, PermissionLevel
from app.registry.db import session_scope, write_scope
from app.registry.models import AuditCounter, AuditEntry, Base
from app.registry.modules.documents.service import DocumentMetadata

HASH = "ab" * 32


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("PRINCIPAL_HEADER", raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    svc = app.extensions["document_service"]
    svc.register("E1", "Acme Corp", "alice")
    svc.create("E1", "D1", DocumentMetadata.build(name="Manual", content_hash=HASH, document_type="QMS"), "alice")
    return app


@pytest.fixture()
def svc(app):
    return app.extensions["document_service"]


def test_next_sequence_starts_at_one_per_pair(app):
    with write_scope(app) as s:
        assert audit.next_sequence(s, "E1", "fresh") == 1
        assert audit.next_sequence(s, "E1", "fresh") == 2
        assert audit.next_sequence(s, "E1", "other") == 1
    with session_scope(app) as s:
        assert s.get(AuditCounter, ("E1", "fresh")).next_sequence == 3


def test_sequences_are_gapless_across_operations(svc):
    svc.grant("E1", "D1", "alice", "bob", PermissionLevel.MODIFY)
    for i in range(5):
        svc.update("E1", "D1", DocumentMetadata.build(name=f"v{i}", content_hash=HASH, document_type="QMS"), "bob")
        svc.access("E1", "D1", "bob")
    svc.revoke("E1", "D1", "alice", "bob")
    svc.soft_delete("E1", "D1", "alice")

    seqs = [e.sequence for e in svc.audit_entries("E1", "D1", limit=500)]
    assert seqs == list(range(1, 15))

    # Enterprise trail is separate from the document trail
    assert [e.sequence for e in svc.audit_entries("E1", ENTERPRISE_SCOPE)] == [1]


def test_get_entry(svc):
    entry = svc.audit_entry("E1", "D1", 1)
    assert entry is not None
    assert entry.action == AuditAction.CREATE.value
    assert entry.user == "alice"
    assert svc.audit_entry("E1", "D1", 2) is None
    assert svc.audit_entry("E1", ENTERPRISE_SCOPE, 1).action == AuditAction.REGISTER.value


def test_rolled_back_transaction_leaves_no_entry_and_no_gap(app, svc):
    with pytest.raises(RuntimeError, match="boom"):
        with write_scope(app) as s:
            audit.append(s, enterprise_id="E1", document_id="D1", user="alice", action=AuditAction.ACCESS)
            raise RuntimeError("boom")

    assert [e.sequence for e in svc.audit_entries("E1", "D1")] == [1]
    assert svc.access("E1", "D1", "alice").sequence == 2


def test_entries_cannot_be_modified_or_deleted(app):
    sm = app.extensions["sqlalchemy_sessionmaker"]

    s = sm()
    try:
        entry = audit.get_entry(s, "E1", "D1", 1)
        entry.user = "mallory"
        with pytest.raises(AppendOnlyViolation):
            s.flush()
    finally:
        s.rollback()
        s.close()

    s = sm()
    try:
        s.delete(audit.get_entry(s, "E1", "D1", 1))
        with pytest.raises(AppendOnlyViolation):
            s.flush()
    finally:
        s.rollback()
        s.close()

    with session_scope(app) as s:
        entry = audit.get_entry(s, "E1", "D1", 1)
        assert entry.user == "alice"
        assert s.query(AuditEntry).count() == 2


def test_append_records_details_and_request_id(app):
    with write_scope(app) as s:
        entry = audit.append(
            s,
            enterprise_id="E1",
            document_id="D1",
            user="alice",
            action="ACCESS",
            details={"note": "manual"},
            request_id="req-1",
        )
    assert entry.sequence == 2
    assert entry.request_id == "req-1"
    assert audit.entry_details(entry) == {"note": "manual"}
    assert audit.entry_to_dict(entry)["details"] == {"note": "manual"}


def test_append_rejects_unknown_action(app):
    with pytest.raises(ValueError):
        with write_scope(app) as s:
            audit.append(s, enterprise_id="E1", document_id="D1", user="alice", action="DELETE")


def test_concurrent_writers_never_share_a_sequence(svc):
    svc.grant("E1", "D1", "alice", "bob", PermissionLevel.READ)
    errors: list[BaseException] = []

    def worker(user: str) -> None:
        try:
            for _ in range(10):
                svc.access("E1", "D1", user)
        except BaseException as e:  # surfaced below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(u,)) for u in ("alice", "bob", "alice", "bob")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    seqs = [e.sequence for e in svc.audit_entries("E1", "D1", limit=500)]
    assert seqs == list(range(1, 43))


def test_request_id_header_is_bounded(app):
    client = app.test_client()
    alice = {"X-Principal": "alice"}

    r = client.post("/enterprises/E1/documents/D1/access", headers={**alice, "X-Request-ID": "req-42"})
    assert r.status_code == 201
    assert r.json["request_id"] == "req-42"

    for rid in ("r" * 65, "has spaces", "a/b"):
        r = client.post("/enterprises/E1/documents/D1/access", headers={**alice, "X-Request-ID": rid})
        assert r.status_code == 201
        assert r.json["request_id"] != rid
        assert 0 < len(r.json["request_id"]) <= 64

    r = client.get("/enterprises/E1/documents/D1/audit", headers=alice)
    assert [e["sequence"] for e in r.json["entries"]] == [1, 2, 3, 4, 5, 6]
    assert r.json["entries"][1]["request_id"] == "req-42"
