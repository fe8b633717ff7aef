"""Tests for the enterprise registry."""
import pytest

from app.registry import create_app
from app.registry.audit import entry_details
from app.registry.constants import ENTERPRISE_SCOPE, AuditAction, PermissionLevel
from app.registry.errors import Duplicate, DuplicateEnterprise, InvalidMetadata, Unauthorized
from app.registry.models import Base
from app.registry.modules.documents.service import DocumentMetadata


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("PRINCIPAL_HEADER", raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def svc(app):
    return app.extensions["document_service"]


def test_register_sets_owner_and_audits(svc):
    ent = svc.register("E1", "Acme Corp", "alice")
    assert ent.id == "E1"
    assert ent.owner == "alice"
    assert ent.active is True

    found = svc.lookup("E1")
    assert found is not None
    assert found.owner == "alice"
    assert found.name == "Acme Corp"

    entries = svc.audit_entries("E1", ENTERPRISE_SCOPE)
    assert [(e.sequence, e.action, e.user) for e in entries] == [(1, AuditAction.REGISTER.value, "alice")]
    assert entry_details(entries[0]) == {"name": "Acme Corp"}


def test_duplicate_registration_keeps_first_owner(svc):
    svc.register("E1", "Acme Corp", "alice")

    with pytest.raises(DuplicateEnterprise):
        svc.register("E1", "Hostile Takeover", "mallory")

    ent = svc.lookup("E1")
    assert ent.owner == "alice"
    assert ent.name == "Acme Corp"
    # The failed attempt left no trace in the trail.
    assert len(svc.audit_entries("E1", ENTERPRISE_SCOPE)) == 1


def test_lookup_missing_is_none(svc):
    assert svc.lookup("nope") is None


@pytest.mark.parametrize(
    "enterprise_id,name",
    [("", "Acme"), ("E" * 65, "Acme"), ("E1", ""), ("E1", "n" * 257)],
)
def test_register_rejects_bad_fields(svc, enterprise_id, name):
    with pytest.raises(InvalidMetadata):
        svc.register(enterprise_id, name, "alice")
    assert svc.lookup("E1") is None


def test_principals_are_compared_verbatim(svc):
    ent = svc.register("E1", "Acme Corp", " alice")
    assert ent.owner == " alice"
    assert svc.lookup("E1").owner == " alice"

    meta = DocumentMetadata.build(name="Manual", content_hash="ab" * 32, document_type="QMS")
    # The stored owner is the exact caller string, so only that string owns the enterprise
    with pytest.raises(Unauthorized):
        svc.create("E1", "D1", meta, "alice")
    doc = svc.create("E1", "D1", meta, " alice")
    assert doc.version == 1
    assert svc.effective_permission("E1", "D1", " alice") == PermissionLevel.FULL
    assert svc.effective_permission("E1", "D1", "alice") == PermissionLevel.NONE

    with pytest.raises(InvalidMetadata):
        svc.register("E2", "Blank", "   ")
    assert svc.lookup("E2") is None


def test_register_over_http(app):
    client = app.test_client()
    r = client.post("/enterprises", json={"enterprise_id": "E1", "name": "Acme"}, headers={"X-Principal": "alice"})
    assert r.status_code == 201
    assert r.json["owner"] == "alice"

    r = client.post("/enterprises", json={"enterprise_id": "E1", "name": "Again"}, headers={"X-Principal": "bob"})
    assert r.status_code == 409
    assert r.json["error"] == Duplicate.kind

    r = client.post("/enterprises", json=["E2"], headers={"X-Principal": "alice"})
    assert r.status_code == 400
    assert r.json["error"] == InvalidMetadata.kind
    assert client.get("/enterprises/E2").status_code == 404

    r = client.get("/enterprises/E1")
    assert r.status_code == 200
    assert r.json["name"] == "Acme"

    # Enterprise trail is owner-only
    r = client.get("/enterprises/E1/audit", headers={"X-Principal": "bob"})
    assert r.status_code == 403
    r = client.get("/enterprises/E1/audit", headers={"X-Principal": "alice"})
    assert r.status_code == 200
    assert [e["action"] for e in r.json["entries"]] == ["REGISTER"]
    assert r.json["entries"][0]["document_id"] == ""


def test_custom_principal_header(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("PRINCIPAL_HEADER", "X-Remote-User")

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    client = app.test_client()

    r = client.post("/enterprises", json={"enterprise_id": "E1", "name": "Acme"}, headers={"X-Principal": "alice"})
    assert r.status_code == 401
    r = client.post("/enterprises", json={"enterprise_id": "E1", "name": "Acme"}, headers={"X-Remote-User": "alice"})
    assert r.status_code == 201
