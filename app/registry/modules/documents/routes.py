from __future__ import annotations

from flask import Blueprint, g, request

from app.registry.audit import entry_to_dict
from app.registry.constants import PermissionLevel
from app.registry.errors import NotFound
from app.registry.rbac import require_principal
from app.registry.service import registry_service
from app.registry.utils import json_object, parse_int

from .models import Document
from .service import DocumentMetadata

bp = Blueprint("documents", __name__)


def document_to_dict(doc: Document) -> dict:
    return {
        "enterprise_id": doc.enterprise_id,
        "document_id": doc.document_id,
        "name": doc.name,
        "description": doc.description,
        "content_hash": doc.content_hash.hex(),
        "document_type": doc.document_type,
        "created_at": doc.created_at.isoformat(),
        "last_updated": doc.last_updated.isoformat(),
        "version": doc.version,
        "active": doc.active,
    }


def _get_readable_or_404(enterprise_id: str, document_id: str) -> Document:
    svc = registry_service()
    doc = svc.get(enterprise_id, document_id)
    if doc is None:
        raise NotFound(f"Document {enterprise_id}/{document_id} does not exist.")
    svc.require(enterprise_id, document_id, g.principal, PermissionLevel.READ)
    return doc


@bp.post("/<enterprise_id>/documents")
@require_principal
def create_document(enterprise_id: str):
    data = json_object()
    doc = registry_service().create(
        enterprise_id,
        str(data.get("document_id") or ""),
        DocumentMetadata.from_mapping(data),
        g.principal,
    )
    return document_to_dict(doc), 201


@bp.get("/<enterprise_id>/documents")
@require_principal
def list_documents(enterprise_id: str):
    include_deleted = (request.args.get("include_deleted") or "").strip().lower() in ("1", "true", "yes")
    docs = registry_service().list_documents(enterprise_id, g.principal, include_deleted=include_deleted)
    return {"documents": [document_to_dict(d) for d in docs]}


@bp.get("/<enterprise_id>/documents/<document_id>")
@require_principal
def get_document(enterprise_id: str, document_id: str):
    return document_to_dict(_get_readable_or_404(enterprise_id, document_id))


@bp.put("/<enterprise_id>/documents/<document_id>")
@require_principal
def update_document(enterprise_id: str, document_id: str):
    data = json_object()
    doc = registry_service().update(enterprise_id, document_id, DocumentMetadata.from_mapping(data), g.principal)
    return document_to_dict(doc)


@bp.delete("/<enterprise_id>/documents/<document_id>")
@require_principal
def delete_document(enterprise_id: str, document_id: str):
    doc = registry_service().soft_delete(enterprise_id, document_id, g.principal)
    return document_to_dict(doc)


@bp.get("/<enterprise_id>/documents/<document_id>/audit")
@require_principal
def document_audit(enterprise_id: str, document_id: str):
    _get_readable_or_404(enterprise_id, document_id)
    entries = registry_service().audit_entries(
        enterprise_id,
        document_id,
        after=parse_int(request.args.get("after"), 0, lo=0, hi=2**31 - 1),
        limit=parse_int(request.args.get("limit"), 100, lo=1, hi=500),
    )
    return {"entries": [entry_to_dict(e) for e in entries]}


@bp.get("/<enterprise_id>/documents/<document_id>/audit/<int:sequence>")
@require_principal
def document_audit_entry(enterprise_id: str, document_id: str, sequence: int):
    _get_readable_or_404(enterprise_id, document_id)
    entry = registry_service().audit_entry(enterprise_id, document_id, sequence)
    if entry is None:
        raise NotFound(f"No audit entry {sequence} for {enterprise_id}/{document_id}.")
    return entry_to_dict(entry)
