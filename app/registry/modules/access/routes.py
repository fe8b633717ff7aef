from __future__ import annotations

from flask import Blueprint, g

from app.registry.audit import entry_to_dict
from app.registry.constants import PermissionLevel
from app.registry.errors import NotFound
from app.registry.rbac import require_principal
from app.registry.service import registry_service
from app.registry.utils import json_object

from .models import Grant
from .service import parse_level

bp = Blueprint("access", __name__)


def grant_to_dict(row: Grant) -> dict:
    return {
        "enterprise_id": row.enterprise_id,
        "document_id": row.document_id,
        "user": row.user,
        "permission_level": PermissionLevel(row.permission_level).name,
        "granted_by": row.granted_by,
        "granted_at": row.granted_at.isoformat(),
    }


@bp.post("/<enterprise_id>/documents/<document_id>/access")
@require_principal
def access_document(enterprise_id: str, document_id: str):
    entry = registry_service().access(enterprise_id, document_id, g.principal)
    return entry_to_dict(entry), 201


@bp.get("/<enterprise_id>/documents/<document_id>/grants")
@require_principal
def list_grants(enterprise_id: str, document_id: str):
    svc = registry_service()
    if svc.get(enterprise_id, document_id) is None:
        raise NotFound(f"Document {enterprise_id}/{document_id} does not exist.")
    svc.require(enterprise_id, document_id, g.principal, PermissionLevel.MANAGE)
    return {"grants": [grant_to_dict(r) for r in svc.list_grants(enterprise_id, document_id)]}


@bp.put("/<enterprise_id>/documents/<document_id>/grants/<user>")
@require_principal
def grant_access(enterprise_id: str, document_id: str, user: str):
    data = json_object()
    row = registry_service().grant(enterprise_id, document_id, g.principal, user, parse_level(data.get("level")))
    return grant_to_dict(row)


@bp.delete("/<enterprise_id>/documents/<document_id>/grants/<user>")
@require_principal
def revoke_access(enterprise_id: str, document_id: str, user: str):
    removed = registry_service().revoke(enterprise_id, document_id, g.principal, user)
    return {"revoked": removed}


@bp.get("/<enterprise_id>/documents/<document_id>/permissions/<user>")
@require_principal
def effective_permission(enterprise_id: str, document_id: str, user: str):
    level = registry_service().effective_permission(enterprise_id, document_id, user)
    return {"user": user, "level": level.name, "value": int(level)}
