from __future__ import annotations

from flask import Blueprint, g, request

from app.registry.audit import entry_to_dict
from app.registry.constants import ENTERPRISE_SCOPE
from app.registry.errors import NotFound, Unauthorized
from app.registry.rbac import require_principal
from app.registry.service import registry_service
from app.registry.utils import json_object, parse_int

from .models import Enterprise

bp = Blueprint("enterprises", __name__)


def enterprise_to_dict(ent: Enterprise) -> dict:
    return {
        "id": ent.id,
        "owner": ent.owner,
        "name": ent.name,
        "registered_at": ent.registered_at.isoformat(),
        "active": ent.active,
    }


def _get_enterprise_or_404(enterprise_id: str) -> Enterprise:
    ent = registry_service().lookup(enterprise_id)
    if ent is None:
        raise NotFound(f"Enterprise {enterprise_id!r} does not exist.")
    return ent


@bp.post("")
@require_principal
def register_enterprise():
    data = json_object()
    ent = registry_service().register(
        str(data.get("enterprise_id") or ""),
        str(data.get("name") or ""),
        g.principal,
    )
    return enterprise_to_dict(ent), 201


@bp.get("/<enterprise_id>")
def get_enterprise(enterprise_id: str):
    return enterprise_to_dict(_get_enterprise_or_404(enterprise_id))


@bp.get("/<enterprise_id>/audit")
@require_principal
def enterprise_audit(enterprise_id: str):
    ent = _get_enterprise_or_404(enterprise_id)
    if ent.owner != g.principal:
        raise Unauthorized(f"Only the owner of {enterprise_id!r} may read its enterprise trail.")
    entries = registry_service().audit_entries(
        enterprise_id,
        ENTERPRISE_SCOPE,
        after=parse_int(request.args.get("after"), 0, lo=0, hi=2**31 - 1),
        limit=parse_int(request.args.get("limit"), 100, lo=1, hi=500),
    )
    return {"entries": [entry_to_dict(e) for e in entries]}
