from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.registry.constants import PermissionLevel
from app.registry.errors import Unauthorized
from app.registry.modules.access.models import Grant
from app.registry.modules.enterprises.models import Enterprise


def effective_permission(s: Session, enterprise_id: str, document_id: str, user: str | None) -> PermissionLevel:
    """
    Resolve `user`'s level on one document. The enterprise owner is FULL before
    any grant is consulted, so no stored row can take that away.
    """
    if not user:
        return PermissionLevel.NONE
    ent = s.get(Enterprise, enterprise_id)
    if ent is None:
        return PermissionLevel.NONE
    if ent.owner == user:
        return PermissionLevel.FULL
    level = s.execute(
        select(Grant.permission_level).where(
            Grant.enterprise_id == enterprise_id,
            Grant.document_id == document_id,
            Grant.user == user,
        )
    ).scalar_one_or_none()
    if level is None:
        return PermissionLevel.NONE
    return PermissionLevel(level)


def require(
    s: Session,
    enterprise_id: str,
    document_id: str,
    user: str | None,
    min_level: PermissionLevel,
) -> PermissionLevel:
    level = effective_permission(s, enterprise_id, document_id, user)
    if level < min_level:
        raise Unauthorized(
            f"{user!r} holds {level.name} on {enterprise_id}/{document_id}; {min_level.name} required."
        )
    return level


def require_principal(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Routes that act on behalf of a caller need the upstream-verified principal."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if not getattr(g, "principal", None):
            abort(401)
        return fn(*args, **kwargs)

    return wrapped
