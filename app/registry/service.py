"""
Top-level entry points.

Every state-changing call runs as one transaction under the app-wide write
lock (see `db.write_scope`): authorization, the mutation and its audit entry
commit together or not at all. Reads use their own session and only ever see
committed state.
"""
from __future__ import annotations

import logging
from typing import Any

from flask import Flask, current_app

from app.registry import audit, rbac
from app.registry.constants import PermissionLevel
from app.registry.db import session_scope, write_scope
from app.registry.errors import RegistryError
from app.registry.models import AuditEntry
from app.registry.modules.access import service as access_service
from app.registry.modules.access.models import Grant
from app.registry.modules.documents import service as documents_service
from app.registry.modules.documents.models import Document
from app.registry.modules.documents.service import DocumentMetadata
from app.registry.modules.enterprises import service as enterprises_service
from app.registry.modules.enterprises.models import Enterprise

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, app: Flask):
        self.app = app

    def _write(self, op: str, fn, **kwargs: Any):  # type: ignore[no-untyped-def]
        try:
            with write_scope(self.app) as s:
                return fn(s, **kwargs)
        except RegistryError as e:
            logger.warning("%s rejected (%s): %s", op, e.kind, e)
            raise

    # Enterprise registry

    def register(self, enterprise_id: str, name: str, caller: str) -> Enterprise:
        return self._write(
            "register", enterprises_service.register, enterprise_id=enterprise_id, name=name, caller=caller
        )

    def lookup(self, enterprise_id: str) -> Enterprise | None:
        with session_scope(self.app) as s:
            return enterprises_service.lookup(s, enterprise_id)

    # Document registry

    def create(self, enterprise_id: str, document_id: str, metadata: DocumentMetadata, caller: str) -> Document:
        return self._write(
            "create",
            documents_service.create,
            enterprise_id=enterprise_id,
            document_id=document_id,
            metadata=metadata,
            caller=caller,
        )

    def update(self, enterprise_id: str, document_id: str, metadata: DocumentMetadata, caller: str) -> Document:
        return self._write(
            "update",
            documents_service.update,
            enterprise_id=enterprise_id,
            document_id=document_id,
            metadata=metadata,
            caller=caller,
        )

    def soft_delete(self, enterprise_id: str, document_id: str, caller: str) -> Document:
        return self._write(
            "soft_delete",
            documents_service.soft_delete,
            enterprise_id=enterprise_id,
            document_id=document_id,
            caller=caller,
        )

    def get(self, enterprise_id: str, document_id: str) -> Document | None:
        with session_scope(self.app) as s:
            return documents_service.get(s, enterprise_id, document_id)

    def list_documents(self, enterprise_id: str, user: str, *, include_deleted: bool = False) -> list[Document]:
        with session_scope(self.app) as s:
            return documents_service.list_documents(s, enterprise_id, user, include_deleted=include_deleted)

    # Access controller

    def grant(self, enterprise_id: str, document_id: str, grantor: str, grantee: str, level: int) -> Grant:
        return self._write(
            "grant",
            access_service.grant,
            enterprise_id=enterprise_id,
            document_id=document_id,
            grantor=grantor,
            grantee=grantee,
            level=level,
        )

    def revoke(self, enterprise_id: str, document_id: str, grantor: str, grantee: str) -> bool:
        return self._write(
            "revoke",
            access_service.revoke,
            enterprise_id=enterprise_id,
            document_id=document_id,
            grantor=grantor,
            grantee=grantee,
        )

    def access(self, enterprise_id: str, document_id: str, caller: str) -> AuditEntry:
        return self._write(
            "access", access_service.access, enterprise_id=enterprise_id, document_id=document_id, caller=caller
        )

    def list_grants(self, enterprise_id: str, document_id: str) -> list[Grant]:
        with session_scope(self.app) as s:
            return access_service.list_grants(s, enterprise_id, document_id)

    # Permission resolver

    def effective_permission(self, enterprise_id: str, document_id: str, user: str) -> PermissionLevel:
        with session_scope(self.app) as s:
            return rbac.effective_permission(s, enterprise_id, document_id, user)

    def require(self, enterprise_id: str, document_id: str, user: str, min_level: PermissionLevel) -> None:
        with session_scope(self.app) as s:
            rbac.require(s, enterprise_id, document_id, user, min_level)

    # Audit log

    def audit_entry(self, enterprise_id: str, document_id: str, sequence: int) -> AuditEntry | None:
        with session_scope(self.app) as s:
            return audit.get_entry(s, enterprise_id, document_id, sequence)

    def audit_entries(
        self, enterprise_id: str, document_id: str, *, after: int = 0, limit: int = 100
    ) -> list[AuditEntry]:
        with session_scope(self.app) as s:
            return audit.list_entries(s, enterprise_id, document_id, after=after, limit=limit)


def registry_service() -> DocumentService:
    """Service bound to the current Flask app (for request handlers)."""
    return current_app.extensions["document_service"]
