"""
Document registry service layer.
Handles document metadata, versioning and the soft-delete flag.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.registry import audit, rbac
from app.registry.constants import (
    MAX_DESCRIPTION_LEN,
    MAX_DOCUMENT_TYPE_LEN,
    MAX_ID_LEN,
    MAX_NAME_LEN,
    AuditAction,
    PermissionLevel,
)
from app.registry.errors import DuplicateDocument, InvalidMetadata, NotFound, Unauthorized
from app.registry.modules.access.models import Grant
from app.registry.modules.enterprises.models import Enterprise
from app.registry.utils import check_identifier, check_length, parse_content_hash, utcnow

from .models import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentMetadata:
    name: str
    description: str
    content_hash: bytes
    document_type: str

    @classmethod
    def build(
        cls,
        *,
        name: str,
        content_hash: str | bytes,
        document_type: str,
        description: str = "",
    ) -> "DocumentMetadata":
        return cls(
            name=check_length("name", name, MAX_NAME_LEN),
            description=check_length("description", description, MAX_DESCRIPTION_LEN, required=False),
            content_hash=parse_content_hash(content_hash),
            document_type=check_length("document_type", document_type, MAX_DOCUMENT_TYPE_LEN),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DocumentMetadata":
        """Build from a JSON body; unknown keys are ignored."""
        for key in ("name", "content_hash", "document_type"):
            if data.get(key) is None:
                raise InvalidMetadata(f"{key} is required.")
        return cls.build(
            name=str(data["name"]),
            content_hash=str(data["content_hash"]),
            document_type=str(data["document_type"]),
            description=str(data.get("description") or ""),
        )


def get(s: Session, enterprise_id: str, document_id: str) -> Document | None:
    """Pure read; returns soft-deleted documents too."""
    return s.execute(
        select(Document).where(Document.enterprise_id == enterprise_id, Document.document_id == document_id)
    ).scalar_one_or_none()


def get_or_raise(s: Session, enterprise_id: str, document_id: str) -> Document:
    doc = get(s, enterprise_id, document_id)
    if doc is None:
        raise NotFound(f"Document {enterprise_id}/{document_id} does not exist.")
    return doc


def create(
    s: Session,
    *,
    enterprise_id: str,
    document_id: str,
    metadata: DocumentMetadata,
    caller: str,
) -> Document:
    """Create a document. Only the enterprise owner may create; ids are never reused."""
    ent = s.get(Enterprise, enterprise_id)
    if ent is None:
        raise NotFound(f"Enterprise {enterprise_id!r} does not exist.")
    if ent.owner != caller:
        raise Unauthorized(f"Only the owner of {enterprise_id!r} may create documents.")
    document_id = check_identifier("document_id", document_id, MAX_ID_LEN)
    if get(s, enterprise_id, document_id) is not None:
        raise DuplicateDocument(f"Document {enterprise_id}/{document_id} already exists.")

    now = utcnow()
    doc = Document(
        enterprise_id=enterprise_id,
        document_id=document_id,
        name=metadata.name,
        description=metadata.description,
        content_hash=metadata.content_hash,
        document_type=metadata.document_type,
        created_at=now,
        last_updated=now,
        version=1,
        active=True,
    )
    try:
        s.add(doc)
        s.add(
            Grant(
                enterprise_id=enterprise_id,
                document_id=document_id,
                user=caller,
                permission_level=int(PermissionLevel.FULL),
                granted_by=caller,
                granted_at=now,
            )
        )
        s.flush()  # Force unique constraint check
    except IntegrityError:
        # Another process created the same id between our lookup and insert.
        raise DuplicateDocument(f"Document {enterprise_id}/{document_id} already exists.") from None

    audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=caller,
        action=AuditAction.CREATE,
        details={
            "name": doc.name,
            "document_type": doc.document_type,
            "content_hash": doc.content_hash.hex(),
            "version": doc.version,
        },
    )
    logger.info("Created document %s/%s (caller=%s)", enterprise_id, document_id, caller)
    return doc


def update(
    s: Session,
    *,
    enterprise_id: str,
    document_id: str,
    metadata: DocumentMetadata,
    caller: str,
) -> Document:
    """Replace the metadata, bump the version and un-delete."""
    doc = get_or_raise(s, enterprise_id, document_id)
    rbac.require(s, enterprise_id, document_id, caller, PermissionLevel.MODIFY)

    changes: dict[str, Any] = {}
    for field in ("name", "description", "document_type"):
        new = getattr(metadata, field)
        if getattr(doc, field) != new:
            changes[field] = {"from": getattr(doc, field), "to": new}
            setattr(doc, field, new)
    if doc.content_hash != metadata.content_hash:
        changes["content_hash"] = {"from": doc.content_hash.hex(), "to": metadata.content_hash.hex()}
        doc.content_hash = metadata.content_hash
    if not doc.active:
        changes["active"] = {"from": False, "to": True}
    doc.active = True

    doc.version = doc.version + 1
    # Wall clock may step back; last_updated must not.
    doc.last_updated = max(utcnow(), doc.last_updated)
    s.flush()

    audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=caller,
        action=AuditAction.UPDATE,
        details={"version": doc.version, "changes": changes},
    )
    logger.info("Updated document %s/%s to version %s (caller=%s)", enterprise_id, document_id, doc.version, caller)
    return doc


def soft_delete(s: Session, *, enterprise_id: str, document_id: str, caller: str) -> Document:
    """Clear the active flag. Version and every other field stay as they are."""
    doc = get_or_raise(s, enterprise_id, document_id)
    rbac.require(s, enterprise_id, document_id, caller, PermissionLevel.MANAGE)

    doc.active = False
    s.flush()

    # Deletion is recorded under UPDATE, tagged in details.
    audit.append(
        s,
        enterprise_id=enterprise_id,
        document_id=document_id,
        user=caller,
        action=AuditAction.UPDATE,
        details={"deleted": True, "version": doc.version},
    )
    logger.info("Soft-deleted document %s/%s (caller=%s)", enterprise_id, document_id, caller)
    return doc


def list_documents(
    s: Session,
    enterprise_id: str,
    user: str,
    *,
    include_deleted: bool = False,
) -> list[Document]:
    """Documents `user` may read; the owner sees all of them."""
    ent = s.get(Enterprise, enterprise_id)
    if ent is None:
        return []
    q = select(Document).where(Document.enterprise_id == enterprise_id)
    if ent.owner != user:
        q = q.join(
            Grant,
            (Grant.enterprise_id == Document.enterprise_id)
            & (Grant.document_id == Document.document_id)
            & (Grant.user == user),
        ).where(Grant.permission_level >= int(PermissionLevel.READ))
    if not include_deleted:
        q = q.where(Document.active.is_(True))
    return list(s.execute(q.order_by(Document.document_id.asc())).scalars())
