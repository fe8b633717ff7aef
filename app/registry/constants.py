"""
Central constants for the document registry.
"""
from __future__ import annotations

from enum import Enum, IntEnum


class PermissionLevel(IntEnum):
    """Totally ordered; a higher level subsumes every lower one."""

    NONE = 0
    READ = 1
    MODIFY = 2
    MANAGE = 3
    FULL = 4


class AuditAction(str, Enum):
    REGISTER = "REGISTER"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    SHARE = "SHARE"  # grant or revoke
    ACCESS = "ACCESS"


# Levels a grant may carry. NONE is not a way to remove access; use revoke.
GRANTABLE_LEVELS = frozenset(range(PermissionLevel.READ, PermissionLevel.FULL + 1))

# Audit trail key for enterprise-scoped events (registration).
ENTERPRISE_SCOPE = ""

# Field length ceilings
MAX_ID_LEN = 64
MAX_NAME_LEN = 256
MAX_DESCRIPTION_LEN = 500
MAX_DOCUMENT_TYPE_LEN = 64
MAX_PRINCIPAL_LEN = 128
MAX_REQUEST_ID_LEN = 64
CONTENT_HASH_BYTES = 32
