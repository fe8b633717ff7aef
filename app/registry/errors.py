from __future__ import annotations


class RegistryError(RuntimeError):
    """Base for every failure an operation reports to its caller."""

    kind = "registry_error"
    status_code = 400


class Unauthorized(RegistryError):
    kind = "unauthorized"
    status_code = 403


class NotFound(RegistryError):
    kind = "not_found"
    status_code = 404


class Duplicate(RegistryError):
    kind = "duplicate"
    status_code = 409


class DuplicateEnterprise(Duplicate):
    pass


class DuplicateDocument(Duplicate):
    pass


class InvalidPermission(RegistryError):
    kind = "invalid_permission"


class InvalidMetadata(RegistryError):
    kind = "invalid_metadata"
