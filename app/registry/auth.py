from __future__ import annotations

import re
import uuid

from flask import current_app, g, request

from app.registry.constants import MAX_PRINCIPAL_LEN, MAX_REQUEST_ID_LEN

_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._:-]+")


def _request_id_from_header() -> str:
    """Caller-supplied X-Request-ID when it fits the audit column, else a fresh one."""
    rid = (request.headers.get("X-Request-ID") or "").strip()
    if rid and len(rid) <= MAX_REQUEST_ID_LEN and _REQUEST_ID_RE.fullmatch(rid):
        return rid
    return uuid.uuid4().hex


def load_current_principal() -> None:
    """
    Loads g.principal from the configured header. Identity is verified
    upstream; this only carries it into the request.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = _request_id_from_header()
    if request.path.startswith(("/health", "/healthz")):
        g.principal = None
        return

    header = current_app.config.get("PRINCIPAL_HEADER") or "X-Principal"
    principal = (request.headers.get(header) or "").strip()
    if not principal or len(principal) > MAX_PRINCIPAL_LEN:
        if principal:
            current_app.logger.warning(
                "Ignoring over-long principal header (len=%s request_id=%s)", len(principal), g.request_id
            )
        g.principal = None
        return
    g.principal = principal
