from __future__ import annotations

import uuid

from flask import current_app, g, request


def load_current_principal() -> None:
    """
    Loads g.principal from the configured request header.
    Also assigns a simple per-request request_id (for journal/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.principal = None
        return

    header = current_app.config.get("PRINCIPAL_HEADER") or "X-Principal"
    principal = (request.headers.get(header) or "").strip()
    g.principal = principal or None
