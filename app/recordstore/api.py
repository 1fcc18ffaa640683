"""
JSON surface over the record store.

Every route passes the request principal (see auth.load_current_principal)
through to the store, which performs the administrator check itself.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, abort, g, request

from app.recordstore.rbac import get_store, is_administrator, require_principal

bp = Blueprint("api", __name__)


def _json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object.")
    return data


def _str_field(data: dict[str, Any], key: str) -> str:
    value = data.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        abort(400, description=f"{key} must be a string.")
    return value


def _list_field(data: dict[str, Any], key: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        abort(400, description=f"{key} must be a list.")
    return value


def _str_list_field(data: dict[str, Any], key: str) -> list[str]:
    value = _list_field(data, key)
    if any(not isinstance(v, str) for v in value):
        abort(400, description=f"{key} must be a list of strings.")
    return value


@bp.get("/administrator")
def administrator():
    store = get_store()
    return {"ok": True, "administrator": store.administrator, "caller_is_administrator": is_administrator(g.principal)}


@bp.post("/users")
@require_principal
def create_user():
    data = _json_body()
    user_id = _str_field(data, "user_id")
    name = _str_field(data, "name")
    email = _str_field(data, "email")
    get_store().create_user(user_id, name, email, caller=g.principal)
    return {"ok": True, "user_id": user_id}, 201


@bp.get("/users/<user_id>")
def user_details(user_id: str):
    details = get_store().get_user_details(user_id)
    return {"ok": True, "user_id": user_id, **details.to_dict()}


@bp.get("/users/<user_id>/row")
def user_row(user_id: str):
    row = get_store().get_user(user_id)
    return {"ok": True, "user_id": user_id, **row.to_dict()}


@bp.get("/users/<user_id>/documents")
def documents_by_user(user_id: str):
    docs = get_store().get_documents_by_user(user_id)
    return {"ok": True, "user_id": user_id, "documents": [d.to_dict() for d in docs]}


@bp.post("/users/<user_id>/documents")
@require_principal
def create_document(user_id: str):
    data = _json_body()
    content_hash = _str_field(data, "content_hash")
    document_id = _str_field(data, "document_id")
    get_store().create_document(user_id, content_hash, document_id, caller=g.principal)
    return {"ok": True, "user_id": user_id, "document_id": document_id, "content_hash": content_hash}, 201


@bp.post("/audit-entries")
@require_principal
def add_audit_entries():
    data = _json_body()
    timestamps = _list_field(data, "timestamps")
    for ts in timestamps:
        # bool is an int subclass; reject it explicitly
        if isinstance(ts, bool) or not isinstance(ts, int):
            abort(400, description="timestamps must be integers.")
    added = get_store().add_audit_entries(
        _str_list_field(data, "document_ids"),
        _str_list_field(data, "user_ids"),
        _str_list_field(data, "actions"),
        timestamps,
        caller=g.principal,
    )
    return {"ok": True, "added": added}, 201


@bp.get("/documents/<document_id>/audit-history")
def audit_history(document_id: str):
    entries = get_store().get_audit_history(document_id)
    return {"ok": True, "document_id": document_id, "entries": [e.to_dict() for e in entries]}


@bp.post("/shares")
@require_principal
def share_document():
    data = _json_body()
    user_id = _str_field(data, "user_id")
    shared_with_user_id = _str_field(data, "shared_with_user_id")
    document_id = _str_field(data, "document_id")
    get_store().share_document(user_id, shared_with_user_id, document_id, caller=g.principal)
    return {
        "ok": True,
        "document_id": document_id,
        "user_id": user_id,
        "shared_with_user_id": shared_with_user_id,
    }, 201


@bp.get("/shares/<user_id>/<shared_with_user_id>/<document_id>")
@require_principal
def get_share_document(user_id: str, shared_with_user_id: str, document_id: str):
    doc = get_store().get_share_document(user_id, shared_with_user_id, document_id, caller=g.principal)
    return {"ok": True, "document": doc.to_dict()}


@bp.get("/documents/<document_id>/access/<user_id>")
def has_access(document_id: str, user_id: str):
    return {"ok": True, "document_id": document_id, "user_id": user_id, "has_access": get_store().has_access(user_id, document_id)}
