from __future__ import annotations


class RecordStoreError(RuntimeError):
    """
    Base for every failure the record store reports to a caller.

    `code` is stable and machine-matchable; `message` is the human text.
    Both are part of the external contract.
    """

    code = "record_store_error"
    http_status = 400
    default_message = "Record store error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "message": self.message}


class Unauthorized(RecordStoreError):
    code = "unauthorized"
    http_status = 403
    default_message = "Only the administrator can perform this action."


class AlreadyExists(RecordStoreError):
    code = "already_exists"
    http_status = 409
    default_message = "User already exists."


class NotFound(RecordStoreError):
    code = "not_found"
    http_status = 404
    default_message = "User does not exist."


class DuplicateHash(RecordStoreError):
    code = "duplicate_hash"
    http_status = 409
    default_message = "Document hash already exists."


class LengthMismatch(RecordStoreError):
    code = "length_mismatch"
    http_status = 400
    default_message = "Mismatched input array lengths."


class InvalidField(RecordStoreError):
    code = "invalid_field"
    http_status = 400
    default_message = "Invalid field."

    def __init__(self, message: str | None = None, *, index: int | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.index = index
        self.field = field

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({"index": self.index, "field": self.field})
        return d


class AccessDenied(RecordStoreError):
    code = "access_denied"
    http_status = 403
    default_message = "Access denied."


# NotFound messages, distinct so callers can tell the precondition apart.
USER_NOT_FOUND = "User does not exist."
SHARED_USER_NOT_FOUND = "Shared user does not exist."
DOCUMENT_NOT_OWNED = "Document does not exist."
DOCUMENT_SCAN_MISS = "Document not found."

INVALID_DOCUMENT_ID = "Invalid document ID."
INVALID_ACTION = "Invalid action description."
INVALID_USER_ID = "Invalid user ID."
INVALID_TIMESTAMP = "Invalid timestamp."
