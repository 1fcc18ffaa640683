"""
Record Store: users, their documents, per-document audit log and share grants.

Rules enforced here:
- One administrator principal, fixed at construction, is the only writer.
- Every call is serialized and runs in one transaction; a failed call leaves
  no rows, no journal entries and emits no notifications.
- A user "exists" when its stored name is non-empty.
- A content hash backs at most one document, ever.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator, Iterable
from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.recordstore.db import transaction
from app.recordstore.errors import (
    DOCUMENT_NOT_OWNED,
    DOCUMENT_SCAN_MISS,
    INVALID_ACTION,
    INVALID_DOCUMENT_ID,
    INVALID_TIMESTAMP,
    INVALID_USER_ID,
    SHARED_USER_NOT_FOUND,
    USER_NOT_FOUND,
    AccessDenied,
    AlreadyExists,
    DuplicateHash,
    InvalidField,
    LengthMismatch,
    NotFound,
    Unauthorized,
)
from app.recordstore.events import (
    AuditEntryAdded,
    DocumentCreated,
    DocumentShared,
    EventBus,
    StoreNotification,
    UserCreated,
)
from app.recordstore.journal import record_event
from app.recordstore.models import AuditEntry as AuditEntryRow
from app.recordstore.models import ShareGrant, User, UserDocument
from app.recordstore.records import AuditEntry, DocumentRecord, UserDetails, UserRow


logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}

# audit_entries.timestamp is a signed 64-bit column.
MAX_TIMESTAMP = 2**63 - 1


def _user_exists(u: User | None) -> bool:
    return u is not None and u.name != ""


def _require_user(s: Session, user_id: str, message: str = USER_NOT_FOUND) -> User:
    u = s.get(User, user_id)
    if not _user_exists(u):
        raise NotFound(message)
    return u


def _owns_document(owner: User, document_id: str) -> bool:
    for d in owner.documents:
        if d.document_id == document_id:
            return True
    return False


def _has_grant(s: Session, shared_user_id: str, document_id: str) -> bool:
    grant = s.get(ShareGrant, (document_id, shared_user_id))
    return bool(grant is not None and grant.granted)


def _grant_access(s: Session, document_id: str, grantee_user_id: str, granted_by_user_id: str) -> None:
    """
    Upsert the (document_id, grantee) grant. Another worker may insert the same
    key between a lookup and our insert, so the write itself must tolerate it.
    """
    values = {
        "document_id": document_id,
        "grantee_user_id": grantee_user_id,
        "granted": True,
        "granted_by_user_id": granted_by_user_id,
    }
    dialect = s.get_bind().dialect.name
    if dialect in _UPSERT_INSERTS:
        stmt = _UPSERT_INSERTS[dialect](ShareGrant).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["document_id", "grantee_user_id"],
            set_={"granted": True},
        )
        s.execute(stmt)
        return

    grant = s.get(ShareGrant, (document_id, grantee_user_id))
    if grant is not None:
        grant.granted = True
        return
    try:
        with s.begin_nested():
            s.add(ShareGrant(**values))
    except IntegrityError:
        s.execute(
            update(ShareGrant)
            .where(ShareGrant.document_id == document_id, ShareGrant.grantee_user_id == grantee_user_id)
            .values(granted=True)
        )


def _to_record(d: UserDocument) -> DocumentRecord:
    return DocumentRecord(document_id=d.document_id, content_hash=d.content_hash)


class RecordStore:
    def __init__(self, sm: sessionmaker, *, administrator: str, bus: EventBus | None = None) -> None:
        if not administrator:
            raise ValueError("RecordStore requires a non-empty administrator principal.")
        self._sm = sm
        self._administrator = administrator
        self.bus = bus or EventBus()
        self._lock = threading.RLock()

    @property
    def administrator(self) -> str:
        return self._administrator

    def _require_admin(self, caller: str | None, op: str) -> None:
        if caller != self._administrator:
            logger.warning("Unauthorized %s attempt (caller=%r)", op, caller)
            raise Unauthorized()

    @contextmanager
    def _mutation(self, caller: str | None, op: str) -> Generator[tuple[Session, list[StoreNotification]], None, None]:
        """
        Serialized write. Events appended by the body are journaled in the same
        transaction and dispatched only after commit.
        """
        with self._lock:
            self._require_admin(caller, op)
            pending: list[StoreNotification] = []
            with transaction(self._sm) as s:
                yield s, pending
                for ev in pending:
                    record_event(s, caller=caller, event=ev)
            self.bus.dispatch(pending)

    @contextmanager
    def _read(self) -> Generator[Session, None, None]:
        with self._lock, transaction(self._sm) as s:
            yield s

    # -- users -------------------------------------------------------------

    def create_user(self, user_id: str, name: str, email: str, *, caller: str) -> None:
        with self._mutation(caller, "create_user") as (s, events):
            u = s.get(User, user_id)
            if _user_exists(u):
                raise AlreadyExists()
            if u is None:
                s.add(User(user_id=user_id, name=name, email=email))
            else:
                # Row with an empty name reads as absent; reuse it.
                u.name = name
                u.email = email
            events.append(UserCreated(user_id=user_id, name=name, email=email))
        logger.info("User created user_id=%s", user_id)

    def get_user(self, user_id: str) -> UserRow:
        with self._read() as s:
            u = s.get(User, user_id)
            if u is None:
                return UserRow(name="", email="")
            return UserRow(name=u.name, email=u.email)

    def get_user_details(self, user_id: str) -> UserDetails:
        with self._read() as s:
            u = _require_user(s, user_id)
            return UserDetails(
                name=u.name,
                email=u.email,
                documents=tuple(_to_record(d) for d in u.documents),
            )

    # -- documents ---------------------------------------------------------

    def create_document(self, user_id: str, content_hash: str, document_id: str, *, caller: str) -> None:
        with self._mutation(caller, "create_document") as (s, events):
            # Hash check must precede the user check: DuplicateHash wins over NotFound.
            seen = s.query(UserDocument.id).filter(UserDocument.content_hash == content_hash).first()
            if seen is not None:
                raise DuplicateHash()
            u = _require_user(s, user_id)
            u.documents.append(UserDocument(document_id=document_id, content_hash=content_hash))
            try:
                s.flush()
            except IntegrityError as e:
                # Another process recorded the hash between our check and the flush.
                raise DuplicateHash() from e
            events.append(DocumentCreated(user_id=user_id, document_id=document_id, content_hash=content_hash))
        logger.info("Document created user_id=%s document_id=%s", user_id, document_id)

    def get_documents_by_user(self, user_id: str) -> list[DocumentRecord]:
        with self._read() as s:
            u = _require_user(s, user_id)
            return [_to_record(d) for d in u.documents]

    # -- audit log ---------------------------------------------------------

    def add_audit_entries(
        self,
        document_ids: Iterable[str],
        user_ids: Iterable[str],
        actions: Iterable[str],
        timestamps: Iterable[int],
        *,
        caller: str,
    ) -> int:
        document_ids = list(document_ids)
        user_ids = list(user_ids)
        actions = list(actions)
        timestamps = list(timestamps)

        with self._mutation(caller, "add_audit_entries") as (s, events):
            if not (len(document_ids) == len(user_ids) == len(actions) == len(timestamps)):
                raise LengthMismatch()
            # Validate the whole batch before adding anything.
            for i, (document_id, user_id, action, ts) in enumerate(zip(document_ids, user_ids, actions, timestamps)):
                if not document_id:
                    raise InvalidField(INVALID_DOCUMENT_ID, index=i, field="document_id")
                if not action:
                    raise InvalidField(INVALID_ACTION, index=i, field="action")
                if not user_id:
                    raise InvalidField(INVALID_USER_ID, index=i, field="user_id")
                if isinstance(ts, bool) or not isinstance(ts, int) or not 0 <= ts <= MAX_TIMESTAMP:
                    raise InvalidField(INVALID_TIMESTAMP, index=i, field="timestamp")

            for document_id, user_id, action, ts in zip(document_ids, user_ids, actions, timestamps):
                s.add(AuditEntryRow(document_id=document_id, timestamp=ts, action=action, performed_by=user_id))
                events.append(
                    AuditEntryAdded(document_id=document_id, action=action, performed_by=user_id, timestamp=ts)
                )
        logger.info("Audit entries added count=%d", len(document_ids))
        return len(document_ids)

    def get_audit_history(self, document_id: str) -> list[AuditEntry]:
        with self._read() as s:
            rows = (
                s.query(AuditEntryRow)
                .filter(AuditEntryRow.document_id == document_id)
                .order_by(AuditEntryRow.id.asc())
                .all()
            )
            return [AuditEntry(timestamp=r.timestamp, action=r.action, performed_by=r.performed_by) for r in rows]

    # -- sharing -----------------------------------------------------------

    def share_document(self, user_id: str, shared_with_user_id: str, document_id: str, *, caller: str) -> None:
        with self._mutation(caller, "share_document") as (s, events):
            owner = _require_user(s, user_id)
            _require_user(s, shared_with_user_id, SHARED_USER_NOT_FOUND)
            if not _owns_document(owner, document_id):
                raise NotFound(DOCUMENT_NOT_OWNED)

            _grant_access(s, document_id, shared_with_user_id, user_id)
            events.append(
                DocumentShared(document_id=document_id, user_id=user_id, shared_with_user_id=shared_with_user_id)
            )
        logger.info("Document shared document_id=%s owner=%s grantee=%s", document_id, user_id, shared_with_user_id)

    def get_share_document(
        self, user_id: str, shared_with_user_id: str, document_id: str, *, caller: str
    ) -> DocumentRecord:
        with self._lock:
            self._require_admin(caller, "get_share_document")
            with self._read() as s:
                owner = _require_user(s, user_id)
                _require_user(s, shared_with_user_id, SHARED_USER_NOT_FOUND)
                if not _owns_document(owner, document_id):
                    raise NotFound(DOCUMENT_NOT_OWNED)
                if not _has_grant(s, shared_with_user_id, document_id):
                    raise AccessDenied()
                # Kept separate from the ownership check above.
                for d in owner.documents:
                    if d.document_id == document_id:
                        return _to_record(d)
                raise NotFound(DOCUMENT_SCAN_MISS)

    def has_access(self, shared_user_id: str, document_id: str) -> bool:
        with self._read() as s:
            return _has_grant(s, shared_user_id, document_id)
