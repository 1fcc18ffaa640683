from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class User(Base):
    """
    A registered user. "Exists" means the stored name is non-empty.
    """

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    documents: Mapped[list["UserDocument"]] = relationship(
        "UserDocument",
        back_populates="user",
        order_by="UserDocument.id",
        lazy="selectin",
    )


class UserDocument(Base):
    __tablename__ = "user_documents"
    __table_args__ = (
        Index("idx_user_documents_user_id", "user_id"),
    )

    # Autoincrement id doubles as the per-user insertion order.
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[str] = mapped_column(ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False)
    # Not unique: a user may hold two documents with the same id.
    document_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Global hash-seen set. Documents are never removed, so a unique column is enough.
    content_hash: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped[User] = relationship("User", back_populates="documents", lazy="selectin")


class AuditEntry(Base):
    """
    Append-only audit line keyed by a free-form document id (no FK on purpose:
    entries may reference documents that were never created).
    """

    __tablename__ = "audit_entries"
    __table_args__ = (
        Index("idx_audit_entries_document_id", "document_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    document_id: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # caller supplied, 0 .. 2**63 - 1
    action: Mapped[str] = mapped_column(Text, nullable=False)
    performed_by: Mapped[str] = mapped_column(Text, nullable=False)

    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class ShareGrant(Base):
    __tablename__ = "share_grants"

    document_id: Mapped[str] = mapped_column(Text, primary_key=True)
    grantee_user_id: Mapped[str] = mapped_column(ForeignKey("users.user_id", ondelete="RESTRICT"), primary_key=True)
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    granted_by_user_id: Mapped[str] = mapped_column(ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class StoreEvent(Base):
    """
    Append-only journal of emitted notifications.
    Written in the same transaction as the mutation that produced it.
    """

    __tablename__ = "store_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    caller: Mapped[str] = mapped_column(Text, nullable=False)

    event: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "document.created"
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
