from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class DocumentRecord:
    document_id: str
    content_hash: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AuditEntry:
    timestamp: int
    action: str
    performed_by: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class UserDetails:
    name: str
    email: str
    documents: tuple[DocumentRecord, ...]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "documents": [d.to_dict() for d in self.documents],
        }


@dataclass(frozen=True)
class UserRow:
    """Raw stored row. Unknown ids read as blank strings."""

    name: str
    email: str

    @property
    def exists(self) -> bool:
        return self.name != ""

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "exists": self.exists}
