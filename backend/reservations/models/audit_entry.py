"""
Append-only audit trail of committed mutations.

Rows are only ever inserted. The autoincrement id is the stable ordering
used to reconstruct an entity's history in commit order.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from reservations.db.base import Base, utcnow


class AuditAction:
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntry(Base):
    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String(10), nullable=False)
    changes = Column(JSON, nullable=True)
    actor = Column(String(100), nullable=False, default="system")
    committed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_audit_entries_entity", "entity_type", "entity_id", "id"),
    )

    def __repr__(self) -> str:
        return f"<AuditEntry(id={self.id}, {self.entity_type}#{self.entity_id} {self.action})>"
