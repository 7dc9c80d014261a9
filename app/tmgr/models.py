from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class AuditEvent(Base):
    """
    Append-only audit trail event.
    One row per dataset operation (import, reload, clear); details live in metadata_json.
    """

    __tablename__ = "audit_events"
    __table_args__ = (Index("idx_audit_events_action_created", "action", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "customer_dataset.import"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "CustomerDataset"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)  # dataset version

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string
    client_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
