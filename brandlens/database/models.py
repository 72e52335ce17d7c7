"""SQLAlchemy models for persisted reports."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Float, Index, String
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from brandlens.database.base import Base


class ReportRecord(Base):
    """A finalized Report document, indexed for project/date-range queries."""

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[str] = mapped_column(String(128), nullable=False)
    brand_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    batch_state: Mapped[str] = mapped_column(String(16), nullable=False)
    global_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rules_version: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)

    __table_args__ = (
        Index("ix_reports_project_created", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ReportRecord(id={self.id}, project_id={self.project_id}, created_at={self.created_at})>"
