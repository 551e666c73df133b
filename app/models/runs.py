"""Ingestion run bookkeeping, surfaced through /api/ingest/runs and /health."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType


class IngestionRun(Base):
    __tablename__ = "ingestion_runs"

    run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    trigger: Mapped[str] = mapped_column(String(20), nullable=False)  # scheduled | manual | cli

    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,  # running | completed | completed_with_errors
    )

    sources_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sources_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_upserted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # "metadata" attribute name is reserved by SQLAlchemy; use column name metadata with safe attribute.
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
