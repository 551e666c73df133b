"""Canonical table for API reads - one row per (original_id, source)."""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.clock import utcnow
from app.models.base import Base, JSONType


class UnifiedRecord(Base):
    """Record normalized from any source.

    The legacy nested ``address`` shape is stored as ``address_city`` /
    ``address_country`` next to the flattened ``city`` / ``country``.
    Availability keeps both storage shapes: ``is_available`` (canonical
    flag) and ``availability`` (legacy free text, may hold "true"/"false").
    """

    __tablename__ = "unified_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    original_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    source: Mapped[str] = mapped_column(String, nullable=False, index=True)

    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    address_city: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    address_country: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)

    availability: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_available: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, index=True)

    price_for_night: Mapped[Optional[float]] = mapped_column(Float, nullable=True, index=True)
    price_per_night: Mapped[Optional[float]] = mapped_column(Float, nullable=True, index=True)
    price_segment: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)

    raw_data: Mapped[Any] = mapped_column(JSONType, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("original_id", "source", name="uq_unified_records_original_id_source"),
        Index("ix_unified_records_source_city", "source", "city"),
    )

    @property
    def address(self) -> Optional[Dict[str, Optional[str]]]:
        if self.address_city is None and self.address_country is None:
            return None
        return {"country": self.address_country, "city": self.address_city}
