"""Data Service - persistence and query logic for unified records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.errors import StoreError
from app.core.logging import get_logger
from app.ingestion.normalizer import Normalizer, default_normalizer
from app.models.runs import IngestionRun
from app.models.unified import UnifiedRecord
from app.schemas.filters import DataFilter

log = get_logger("data_service")

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# Never overwritten by a conflicting insert
_KEY_COLUMNS = ("original_id", "source", "created_at")


@dataclass
class SourceStats:
    total_count: int
    per_source: Dict[str, int] = field(default_factory=dict)


class DataService:
    """Repository over the unified_records table.

    Writes go through a single INSERT ... ON CONFLICT DO UPDATE keyed on
    (original_id, source), so concurrent upserts of the same key are
    last-write-wins without a read-modify-write window.
    """

    def __init__(
        self,
        db: Session,
        normalizer: Optional[Normalizer] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.normalizer = normalizer or default_normalizer
        self.clock = clock

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def upsert(self, original_id: str, source: str, raw_item: Any) -> UnifiedRecord:
        """Normalize ``raw_item`` and insert-or-update it under (original_id, source).

        Only fields the normalizer populated are written on update; raw_data
        and updated_at are always replaced. Raises MalformedItemError for
        unusable items and StoreError when the write fails.
        """
        entity = self.normalizer.normalize(raw_item, source)
        now = self.clock()

        values = entity.to_columns()
        values["original_id"] = original_id
        values["created_at"] = now
        values["updated_at"] = now

        try:
            insert = self._dialect_insert()
            stmt = insert(UnifiedRecord).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[UnifiedRecord.original_id, UnifiedRecord.source],
                set_={key: stmt.excluded[key] for key in values if key not in _KEY_COLUMNS},
            )
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"upsert failed for {source}/{original_id}: {exc}") from exc

        record = self.get(original_id, source)
        if record is None:
            raise StoreError(f"upserted record {source}/{original_id} not readable")
        return record

    def _dialect_insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect]
        except KeyError:
            raise StoreError(f"atomic upsert not supported on dialect '{dialect}'") from None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def get(self, original_id: str, source: str) -> Optional[UnifiedRecord]:
        stmt = (
            select(UnifiedRecord)
            .where(UnifiedRecord.original_id == original_id, UnifiedRecord.source == source)
            .execution_options(populate_existing=True)
        )
        try:
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"lookup failed for {source}/{original_id}: {exc}") from exc

    def query(self, filters: Optional[DataFilter] = None) -> List[UnifiedRecord]:
        """Return records matching every supplied predicate, in insertion order."""
        stmt = select(UnifiedRecord)
        conditions = self.build_conditions(filters or DataFilter())
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(UnifiedRecord.id).execution_options(populate_existing=True)

        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"query failed: {exc}") from exc

    @staticmethod
    def build_conditions(filters: DataFilter) -> List[Any]:
        conditions: List[Any] = []

        if filters.source:
            conditions.append(UnifiedRecord.source == filters.source)

        # Location may live in the flattened columns or the legacy address shape
        if filters.city:
            conditions.append(
                or_(
                    UnifiedRecord.city.icontains(filters.city, autoescape=True),
                    UnifiedRecord.address_city.icontains(filters.city, autoescape=True),
                )
            )
        if filters.country:
            conditions.append(
                or_(
                    UnifiedRecord.country.icontains(filters.country, autoescape=True),
                    UnifiedRecord.address_country.icontains(filters.country, autoescape=True),
                )
            )

        if filters.name:
            conditions.append(UnifiedRecord.name.icontains(filters.name, autoescape=True))

        if filters.availability:
            flag = filters.availability == "true"
            conditions.append(
                or_(
                    UnifiedRecord.is_available == flag,
                    UnifiedRecord.availability == filters.availability,
                    UnifiedRecord.availability == ("true" if flag else "false"),
                )
            )

        if filters.price_segment:
            conditions.append(UnifiedRecord.price_segment == filters.price_segment)

        if filters.has_price_bounds:
            conditions.append(
                or_(
                    _price_in_range(UnifiedRecord.price_for_night, filters.min_price, filters.max_price),
                    _price_in_range(UnifiedRecord.price_per_night, filters.min_price, filters.max_price),
                )
            )

        return conditions

    def count(self, source: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(UnifiedRecord)
        if source:
            stmt = stmt.where(UnifiedRecord.source == source)
        try:
            return self.db.execute(stmt).scalar() or 0
        except SQLAlchemyError as exc:
            raise StoreError(f"count failed: {exc}") from exc

    def list_sources(self) -> List[str]:
        """Distinct source names present in the store."""
        stmt = select(UnifiedRecord.source).distinct().order_by(UnifiedRecord.source)
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"listing sources failed: {exc}") from exc

    def stats(self) -> SourceStats:
        stmt = (
            select(UnifiedRecord.source, func.count())
            .group_by(UnifiedRecord.source)
            .order_by(UnifiedRecord.source)
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"stats query failed: {exc}") from exc

        per_source = {source: count for source, count in rows}
        return SourceStats(total_count=sum(per_source.values()), per_source=per_source)

    # -------------------------------------------------------------------------
    # Ingestion run bookkeeping
    # -------------------------------------------------------------------------
    def start_run(self, trigger: str, started_at: datetime, sources_total: int) -> IngestionRun:
        run = IngestionRun(
            trigger=trigger,
            status="running",
            sources_total=sources_total,
            started_at=started_at,
        )
        try:
            self.db.add(run)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"could not record run start: {exc}") from exc
        return run

    def finish_run(self, run: IngestionRun, **fields: Any) -> IngestionRun:
        for key, value in fields.items():
            setattr(run, key, value)
        try:
            self.db.add(run)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(f"could not record run end: {exc}") from exc
        return run

    def recent_runs(self, limit: int = 10) -> List[IngestionRun]:
        stmt = select(IngestionRun).order_by(IngestionRun.started_at.desc()).limit(limit)
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"run history query failed: {exc}") from exc

    def latest_run(self) -> Optional[IngestionRun]:
        runs = self.recent_runs(limit=1)
        return runs[0] if runs else None


def _price_in_range(column: Any, minimum: Optional[float], maximum: Optional[float]) -> Any:
    bounds = [column.is_not(None)]
    if minimum is not None:
        bounds.append(column >= minimum)
    if maximum is not None:
        bounds.append(column <= maximum)
    return and_(*bounds)
