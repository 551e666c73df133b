"""Ingestion orchestrator: fetch every registered source, normalize and upsert each item."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from app.core.config import DataSource, settings
from app.core.clock import utcnow
from app.core.errors import FetchError, MalformedItemError, StoreError
from app.core.logging import get_logger
from app.ingestion.fetcher import JSONFetcher
from app.ingestion.normalizer import extract_original_id
from app.ingestion.registry import SourceRegistry
from app.models.runs import IngestionRun
from app.services.data_service import DataService

log = get_logger("ingestion_service")


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass
class SourceResult:
    source: str
    fetched: int = 0
    upserted: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.skipped == 0 and self.failed == 0


@dataclass
class IngestionReport:
    run_id: str
    trigger: str
    started_at: datetime
    status: RunStatus = RunStatus.RUNNING
    ended_at: Optional[datetime] = None
    sources: List[SourceResult] = field(default_factory=list)

    @property
    def sources_failed(self) -> int:
        return sum(1 for result in self.sources if result.error is not None)

    @property
    def items_upserted(self) -> int:
        return sum(result.upserted for result in self.sources)

    @property
    def items_skipped(self) -> int:
        return sum(result.skipped for result in self.sources)

    @property
    def items_failed(self) -> int:
        return sum(result.failed for result in self.sources)

    def summary(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trigger": self.trigger,
            "status": self.status.value,
            "sources_total": len(self.sources),
            "sources_failed": self.sources_failed,
            "items_upserted": self.items_upserted,
            "items_skipped": self.items_skipped,
            "items_failed": self.items_failed,
            "sources": [asdict(result) for result in self.sources],
            "started_at": self.started_at,
            "ended_at": self.ended_at,
        }


class IngestionService:
    """One orchestrator run walks Idle -> Running -> Completed / Completed-with-errors.

    Failures are contained at two levels: a source whose fetch fails is
    logged and skipped, an item that is malformed or cannot be stored is
    logged and skipped. Neither aborts the run; only programming errors
    propagate out of ``run_all``.
    """

    def __init__(
        self,
        repository: DataService,
        registry: Optional[SourceRegistry] = None,
        fetcher: Optional[JSONFetcher] = None,
        clock: Callable[[], datetime] = utcnow,
        max_concurrent_fetches: Optional[int] = None,
    ):
        self.repository = repository
        self.registry = registry or SourceRegistry.from_settings()
        self.fetcher = fetcher or JSONFetcher()
        self.clock = clock
        self.max_concurrent_fetches = max_concurrent_fetches or settings.MAX_CONCURRENT_FETCHES
        self.status = RunStatus.IDLE

    async def run_all(self, trigger: str = "manual") -> IngestionReport:
        """Ingest every registered source."""
        return await self._run(self.registry.all(), trigger)

    async def run_source(self, name: str, trigger: str = "manual") -> IngestionReport:
        """Ingest a single registered source; raises UnknownSourceError for unknown names."""
        return await self._run([self.registry.get(name)], trigger)

    async def _run(self, sources: List[DataSource], trigger: str) -> IngestionReport:
        self.status = RunStatus.RUNNING
        report = IngestionReport(run_id=str(uuid.uuid4()), trigger=trigger, started_at=self.clock())
        run_row = self._record_start(report, len(sources))
        if run_row is not None:
            report.run_id = str(run_row.run_id)

        log.info(f"Starting data ingestion run={report.run_id} trigger={trigger} sources={len(sources)}")

        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)
        completed = False
        try:
            report.sources = list(
                await asyncio.gather(*(self._ingest_source(source, semaphore) for source in sources))
            )
            completed = all(result.ok for result in report.sources)
        finally:
            # The run row never stays "running", even when an error escapes
            report.ended_at = self.clock()
            report.status = RunStatus.COMPLETED if completed else RunStatus.COMPLETED_WITH_ERRORS
            self.status = report.status
            self._record_finish(run_row, report)

        log.info(
            f"Data ingestion {report.status.value} run={report.run_id} "
            f"upserted={report.items_upserted} skipped={report.items_skipped} "
            f"failed={report.items_failed} sources_failed={report.sources_failed}"
        )
        return report

    async def _ingest_source(self, source: DataSource, semaphore: asyncio.Semaphore) -> SourceResult:
        result = SourceResult(source=source.name)

        try:
            async with semaphore:
                items = await self.fetcher.fetch(source)
        except FetchError as exc:
            log.error(f"Error ingesting {source.name}: {exc}")
            result.error = str(exc)
            return result

        result.fetched = len(items)
        # No awaits below: items of one source are written without interleaving
        for index, item in enumerate(items):
            try:
                original_id = extract_original_id(item)
                self.repository.upsert(original_id, source.name, item)
                result.upserted += 1
            except MalformedItemError as exc:
                log.warning(f"Skipping item #{index} from {source.name}: {exc}")
                result.skipped += 1
            except StoreError as exc:
                log.error(f"Failed to store item #{index} from {source.name}: {exc}")
                result.failed += 1

        log.info(
            f"Processed {source.name}: fetched={result.fetched} upserted={result.upserted} "
            f"skipped={result.skipped} failed={result.failed}"
        )
        return result

    # -------------------------------------------------------------------------
    # Run bookkeeping (best effort)
    # -------------------------------------------------------------------------
    def _record_start(self, report: IngestionReport, sources_total: int) -> Optional[IngestionRun]:
        try:
            return self.repository.start_run(report.trigger, report.started_at, sources_total)
        except StoreError as exc:
            log.error(f"Could not record ingestion run start: {exc}")
            return None

    def _record_finish(self, run_row: Optional[IngestionRun], report: IngestionReport) -> None:
        if run_row is None:
            return
        summary = report.summary()
        try:
            self.repository.finish_run(
                run_row,
                status=report.status.value,
                sources_failed=report.sources_failed,
                items_upserted=report.items_upserted,
                items_skipped=report.items_skipped,
                items_failed=report.items_failed,
                meta={"sources": summary["sources"]},
                ended_at=report.ended_at,
            )
        except StoreError as exc:
            log.error(f"Could not record ingestion run end: {exc}")
