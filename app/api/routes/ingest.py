"""Ingestion routes - manual triggers and run history."""

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_data_service, get_ingestion_service
from app.core.errors import StoreError, UnknownSourceError
from app.core.logging import get_logger
from app.schemas.api import IngestionRunOut, IngestResponse, run_out_from_meta
from app.services.data_service import DataService
from app.services.ingestion_service import IngestionReport, IngestionService

router = APIRouter(prefix="/api/ingest", tags=["ingest"])
log = get_logger("ingest_routes")


def _response(report: IngestionReport) -> IngestResponse:
    return IngestResponse(
        message="Ingestion completed",
        run=IngestionRunOut.model_validate(report.summary()),
    )


@router.post("", response_model=IngestResponse)
async def trigger_ingestion(service: IngestionService = Depends(get_ingestion_service)):
    """
    Run one ingestion over every registered source and wait for it.

    Per-source and per-item failures do not fail the request; the
    returned run summary carries their counts.
    """
    log.info("Ingestion triggered for all sources")
    report = await service.run_all(trigger="manual")
    return _response(report)


@router.get("/runs", response_model=list[IngestionRunOut])
def get_runs(
    limit: int = Query(10, ge=1, le=100, description="Number of runs to return"),
    repository: DataService = Depends(get_data_service),
):
    """Most recent ingestion runs, newest first."""
    try:
        runs = repository.recent_runs(limit=limit)
    except StoreError as exc:
        log.error(f"Run history query failed: {exc}")
        raise HTTPException(status_code=503, detail="Data store unavailable") from exc

    return [
        IngestionRunOut(
            run_id=str(run.run_id),
            trigger=run.trigger,
            status=run.status,
            sources_total=run.sources_total,
            sources_failed=run.sources_failed,
            items_upserted=run.items_upserted,
            items_skipped=run.items_skipped,
            items_failed=run.items_failed,
            sources=run_out_from_meta(run.meta),
            started_at=run.started_at,
            ended_at=run.ended_at,
        )
        for run in runs
    ]


@router.post("/{source}", response_model=IngestResponse)
async def trigger_source_ingestion(source: str, service: IngestionService = Depends(get_ingestion_service)):
    """Run one ingestion for a single registered source."""
    log.info(f"Ingestion triggered for source: {source}")
    try:
        report = await service.run_source(source, trigger="manual")
    except UnknownSourceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _response(report)
