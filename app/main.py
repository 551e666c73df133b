from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from app.api.routes import data_router, health_router, ingest_router
from app.core.config import settings
from app.core.db import SessionLocal, init_db
from app.core.logging import get_logger
from app.ingestion.registry import SourceRegistry
from app.ingestion.scheduler import IngestionScheduler
from app.services.data_service import DataService
from app.services.ingestion_service import IngestionService


log = get_logger("app")


async def run_ingestion_pipeline() -> None:
    """Run one scheduled ingestion over all sources with a dedicated session."""
    with SessionLocal() as db:
        service = IngestionService(DataService(db), registry=SourceRegistry.from_settings())
        report = await service.run_all(trigger="scheduled")

    for result in report.sources:
        if result.error:
            log.error(f"Ingestion {result.source}: failed - {result.error}")
        else:
            log.info(f"Ingestion {result.source}: upserted {result.upserted} of {result.fetched} items")


def build_scheduler() -> IngestionScheduler:
    return IngestionScheduler(
        run_ingestion_pipeline,
        interval_seconds=settings.INGESTION_INTERVAL_SECONDS,
        run_immediately=settings.INGEST_ON_STARTUP,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")

    try:
        init_db()
    except Exception:
        log.exception("Failed to create tables on startup")
        raise

    scheduler: Optional[IngestionScheduler] = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler()
        scheduler.start()
    else:
        log.info("Scheduled ingestion is disabled (SCHEDULER_ENABLED=false)")
    app.state.scheduler = scheduler

    yield

    log.info("Shutting down services...")
    if scheduler is not None:
        await scheduler.stop()
    log.info("Application shutdown complete")


app = FastAPI(
    title="Unified Ingestion Service",
    description="Ingests heterogeneous JSON sources into one filterable record shape",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(data_router)
app.include_router(ingest_router)
app.include_router(health_router)


def run() -> None:
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
