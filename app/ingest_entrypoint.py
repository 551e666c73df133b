"""Ingestion entrypoint - Standalone script for running one ingestion.

Usage:
    python -m app.ingest_entrypoint              # Run all sources
    python -m app.ingest_entrypoint source1      # Run single source
"""

import asyncio
import sys
from typing import Optional

from app.core.db import SessionLocal, init_db
from app.core.errors import UnknownSourceError
from app.core.logging import get_logger
from app.ingestion.registry import SourceRegistry
from app.services.data_service import DataService
from app.services.ingestion_service import IngestionReport, IngestionService, RunStatus

logger = get_logger("ingest_entrypoint")


async def run_ingestion(source: Optional[str] = None) -> IngestionReport:
    with SessionLocal() as db:
        service = IngestionService(DataService(db), registry=SourceRegistry.from_settings())
        if source:
            return await service.run_source(source, trigger="cli")
        return await service.run_all(trigger="cli")


def main(argv: Optional[list] = None) -> int:
    """Exit status is 1 when the run completed with errors or the source is unknown."""
    args = sys.argv[1:] if argv is None else argv
    source = args[0] if args else None

    logger.info("Ingestion pipeline starting...")
    init_db()

    try:
        report = asyncio.run(run_ingestion(source))
    except UnknownSourceError as exc:
        logger.error(f"{exc}. Must be one of: {', '.join(SourceRegistry.from_settings().names())}")
        return 1

    logger.info(f"Ingestion pipeline completed: {report.summary()}")
    return 0 if report.status == RunStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
