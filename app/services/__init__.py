# Services package
from app.services.data_service import DataService, SourceStats
from app.services.ingestion_service import (
    IngestionReport,
    IngestionService,
    RunStatus,
    SourceResult,
)

__all__ = [
    "DataService",
    "SourceStats",
    "IngestionReport",
    "IngestionService",
    "RunStatus",
    "SourceResult",
]
