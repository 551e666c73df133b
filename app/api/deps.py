"""API dependencies"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.db import SessionLocal
from app.ingestion.registry import SourceRegistry
from app.services.data_service import DataService
from app.services.ingestion_service import IngestionService


def get_db() -> Generator[Session, None, None]:
    """Database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_data_service(db: Session = Depends(get_db)) -> DataService:
    return DataService(db)


def get_ingestion_service(repository: DataService = Depends(get_data_service)) -> IngestionService:
    return IngestionService(repository, registry=SourceRegistry.from_settings())
