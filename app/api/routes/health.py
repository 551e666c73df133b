"""Health routes - database connectivity and last ingestion status."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import get_data_service
from app.core.errors import StoreError
from app.schemas.api import HealthResponse
from app.services.data_service import DataService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(response: Response, repository: DataService = Depends(get_data_service)):
    """
    Health check endpoint for load balancer and container health checks.

    Returns 503 if the database is unreachable.
    """
    try:
        repository.db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        response.status_code = 503
        return HealthResponse(database=f"down: {exc}")

    try:
        last_run = repository.latest_run()
    except StoreError:
        last_run = None

    return HealthResponse(
        database="ok",
        last_ingestion_status=last_run.status if last_run else None,
        last_ingestion_at=last_run.started_at if last_run else None,
    )
