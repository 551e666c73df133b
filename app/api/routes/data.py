"""Data routes - filtered reads over unified records."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from app.api.deps import get_data_service
from app.core.errors import StoreError
from app.core.logging import get_logger
from app.schemas.api import DataResponse, EntityOut, SourceCount, StatsResponse
from app.schemas.filters import DataFilter
from app.services.data_service import DataService

router = APIRouter(prefix="/api/data", tags=["data"])
log = get_logger("data_routes")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


@router.get("", response_model=DataResponse)
def get_data(
    source: Optional[str] = Query(None, description="Exact source name"),
    city: Optional[str] = Query(None, description="Case-insensitive partial match on city or address.city"),
    country: Optional[str] = Query(None, description="Case-insensitive partial match on country or address.country"),
    name: Optional[str] = Query(None, description="Case-insensitive partial match on name"),
    availability: Optional[str] = Query(None, description="'true'/'false'; matches boolean and legacy string storage"),
    price_segment: Optional[str] = Query(None, alias="priceSegment", description="Exact price tier"),
    min_price: Optional[float] = Query(None, alias="minPrice", description="Lower bound on priceForNight or pricePerNight"),
    max_price: Optional[float] = Query(None, alias="maxPrice", description="Upper bound on priceForNight or pricePerNight"),
    service: DataService = Depends(get_data_service),
):
    """
    Get unified records matching every supplied filter.

    Omitted or empty filters impose no constraint.
    """
    try:
        filters = DataFilter(
            source=_blank_to_none(source),
            city=_blank_to_none(city),
            country=_blank_to_none(country),
            name=_blank_to_none(name),
            availability=_blank_to_none(availability),
            price_segment=_blank_to_none(price_segment),
            min_price=min_price,
            max_price=max_price,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

    try:
        records = service.query(filters)
    except StoreError as exc:
        log.error(f"Data query failed: {exc}")
        raise HTTPException(status_code=503, detail="Data store unavailable") from exc

    return DataResponse(count=len(records), data=[EntityOut.model_validate(r) for r in records])


@router.get("/sources", response_model=list[str])
def get_sources(service: DataService = Depends(get_data_service)):
    """Distinct source names present in the store."""
    try:
        return service.list_sources()
    except StoreError as exc:
        log.error(f"Source listing failed: {exc}")
        raise HTTPException(status_code=503, detail="Data store unavailable") from exc


@router.get("/stats", response_model=StatsResponse)
def get_stats(service: DataService = Depends(get_data_service)):
    """Total record count and per-source counts."""
    try:
        stats = service.stats()
    except StoreError as exc:
        log.error(f"Stats query failed: {exc}")
        raise HTTPException(status_code=503, detail="Data store unavailable") from exc

    return StatsResponse(
        total_count=stats.total_count,
        source_counts=[SourceCount(source=source, count=count) for source, count in stats.per_source.items()],
    )
