from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AddressOut(CamelModel):
    country: Optional[str] = None
    city: Optional[str] = None


class EntityOut(CamelModel):
    """Unified record as exposed by the read API."""

    id: int
    original_id: str
    source: str
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[AddressOut] = None
    availability: Optional[str] = None
    is_available: Optional[bool] = None
    price_for_night: Optional[float] = None
    price_per_night: Optional[float] = None
    price_segment: Optional[str] = None
    raw_data: Any = None
    created_at: datetime
    updated_at: datetime


class DataResponse(BaseModel):
    count: int
    data: list[EntityOut]


class SourceCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="_id")
    count: int


class StatsResponse(CamelModel):
    total_count: int
    source_counts: list[SourceCount]


class SourceResultOut(CamelModel):
    source: str
    fetched: int
    upserted: int
    skipped: int
    failed: int
    error: Optional[str] = None


class IngestionRunOut(CamelModel):
    run_id: str
    trigger: str
    status: str
    sources_total: int
    sources_failed: int
    items_upserted: int
    items_skipped: int
    items_failed: int
    sources: list[SourceResultOut] = []
    started_at: datetime
    ended_at: Optional[datetime] = None


class IngestResponse(BaseModel):
    message: str
    run: IngestionRunOut


class HealthResponse(BaseModel):
    database: str
    last_ingestion_status: Optional[str] = None
    last_ingestion_at: Optional[datetime] = None


def run_out_from_meta(meta: Optional[Dict[str, Any]]) -> list[SourceResultOut]:
    return [SourceResultOut.model_validate(item) for item in (meta or {}).get("sources", [])]
