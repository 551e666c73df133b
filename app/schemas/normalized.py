"""Unified normalized data model"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class Address(BaseModel):
    """Nested legacy location shape"""

    country: Optional[str] = None
    city: Optional[str] = None


class UnifiedEntity(BaseModel):
    """Normalizer output; fields a source does not provide stay None."""

    original_id: str
    source: str
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    address: Optional[Address] = None
    availability: Optional[str] = None
    is_available: Optional[bool] = None
    price_for_night: Optional[float] = None
    price_per_night: Optional[float] = None
    price_segment: Optional[str] = None
    raw_data: Any = None

    def to_columns(self) -> Dict[str, Any]:
        """Populated fields keyed by UnifiedRecord column name."""
        columns = self.model_dump(exclude_none=True, exclude={"address"})
        if self.address is not None:
            if self.address.city is not None:
                columns["address_city"] = self.address.city
            if self.address.country is not None:
                columns["address_country"] = self.address.country
        columns["raw_data"] = self.raw_data
        return columns
