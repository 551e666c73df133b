"""Filter contract accepted by DataService.query"""

from typing import Optional

from pydantic import BaseModel, model_validator


class DataFilter(BaseModel):
    """Conjunction of optional predicates; None imposes no constraint."""

    source: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    name: Optional[str] = None
    availability: Optional[str] = None
    price_segment: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @model_validator(mode="after")
    def _check_price_range(self) -> "DataFilter":
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice must not be greater than maxPrice")
        return self

    @property
    def has_price_bounds(self) -> bool:
        return self.min_price is not None or self.max_price is not None
