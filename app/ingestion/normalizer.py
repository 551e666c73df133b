"""Source-specific mapping of raw JSON items into the unified entity shape.

Every source name maps to a tuple of FieldMapping rules. A rule reads a
(possibly nested) raw field, coerces it and writes it to a (possibly
dotted) unified field. A coercer returning None leaves the field unset.
Sources without rules still yield a minimal record carrying only the
identifier, the source name and the raw payload.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from app.core.errors import MalformedItemError
from app.core.logging import get_logger
from app.schemas.normalized import UnifiedEntity

log = get_logger("ingestion.normalizer")

Coercer = Callable[[Any], Any]


# -----------------------------------------------------------------------------
# Coercers
# -----------------------------------------------------------------------------
def as_text(value: Any) -> Optional[str]:
    """Scalars become strings (booleans as "true"/"false"); containers are dropped."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if not isinstance(value, (int, float)):
        return None
    try:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    except ValueError:
        # Integers past the interpreter's digit limit
        return None


def as_flag(value: Any) -> bool:
    """True only for boolean True or the string "true" (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def as_price(value: Any) -> Optional[float]:
    """Float from a number or numeric string; falsy or unparseable input stays unset."""
    if not value or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        log.debug(f"Dropping non-scalar price {value!r}")
        return None
    try:
        price = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        log.debug(f"Dropping unparseable {type(value).__name__} price")
        return None
    if not math.isfinite(price):
        return None
    return price


@dataclass(frozen=True)
class FieldMapping:
    target: str
    path: Tuple[str, ...]
    coerce: Coercer

    def read(self, raw: Mapping[str, Any]) -> Any:
        value: Any = raw
        for key in self.path:
            if not isinstance(value, Mapping):
                return None
            value = value.get(key)
        return value


SOURCE_MAPPINGS: Dict[str, Tuple[FieldMapping, ...]] = {
    # Hotels with a nested address object
    "source1": (
        FieldMapping("name", ("name",), as_text),
        FieldMapping("is_available", ("isAvailable",), as_flag),
        FieldMapping("price_for_night", ("priceForNight",), as_price),
        FieldMapping("city", ("address", "city"), as_text),
        FieldMapping("country", ("address", "country"), as_text),
        FieldMapping("address.city", ("address", "city"), as_text),
        FieldMapping("address.country", ("address", "country"), as_text),
    ),
    # Flat listings with a price tier and free-form availability
    "source2": (
        FieldMapping("city", ("city",), as_text),
        FieldMapping("price_per_night", ("pricePerNight",), as_price),
        FieldMapping("price_segment", ("priceSegment",), as_text),
        FieldMapping("availability", ("availability",), as_text),
    ),
}


def extract_original_id(raw_item: Any) -> str:
    """Return the item's ``id`` as a string or raise MalformedItemError."""
    if not isinstance(raw_item, Mapping):
        raise MalformedItemError(f"expected a JSON object, got {type(raw_item).__name__}")
    value = raw_item.get("id")
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedItemError(f"missing or unusable id: {value!r}")
    original_id = (as_text(value) or "").strip()
    if not original_id:
        raise MalformedItemError("empty id")
    return original_id


class Normalizer:
    """Dispatches raw items to the mapping rules registered for their source."""

    def __init__(self, mappings: Optional[Mapping[str, Tuple[FieldMapping, ...]]] = None):
        self.mappings: Dict[str, Tuple[FieldMapping, ...]] = dict(SOURCE_MAPPINGS if mappings is None else mappings)

    def register(self, source: str, rules: Tuple[FieldMapping, ...]) -> None:
        self.mappings[source] = tuple(rules)

    def normalize(self, raw_item: Any, source: str) -> UnifiedEntity:
        original_id = extract_original_id(raw_item)
        fields: Dict[str, Any] = {}

        for rule in self.mappings.get(source, ()):
            value = rule.coerce(rule.read(raw_item))
            if value is None:
                continue
            head, _, tail = rule.target.partition(".")
            if tail:
                fields.setdefault(head, {})[tail] = value
            else:
                fields[head] = value

        return UnifiedEntity(original_id=original_id, source=source, raw_data=raw_item, **fields)


default_normalizer = Normalizer()


def normalize(raw_item: Any, source: str) -> UnifiedEntity:
    return default_normalizer.normalize(raw_item, source)
