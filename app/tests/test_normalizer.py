"""Normalizer tests"""

import pytest

from app.core.errors import MalformedItemError
from app.ingestion.normalizer import (
    FieldMapping,
    Normalizer,
    as_flag,
    as_price,
    as_text,
    extract_original_id,
    normalize,
)


class TestSourceMappings:
    """Known sources map their raw fields into the unified shape"""

    def test_source1_hotel_with_nested_address(self):
        raw = {
            "id": 7,
            "name": "Hotel X",
            "address": {"city": "Lyon", "country": "FR"},
            "isAvailable": "true",
            "priceForNight": "120.5",
        }

        entity = normalize(raw, "source1")

        assert entity.model_dump(exclude_none=True) == {
            "original_id": "7",
            "source": "source1",
            "name": "Hotel X",
            "is_available": True,
            "price_for_night": 120.5,
            "city": "Lyon",
            "country": "FR",
            "address": {"city": "Lyon", "country": "FR"},
            "raw_data": raw,
        }

    def test_source2_flat_listing(self):
        raw = {"id": 3, "city": "Lisbon", "pricePerNight": "80", "priceSegment": "budget", "availability": False}

        entity = normalize(raw, "source2")

        assert entity.model_dump(exclude_none=True) == {
            "original_id": "3",
            "source": "source2",
            "city": "Lisbon",
            "price_per_night": 80.0,
            "price_segment": "budget",
            "availability": "false",
            "raw_data": raw,
        }

    def test_normalize_is_idempotent(self):
        raw = {"id": "a1", "name": "Inn", "address": {"city": "Rome"}, "isAvailable": True, "priceForNight": 99}
        assert normalize(raw, "source1") == normalize(raw, "source1")

    def test_source1_missing_availability_is_false(self):
        entity = normalize({"id": 1, "name": "No flag"}, "source1")
        assert entity.is_available is False
        assert entity.address is None
        assert entity.city is None

    def test_source1_partial_address(self):
        entity = normalize({"id": 1, "address": {"country": "PT"}}, "source1")
        assert entity.country == "PT"
        assert entity.city is None
        assert entity.address.country == "PT"
        assert entity.address.city is None

    def test_source1_non_object_address_is_ignored(self):
        entity = normalize({"id": 1, "address": "1 Main Street"}, "source1")
        assert entity.address is None
        assert entity.city is None

    def test_source2_boolean_availability_becomes_text(self):
        assert normalize({"id": 1, "availability": True}, "source2").availability == "true"
        assert normalize({"id": 2, "availability": "maybe"}, "source2").availability == "maybe"

    def test_out_of_range_price_is_left_unset(self):
        entity = normalize({"id": 1, "name": "Huge", "priceForNight": 10**400}, "source1")
        assert entity.price_for_night is None
        assert entity.name == "Huge"

    def test_unparseable_price_is_left_unset(self):
        entity = normalize({"id": 5, "city": "Oslo", "pricePerNight": "ask us"}, "source2")
        assert entity.price_per_night is None
        assert entity.city == "Oslo"


class TestUnknownSource:
    def test_unknown_source_yields_minimal_record(self):
        raw = {"id": 42, "name": "Ignored", "city": "Nowhere", "price": 10}

        entity = normalize(raw, "source9")

        assert entity.model_dump(exclude_none=True) == {
            "original_id": "42",
            "source": "source9",
            "raw_data": raw,
        }


class TestMalformedItems:
    @pytest.mark.parametrize("raw", [{"name": "no id"}, {"id": None}, {"id": ""}, {"id": "   "}, {"id": True}, {"id": {"x": 1}}])
    def test_missing_or_unusable_id_raises(self, raw):
        with pytest.raises(MalformedItemError):
            normalize(raw, "source1")

    @pytest.mark.parametrize("raw", [["id", 1], "id=1", 17, None])
    def test_non_object_raises(self, raw):
        with pytest.raises(MalformedItemError):
            normalize(raw, "source2")

    def test_integral_float_id_has_no_decimal(self):
        assert extract_original_id({"id": 7.0}) == "7"
        assert extract_original_id({"id": "abc-1"}) == "abc-1"


class TestCoercers:
    def test_as_price(self):
        assert as_price("120.5") == 120.5
        assert as_price(80) == 80.0
        assert as_price(" 42 ") == 42.0
        assert as_price("12abc") is None
        assert as_price("nan") is None
        assert as_price(True) is None
        assert as_price(None) is None
        assert as_price({"amount": 1}) is None

    def test_as_price_treats_falsy_values_as_unset(self):
        assert as_price(0) is None
        assert as_price("") is None

    def test_as_price_out_of_range_integer_is_unset(self):
        assert as_price(10**400) is None
        assert as_price(-(10**400)) is None
        assert as_price("1e400") is None

    def test_as_flag(self):
        assert as_flag(True) is True
        assert as_flag("TRUE") is True
        assert as_flag("false") is False
        assert as_flag("yes") is False
        assert as_flag(1) is False
        assert as_flag(None) is False

    def test_as_text(self):
        assert as_text(False) == "false"
        assert as_text(12) == "12"
        assert as_text(1.5) == "1.5"
        assert as_text(["a"]) is None
        assert as_text(None) is None


class TestRegistration:
    def test_registered_mapping_is_used(self):
        normalizer = Normalizer()
        normalizer.register(
            "source3",
            (
                FieldMapping("name", ("title",), as_text),
                FieldMapping("price_per_night", ("rate", "amount"), as_price),
            ),
        )

        entity = normalizer.normalize({"id": 9, "title": "Loft", "rate": {"amount": "65"}}, "source3")

        assert entity.name == "Loft"
        assert entity.price_per_night == 65.0

    def test_custom_mapping_does_not_leak_into_default(self):
        Normalizer().register("source4", (FieldMapping("name", ("title",), as_text),))
        assert normalize({"id": 1, "title": "x"}, "source4").name is None

    def test_to_columns_flattens_address(self):
        entity = normalize({"id": 7, "address": {"city": "Lyon", "country": "FR"}}, "source1")
        columns = entity.to_columns()
        assert columns["address_city"] == "Lyon"
        assert columns["address_country"] == "FR"
        assert "address" not in columns
