"""
Unit tests for property_types module.
"""

import pytest

from directrent.core.constants import PROPERTY_TYPES
from directrent.utils.property_types import (
    normalize_property_type,
    is_known_property_type,
    PROPERTY_TYPE_MAP,
)


class TestNormalizePropertyType:
    """Tests for normalize_property_type function."""

    def test_flat_types(self):
        assert normalize_property_type("flat") == "Flat"
        assert normalize_property_type("apartment") == "Flat"
        assert normalize_property_type("penthouse") == "Flat"
        assert normalize_property_type("flat/apartment") == "Flat"

    def test_house_types(self):
        assert normalize_property_type("house") == "House"
        assert normalize_property_type("detached") == "House"
        assert normalize_property_type("semi-detached") == "House"
        assert normalize_property_type("terraced") == "House"

    def test_studio_types(self):
        assert normalize_property_type("studio") == "Studio"
        assert normalize_property_type("bedsit") == "Studio"

    def test_case_insensitive(self):
        assert normalize_property_type("HOUSE") == "House"
        assert normalize_property_type("Apartment") == "Flat"
        assert normalize_property_type("  Maisonette ") == "Maisonette"

    def test_none_returns_none(self):
        assert normalize_property_type(None) is None

    def test_empty_returns_none(self):
        assert normalize_property_type("") is None
        assert normalize_property_type("   ") is None
        assert normalize_property_type("nan") is None

    def test_unknown_passes_through(self):
        assert normalize_property_type(" Castle ") == "Castle"


class TestIsKnownPropertyType:
    """Tests for is_known_property_type function."""

    def test_known_types(self):
        assert is_known_property_type("Flat") is True
        assert is_known_property_type("apartment") is True
        assert is_known_property_type("bungalow") is True

    def test_unknown_types(self):
        assert is_known_property_type("Castle") is False
        assert is_known_property_type(None) is False


class TestPropertyTypeMap:
    """Tests for PROPERTY_TYPE_MAP constant."""

    def test_map_targets_are_canonical(self):
        canonical = set(PROPERTY_TYPES)
        for target in PROPERTY_TYPE_MAP.values():
            assert target in canonical

    @pytest.mark.parametrize("key", list(PROPERTY_TYPE_MAP))
    def test_keys_are_lowercase(self, key):
        assert key == key.lower()
