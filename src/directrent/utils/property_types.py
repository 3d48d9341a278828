"""
Property Type Utilities

Maps the free-text property types found in listings onto the fixed
vocabulary used by the encoders and market statistics.
"""

from typing import Optional

from directrent.core.constants import PROPERTY_TYPES

# Property type normalization mapping (lower-cased input -> canonical type)
PROPERTY_TYPE_MAP = {
    # Flat types
    "flat": "Flat",
    "apartment": "Flat",
    "penthouse": "Flat",
    "flat/apartment": "Flat",
    # Maisonette
    "maisonette": "Maisonette",
    "duplex": "Maisonette",
    # House types
    "house": "House",
    "detached": "House",
    "semi-detached": "House",
    "terraced": "House",
    "end of terrace": "House",
    "townhouse": "House",
    # Bungalow
    "bungalow": "Bungalow",
    # Studio
    "studio": "Studio",
    "bedsit": "Studio",
}


def normalize_property_type(prop_type: Optional[str]) -> Optional[str]:
    """Map a raw property type onto the canonical vocabulary.

    Matching is case-insensitive. Values outside the vocabulary are returned
    stripped but otherwise unchanged, so they still reach the encoder (which
    gives them their own class at fit time or the unknown bucket afterwards).

    Args:
        prop_type: Raw property type string.

    Returns:
        Canonical property type, or None for empty input.

    Example:
        >>> normalize_property_type("apartment")
        'Flat'
        >>> normalize_property_type("HOUSE")
        'House'
    """
    if prop_type is None:
        return None

    prop_type_str = str(prop_type).strip()
    if not prop_type_str or prop_type_str.lower() == "nan":
        return None

    return PROPERTY_TYPE_MAP.get(prop_type_str.lower(), prop_type_str)


def is_known_property_type(prop_type: Optional[str]) -> bool:
    """Check whether a property type normalizes into the canonical vocabulary."""
    return normalize_property_type(prop_type) in PROPERTY_TYPES
