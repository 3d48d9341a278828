"""
Utility modules for the DirectRent ML pipeline.

Provides property type normalization, postcode handling and text sentiment.
"""

from directrent.utils.postcode import clean_postcode, extract_postcode_area
from directrent.utils.property_types import (
    PROPERTY_TYPE_MAP,
    normalize_property_type,
)
from directrent.utils.sentiment import sentiment_score

__all__ = [
    "clean_postcode",
    "extract_postcode_area",
    "PROPERTY_TYPE_MAP",
    "normalize_property_type",
    "sentiment_score",
]
