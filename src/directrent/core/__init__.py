"""
Core modules for the DirectRent ML pipeline.

Contains data models and shared constants.
"""

from directrent.core.constants import (
    DEFAULT_MARKET_STATS,
    INTERACTION_RATINGS,
    SUSPICIOUS_KEYWORDS,
)
from directrent.core.models import (
    AnomalyResult,
    FraudResult,
    InteractionRecord,
    ListingRecord,
    MarketStatistics,
    ModelMetadata,
    PriceEstimate,
    Recommendation,
)

__all__ = [
    "DEFAULT_MARKET_STATS",
    "INTERACTION_RATINGS",
    "SUSPICIOUS_KEYWORDS",
    "AnomalyResult",
    "FraudResult",
    "InteractionRecord",
    "ListingRecord",
    "MarketStatistics",
    "ModelMetadata",
    "PriceEstimate",
    "Recommendation",
]
