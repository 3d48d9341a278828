"""
Data Models for the DirectRent ML pipeline

Dataclass definitions for listings, interactions and the results returned to
the calling layer.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from directrent.core.constants import DEFAULT_INTERACTION_RATING, INTERACTION_RATINGS


@dataclass
class ListingRecord:
    """Represents one rental property observation."""

    property_id: str
    city: Optional[str] = None
    postcode: Optional[str] = None
    property_type: Optional[str] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    price_per_month: Optional[float] = None
    furnishing_status: Optional[str] = None
    epc_rating: Optional[str] = None
    council_tax_band: Optional[str] = None
    parking: bool = False
    garden: bool = False
    pets_allowed: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    title: str = ""
    description: str = ""
    images: List[str] = field(default_factory=list)
    created_at: Optional[str] = None
    landlord_listing_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class InteractionRecord:
    """A single user -> listing interaction."""

    user_id: str
    property_id: str
    interaction_type: str  # "view", "save", "inquiry" or "contact"
    timestamp: Optional[str] = None

    @property
    def rating(self) -> int:
        """Implicit rating reflecting increasing commitment."""
        return INTERACTION_RATINGS.get(self.interaction_type, DEFAULT_INTERACTION_RATING)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class MarketStatistics:
    """Price statistics for a filtered slice of the processed dataset."""

    average_price: float
    median_price: float
    min_price: float
    max_price: float
    std_price: float
    total_properties: int
    avg_bedrooms: float
    avg_bathrooms: float
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class AnomalyResult:
    """Price anomaly classification for one listing."""

    z_score: float
    anomaly_level: str  # "normal", "low", "medium" or "high"
    market_average: float
    price_deviation_percent: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class FraudResult:
    """Blended fraud score and the signals behind it."""

    fraud_score: float
    is_fraudulent: bool
    reasons: List[str] = field(default_factory=list)
    risk_factors: Dict[str, float] = field(default_factory=dict)
    ml_model_used: bool = False
    ml_probability: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class Recommendation:
    """A ranked listing with its blended score."""

    property_id: str
    score: float
    reason: str
    content_score: float = 0.0
    collaborative_score: float = 0.0
    property: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class PriceEstimate:
    """Rental price estimate returned to the calling layer."""

    estimated_price: float
    price_range: Dict[str, float]
    confidence: float
    market_insights: Dict[str, Any] = field(default_factory=dict)
    model_status: str = "model"  # "model", "fallback_to_comparables" or "fallback_to_market"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ModelMetadata:
    """Manifest stored alongside every persisted model artifact."""

    model_type: str
    version: str
    created_at: str
    feature_names: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelMetadata":
        return cls(
            model_type=data.get("model_type", "unknown"),
            version=data.get("version", "unknown"),
            created_at=data.get("created_at", ""),
            feature_names=list(data.get("feature_names", [])),
            extra=dict(data.get("extra", {})),
        )
