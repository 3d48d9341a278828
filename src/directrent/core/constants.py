"""
Shared Constants for the DirectRent ML pipeline

Contains vocabularies, rank tables, keyword lists and documented defaults.
"""

from typing import Dict, List, Tuple

# Synthetic dataset vocabularies
UK_CITIES: List[str] = [
    "London", "Manchester", "Birmingham", "Leeds", "Liverpool",
    "Bristol", "Edinburgh", "Glasgow", "Sheffield", "Newcastle",
]
POSTCODE_PREFIXES: List[str] = ["SW", "W", "E", "N", "S", "M", "B", "L", "LS", "NE"]
PROPERTY_TYPES: List[str] = ["Flat", "House", "Studio", "Bungalow", "Maisonette"]
FURNISHING_STATUSES: List[str] = ["Furnished", "Unfurnished", "Part-Furnished"]
EPC_RATINGS: List[str] = ["A", "B", "C", "D", "E", "F", "G"]
COUNCIL_TAX_BANDS: List[str] = ["A", "B", "C", "D", "E", "F", "G", "H"]

# Synthetic price distribution
SYNTHETIC_BASE_PRICE: Tuple[float, float] = (1000.0, 2000.0)
SYNTHETIC_PRICE_NOISE: float = 800.0
SYNTHETIC_PRICE_CLIP: Tuple[float, float] = (300.0, 8000.0)

# Column groups used by the cleaning pipeline
NUMERIC_COLUMNS: List[str] = ["bedrooms", "bathrooms", "price_per_month", "latitude", "longitude"]
CATEGORICAL_COLUMNS: List[str] = ["property_type", "furnishing_status", "city", "postcode"]
AMENITY_COLUMNS: List[str] = ["parking", "garden", "pets_allowed"]
ENCODED_COLUMNS: List[str] = ["city", "property_type", "furnishing_status", "postcode_area"]
SCALED_COLUMNS: List[str] = ["bedrooms", "bathrooms", "price_per_month", "price_per_bedroom"]

# Letter -> rank tables (A is the best rating / lowest band)
EPC_NUMERIC: Dict[str, int] = {"A": 7, "B": 6, "C": 5, "D": 4, "E": 3, "F": 2, "G": 1}
COUNCIL_TAX_NUMERIC: Dict[str, int] = {
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
}

# Model feature lists
ML_FEATURE_COLUMNS: List[str] = [
    "bedrooms", "bathrooms", "city_encoded", "property_type_encoded",
    "furnishing_status_encoded", "epc_numeric", "council_tax_numeric",
    "amenity_score", "price_per_bedroom", "city_price_rank",
]
# price_per_bedroom is derived from the target, so the price model leaves it out
PRICE_FEATURE_COLUMNS: List[str] = [
    "bedrooms", "bathrooms", "city_encoded", "property_type_encoded",
    "furnishing_status_encoded", "postcode_area_encoded", "epc_numeric",
    "council_tax_numeric", "amenity_score", "city_price_rank",
]
CONTENT_FEATURE_COLUMNS: List[str] = [
    "bedrooms", "bathrooms", "price_per_month",
    "property_type_encoded", "city_encoded",
    "latitude", "longitude",
]
FRAUD_FEATURE_COLUMNS: List[str] = [
    "bedrooms", "bathrooms", "price_per_month",
    "price_anomaly", "suspicious_keyword_count",
    "text_sentiment", "image_count", "landlord_listing_count",
]

# Market statistics returned when no listing matches the filters
DEFAULT_MARKET_STATS: Dict[str, float] = {
    "average_price": 1500.0,
    "median_price": 1400.0,
    "min_price": 500.0,
    "max_price": 5000.0,
    "std_price": 800.0,
    "total_properties": 0,
    "avg_bedrooms": 2.5,
    "avg_bathrooms": 1.5,
}

# Anomaly z-score boundaries: (upper bound inclusive, level)
ANOMALY_LEVELS: List[Tuple[float, str]] = [
    (1.0, "normal"),
    (2.0, "low"),
    (3.0, "medium"),
]
ANOMALY_LEVEL_HIGH: str = "high"

# Fraud heuristics
SUSPICIOUS_KEYWORDS: List[str] = [
    "urgent", "cash only", "no viewings", "overseas", "western union",
    "money transfer", "discount", "immediate", "no questions", "no contract",
    "no background check", "no references", "no credit check", "pay upfront",
    "avoid fees", "direct only", "no agents", "no paperwork",
]
KEYWORD_RISK: float = 0.05
MAX_KEYWORD_RISK: float = 0.4
PRICE_BELOW_MARKET_RATIO: float = 0.5
PRICE_BELOW_MARKET_RISK: float = 0.4
PRICE_ABOVE_MARKET_RATIO: float = 2.0
PRICE_ABOVE_MARKET_RISK: float = 0.2
NO_IMAGES_RISK: float = 0.2
FEW_IMAGES_RISK: float = 0.1
MIN_IMAGE_COUNT: int = 3
HIGH_LISTING_VOLUME: int = 20
HIGH_LISTING_VOLUME_RISK: float = 0.2
DEFAULT_MARKET_AVERAGE: float = 1500.0
DEFAULT_MARKET_STD: float = 500.0

# Labeling heuristics used to build fraud training data
LABEL_PRICE_RATIO: float = 0.3
LABEL_KEYWORD_COUNT: int = 3

# Recommender
INTERACTION_RATINGS: Dict[str, int] = {"view": 1, "save": 3, "inquiry": 4, "contact": 5}
DEFAULT_INTERACTION_RATING: int = 1
DEFAULT_PREFERRED_BEDROOMS: float = 2.0
DEFAULT_PREFERRED_BATHROOMS: float = 1.0
DEFAULT_PRICE_BAND: Tuple[float, float] = (500.0, 3000.0)
CONTENT_REASON: str = "Matches your preferences"
COLLABORATIVE_REASON: str = "People with similar preferences liked this"

# Price estimation
MAX_COMPARABLES: int = 5
MODEL_BLEND_RATIO: float = 0.6
MODEL_ONLY_CONFIDENCE: float = 0.7
FALLBACK_CONFIDENCE: float = 0.5
DEFAULT_STATS_CONFIDENCE: float = 0.3
