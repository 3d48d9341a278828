"""
Data Processor for UK rental listings

Turns raw listing rows into the model-ready table shared by every model:

1. load_dataset: real CSV, falling back to synthetic data
2. clean_data: median/mode imputation, price sanity filter, normalization
3. feature_engineering: price_per_bedroom, days_since_listed, amenity_score,
   EPC and council tax ranks
4. add_city_price_ranking: city rank by descending median price
5. encode_categorical_features: stable label encoders with an unknown bucket
6. scale_features: standardized copies of the numeric columns

Encoders, scaler, city ranking and imputation values are captured on the
first run and reused unchanged afterwards (including after save_state /
load_state), so inference sees the same encoding the models were trained on.
"""

import json
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from directrent.config import Config, get_config
from directrent.core.constants import (
    AMENITY_COLUMNS,
    ANOMALY_LEVEL_HIGH,
    ANOMALY_LEVELS,
    CATEGORICAL_COLUMNS,
    COUNCIL_TAX_NUMERIC,
    DEFAULT_MARKET_STATS,
    ENCODED_COLUMNS,
    EPC_NUMERIC,
    ML_FEATURE_COLUMNS,
    NUMERIC_COLUMNS,
    SCALED_COLUMNS,
)
from directrent.core.models import AnomalyResult, MarketStatistics
from directrent.core.persistence import build_metadata, load_artifact, save_artifact
from directrent.data.encoders import FeatureScaler, UnknownAwareEncoder
from directrent.data.sources import (
    DatasetSource,
    FallbackDatasetSource,
    RealFileSource,
    SyntheticSource,
)
from directrent.exceptions import DataUnavailableError, MalformedInputError
from directrent.logging_config import get_logger
from directrent.utils.postcode import clean_postcode, extract_postcode_area
from directrent.utils.property_types import is_known_property_type, normalize_property_type

logger = get_logger(__name__)

TRUE_STRINGS = {"true", "t", "yes", "y", "1"}


def is_missing(value: Any) -> bool:
    """True for None, NaN and blank strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and (not value.strip() or value.strip().lower() == "nan"):
        return True
    return False


def to_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Convert to a finite float, or return the default."""
    if is_missing(value):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def to_bool(value: Any) -> bool:
    """Interpret CSV-style truthy values ("true", "yes", 1) as True."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if is_missing(value):
        return False
    if isinstance(value, (int, float, np.integer, np.floating)):
        return value != 0
    return str(value).strip().lower() in TRUE_STRINGS


def coerce_images(value: Any) -> List[str]:
    """Normalize an image field into a list of URLs.

    Accepts lists, JSON arrays and "|" or "," separated strings.
    """
    if isinstance(value, (list, tuple, np.ndarray)):
        return [str(item) for item in value if not is_missing(item)]
    if is_missing(value):
        return []

    text = str(value).strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item) for item in parsed if not is_missing(item)]
        text = text.strip("[]")

    separator = "|" if "|" in text else ","
    return [part.strip().strip("'\"") for part in text.split(separator) if part.strip().strip("'\"")]


def calculate_median(values: Iterable[float]) -> float:
    """Median of the values: middle element, or mean of the two middle ones."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def calculate_mode(values: pd.Series) -> Optional[Any]:
    """Most frequent non-missing value; ties go to the first seen."""
    present = values[values.notna()]
    if present.empty:
        return None
    counts = present.groupby(present, sort=False).size()
    return counts.idxmax()


def anomaly_level(z_score: float) -> str:
    for upper, level in ANOMALY_LEVELS:
        if z_score <= upper:
            return level
    return ANOMALY_LEVEL_HIGH


def classify_price_anomaly(price: float, market_average: float, market_std: float) -> AnomalyResult:
    """Classify a price against the market distribution.

    z = |price - average| / max(std, 1)
    """
    deviation = abs(price - market_average)
    z_score = deviation / max(market_std, 1.0)
    percent = deviation / market_average * 100 if market_average else 0.0
    return AnomalyResult(
        z_score=float(z_score),
        anomaly_level=anomaly_level(z_score),
        market_average=float(market_average),
        price_deviation_percent=float(percent),
    )


def default_market_statistics() -> MarketStatistics:
    return MarketStatistics(**DEFAULT_MARKET_STATS, is_default=True)


def _clean_category(value: Any) -> Optional[str]:
    if is_missing(value):
        return None
    return str(value).strip()


class DataProcessor:
    """Cleaning, feature engineering and encoding for listing data.

    Args:
        dataset_path: CSV of real listings. Defaults to the configured path.
        source: Explicit dataset source; overrides dataset_path.
        config: Configuration; defaults to the global one.
        reference_date: "Now" used for days_since_listed.
    """

    def __init__(
        self,
        dataset_path: Optional[str] = None,
        source: Optional[DatasetSource] = None,
        config: Optional[Config] = None,
        reference_date: Optional[datetime] = None,
    ):
        self.config = config or get_config()
        self.dataset_path = dataset_path or self.config.dataset.path
        self.source = source or FallbackDatasetSource([
            RealFileSource(self.dataset_path),
            self._synthetic_source(),
        ])
        self.max_price = self.config.dataset.max_price
        self.reference_date = reference_date

        self.data: Optional[pd.DataFrame] = None
        self.processed_data: Optional[pd.DataFrame] = None
        self.reset_state()

    def reset_state(self) -> None:
        """Forget all fitted preprocessing state."""
        self.label_encoders: Dict[str, UnknownAwareEncoder] = {}
        self.scaler = FeatureScaler()
        self.city_ranking: Dict[str, int] = {}
        self.fill_values: Dict[str, Any] = {}
        self.state_loaded = False

    @property
    def is_fitted(self) -> bool:
        return bool(self.label_encoders)

    def _synthetic_source(self) -> SyntheticSource:
        return SyntheticSource(
            n_samples=self.config.dataset.synthetic_rows,
            seed=self.config.dataset.random_seed,
        )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def load_dataset(self) -> pd.DataFrame:
        """Load raw rows from the configured source, else synthetic data."""
        try:
            df = self.source.load()
        except DataUnavailableError as e:
            logger.warning("%s. Using synthetic dataset instead.", e.message)
            df = self._synthetic_source().load()
        self.data = df
        return df

    def clean_data(self, df: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Impute, filter and normalize raw rows.

        Numeric columns are filled with their median and categorical columns
        with their mode; rows whose price is outside (0, max_price) are then
        dropped. If nothing survives, a cleaned synthetic dataset is returned.
        """
        df = self.data if df is None else df
        if df is None or df.empty:
            logger.warning("No data to clean. Using synthetic data instead.")
            return self._clean_frame(self._synthetic_source().load())

        cleaned = self._clean_frame(df)
        if cleaned.empty:
            logger.warning("Cleaning removed every row. Using synthetic data instead.")
            cleaned = self._clean_frame(self._synthetic_source().load())
        return cleaned

    def _clean_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy().reset_index(drop=True)
        original_count = len(df)

        if "property_id" not in df.columns:
            df["property_id"] = [f"prop_{i:06d}" for i in range(len(df))]
        df["property_id"] = df["property_id"].astype(str)

        # Imputation values are frozen once encoders exist or state was loaded
        frozen = self.fill_values if (self.state_loaded or self.is_fitted) else {}
        fill_values: Dict[str, Any] = {}
        for column in NUMERIC_COLUMNS:
            if column not in df.columns:
                df[column] = np.nan
            values = pd.to_numeric(df[column], errors="coerce").replace([np.inf, -np.inf], np.nan)
            if column in frozen:
                median = frozen[column]
            else:
                median = calculate_median(values.dropna().tolist())
            fill_values[column] = float(median)
            df[column] = values.fillna(median)

        for column in CATEGORICAL_COLUMNS:
            if column not in df.columns:
                df[column] = None
            values = df[column].map(_clean_category)
            mode = frozen[column] if column in frozen else calculate_mode(values)
            fill_values[column] = mode
            if mode is not None:
                values = values.fillna(mode)
            df[column] = values

        price = df["price_per_month"]
        df = df[(price > 0) & (price < self.max_price)].copy()
        removed = original_count - len(df)
        if removed:
            logger.info("Dropped %d rows with invalid prices", removed)

        df = self._normalize_frame(df)
        unknown_types = sorted({
            value for value in df["property_type"].dropna() if not is_known_property_type(value)
        })
        if unknown_types:
            logger.warning("Property types outside the known vocabulary: %s", ", ".join(unknown_types))
        if not df.empty and not frozen:
            self.fill_values = fill_values

        logger.info("Cleaned dataset: %d records", len(df))
        return df.reset_index(drop=True)

    def _normalize_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        """Canonical postcode, property type, amenity flags and images."""
        if "postcode" in df.columns:
            df["postcode"] = df["postcode"].map(clean_postcode)
            df["postcode_area"] = df["postcode"].map(extract_postcode_area)
        else:
            df["postcode_area"] = ""

        if "property_type" in df.columns:
            df["property_type"] = df["property_type"].map(normalize_property_type)

        for column in AMENITY_COLUMNS:
            if column in df.columns:
                df[column] = df[column].map(to_bool)
            else:
                df[column] = False

        if "images" in df.columns:
            df["images"] = df["images"].map(coerce_images)
        else:
            df["images"] = [[] for _ in range(len(df))]

        for column in ("title", "description"):
            if column in df.columns:
                df[column] = df[column].map(lambda v: "" if is_missing(v) else str(v))
            else:
                df[column] = ""

        if "landlord_listing_count" in df.columns:
            df["landlord_listing_count"] = pd.to_numeric(
                df["landlord_listing_count"], errors="coerce"
            ).fillna(0)
        else:
            df["landlord_listing_count"] = 0
        return df

    def feature_engineering(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add derived features to a cleaned frame."""
        df = df.copy()

        price = pd.to_numeric(df["price_per_month"], errors="coerce")
        bedrooms = pd.to_numeric(df["bedrooms"], errors="coerce").fillna(0)
        df["price_per_bedroom"] = price / bedrooms.clip(lower=1)

        if "created_at" in df.columns:
            now = pd.Timestamp(self.reference_date or datetime.now(timezone.utc))
            if now.tzinfo is None:
                now = now.tz_localize("UTC")
            created = pd.to_datetime(df["created_at"], errors="coerce", utc=True, format="mixed")
            elapsed = (now - created).abs().dt.total_seconds() / 86400.0
            df["days_since_listed"] = np.ceil(elapsed).fillna(0)
        else:
            df["days_since_listed"] = 0.0

        amenities = [column for column in AMENITY_COLUMNS if column in df.columns]
        if amenities:
            df["amenity_score"] = df[amenities].apply(lambda col: col.map(to_bool)).sum(axis=1).astype(int)
        else:
            df["amenity_score"] = 0

        df["epc_numeric"] = self._rank_column(df, "epc_rating", EPC_NUMERIC)
        df["council_tax_numeric"] = self._rank_column(df, "council_tax_band", COUNCIL_TAX_NUMERIC)

        logger.debug("Feature engineering completed")
        return df

    @staticmethod
    def _rank_column(df: pd.DataFrame, column: str, table: Dict[str, int]) -> pd.Series:
        if column not in df.columns:
            return pd.Series(0, index=df.index)
        return df[column].map(
            lambda v: 0 if is_missing(v) else table.get(str(v).strip().upper(), 0)
        )

    def add_city_price_ranking(self, df: pd.DataFrame, refit: bool = True) -> pd.DataFrame:
        """Rank cities by descending median price (1 = most expensive).

        Ties keep the order in which cities first appear. Cities outside the
        ranking get rank 0.
        """
        df = df.copy()
        if refit or not self.city_ranking:
            medians: List[Tuple[str, float]] = []
            for city, prices in df.groupby("city", sort=False)["price_per_month"]:
                medians.append((city, calculate_median(prices.dropna().tolist())))
            ranked = sorted(medians, key=lambda item: item[1], reverse=True)
            self.city_ranking = {city: rank for rank, (city, _) in enumerate(ranked, start=1)}

        df["city_price_rank"] = df["city"].map(self.city_ranking).fillna(0).astype(int)
        return df

    def encode_categorical_features(self, df: pd.DataFrame, fit: bool = True) -> pd.DataFrame:
        """Add ``<column>_encoded`` integer columns.

        Encoders are fit the first time a column is seen (when fit is True)
        and reused afterwards; unseen values map to the unknown index.
        """
        df = df.copy()
        for column in ENCODED_COLUMNS:
            if column not in df.columns:
                continue
            encoder = self.label_encoders.get(column)
            if encoder is None:
                if not fit:
                    df[f"{column}_encoded"] = 0
                    continue
                encoder = UnknownAwareEncoder().fit(df[column])
                self.label_encoders[column] = encoder
                logger.debug("Fitted encoder for %s with %d classes", column, len(encoder.classes_))
            df[f"{column}_encoded"] = encoder.transform(df[column])
        return df

    def scale_features(
        self,
        df: pd.DataFrame,
        columns: Optional[Sequence[str]] = None,
        fit: bool = True,
    ) -> pd.DataFrame:
        """Add ``<column>_scaled`` columns using the fitted scaler."""
        df = df.copy()
        columns = list(columns or SCALED_COLUMNS)
        if fit:
            unfitted = [c for c in columns if c in df.columns and not self.scaler.is_fitted(c)]
            if unfitted:
                self.scaler.fit(df, unfitted)
        return self.scaler.transform(df, columns)

    def process_full_dataset(self, raw: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Run the whole pipeline and keep the result as processed_data.

        Never raises: a failure while processing the loaded data falls back
        to processing synthetic data.
        """
        logger.info("Starting full data processing pipeline...")
        if raw is None:
            raw = self.load_dataset()
        else:
            self.data = raw

        try:
            df = self._run_pipeline(raw)
        except (KeyError, ValueError, TypeError) as e:
            logger.error("Error processing dataset: %s. Using synthetic data instead.", e, exc_info=True)
            if not self.state_loaded:
                self.reset_state()
            df = self._run_pipeline(self._synthetic_source().load())

        self.processed_data = df
        logger.info("Data processing completed. Final dataset: %d records", len(df))
        return df

    def _run_pipeline(self, raw: pd.DataFrame) -> pd.DataFrame:
        df = self.clean_data(raw)
        df = self.feature_engineering(df)
        df = self.add_city_price_ranking(df, refit=not self.is_fitted)
        df = self.encode_categorical_features(df)
        return self.scale_features(df)

    # ------------------------------------------------------------------
    # Queries over the processed data
    # ------------------------------------------------------------------

    def prepare_features_for_ml(
        self,
        df: Optional[pd.DataFrame] = None,
        target_column: str = "price_per_month",
        feature_columns: Optional[Sequence[str]] = None,
    ) -> Tuple[np.ndarray, Optional[np.ndarray], List[str]]:
        """Build a numeric feature matrix and target vector.

        Only the requested columns present in the frame are used; missing
        values become 0.

        Returns:
            Tuple of (X, y, feature_names). y is None if the target column
            is absent.
        """
        df = self.processed_data if df is None else df
        requested = list(feature_columns or ML_FEATURE_COLUMNS)
        if df is None or df.empty:
            return np.zeros((0, len(requested))), None, []

        names = [column for column in requested if column in df.columns]
        X = df[names].apply(pd.to_numeric, errors="coerce").fillna(0).to_numpy(dtype=float)

        y = None
        if target_column and target_column in df.columns:
            y = pd.to_numeric(df[target_column], errors="coerce").fillna(0).to_numpy(dtype=float)
        return X, y, names

    def get_property_recommendations_data(
        self,
        preferences: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = 100,
    ) -> pd.DataFrame:
        """Listings matching hard preference filters, in dataset order.

        ``limit=None`` returns every match.

        Supported filters: price_min, price_max, property_type,
        min_bedrooms and city (case-insensitive substring).
        """
        df = self.processed_data
        if df is None or df.empty:
            return pd.DataFrame()

        preferences = preferences or {}
        mask = pd.Series(True, index=df.index)

        price_min = to_float(preferences.get("price_min"))
        if price_min is not None:
            mask &= df["price_per_month"] >= price_min
        price_max = to_float(preferences.get("price_max"))
        if price_max is not None:
            mask &= df["price_per_month"] <= price_max

        property_type = normalize_property_type(preferences.get("property_type"))
        if property_type:
            mask &= df["property_type"] == property_type

        min_bedrooms = to_float(preferences.get("min_bedrooms"))
        if min_bedrooms is not None:
            mask &= df["bedrooms"] >= min_bedrooms

        city = _clean_category(preferences.get("city"))
        if city:
            mask &= df["city"].astype(str).str.contains(city, case=False, regex=False, na=False)

        matches = df[mask]
        return matches if limit is None else matches.head(limit)

    def get_market_statistics(
        self,
        city: Optional[str] = None,
        property_type: Optional[str] = None,
    ) -> MarketStatistics:
        """Price statistics for listings matching the filters.

        City matches as a case-insensitive substring; property type matches
        exactly. Returns the documented defaults when nothing matches.
        """
        df = self.processed_data
        if df is None or df.empty:
            logger.warning("No processed data available for market statistics")
            return default_market_statistics()

        filtered = df
        if city:
            filtered = filtered[
                filtered["city"].astype(str).str.contains(city, case=False, regex=False, na=False)
            ]
        if property_type:
            filtered = filtered[filtered["property_type"] == property_type]

        prices = pd.to_numeric(filtered["price_per_month"], errors="coerce").dropna()
        if prices.empty:
            return default_market_statistics()

        return MarketStatistics(
            average_price=float(prices.mean()),
            median_price=float(calculate_median(prices.tolist())),
            min_price=float(prices.min()),
            max_price=float(prices.max()),
            std_price=float(prices.std(ddof=0)),
            total_properties=int(len(filtered)),
            avg_bedrooms=float(pd.to_numeric(filtered["bedrooms"], errors="coerce").mean()),
            avg_bathrooms=float(pd.to_numeric(filtered["bathrooms"], errors="coerce").mean()),
        )

    def detect_price_anomalies(self, record: Dict[str, Any]) -> AnomalyResult:
        """Compare a listing's price to the market for its city and type."""
        city = _clean_category(record.get("city"))
        property_type = normalize_property_type(record.get("property_type"))
        price = to_float(record.get("price_per_month"), 0.0)
        stats = self.get_market_statistics(city, property_type)
        return classify_price_anomaly(price, stats.average_price, stats.std_price)

    # ------------------------------------------------------------------
    # Inference helpers
    # ------------------------------------------------------------------

    def transform_record(self, record: Dict[str, Any]) -> pd.DataFrame:
        """Apply the fitted pipeline to a single listing.

        Missing fields are filled with the training-time imputation values.
        No state is fitted or changed.
        """
        if not isinstance(record, Mapping):
            raise MalformedInputError(
                f"Expected a mapping of listing fields, got {type(record).__name__}"
            )
        row = {key: value for key, value in dict(record).items() if not is_missing(value)}
        for column, value in self.fill_values.items():
            if column not in row and column != "price_per_month" and value is not None:
                row[column] = value
        row.setdefault("property_id", "new")

        df = pd.DataFrame([row])
        for column in NUMERIC_COLUMNS:
            if column in df.columns:
                df[column] = pd.to_numeric(df[column], errors="coerce")
            else:
                df[column] = np.nan
        for column in CATEGORICAL_COLUMNS:
            if column not in df.columns:
                df[column] = None
        df = self._normalize_frame(df)
        df = self.feature_engineering(df)
        df["city_price_rank"] = df["city"].map(self.city_ranking).fillna(0).astype(int)
        df = self.encode_categorical_features(df, fit=False)
        return self.scale_features(df, fit=False)

    def infer_city(self, postcode: Optional[str]) -> Optional[str]:
        """Most common city among listings sharing the postcode area."""
        area = extract_postcode_area(postcode)
        df = self.processed_data
        if not area or df is None or df.empty:
            return None
        cities = df.loc[df["postcode_area"] == area, "city"]
        return calculate_mode(cities)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_state(self, path: Optional[Path] = None) -> Path:
        """Persist encoders, scaler, city ranking and imputation values."""
        path = Path(path or self.config.ml.preprocessing_path)
        payload = {
            "label_encoders": {col: enc.to_dict() for col, enc in self.label_encoders.items()},
            "scaler": self.scaler.to_dict(),
            "city_ranking": dict(self.city_ranking),
            "fill_values": dict(self.fill_values),
        }
        metadata = build_metadata(
            "preprocessing",
            feature_names=list(self.label_encoders),
            n_cities=len(self.city_ranking),
        )
        return save_artifact(path, payload, metadata)

    def load_state(self, path: Optional[Path] = None) -> None:
        """Restore preprocessing state saved by save_state.

        Raises:
            ModelNotFoundError: If no state has been saved.
        """
        path = Path(path or self.config.ml.preprocessing_path)
        document = load_artifact(path)
        self.label_encoders = {
            col: UnknownAwareEncoder.from_dict(data)
            for col, data in document["label_encoders"].items()
        }
        self.scaler = FeatureScaler.from_dict(document["scaler"])
        self.city_ranking = dict(document["city_ranking"])
        self.fill_values = dict(document.get("fill_values", {}))
        self.state_loaded = True
        logger.info("Loaded preprocessing state from %s", path)
