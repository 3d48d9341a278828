"""
Rental Price Estimator

XGBoost regressor over the processed listing features, blended with recent
comparable listings and degrading to market statistics when no model has been
trained:

- model + comparables: 0.6 x model + 0.4 x comparable median
- model only: model prediction, confidence 0.7
- comparables only: comparable median, confidence 0.5
- nothing: market median, confidence 0.5 (0.3 on the documented defaults)
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import train_test_split
from xgboost import XGBRegressor

from directrent.config import Config, get_config
from directrent.core.constants import (
    DEFAULT_STATS_CONFIDENCE,
    FALLBACK_CONFIDENCE,
    MAX_COMPARABLES,
    MODEL_BLEND_RATIO,
    MODEL_ONLY_CONFIDENCE,
    PRICE_FEATURE_COLUMNS,
)
from directrent.core.models import PriceEstimate
from directrent.core.persistence import build_metadata, load_artifact, save_artifact
from directrent.data.processor import (
    DataProcessor,
    calculate_median,
    classify_price_anomaly,
    is_missing,
    to_float,
)
from directrent.exceptions import (
    InsufficientTrainingDataError,
    MalformedInputError,
    ModelNotFoundError,
    TrainingError,
)
from directrent.logging_config import get_logger
from directrent.utils.postcode import clean_postcode, extract_postcode_area
from directrent.utils.property_types import normalize_property_type

logger = get_logger(__name__)


def round_to_ten(value: float) -> float:
    return float(int(round(value / 10.0)) * 10)


def range_width(confidence: float) -> float:
    """Relative half-width of the price range for a confidence level."""
    return (1 - confidence) * 0.4 + 0.1


class PriceEstimator:
    """Monthly rent estimator.

    Args:
        processor: Processed data used for comparables, market statistics and
            feature encoding.
        model_path: Where the trained regressor is stored.
    """

    def __init__(
        self,
        processor: DataProcessor,
        config: Optional[Config] = None,
        model_path: Optional[Path] = None,
    ):
        self.config = config or get_config()
        self.processor = processor
        self.model_path = Path(model_path or self.config.ml.price_model_path)
        self.model: Optional[XGBRegressor] = None
        self.feature_names: List[str] = list(PRICE_FEATURE_COLUMNS)
        self.metadata = None
        self._load_attempted = False

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    def train(
        self,
        df: Optional[pd.DataFrame] = None,
        test_size: float = 0.2,
        random_state: int = 42,
    ) -> Dict[str, Any]:
        """Train the regressor on processed listings.

        Returns:
            Evaluation metrics on the held-out split.

        Raises:
            InsufficientTrainingDataError: If there are too few listings.
            TrainingError: If fitting fails.
        """
        X, y, names = self.processor.prepare_features_for_ml(df, "price_per_month", PRICE_FEATURE_COLUMNS)
        min_samples = self.config.ml.min_training_samples
        if y is None or len(X) < min_samples:
            available = 0 if y is None else len(X)
            raise InsufficientTrainingDataError(
                f"Insufficient training data: {available} samples (minimum: {min_samples})",
                required=min_samples,
                available=available,
            )

        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=test_size, random_state=random_state, shuffle=True
        )
        logger.info("Training set: %d samples", len(X_train))
        logger.info("Test set: %d samples", len(X_test))

        try:
            logger.info("Training XGBoost price model")
            model = XGBRegressor(
                n_estimators=200,
                max_depth=6,
                learning_rate=0.1,
                subsample=0.8,
                colsample_bytree=0.8,
                min_child_weight=3,
                reg_alpha=0.1,
                reg_lambda=1.0,
                random_state=random_state,
                n_jobs=-1,
            )
            model.fit(X_train, y_train, eval_set=[(X_test, y_test)], verbose=False)
        except Exception as e:
            logger.error("Training failed: %s", e, exc_info=True)
            raise TrainingError(f"Price model training failed: {e}") from e

        self.model = model
        self.feature_names = names
        self._load_attempted = True

        y_pred = model.predict(X_test)
        mse = float(mean_squared_error(y_test, y_pred))
        metrics = {
            "mse": mse,
            "rmse": float(np.sqrt(mse)),
            "mae": float(mean_absolute_error(y_test, y_pred)),
            "r2": float(r2_score(y_test, y_pred)),
            "train_size": len(X_train),
            "test_size": len(X_test),
            "feature_importance": dict(zip(names, model.feature_importances_.tolist())),
        }
        logger.info("R2 Score: %.4f", metrics["r2"])
        logger.info("RMSE: %.2f", metrics["rmse"])
        logger.info("MAE: %.2f", metrics["mae"])
        return metrics

    def save(self, path: Optional[Path] = None, **extra: Any) -> Path:
        if self.model is None:
            raise ModelNotFoundError("No price model to save. Train the model first.")
        self.metadata = build_metadata("price_regressor", self.feature_names, **extra)
        return save_artifact(path or self.model_path, {"model": self.model}, self.metadata)

    def load(self, path: Optional[Path] = None) -> bool:
        """Load a saved regressor. Returns False if none is available."""
        self._load_attempted = True
        try:
            document = load_artifact(path or self.model_path)
        except ModelNotFoundError as e:
            logger.warning("%s. Price estimates will use market data only.", e.message)
            return False
        self.model = document["model"]
        self.metadata = document["metadata"]
        self.feature_names = list(self.metadata.feature_names or PRICE_FEATURE_COLUMNS)
        logger.info("Price model loaded from %s", path or self.model_path)
        return True

    def _ensure_loaded(self) -> None:
        if self.model is None and not self._load_attempted:
            self.load()

    def find_comparables(self, record: Dict[str, Any], limit: int = MAX_COMPARABLES) -> pd.DataFrame:
        """Listings of the same type and bedroom count, most recent first.

        Listings in the same postcode area are preferred.
        """
        df = self.processor.processed_data
        if df is None or df.empty:
            return pd.DataFrame()

        mask = pd.Series(True, index=df.index)
        property_type = record.get("property_type")
        if property_type:
            mask &= df["property_type"] == property_type
        bedrooms = to_float(record.get("bedrooms"))
        if bedrooms is not None:
            mask &= df["bedrooms"] == bedrooms

        matches = df[mask].copy()
        if matches.empty:
            return matches

        area = record.get("postcode_area") or ""
        matches["_same_area"] = (matches["postcode_area"] == area) if area else False
        if "created_at" in matches.columns:
            matches["_created"] = pd.to_datetime(matches["created_at"], errors="coerce", utc=True, format="mixed")
        else:
            matches["_created"] = pd.NaT
        matches = matches.sort_values(
            ["_same_area", "_created"], ascending=[False, False], na_position="last", kind="stable"
        )
        return matches.drop(columns=["_same_area", "_created"]).head(limit)

    def predict_model_price(self, record: Dict[str, Any]) -> Optional[float]:
        """Regressor prediction for a record, or None without a usable model."""
        self._ensure_loaded()
        if self.model is None:
            return None
        try:
            frame = self.processor.transform_record(record)
            X, _, _ = self.processor.prepare_features_for_ml(frame, None, self.feature_names)
            prediction = float(self.model.predict(X)[0])
        except (KeyError, ValueError) as e:
            logger.error("Error in price model prediction: %s", e)
            return None
        if not np.isfinite(prediction) or prediction <= 0:
            logger.warning("Price model returned an unusable prediction: %s", prediction)
            return None
        return prediction

    def estimate(
        self,
        postcode: Optional[str] = None,
        property_type: Optional[str] = None,
        bedrooms: Optional[float] = None,
        bathrooms: Optional[float] = None,
        furnishing_status: Optional[str] = None,
        city: Optional[str] = None,
        **extra: Any,
    ) -> PriceEstimate:
        """Estimate the monthly rent for a listing description."""
        for field_name, value in (("bedrooms", bedrooms), ("bathrooms", bathrooms)):
            number = to_float(value)
            if number is not None and number < 0:
                raise MalformedInputError(f"{field_name} cannot be negative", field=field_name, value=value)

        postcode = clean_postcode(postcode)
        area = extract_postcode_area(postcode)
        property_type = normalize_property_type(property_type)
        if is_missing(city):
            city = self.processor.infer_city(postcode)

        record = dict(extra)
        record.update({
            "postcode": postcode,
            "postcode_area": area,
            "property_type": property_type,
            "bedrooms": to_float(bedrooms),
            "bathrooms": to_float(bathrooms),
            "furnishing_status": furnishing_status,
            "city": city,
        })

        comparables = self.find_comparables(record)
        comparable_prices = [] if comparables.empty else comparables["price_per_month"].tolist()
        comparable_median = calculate_median(comparable_prices) if comparable_prices else None
        model_price = self.predict_model_price(record)
        stats = self.processor.get_market_statistics(city, property_type)

        if model_price is not None and comparable_prices:
            estimate = MODEL_BLEND_RATIO * model_price + (1 - MODEL_BLEND_RATIO) * comparable_median
            confidence = min(0.9, 0.5 + 0.08 * len(comparable_prices))
            status = "model"
        elif model_price is not None:
            estimate = model_price
            confidence = MODEL_ONLY_CONFIDENCE
            status = "model"
        elif comparable_prices:
            estimate = comparable_median
            confidence = FALLBACK_CONFIDENCE
            status = "fallback_to_comparables"
        else:
            estimate = stats.median_price
            confidence = DEFAULT_STATS_CONFIDENCE if stats.is_default else FALLBACK_CONFIDENCE
            status = "fallback_to_market"

        width = range_width(confidence)
        anomaly = classify_price_anomaly(estimate, stats.average_price, stats.std_price)

        return PriceEstimate(
            estimated_price=round_to_ten(estimate),
            price_range={
                "min": round_to_ten(estimate * (1 - width)),
                "max": round_to_ten(estimate * (1 + width)),
            },
            confidence=round(confidence, 2),
            market_insights={
                "city": city,
                "postcode_area": area,
                "market_average": round(stats.average_price, 2),
                "market_median": round(stats.median_price, 2),
                "total_properties": stats.total_properties,
                "comparable_properties": len(comparable_prices),
                "anomaly_level": anomaly.anomaly_level,
            },
            model_status=status,
        )
