"""
Fraud Scoring for rental listings

Rule-based risk factors blended with an optional random forest classifier:

- price deviation from the market average for the listing's city and type
- suspicious keywords in the title and description
- missing or very few images
- unusually high posting volume by the landlord

The rule layer always runs. When a trained classifier is available its
fraud-class probability is blended in with weight ``ml_weight`` (default 0.6).
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from directrent.config import Config, get_config
from directrent.core.constants import (
    DEFAULT_MARKET_AVERAGE,
    DEFAULT_MARKET_STD,
    FEW_IMAGES_RISK,
    FRAUD_FEATURE_COLUMNS,
    HIGH_LISTING_VOLUME,
    HIGH_LISTING_VOLUME_RISK,
    KEYWORD_RISK,
    LABEL_KEYWORD_COUNT,
    LABEL_PRICE_RATIO,
    MAX_KEYWORD_RISK,
    MIN_IMAGE_COUNT,
    NO_IMAGES_RISK,
    PRICE_ABOVE_MARKET_RATIO,
    PRICE_ABOVE_MARKET_RISK,
    PRICE_BELOW_MARKET_RATIO,
    PRICE_BELOW_MARKET_RISK,
    SUSPICIOUS_KEYWORDS,
)
from directrent.core.models import FraudResult
from directrent.core.persistence import build_metadata, load_artifact, save_artifact
from directrent.data.processor import DataProcessor, coerce_images, is_missing, to_float
from directrent.exceptions import ModelNotFoundError, PredictionError, TrainingError
from directrent.logging_config import get_logger
from directrent.utils.property_types import normalize_property_type
from directrent.utils.sentiment import sentiment_score

logger = get_logger(__name__)

ML_HIGH_PROBABILITY_REASON = "ML model detected high fraud probability"


def listing_text(listing: Dict[str, Any]) -> str:
    """Lower-cased title and description."""
    parts = [listing.get("title"), listing.get("description")]
    return " ".join(str(part) for part in parts if not is_missing(part)).lower()


def find_suspicious_keywords(text: str, keywords: Sequence[str] = SUSPICIOUS_KEYWORDS) -> List[str]:
    """Keywords contained in the text, in keyword-list order."""
    text = (text or "").lower()
    return [keyword for keyword in keywords if keyword in text]


def image_count(listing: Dict[str, Any]) -> int:
    return len(coerce_images(listing.get("images")))


def group_price_stats(df: pd.DataFrame) -> Tuple[pd.Series, pd.Series]:
    """Per-row market average and std for the row's city and property type."""
    keys = [column for column in ("city", "property_type") if column in df.columns]
    prices = pd.to_numeric(df["price_per_month"], errors="coerce")
    if not keys:
        return (
            pd.Series(prices.mean(), index=df.index),
            pd.Series(prices.std(ddof=0), index=df.index),
        )
    grouped = prices.groupby([df[key] for key in keys], sort=False)
    return grouped.transform("mean"), grouped.transform(lambda s: s.std(ddof=0))


class FraudClassifier:
    """Random forest over the fixed fraud feature vector.

    Feature order: bedrooms, bathrooms, price, price z-score, suspicious
    keyword count, text sentiment, image count, landlord listing count.
    """

    def __init__(self, model_path: Optional[Path] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.model_path = Path(model_path or self.config.ml.fraud_model_path)
        self.model: Optional[RandomForestClassifier] = None
        self.feature_names: List[str] = list(FRAUD_FEATURE_COLUMNS)
        self.metadata = None

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    def extract_features(self, listing: Dict[str, Any], price_anomaly: float = 0.0) -> np.ndarray:
        """Feature vector for one listing, in FRAUD_FEATURE_COLUMNS order."""
        text = listing_text(listing)
        values = {
            "bedrooms": to_float(listing.get("bedrooms"), 0.0),
            "bathrooms": to_float(listing.get("bathrooms"), 0.0),
            "price_per_month": to_float(listing.get("price_per_month"), 0.0),
            "price_anomaly": float(price_anomaly),
            "suspicious_keyword_count": float(len(find_suspicious_keywords(text))),
            "text_sentiment": sentiment_score(text),
            "image_count": float(image_count(listing)),
            "landlord_listing_count": to_float(listing.get("landlord_listing_count"), 0.0),
        }
        return np.array([values[name] for name in self.feature_names], dtype=float)

    def build_feature_matrix(self, df: pd.DataFrame) -> np.ndarray:
        """Feature matrix for a processed listings frame."""
        if df.empty:
            return np.zeros((0, len(self.feature_names)))
        averages, stds = group_price_stats(df)
        prices = pd.to_numeric(df["price_per_month"], errors="coerce").fillna(0)
        z_scores = (prices - averages).abs() / stds.fillna(0).clip(lower=1.0)

        rows = [
            self.extract_features(listing, price_anomaly=z)
            for listing, z in zip(df.to_dict("records"), z_scores.fillna(0).tolist())
        ]
        return np.vstack(rows)

    def label_listings(self, df: pd.DataFrame, known_fraud_ids: Iterable[str] = ()) -> np.ndarray:
        """Weak labels: known fraud ids or any labeling heuristic.

        Heuristics: price below 0.3x the market average for the listing's city
        and type, no images, or at least three suspicious keywords.
        """
        known = {str(pid) for pid in known_fraud_ids}
        if df.empty:
            return np.zeros(0, dtype=int)

        averages, _ = group_price_stats(df)
        prices = pd.to_numeric(df["price_per_month"], errors="coerce").fillna(0)
        cheap = (prices < averages.fillna(DEFAULT_MARKET_AVERAGE) * LABEL_PRICE_RATIO).to_numpy()

        ids = df["property_id"].astype(str) if "property_id" in df.columns else pd.Series("", index=df.index)
        labels = []
        for i, listing in enumerate(df.to_dict("records")):
            is_fraud = (
                ids.iloc[i] in known
                or bool(cheap[i])
                or image_count(listing) == 0
                or len(find_suspicious_keywords(listing_text(listing))) >= LABEL_KEYWORD_COUNT
            )
            labels.append(1 if is_fraud else 0)
        return np.array(labels, dtype=int)

    def generate_training_data(
        self,
        df: pd.DataFrame,
        known_fraud_ids: Iterable[str] = (),
    ) -> Tuple[np.ndarray, np.ndarray, List[str]]:
        """Build (X, y, feature_names) from processed listings."""
        X = self.build_feature_matrix(df)
        y = self.label_listings(df, known_fraud_ids)
        logger.info(
            "Generated fraud training data: %d samples, %d labeled fraudulent",
            len(y), int(y.sum()),
        )
        return X, y, list(self.feature_names)

    def train(self, X: np.ndarray, y: np.ndarray, random_state: int = 42) -> RandomForestClassifier:
        """Fit the random forest.

        Raises:
            TrainingError: If fitting fails.
        """
        logger.info("Training fraud classifier on %d samples", len(X))
        model = RandomForestClassifier(
            n_estimators=100,
            max_depth=10,
            min_samples_leaf=5,
            max_features=0.8,
            random_state=random_state,
            n_jobs=-1,
        )
        try:
            model.fit(X, y)
        except ValueError as e:
            raise TrainingError(f"Fraud classifier training failed: {e}") from e
        self.model = model
        return model

    def predict_probability(self, features: np.ndarray) -> float:
        """Probability of the fraud class for one feature vector.

        Raises:
            PredictionError: If no model is loaded.
        """
        if self.model is None:
            raise PredictionError("Fraud classifier is not trained")
        classes = list(self.model.classes_)
        if 1 not in classes:
            return 0.0
        proba = self.model.predict_proba(np.asarray(features, dtype=float).reshape(1, -1))
        return float(proba[0, classes.index(1)])

    def save(self, path: Optional[Path] = None, **extra: Any) -> Path:
        if self.model is None:
            raise ModelNotFoundError("No fraud classifier to save. Train the model first.")
        self.metadata = build_metadata("fraud_classifier", self.feature_names, **extra)
        return save_artifact(path or self.model_path, {"model": self.model}, self.metadata)

    def load(self, path: Optional[Path] = None) -> bool:
        """Load a saved classifier. Returns False if none is available."""
        try:
            document = load_artifact(path or self.model_path)
        except ModelNotFoundError as e:
            logger.warning("%s. Fraud scoring will be rule-based only.", e.message)
            return False
        self.model = document["model"]
        self.metadata = document["metadata"]
        self.feature_names = list(self.metadata.feature_names or FRAUD_FEATURE_COLUMNS)
        logger.info("Fraud classifier loaded from %s", path or self.model_path)
        return True


class FraudScorer:
    """Scores a single listing.

    Args:
        processor: Processed data used for market statistics. Without it the
            listing's own ``market_average``/``market_std`` fields or the
            defaults (1500 / 500) are used.
        classifier: Optional trained classifier.
    """

    def __init__(
        self,
        processor: Optional[DataProcessor] = None,
        classifier: Optional[FraudClassifier] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.processor = processor
        self.classifier = classifier

    def _market_context(self, listing: Dict[str, Any]) -> Tuple[float, float]:
        average = to_float(listing.get("market_average"))
        std = to_float(listing.get("market_std"))
        if average is not None:
            return average, std if std is not None else DEFAULT_MARKET_STD

        if self.processor is not None:
            city = listing.get("city")
            stats = self.processor.get_market_statistics(
                None if is_missing(city) else str(city).strip(),
                normalize_property_type(listing.get("property_type")),
            )
            return stats.average_price, stats.std_price

        return DEFAULT_MARKET_AVERAGE, DEFAULT_MARKET_STD

    def score(self, listing: Dict[str, Any]) -> FraudResult:
        """Compute the blended fraud score for a listing."""
        reasons: List[str] = []
        risk_factors = {
            "price_deviation": 0.0,
            "content_analysis": 0.0,
            "image_authenticity": 0.0,
            "posting_frequency": 0.0,
        }
        score = 0.0

        price = to_float(listing.get("price_per_month"), 0.0)
        market_average, market_std = self._market_context(listing)

        # Price deviation
        if price < market_average * PRICE_BELOW_MARKET_RATIO:
            risk_factors["price_deviation"] = PRICE_BELOW_MARKET_RISK
            reasons.append("Price significantly below market average")
        elif price > market_average * PRICE_ABOVE_MARKET_RATIO:
            risk_factors["price_deviation"] = PRICE_ABOVE_MARKET_RISK
            reasons.append("Price significantly above market average")

        # Content analysis
        keywords = find_suspicious_keywords(listing_text(listing))
        for keyword in keywords:
            reasons.append(f"Contains suspicious keyword: {keyword}")
        if keywords:
            risk_factors["content_analysis"] = min(KEYWORD_RISK * len(keywords), MAX_KEYWORD_RISK)

        # Images
        images = image_count(listing)
        if images == 0:
            risk_factors["image_authenticity"] = NO_IMAGES_RISK
            reasons.append("No images provided")
        elif images < MIN_IMAGE_COUNT:
            risk_factors["image_authenticity"] = FEW_IMAGES_RISK
            reasons.append("Very few images provided")

        # Posting frequency
        if to_float(listing.get("landlord_listing_count"), 0.0) > HIGH_LISTING_VOLUME:
            risk_factors["posting_frequency"] = HIGH_LISTING_VOLUME_RISK
            reasons.append("Unusually high number of listings by this landlord")

        score = sum(risk_factors.values())

        ml_probability = None
        if self.classifier is not None and self.classifier.is_trained:
            z_score = abs(price - market_average) / max(market_std, 1.0)
            try:
                features = self.classifier.extract_features(listing, price_anomaly=z_score)
                ml_probability = self.classifier.predict_probability(features)
            except (PredictionError, ValueError) as e:
                logger.error("Error in ML fraud prediction: %s", e)

        if ml_probability is not None:
            ml_weight = self.config.fraud.ml_weight
            score = score * (1 - ml_weight) + ml_probability * ml_weight
            if ml_probability > self.config.fraud.high_probability:
                reasons.append(ML_HIGH_PROBABILITY_REASON)

        score = round(min(max(score, 0.0), 1.0), 2)
        return FraudResult(
            fraud_score=score,
            is_fraudulent=score > self.config.fraud.threshold,
            reasons=reasons,
            risk_factors=risk_factors,
            ml_model_used=ml_probability is not None,
            ml_probability=ml_probability,
        )
