"""
ML Service

MLService is the model registry handed to the calling layer. It is built once
at process start (and passed around by reference) and owns the processed
dataset, the preprocessing state and every loaded model. Its three public
calls mirror the product features:

    service = MLService().initialize()
    service.estimate_price(postcode="SW1A 1AA", property_type="Flat", bedrooms=2)
    service.detect_fraud(listing)
    service.get_recommendations(user_id="user_0001", preferences={...}, limit=10)

None of them raise: any failure below is logged and answered with a
documented degraded response.
"""

from typing import Any, Dict, List, Optional, Union

import numpy as np

from directrent.config import Config, get_config
from directrent.core.constants import DEFAULT_MARKET_STATS, DEFAULT_STATS_CONFIDENCE
from directrent.core.models import FraudResult, ListingRecord, PriceEstimate
from directrent.core.persistence import load_evaluation
from directrent.data.processor import DataProcessor
from directrent.exceptions import MalformedInputError, ModelNotFoundError
from directrent.logging_config import get_logger
from directrent.ml.fraud_scorer import FraudClassifier, FraudScorer
from directrent.ml.price_estimator import PriceEstimator, range_width, round_to_ten
from directrent.ml.recommender import RecommenderEngine

logger = get_logger(__name__)

PUBLIC_PROPERTY_FIELDS = [
    "property_id", "title", "description", "city", "postcode", "property_type",
    "bedrooms", "bathrooms", "price_per_month", "furnishing_status",
    "epc_rating", "council_tax_band", "parking", "garden", "pets_allowed",
    "latitude", "longitude", "images",
]


def _to_builtin(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (list, tuple, np.ndarray)):
        return [_to_builtin(item) for item in value]
    return value


def public_property(row: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-friendly subset of a processed listing row."""
    return {key: _to_builtin(row[key]) for key in PUBLIC_PROPERTY_FIELDS if key in row}


def default_price_estimate() -> PriceEstimate:
    price = DEFAULT_MARKET_STATS["median_price"]
    width = range_width(DEFAULT_STATS_CONFIDENCE)
    return PriceEstimate(
        estimated_price=round_to_ten(price),
        price_range={
            "min": round_to_ten(price * (1 - width)),
            "max": round_to_ten(price * (1 + width)),
        },
        confidence=DEFAULT_STATS_CONFIDENCE,
        market_insights={
            "market_average": DEFAULT_MARKET_STATS["average_price"],
            "market_median": DEFAULT_MARKET_STATS["median_price"],
            "total_properties": 0,
            "comparable_properties": 0,
        },
        model_status="fallback_to_market",
    )


class MLService:
    """Registry of the processed data and trained models.

    Args:
        processor: Pre-built processor; created and processed on initialize
            otherwise.
        price_estimator, fraud_scorer, recommender: Pre-built components,
            mainly for tests.
    """

    def __init__(
        self,
        processor: Optional[DataProcessor] = None,
        price_estimator: Optional[PriceEstimator] = None,
        fraud_scorer: Optional[FraudScorer] = None,
        recommender: Optional[RecommenderEngine] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.processor = processor
        self.price_estimator = price_estimator
        self.fraud_scorer = fraud_scorer
        self.recommender = recommender
        self._initialized = False

    def initialize(self) -> "MLService":
        """Process the dataset and load every available model."""
        if self._initialized:
            return self

        if self.processor is None:
            self.processor = DataProcessor(config=self.config)
            try:
                self.processor.load_state()
            except ModelNotFoundError as e:
                logger.warning("%s. Preprocessing will be fit on the current dataset.", e.message)
        if self.processor.processed_data is None:
            self.processor.process_full_dataset()

        if self.price_estimator is None:
            self.price_estimator = PriceEstimator(self.processor, config=self.config)
            self.price_estimator.load()

        if self.fraud_scorer is None:
            classifier = FraudClassifier(config=self.config)
            classifier.load()
            self.fraud_scorer = FraudScorer(self.processor, classifier, config=self.config)

        if self.recommender is None:
            self.recommender = RecommenderEngine(config=self.config)
            self.recommender.load_models()

        self._initialized = True
        logger.info("ML service initialized with %d listings", len(self.processor.processed_data))
        return self

    def estimate_price(
        self,
        postcode: Optional[str] = None,
        property_type: Optional[str] = None,
        bedrooms: Optional[float] = None,
        bathrooms: Optional[float] = None,
        furnishing_status: Optional[str] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        """Estimated monthly rent with range, confidence and market insights."""
        try:
            self.initialize()
            estimate = self.price_estimator.estimate(
                postcode=postcode,
                property_type=property_type,
                bedrooms=bedrooms,
                bathrooms=bathrooms,
                furnishing_status=furnishing_status,
                **extra,
            )
        except MalformedInputError as e:
            logger.warning("Rejected price request: %s", e.message)
            estimate = default_price_estimate()
        except Exception as e:
            logger.error("Price estimation failed: %s", e, exc_info=True)
            estimate = default_price_estimate()
        return estimate.to_dict()

    def detect_fraud(self, listing: Union[Dict[str, Any], ListingRecord]) -> Dict[str, Any]:
        """Fraud score, flag, reasons and risk factors for a listing."""
        if isinstance(listing, ListingRecord):
            listing = listing.to_dict()
        listing = dict(listing or {})

        try:
            self.initialize()
            result = self.fraud_scorer.score(listing).to_dict()
            result["price_anomaly"] = self.processor.detect_price_anomalies(listing).to_dict()
            return result
        except Exception as e:
            logger.error("Fraud detection failed, using rule-only scoring: %s", e, exc_info=True)

        try:
            return FraudScorer(config=self.config).score(listing).to_dict()
        except Exception as e:
            logger.error("Rule-only fraud scoring failed: %s", e, exc_info=True)
            return FraudResult(fraud_score=0.0, is_fraudulent=False).to_dict()

    def get_recommendations(
        self,
        user_id: Optional[str] = None,
        preferences: Optional[Dict[str, Any]] = None,
        limit: int = 10,
    ) -> Dict[str, List[Any]]:
        """Ranked listings with parallel score and reasoning lists."""
        response: Dict[str, List[Any]] = {"properties": [], "scores": [], "reasoning": []}
        try:
            self.initialize()
            # Rank every filtered listing; only the output is capped
            candidates = self.processor.get_property_recommendations_data(preferences, limit=None)
            if candidates.empty and preferences:
                logger.info("No listings match the preference filters; ranking all listings")
                candidates = self.processor.get_property_recommendations_data({}, limit=None)

            recommendations = self.recommender.get_hybrid_recommendations(
                user_id, preferences, candidates, limit
            )
        except Exception as e:
            logger.error("Recommendation failed: %s", e, exc_info=True)
            return response

        for rec in recommendations:
            response["properties"].append(public_property(rec.property or {"property_id": rec.property_id}))
            response["scores"].append(round(float(rec.score), 4))
            response["reasoning"].append(rec.reason)
        return response

    def health(self) -> Dict[str, Any]:
        """Artifact presence, load state and last evaluation per model family."""
        ml = self.config.ml
        recommender = self.recommender
        processed = None if self.processor is None else self.processor.processed_data

        return {
            "status": "ok" if self._initialized else "not_initialized",
            "version": ml.model_version,
            "dataset_records": 0 if processed is None else int(len(processed)),
            "models": {
                "price": {
                    "artifact_exists": ml.price_model_path.exists(),
                    "loaded": bool(self.price_estimator and self.price_estimator.is_trained),
                    "evaluation": load_evaluation(ml.evaluation_path("price")),
                },
                "fraud": {
                    "artifact_exists": ml.fraud_model_path.exists(),
                    "loaded": bool(
                        self.fraud_scorer
                        and self.fraud_scorer.classifier
                        and self.fraud_scorer.classifier.is_trained
                    ),
                    "evaluation": load_evaluation(ml.evaluation_path("fraud")),
                },
                "recommendation": {
                    "artifact_exists": ml.content_model_path.exists() and ml.collaborative_model_path.exists(),
                    "content_loaded": bool(recommender and recommender.content_model is not None),
                    "collaborative_loaded": bool(recommender and recommender.collaborative_model is not None),
                    "evaluation": load_evaluation(ml.evaluation_path("recommendation")),
                },
                "preprocessing": {
                    "artifact_exists": ml.preprocessing_path.exists(),
                    "fitted": bool(self.processor and self.processor.is_fitted),
                },
            },
        }
