"""
Training Orchestrators

Batch entry points that process the dataset once, train a model family,
evaluate it on a shuffled 80/20 split and persist the model, the
preprocessing state and the evaluation metrics.

Usage:
    from directrent.training import train_all_models

    summary = train_all_models()
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score
from sklearn.model_selection import train_test_split

from directrent.config import get_config
from directrent.core.persistence import save_evaluation
from directrent.data.processor import DataProcessor
from directrent.exceptions import InsufficientTrainingDataError
from directrent.logging_config import get_logger, log_duration
from directrent.ml.fraud_scorer import FraudClassifier
from directrent.ml.price_estimator import PriceEstimator
from directrent.ml.recommender import RecommenderEngine
from directrent.training.synthetic import (
    augment_dataset,
    generate_synthetic_interactions,
    generate_synthetic_users,
    inject_synthetic_fraud,
)

logger = get_logger(__name__)

SYNTHETIC_USERS = 200
INTERACTIONS_PER_USER = 15


def check_training_data(processor: DataProcessor) -> None:
    """Raise if the processed dataset is smaller than the configured minimum.

    Raises:
        InsufficientTrainingDataError: If there are too few listings.
    """
    min_samples = get_config().ml.min_training_samples
    available = 0 if processor.processed_data is None else len(processor.processed_data)
    if available < min_samples:
        raise InsufficientTrainingDataError(
            f"Insufficient training data: {available} samples (minimum: {min_samples})",
            required=min_samples,
            available=available,
        )


def prepare_processor(processor: Optional[DataProcessor] = None) -> DataProcessor:
    """Process the dataset, topping it up with synthetic rows if too small."""
    processor = processor or DataProcessor()
    if processor.processed_data is None:
        processor.process_full_dataset()

    try:
        check_training_data(processor)
    except InsufficientTrainingDataError as e:
        logger.warning("%s. Augmenting with synthetic data.", e.message)
        augment_dataset(processor, e.required)
    return processor


def train_price_model(processor: Optional[DataProcessor] = None) -> Dict[str, Any]:
    """Train, evaluate and save the price regressor."""
    config = get_config()
    processor = prepare_processor(processor)
    logger.info("Starting price model training...")

    estimator = PriceEstimator(processor)
    with log_duration(logger, "Price model fit"):
        try:
            metrics = estimator.train(random_state=config.dataset.random_seed)
        except InsufficientTrainingDataError as e:
            logger.warning("%s. Augmenting with synthetic data.", e.message)
            augment_dataset(processor, e.required)
            metrics = estimator.train(random_state=config.dataset.random_seed)

    processor.save_state()
    estimator.save(train_samples=metrics["train_size"])
    save_evaluation(config.ml.evaluation_path("price"), metrics)

    logger.info("Price model training completed successfully!")
    return {"model_path": str(estimator.model_path), "metrics": metrics}


def train_fraud_model(processor: Optional[DataProcessor] = None) -> Dict[str, Any]:
    """Train, evaluate and save the fraud classifier on synthetic fraud labels."""
    config = get_config()
    seed = config.dataset.random_seed
    processor = prepare_processor(processor)
    logger.info("Starting fraud detection model training...")

    listings, fraud_ids = inject_synthetic_fraud(processor.processed_data, seed=seed)
    classifier = FraudClassifier()
    X, y, _ = classifier.generate_training_data(listings, fraud_ids)

    X_train, X_test, y_train, y_test = train_test_split(
        X, y, test_size=0.2, random_state=seed, shuffle=True
    )
    with log_duration(logger, "Fraud classifier fit"):
        classifier.train(X_train, y_train, random_state=seed)
    y_pred = classifier.model.predict(X_test)

    metrics = {
        "accuracy": float(accuracy_score(y_test, y_pred)),
        "precision": float(precision_score(y_test, y_pred, zero_division=0)),
        "recall": float(recall_score(y_test, y_pred, zero_division=0)),
        "f1_score": float(f1_score(y_test, y_pred, zero_division=0)),
        "sample_count": int(len(y_test)),
        "fraud_count": int(y_test.sum()),
        "train_size": int(len(y_train)),
    }
    logger.info("Accuracy: %.2f%%", metrics["accuracy"] * 100)
    logger.info("Precision: %.2f%%", metrics["precision"] * 100)
    logger.info("Recall: %.2f%%", metrics["recall"] * 100)
    logger.info("F1 Score: %.2f%%", metrics["f1_score"] * 100)

    processor.save_state()
    classifier.save(train_samples=metrics["train_size"], fraud_examples=len(fraud_ids))
    save_evaluation(config.ml.evaluation_path("fraud"), metrics)

    logger.info("Fraud detection model training completed successfully!")
    return {"model_path": str(classifier.model_path), "metrics": metrics}


def train_recommendation_model(processor: Optional[DataProcessor] = None) -> Dict[str, Any]:
    """Train and save the content and collaborative models on synthetic users."""
    config = get_config()
    seed = config.dataset.random_seed
    processor = prepare_processor(processor)
    logger.info("Starting recommendation model training...")

    properties = processor.processed_data
    users = generate_synthetic_users(SYNTHETIC_USERS, seed=seed)
    interactions = generate_synthetic_interactions(properties, users, INTERACTIONS_PER_USER, seed=seed)

    engine = RecommenderEngine()
    with log_duration(logger, "Recommender fit"):
        summary = engine.train(properties, interactions, encoders=processor.label_encoders)
    metrics = dict(summary)
    metrics["interactions"] = int(len(interactions))

    processor.save_state()
    engine.save()
    save_evaluation(config.ml.evaluation_path("recommendation"), metrics)

    logger.info("Recommendation model training completed successfully!")
    return {
        "content_model_path": str(engine.content_model_path),
        "collaborative_model_path": str(engine.collaborative_model_path),
        "metrics": metrics,
    }


def train_all_models(processor: Optional[DataProcessor] = None) -> Dict[str, Any]:
    """Train every model family over one shared processed dataset."""
    started = datetime.now()
    processor = prepare_processor(processor)
    logger.info("Training all models on %d listings", len(processor.processed_data))

    results = {
        "price": train_price_model(processor),
        "fraud": train_fraud_model(processor),
        "recommendation": train_recommendation_model(processor),
    }
    return {
        "trained_at": started.isoformat(),
        "duration_seconds": (datetime.now() - started).total_seconds(),
        "dataset_size": len(processor.processed_data),
        "version": get_config().ml.model_version,
        "models": results,
    }
