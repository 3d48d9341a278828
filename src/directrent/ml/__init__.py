"""
Machine learning models for the DirectRent pipeline.

Contains the fraud scorer, hybrid recommender and price estimator.
"""

from directrent.ml.fraud_scorer import FraudClassifier, FraudScorer
from directrent.ml.price_estimator import PriceEstimator
from directrent.ml.recommender import (
    CollaborativeModel,
    ContentModel,
    RecommenderEngine,
)

__all__ = [
    "FraudClassifier",
    "FraudScorer",
    "PriceEstimator",
    "CollaborativeModel",
    "ContentModel",
    "RecommenderEngine",
]
