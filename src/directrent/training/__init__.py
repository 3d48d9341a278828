"""
Training orchestration for the DirectRent models.
"""

from directrent.training.orchestrators import (
    train_all_models,
    train_fraud_model,
    train_price_model,
    train_recommendation_model,
)

__all__ = [
    "train_all_models",
    "train_fraud_model",
    "train_price_model",
    "train_recommendation_model",
]
