"""
Centralized Configuration Module

Provides configuration classes and environment variable loading for all components.

Usage:
    from directrent.config import get_config

    config = get_config()
    dataset_path = config.dataset.path
    threshold = config.fraud.threshold
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from directrent.exceptions import ConfigurationError

# Load .env file if present
load_dotenv()


def _get_project_root() -> Path:
    """Get the project root directory."""
    # Go up: config.py -> directrent -> src -> project_root
    current = Path(__file__).resolve()
    return current.parent.parent.parent


@dataclass
class DatasetConfig:
    """Source dataset configuration."""

    path: str = field(default_factory=lambda: os.getenv(
        "DIRECTRENT_DATASET_PATH",
        str(_get_project_root() / "datasets" / "uk_housing_rentals.csv")
    ))
    synthetic_rows: int = field(default_factory=lambda: int(os.getenv(
        "DIRECTRENT_SYNTHETIC_ROWS", "10000"
    )))
    random_seed: int = field(default_factory=lambda: int(os.getenv(
        "DIRECTRENT_RANDOM_SEED", "42"
    )))
    max_price: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_MAX_PRICE", "20000"
    )))

    def __post_init__(self):
        # Resolve relative paths
        if not os.path.isabs(self.path):
            self.path = str(_get_project_root() / self.path)


@dataclass
class MLConfig:
    """Model artifact configuration."""

    model_dir: str = field(default_factory=lambda: os.getenv(
        "DIRECTRENT_MODEL_DIR",
        str(_get_project_root() / "models")
    ))
    model_version: str = field(default_factory=lambda: os.getenv(
        "DIRECTRENT_MODEL_VERSION", "1.0.0"
    ))
    min_training_samples: int = field(default_factory=lambda: int(os.getenv(
        "DIRECTRENT_MIN_TRAINING_SAMPLES", "100"
    )))

    def __post_init__(self):
        if not os.path.isabs(self.model_dir):
            self.model_dir = str(_get_project_root() / self.model_dir)
        Path(self.model_dir).mkdir(parents=True, exist_ok=True)

    @property
    def recommendation_dir(self) -> Path:
        """Directory holding the content and collaborative models."""
        return Path(self.model_dir) / "recommendation"

    @property
    def price_model_path(self) -> Path:
        return Path(self.model_dir) / "price_model.joblib"

    @property
    def fraud_model_path(self) -> Path:
        return Path(self.model_dir) / "fraud_model.joblib"

    @property
    def content_model_path(self) -> Path:
        return self.recommendation_dir / "content_model.joblib"

    @property
    def collaborative_model_path(self) -> Path:
        return self.recommendation_dir / "collaborative_model.joblib"

    @property
    def preprocessing_path(self) -> Path:
        """Encoders, scalers and city ranking captured at training time."""
        return Path(self.model_dir) / "preprocessing.joblib"

    def evaluation_path(self, model_name: str) -> Path:
        """Path to the evaluation metrics JSON for a model family."""
        return Path(self.model_dir) / f"{model_name}_evaluation.json"


@dataclass
class FraudConfig:
    """Fraud scoring policy."""

    threshold: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_FRAUD_THRESHOLD", "0.6"
    )))
    ml_weight: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_FRAUD_ML_WEIGHT", "0.6"
    )))
    high_probability: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_FRAUD_HIGH_PROBABILITY", "0.7"
    )))

    def __post_init__(self):
        self.ml_weight = min(max(self.ml_weight, 0.0), 1.0)


@dataclass
class RecommenderConfig:
    """Hybrid recommender weights and factorization hyperparameters."""

    content_weight: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_CONTENT_WEIGHT", "0.6"
    )))
    collaborative_weight: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_COLLAB_WEIGHT", "0.4"
    )))
    factors: int = field(default_factory=lambda: int(os.getenv(
        "DIRECTRENT_MF_FACTORS", "10"
    )))
    iterations: int = field(default_factory=lambda: int(os.getenv(
        "DIRECTRENT_MF_ITERATIONS", "50"
    )))
    learning_rate: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_MF_LEARNING_RATE", "0.01"
    )))
    regularization: float = field(default_factory=lambda: float(os.getenv(
        "DIRECTRENT_MF_REGULARIZATION", "0.1"
    )))

    def __post_init__(self):
        if self.content_weight < 0 or self.collaborative_weight < 0:
            raise ConfigurationError(
                f"Recommender weights must be non-negative, got "
                f"{self.content_weight} and {self.collaborative_weight}"
            )
        if self.factors < 1 or self.iterations < 0:
            raise ConfigurationError("Matrix factorization needs at least one factor")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv(
        "DIRECTRENT_LOG_LEVEL", "INFO"
    ).upper())
    log_file: Optional[str] = field(default_factory=lambda: os.getenv(
        "DIRECTRENT_LOG_FILE"
    ))

    def __post_init__(self):
        # Validate log level
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level not in valid_levels:
            self.level = "INFO"


@dataclass
class Config:
    """Main configuration container."""

    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    ml: MLConfig = field(default_factory=MLConfig)
    fraud: FraudConfig = field(default_factory=FraudConfig)
    recommender: RecommenderConfig = field(default_factory=RecommenderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The application configuration.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the configuration (useful for testing)."""
    global _config
    _config = None
