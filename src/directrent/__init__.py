"""
DirectRent UK ML Core

Price estimation, fraud scoring and property recommendation for UK rental
listings.

Main components:
- data: dataset sources, cleaning, feature engineering and encoding
- ml: fraud scorer, hybrid recommender and price estimator
- training: batch training orchestrators
- service: MLService, the model registry used by the calling layer
- cli: Command-line interfaces

Usage:
    from directrent import get_config
    from directrent.service import MLService

    service = MLService().initialize()
"""

__version__ = "1.0.0"

from directrent.config import get_config
from directrent.logging_config import setup_logging

__all__ = [
    "__version__",
    "get_config",
    "setup_logging",
]
