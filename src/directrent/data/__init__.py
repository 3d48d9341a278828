"""
Data loading and preprocessing for the DirectRent ML pipeline.
"""

from directrent.data.encoders import FeatureScaler, UnknownAwareEncoder
from directrent.data.processor import DataProcessor, classify_price_anomaly
from directrent.data.sources import (
    DatasetSource,
    FallbackDatasetSource,
    RealFileSource,
    SyntheticSource,
)

__all__ = [
    "DataProcessor",
    "classify_price_anomaly",
    "DatasetSource",
    "FallbackDatasetSource",
    "RealFileSource",
    "SyntheticSource",
    "FeatureScaler",
    "UnknownAwareEncoder",
]
