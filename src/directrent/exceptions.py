"""
Custom Exceptions for the DirectRent ML pipeline

Errors raised inside the pipeline, grouped by data and model concerns.
Most of these never reach callers of MLService: they mark the seams where a
component falls back to synthetic data, defaults or a rule-only path.

Exception Hierarchy:
    DirectRentError (base)
    ├── ConfigurationError
    ├── DataError
    │   ├── DataUnavailableError
    │   └── MalformedInputError
    └── ModelError
        ├── ModelNotFoundError
        ├── PredictionError
        ├── TrainingError
        └── InsufficientTrainingDataError
"""


class DirectRentError(Exception):
    """Base exception for all DirectRent errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConfigurationError(DirectRentError):
    """Raised when configured values cannot be used together."""

    pass


# Data Errors
class DataError(DirectRentError):
    """Base exception for dataset-related errors."""

    pass


class DataUnavailableError(DataError):
    """Raised when a dataset source is missing, unreadable or empty."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message)


class MalformedInputError(DataError):
    """Raised when a single record cannot be interpreted."""

    def __init__(self, message: str, field: str = None, value=None):
        self.field = field
        self.value = value
        super().__init__(message)


# Model errors
class ModelError(DirectRentError):
    """Base exception for trained-model errors."""

    pass


class ModelNotFoundError(ModelError):
    """Raised when a trained model artifact is not available."""

    def __init__(self, model_path: str = None):
        self.model_path = model_path
        message = f"Model not found at: {model_path}" if model_path else "Model not found"
        super().__init__(message)


class PredictionError(ModelError):
    """Raised when a model cannot score a record."""

    def __init__(self, message: str, input_data: dict = None):
        self.input_data = input_data
        super().__init__(message)


class TrainingError(ModelError):
    """Raised when fitting a model fails."""

    pass


class InsufficientTrainingDataError(ModelError):
    """Raised when there's not enough data for training."""

    def __init__(self, message: str, required: int = None, available: int = None):
        self.required = required
        self.available = available
        super().__init__(message)
