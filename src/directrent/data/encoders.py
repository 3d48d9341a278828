"""
Categorical encoders and numeric scalers.

Both are fit once per training run and then reused unchanged, so a listing
encoded at inference time gets exactly the integers and scaled values the
models were trained on.
"""

from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

UNKNOWN_CATEGORY = "unknown"


def _as_category(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and np.isnan(value):
        return ""
    return str(value)


class UnknownAwareEncoder:
    """Label encoder with a reserved "unknown" index.

    The vocabulary is built at fit time in order of first appearance. The
    unknown index is reserved up front as the last index (or reuses the index
    of a literal "unknown" value seen during fitting), so encoding an unseen
    value never mutates the vocabulary and never collides with a real class.
    """

    def __init__(self):
        self.classes_: List[str] = []
        self.mapping: Dict[str, int] = {}
        self.unknown_index: Optional[int] = None

    @property
    def is_fitted(self) -> bool:
        return self.unknown_index is not None

    def fit(self, values: Iterable[Any]) -> "UnknownAwareEncoder":
        self.classes_ = []
        self.mapping = {}
        for value in values:
            category = _as_category(value)
            if category not in self.mapping:
                self.mapping[category] = len(self.classes_)
                self.classes_.append(category)

        if UNKNOWN_CATEGORY in self.mapping:
            self.unknown_index = self.mapping[UNKNOWN_CATEGORY]
        else:
            self.unknown_index = len(self.classes_)
            self.classes_.append(UNKNOWN_CATEGORY)
            self.mapping[UNKNOWN_CATEGORY] = self.unknown_index
        return self

    def encode(self, value: Any) -> int:
        """Encode a single value; unseen values map to the unknown index."""
        if not self.is_fitted:
            raise ValueError("Encoder has not been fitted")
        return self.mapping.get(_as_category(value), self.unknown_index)

    def transform(self, values: Iterable[Any]) -> np.ndarray:
        return np.array([self.encode(value) for value in values], dtype=int)

    def fit_transform(self, values: Iterable[Any]) -> np.ndarray:
        values = list(values)
        return self.fit(values).transform(values)

    def decode(self, index: int) -> str:
        """Reverse lookup; out-of-range indices decode to "unknown"."""
        if 0 <= index < len(self.classes_):
            return self.classes_[index]
        return UNKNOWN_CATEGORY

    def to_dict(self) -> Dict[str, Any]:
        return {"classes": list(self.classes_), "unknown_index": self.unknown_index}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnknownAwareEncoder":
        encoder = cls()
        encoder.classes_ = list(data["classes"])
        encoder.mapping = {value: index for index, value in enumerate(encoder.classes_)}
        encoder.unknown_index = data["unknown_index"]
        return encoder


class FeatureScaler:
    """Per-column standardization with a guarded divisor.

    Values are scaled as (x - mean) / max(std, 1), using the population
    standard deviation, so constant or near-constant columns never divide by
    zero. inverse_transform applies the same divisor.
    """

    def __init__(self):
        self.params: Dict[str, Dict[str, float]] = {}

    def is_fitted(self, column: str) -> bool:
        return column in self.params

    def fit(self, df: pd.DataFrame, columns: Iterable[str]) -> "FeatureScaler":
        for column in columns:
            if column not in df.columns:
                continue
            values = pd.to_numeric(df[column], errors="coerce").dropna().to_numpy(dtype=float)
            if len(values) == 0:
                mean, std = 0.0, 0.0
            else:
                mean = float(values.mean())
                std = float(values.std())
            self.params[column] = {"mean": mean, "std": std}
        return self

    def divisor(self, column: str) -> float:
        return max(self.params[column]["std"], 1.0)

    def scale_value(self, column: str, value: float) -> float:
        return (float(value) - self.params[column]["mean"]) / self.divisor(column)

    def inverse_value(self, column: str, value: float) -> float:
        return float(value) * self.divisor(column) + self.params[column]["mean"]

    def transform(self, df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
        """Add a ``<column>_scaled`` column for every fitted column present.

        Missing values scale to 0.
        """
        for column in columns:
            if column not in df.columns or column not in self.params:
                continue
            values = pd.to_numeric(df[column], errors="coerce")
            scaled = (values - self.params[column]["mean"]) / self.divisor(column)
            df[f"{column}_scaled"] = scaled.fillna(0.0)
        return df

    def inverse_transform(self, column: str, values: Iterable[float]) -> np.ndarray:
        arr = np.asarray(list(values), dtype=float)
        return arr * self.divisor(column) + self.params[column]["mean"]

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {column: dict(params) for column, params in self.params.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, float]]) -> "FeatureScaler":
        scaler = cls()
        scaler.params = {column: dict(params) for column, params in data.items()}
        return scaler
