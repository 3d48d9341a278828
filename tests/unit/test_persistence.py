"""
Unit tests for artifact persistence.
"""

import json

import numpy as np
import pytest

from directrent.core.models import ModelMetadata
from directrent.core.persistence import (
    build_metadata,
    load_artifact,
    load_evaluation,
    save_artifact,
    save_evaluation,
)
from directrent.exceptions import ModelNotFoundError


class TestBuildMetadata:
    """Tests for build_metadata."""

    def test_defaults_to_configured_version(self, test_config):
        metadata = build_metadata("price_regressor", ["bedrooms"], n_rows=10)
        assert metadata.version == test_config.ml.model_version
        assert metadata.feature_names == ["bedrooms"]
        assert metadata.extra == {"n_rows": 10}
        assert metadata.created_at

    def test_explicit_version(self):
        assert build_metadata("x", version="2.1.0").version == "2.1.0"


class TestArtifacts:
    """Tests for save_artifact / load_artifact."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "model.joblib"
        save_artifact(path, {"weights": [1, 2, 3]}, build_metadata("test_model", ["a", "b"]))
        document = load_artifact(path)
        assert document["weights"] == [1, 2, 3]
        assert isinstance(document["metadata"], ModelMetadata)
        assert document["metadata"].model_type == "test_model"
        assert document["metadata"].feature_names == ["a", "b"]

    def test_no_temporary_files_left(self, tmp_path):
        path = tmp_path / "model.joblib"
        save_artifact(path, {"a": 1}, build_metadata("test_model"))
        save_artifact(path, {"a": 2}, build_metadata("test_model"))
        assert [p.name for p in tmp_path.iterdir()] == ["model.joblib"]
        assert load_artifact(path)["a"] == 2

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ModelNotFoundError) as exc_info:
            load_artifact(tmp_path / "missing.joblib")
        assert "missing.joblib" in exc_info.value.model_path


class TestEvaluation:
    """Tests for evaluation JSON files."""

    def test_round_trip(self, tmp_path):
        path = save_evaluation(tmp_path / "price_evaluation.json", {"r2": 0.8, "rmse": 120.5})
        evaluation = load_evaluation(path)
        assert evaluation["r2"] == 0.8
        assert "timestamp" in evaluation

    def test_missing(self, tmp_path):
        assert load_evaluation(tmp_path / "nope.json") is None

    def test_unparseable(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        assert load_evaluation(path) is None

    def test_numpy_values_serialized(self, tmp_path):
        path = save_evaluation(tmp_path / "eval.json", {"count": np.int64(3)})
        assert json.loads(path.read_text())["count"] in (3, "3")
