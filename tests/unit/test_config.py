"""
Unit tests for configuration and logging setup.
"""

import logging
from pathlib import Path

import pytest

from directrent.config import Config, get_config, reset_config
from directrent.exceptions import ConfigurationError
from directrent.logging_config import get_logger, log_duration, reset_logging, setup_logging


class TestConfig:
    """Tests for the configuration dataclasses."""

    def test_env_overrides(self, test_config, tmp_path):
        assert test_config.ml.model_dir == str(tmp_path / "models")
        assert test_config.dataset.synthetic_rows == 600
        assert test_config.recommender.iterations == 5
        assert test_config.ml.min_training_samples == 100

    def test_defaults(self, test_config):
        assert test_config.fraud.threshold == 0.6
        assert test_config.fraud.ml_weight == 0.6
        assert test_config.recommender.content_weight == 0.6
        assert test_config.recommender.collaborative_weight == 0.4
        assert test_config.dataset.max_price == 20000

    def test_model_dir_created(self, test_config):
        assert Path(test_config.ml.model_dir).is_dir()

    def test_artifact_paths(self, test_config):
        model_dir = Path(test_config.ml.model_dir)
        assert test_config.ml.price_model_path == model_dir / "price_model.joblib"
        assert test_config.ml.content_model_path == model_dir / "recommendation" / "content_model.joblib"
        assert test_config.ml.evaluation_path("fraud") == model_dir / "fraud_evaluation.json"

    def test_relative_dataset_path_resolved(self, monkeypatch, project_root):
        monkeypatch.setenv("DIRECTRENT_DATASET_PATH", "datasets/listings.csv")
        reset_config()
        assert get_config().dataset.path == str(project_root / "datasets" / "listings.csv")

    def test_ml_weight_clamped(self, monkeypatch):
        monkeypatch.setenv("DIRECTRENT_FRAUD_ML_WEIGHT", "1.7")
        reset_config()
        assert get_config().fraud.ml_weight == 1.0

    def test_invalid_log_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("DIRECTRENT_LOG_LEVEL", "chatty")
        reset_config()
        assert get_config().logging.level == "INFO"

    def test_negative_recommender_weight_rejected(self, monkeypatch):
        monkeypatch.setenv("DIRECTRENT_COLLAB_WEIGHT", "-0.4")
        reset_config()
        with pytest.raises(ConfigurationError):
            get_config()

    def test_singleton(self):
        assert get_config() is get_config()
        reset_config()
        assert isinstance(get_config(), Config)


class TestLogging:
    """Tests for logging setup."""

    def test_logger_names_prefixed(self):
        assert get_logger("custom").name == "directrent.custom"
        assert get_logger("directrent.data").name == "directrent.data"

    def test_setup_with_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "directrent.log"
        try:
            setup_logging(level="INFO", log_file=str(log_file), force=True)
            get_logger("directrent.test").info("hello from the test")
            for handler in logging.getLogger("directrent").handlers:
                handler.flush()
            assert "hello from the test" in log_file.read_text()
            assert "| INFO     | directrent.test |" in log_file.read_text()
        finally:
            reset_logging()
            setup_logging(level="WARNING", force=True)

    def test_level_applied(self):
        try:
            setup_logging(level="ERROR", force=True)
            assert logging.getLogger("directrent").level == logging.ERROR
            assert logging.getLogger("directrent").propagate is False
        finally:
            setup_logging(level="WARNING", force=True)

    def test_log_duration(self, tmp_path):
        log_file = tmp_path / "timing.log"
        try:
            setup_logging(level="INFO", log_file=str(log_file), force=True)
            with log_duration(get_logger("directrent.test"), "Stage one"):
                pass
            for handler in logging.getLogger("directrent").handlers:
                handler.flush()
            assert "Stage one completed in" in log_file.read_text()
        finally:
            reset_logging()
            setup_logging(level="WARNING", force=True)
