"""
Unit tests for synthetic training signals and the training orchestrators.
"""

import json

import pandas as pd
import pytest

from directrent.core.constants import UK_CITIES
from directrent.data.processor import DataProcessor
from directrent.data.sources import SyntheticSource
from directrent.exceptions import InsufficientTrainingDataError
from directrent.service import MLService
from directrent.training import (
    train_all_models,
    train_fraud_model,
    train_price_model,
    train_recommendation_model,
)
from directrent.training.orchestrators import check_training_data, prepare_processor
from directrent.training.synthetic import (
    FRAUD_PHRASE,
    augment_dataset,
    generate_synthetic_interactions,
    generate_synthetic_users,
    inject_synthetic_fraud,
)


@pytest.fixture
def small_processor(test_config):
    processor = DataProcessor(source=SyntheticSource(n_samples=20, seed=4), config=test_config)
    processor.process_full_dataset()
    return processor


class TestInjectSyntheticFraud:
    """Tests for inject_synthetic_fraud."""

    def test_marks_five_percent(self, processor):
        df, fraud_ids = inject_synthetic_fraud(processor.processed_data, seed=1)
        assert len(fraud_ids) == 30
        assert len(set(fraud_ids)) == 30

    def test_fraud_rows_are_cheap_bare_and_wordy(self, processor):
        original = processor.processed_data.set_index("property_id")
        df, fraud_ids = inject_synthetic_fraud(processor.processed_data, seed=1)
        df = df.set_index("property_id")
        for pid in fraud_ids:
            assert df.loc[pid, "price_per_month"] == pytest.approx(original.loc[pid, "price_per_month"] * 0.3)
            assert df.loc[pid, "images"] == []
            assert df.loc[pid, "description"].endswith(FRAUD_PHRASE)

    def test_input_is_not_modified(self, processor):
        before = processor.processed_data["price_per_month"].copy()
        inject_synthetic_fraud(processor.processed_data, seed=1)
        pd.testing.assert_series_equal(processor.processed_data["price_per_month"], before)

    def test_empty_frame(self):
        df, fraud_ids = inject_synthetic_fraud(pd.DataFrame())
        assert df.empty
        assert fraud_ids == []


class TestSyntheticUsersAndInteractions:
    """Tests for synthetic users and interaction logs."""

    def test_users(self):
        users = generate_synthetic_users(10, seed=2)
        assert [u["user_id"] for u in users][:2] == ["user_0000", "user_0001"]
        for user in users:
            prefs = user["preferences"]
            assert prefs["city"] in UK_CITIES
            assert prefs["price_min"] < prefs["price_max"]
            assert 1 <= prefs["min_bedrooms"] <= 3

    def test_interactions(self, processor):
        users = generate_synthetic_users(20, seed=2)
        df = generate_synthetic_interactions(processor.processed_data, users, per_user=15, seed=2)
        assert len(df) == 300
        assert set(df["interaction_type"]) <= {"view", "save", "inquiry", "contact"}
        assert set(df["property_id"]) <= set(processor.processed_data["property_id"])
        assert (df["interaction_type"] == "view").mean() > 0.4

    def test_interactions_favour_preferred_city(self, processor):
        users = generate_synthetic_users(20, seed=2)
        df = generate_synthetic_interactions(processor.processed_data, users, per_user=30, seed=2)
        cities = processor.processed_data.set_index("property_id")["city"]
        preferred = {u["user_id"]: u["preferences"]["city"] for u in users}
        matches = [cities[pid] == preferred[uid] for uid, pid in zip(df["user_id"], df["property_id"])]
        assert sum(matches) / len(matches) > 0.6

    def test_no_properties(self):
        df = generate_synthetic_interactions(pd.DataFrame(), generate_synthetic_users(2))
        assert df.empty


class TestAugmentation:
    """Tests for topping up small datasets."""

    def test_check_training_data_raises(self, small_processor):
        with pytest.raises(InsufficientTrainingDataError) as exc_info:
            check_training_data(small_processor)
        assert exc_info.value.available == 20
        assert exc_info.value.required == 100

    def test_augment_dataset(self, small_processor):
        df = augment_dataset(small_processor, 100)
        assert len(df) == 120
        assert df["property_id"].str.startswith("syn_").sum() == 100

    def test_prepare_processor_augments(self, small_processor):
        processor = prepare_processor(small_processor)
        assert len(processor.processed_data) >= 100
        check_training_data(processor)

    def test_prepare_processor_leaves_large_dataset(self, processor):
        before = processor.processed_data
        assert prepare_processor(processor).processed_data is before


class TestOrchestrators:
    """Tests for the training orchestrators."""

    def test_train_price_model(self, processor, test_config):
        result = train_price_model(processor)
        assert test_config.ml.price_model_path.exists()
        assert test_config.ml.preprocessing_path.exists()
        evaluation = json.loads(test_config.ml.evaluation_path("price").read_text())
        assert evaluation["r2"] == pytest.approx(result["metrics"]["r2"])
        assert "timestamp" in evaluation

    def test_train_fraud_model(self, processor, test_config):
        result = train_fraud_model(processor)
        metrics = result["metrics"]
        assert test_config.ml.fraud_model_path.exists()
        for key in ["accuracy", "precision", "recall", "f1_score"]:
            assert 0.0 <= metrics[key] <= 1.0
        assert metrics["sample_count"] == 120
        assert metrics["train_size"] == 480
        assert test_config.ml.evaluation_path("fraud").exists()

    def test_train_recommendation_model(self, processor, test_config):
        result = train_recommendation_model(processor)
        assert test_config.ml.content_model_path.exists()
        assert test_config.ml.collaborative_model_path.exists()
        assert result["metrics"]["interactions"] == 3000
        assert result["metrics"]["users"] == 200

    def test_train_price_model_on_small_dataset(self, small_processor, test_config):
        result = train_price_model(small_processor)
        assert result["metrics"]["train_size"] + result["metrics"]["test_size"] >= 100

    def test_train_all_models_feeds_service(self, processor, test_config):
        summary = train_all_models(processor)
        assert set(summary["models"]) == {"price", "fraud", "recommendation"}
        assert summary["dataset_size"] == len(processor.processed_data)
        assert summary["version"] == test_config.ml.model_version

        service = MLService(config=test_config).initialize()
        health = service.health()
        assert health["models"]["price"]["loaded"] is True
        assert health["models"]["fraud"]["loaded"] is True
        assert health["models"]["recommendation"]["content_loaded"] is True
        assert health["models"]["recommendation"]["collaborative_loaded"] is True
        assert health["models"]["price"]["evaluation"] is not None
        assert service.processor.state_loaded is True

        fraud = service.detect_fraud({"city": "London", "price_per_month": 400, "images": []})
        assert fraud["ml_model_used"] is True

        estimate = service.estimate_price(postcode="SW1A 1AA", property_type="Flat", bedrooms=2)
        assert estimate["model_status"] == "model"

        recommendations = service.get_recommendations("user_0001", {}, 5)
        assert len(recommendations["properties"]) == 5
