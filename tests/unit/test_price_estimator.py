"""
Unit tests for the rental price estimator.
"""

import pandas as pd
import pytest

from directrent.data.processor import DataProcessor, calculate_median
from directrent.data.sources import SyntheticSource
from directrent.exceptions import InsufficientTrainingDataError, MalformedInputError
from directrent.ml.price_estimator import PriceEstimator, range_width, round_to_ten


@pytest.fixture
def estimator(processor, test_config):
    return PriceEstimator(processor, config=test_config)


@pytest.fixture
def trained_estimator(estimator):
    estimator.train()
    return estimator


class TestHelpers:
    """Tests for rounding and range helpers."""

    def test_round_to_ten(self):
        assert round_to_ten(1234) == 1230
        assert round_to_ten(1236) == 1240
        assert round_to_ten(1400) == 1400

    def test_range_width(self):
        assert range_width(1.0) == pytest.approx(0.1)
        assert range_width(0.5) == pytest.approx(0.3)
        assert range_width(0.3) == pytest.approx(0.38)


class TestFallbacks:
    """Tests for estimates without a trained model."""

    def test_comparables_fallback(self, estimator, processor):
        df = processor.processed_data
        row = df.iloc[0]
        result = estimator.estimate(
            postcode=row["postcode"],
            property_type=row["property_type"],
            bedrooms=row["bedrooms"],
            bathrooms=row["bathrooms"],
        )
        comparables = estimator.find_comparables({
            "property_type": row["property_type"],
            "bedrooms": row["bedrooms"],
            "postcode_area": row["postcode_area"],
        })
        expected = calculate_median(comparables["price_per_month"].tolist())

        assert result.model_status == "fallback_to_comparables"
        assert result.confidence == 0.5
        assert result.estimated_price == round_to_ten(expected)
        assert result.price_range["min"] == round_to_ten(expected * (1 - range_width(0.5)))
        assert result.price_range["max"] == round_to_ten(expected * (1 + range_width(0.5)))
        assert result.market_insights["comparable_properties"] == len(comparables)

    def test_market_defaults_when_nothing_matches(self, estimator):
        result = estimator.estimate(postcode="ZZ1 1AA", property_type="Castle", bedrooms=9)
        assert result.model_status == "fallback_to_market"
        assert result.estimated_price == 1400
        assert result.confidence == 0.3
        assert result.price_range == {"min": 870, "max": 1930}
        assert result.market_insights["total_properties"] == 0
        assert result.market_insights["comparable_properties"] == 0

    def test_market_median_for_known_market(self, estimator, processor):
        result = estimator.estimate(postcode="ZZ1 1AA", property_type="Flat", bedrooms=12, city="London")
        stats = processor.get_market_statistics("London", "Flat")
        assert result.model_status == "fallback_to_market"
        assert result.confidence == 0.5
        assert result.estimated_price == round_to_ten(stats.median_price)
        assert result.market_insights["city"] == "London"

    def test_prices_are_multiples_of_ten(self, estimator):
        result = estimator.estimate(postcode="LS1 4AB", property_type="House", bedrooms=3)
        assert result.estimated_price % 10 == 0
        assert result.price_range["min"] % 10 == 0
        assert result.price_range["max"] % 10 == 0
        assert result.price_range["min"] <= result.estimated_price <= result.price_range["max"]

    def test_city_inferred_from_postcode(self, estimator, processor):
        result = estimator.estimate(postcode="ls1 4ab", property_type="Flat", bedrooms=2)
        assert result.market_insights["postcode_area"] == "LS"
        assert result.market_insights["city"] == processor.infer_city("LS1 4AB")

    def test_negative_bedrooms_rejected(self, estimator):
        with pytest.raises(MalformedInputError) as excinfo:
            estimator.estimate(postcode="SW1A 1AA", property_type="Flat", bedrooms=-2)
        assert excinfo.value.field == "bedrooms"

    def test_load_missing_model(self, estimator):
        assert estimator.load() is False
        assert estimator.predict_model_price({"property_type": "Flat", "bedrooms": 2}) is None


class TestFindComparables:
    """Tests for comparable selection."""

    def test_same_type_and_bedrooms(self, estimator, processor):
        row = processor.processed_data.iloc[5]
        comparables = estimator.find_comparables({
            "property_type": row["property_type"],
            "bedrooms": row["bedrooms"],
            "postcode_area": row["postcode_area"],
        })
        assert 0 < len(comparables) <= 5
        assert (comparables["property_type"] == row["property_type"]).all()
        assert (comparables["bedrooms"] == row["bedrooms"]).all()
        assert comparables["postcode_area"].iloc[0] == row["postcode_area"]

    def test_same_area_then_newest_first(self, test_config):
        raw = pd.DataFrame({
            "property_id": ["old_local", "new_remote", "new_local", "other_type"],
            "city": ["Leeds"] * 4,
            "postcode": ["LS1 1AA", "M1 1AA", "LS2 2BB", "LS3 3CC"],
            "property_type": ["Flat", "Flat", "Flat", "House"],
            "bedrooms": [2, 2, 2, 2],
            "price_per_month": [900, 1500, 1000, 1200],
            "created_at": ["2023-01-01", "2024-05-01", "2024-01-01", "2024-05-01"],
        })
        processor = DataProcessor(config=test_config)
        processor.process_full_dataset(raw)
        estimator = PriceEstimator(processor, config=test_config)
        comparables = estimator.find_comparables({"property_type": "Flat", "bedrooms": 2, "postcode_area": "LS"})
        assert comparables["property_id"].tolist() == ["new_local", "old_local", "new_remote"]

    def test_no_processed_data(self, test_config):
        estimator = PriceEstimator(DataProcessor(config=test_config), config=test_config)
        assert estimator.find_comparables({"property_type": "Flat"}).empty


class TestTrainedModel:
    """Tests for the XGBoost-backed estimates."""

    def test_train_metrics(self, trained_estimator, processor):
        estimator = trained_estimator
        assert estimator.is_trained
        metrics = estimator.train()
        for key in ["mse", "rmse", "mae", "r2", "train_size", "test_size", "feature_importance"]:
            assert key in metrics
        assert metrics["train_size"] + metrics["test_size"] == len(processor.processed_data)
        assert metrics["rmse"] == pytest.approx(metrics["mse"] ** 0.5)
        assert set(metrics["feature_importance"]) == set(estimator.feature_names)
        assert "price_per_bedroom" not in estimator.feature_names

    def test_model_blend_with_comparables(self, trained_estimator, processor):
        row = processor.processed_data.iloc[0]
        result = trained_estimator.estimate(
            postcode=row["postcode"],
            property_type=row["property_type"],
            bedrooms=row["bedrooms"],
            bathrooms=row["bathrooms"],
            furnishing_status=row["furnishing_status"],
        )
        comparables = result.market_insights["comparable_properties"]
        assert result.model_status == "model"
        assert comparables > 0
        assert result.confidence == pytest.approx(min(0.9, 0.5 + 0.08 * comparables))
        assert result.estimated_price > 0

    def test_model_only_confidence(self, trained_estimator):
        result = trained_estimator.estimate(postcode="ZZ1 1AA", property_type="Castle", bedrooms=9)
        assert result.model_status == "model"
        assert result.confidence == 0.7
        assert result.market_insights["comparable_properties"] == 0

    def test_save_and_reload(self, trained_estimator, processor, test_config):
        trained_estimator.save(train_samples=1)
        reloaded = PriceEstimator(processor, config=test_config)
        record = {"city": "London", "property_type": "Flat", "bedrooms": 2, "bathrooms": 1}
        assert reloaded.predict_model_price(record) == pytest.approx(trained_estimator.predict_model_price(record))
        assert reloaded.metadata.model_type == "price_regressor"
        assert reloaded.feature_names == trained_estimator.feature_names

    def test_insufficient_data(self, test_config):
        processor = DataProcessor(source=SyntheticSource(n_samples=30), config=test_config)
        processor.process_full_dataset()
        with pytest.raises(InsufficientTrainingDataError) as exc_info:
            PriceEstimator(processor, config=test_config).train()
        assert exc_info.value.required == 100
        assert exc_info.value.available == 30
