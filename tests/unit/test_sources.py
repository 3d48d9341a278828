"""
Unit tests for dataset sources.
"""

import pandas as pd
import pytest

from directrent.data.sources import (
    DatasetSource,
    FallbackDatasetSource,
    RealFileSource,
    SyntheticSource,
)
from directrent.exceptions import DataUnavailableError


class FailingSource(DatasetSource):
    name = "failing"

    def load(self):
        raise DataUnavailableError("nothing here")


class TestRealFileSource:
    """Tests for RealFileSource."""

    def test_missing_file_raises(self, tmp_path):
        source = RealFileSource(str(tmp_path / "missing.csv"))
        with pytest.raises(DataUnavailableError) as exc_info:
            source.load()
        assert exc_info.value.path == str(tmp_path / "missing.csv")

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        with pytest.raises(DataUnavailableError):
            RealFileSource(str(path)).load()

    def test_header_only_raises(self, tmp_path):
        path = tmp_path / "header.csv"
        path.write_text("property_id,price_per_month\n")
        with pytest.raises(DataUnavailableError):
            RealFileSource(str(path)).load()

    def test_reads_rows(self, tmp_path):
        path = tmp_path / "listings.csv"
        path.write_text(
            "property_id,city,price_per_month\n"
            "a,London,1500\n"
            "b,Leeds,900\n"
        )
        df = RealFileSource(str(path)).load()
        assert len(df) == 2
        assert df["city"].tolist() == ["London", "Leeds"]

    def test_skips_malformed_lines(self, tmp_path):
        path = tmp_path / "listings.csv"
        path.write_text(
            "property_id,city,price_per_month\n"
            "a,London,1500\n"
            "b,Leeds,900,extra,fields\n"
            "c,York,800\n"
        )
        df = RealFileSource(str(path)).load()
        assert df["property_id"].tolist() == ["a", "c"]


class TestSyntheticSource:
    """Tests for SyntheticSource."""

    def test_row_count_and_columns(self):
        df = SyntheticSource(n_samples=50, seed=1).load()
        assert len(df) == 50
        for column in ["property_id", "city", "postcode", "property_type", "price_per_month",
                       "images", "created_at", "landlord_listing_count"]:
            assert column in df.columns

    def test_deterministic_for_seed(self):
        first = SyntheticSource(n_samples=30, seed=7).load()
        second = SyntheticSource(n_samples=30, seed=7).load()
        pd.testing.assert_frame_equal(first, second)

    def test_price_bounds(self):
        df = SyntheticSource(n_samples=500, seed=3).load()
        assert df["price_per_month"].between(300, 8000).all()
        assert 1300 < df["price_per_month"].mean() < 1700

    def test_every_listing_has_images(self):
        df = SyntheticSource(n_samples=40, seed=3).load()
        counts = df["images"].map(len)
        assert counts.min() >= 3
        assert counts.max() <= 10


class TestFallbackDatasetSource:
    """Tests for FallbackDatasetSource."""

    def test_uses_first_available(self):
        synthetic = SyntheticSource(n_samples=5, seed=1)
        source = FallbackDatasetSource([FailingSource(), synthetic])
        df = source.load()
        assert len(df) == 5
        assert source.last_source is synthetic

    def test_prefers_real_file(self, tmp_path):
        path = tmp_path / "listings.csv"
        path.write_text("property_id,price_per_month\na,1000\n")
        real = RealFileSource(str(path))
        source = FallbackDatasetSource([real, SyntheticSource(n_samples=5)])
        assert len(source.load()) == 1
        assert source.last_source is real

    def test_all_sources_fail(self):
        source = FallbackDatasetSource([FailingSource(), FailingSource()])
        with pytest.raises(DataUnavailableError):
            source.load()
