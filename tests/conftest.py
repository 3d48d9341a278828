"""
Pytest Configuration and Fixtures

Provides shared fixtures for all tests.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import numpy as np
import pandas as pd
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from directrent.config import Config, get_config, reset_config  # noqa: E402
from directrent.logging_config import setup_logging  # noqa: E402

REFERENCE_DATE = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="function", autouse=True)
def test_config(tmp_path: Path, monkeypatch) -> Generator[Config, None, None]:
    """Configuration pointing at a temporary model directory.

    The dataset path points at a file that does not exist, so every
    processor falls back to a small synthetic dataset.

    Yields:
        Config object configured for testing.
    """
    monkeypatch.setenv("DIRECTRENT_MODEL_DIR", str(tmp_path / "models"))
    monkeypatch.setenv("DIRECTRENT_DATASET_PATH", str(tmp_path / "missing.csv"))
    monkeypatch.setenv("DIRECTRENT_SYNTHETIC_ROWS", "600")
    monkeypatch.setenv("DIRECTRENT_MIN_TRAINING_SAMPLES", "100")
    monkeypatch.setenv("DIRECTRENT_MF_ITERATIONS", "5")
    monkeypatch.setenv("DIRECTRENT_LOG_LEVEL", "WARNING")

    # Reset config singleton
    reset_config()

    config = get_config()
    setup_logging(force=True)
    yield config

    # Cleanup
    reset_config()


@pytest.fixture(scope="session")
def reference_date() -> datetime:
    """Fixed "now" used for days_since_listed."""
    return REFERENCE_DATE


@pytest.fixture(scope="function")
def raw_listings() -> pd.DataFrame:
    """Small raw dataset with missing values, bad prices and messy text."""
    return pd.DataFrame({
        "property_id": ["p1", "p2", "p3", "p4", "p5", "p6", "p7"],
        "title": ["Flat one", "House two", None, "Flat four", "Studio five", "Bad", "Free"],
        "description": ["Lovely flat", "", "Nice home", None, "Cosy studio", "x", "y"],
        "city": ["London", "London", None, "Leeds", "London", "Leeds", "Leeds"],
        "postcode": [" sw1a 1aa", "SW2 3BB", "LS1 4AB", None, "e1 6an", "LS2 1AA", "LS3 1AA"],
        "property_type": ["apartment", "HOUSE", "flat", None, "Studio", "Flat", "Flat"],
        "bedrooms": [2, 3, np.nan, 1, 1, 2, 2],
        "bathrooms": [1, 2, 1, np.nan, 1, 1, 1],
        "price_per_month": [1500, 2500, 1200, np.nan, 900, -50, 25000],
        "furnishing_status": ["Furnished", None, "Furnished", "Unfurnished", "Furnished", None, None],
        "epc_rating": ["B", "d", "G", None, "Z", "C", "C"],
        "council_tax_band": ["A", "H", "c", None, "B", "A", "A"],
        "parking": [True, "yes", False, None, "false", 1, 0],
        "garden": [False, True, "true", None, False, 0, 0],
        "pets_allowed": [True, True, True, None, False, 0, 0],
        "latitude": [51.5, 51.4, 53.8, np.nan, 51.52, 53.8, 53.8],
        "longitude": [-0.12, -0.15, -1.55, np.nan, -0.07, -1.5, -1.5],
        "images": [["a.jpg", "b.jpg", "c.jpg"], "x.jpg|y.jpg", "[]", None, '["s1.jpg"]', "", ""],
        "landlord_listing_count": [1, 2, 3, None, 5, 1, 1],
        "created_at": [
            "2024-05-30T00:00:00Z", "2024-05-01", "2024-01-01T12:00:00",
            None, "2024-05-31", "2024-05-01", "2024-05-01",
        ],
    })


@pytest.fixture(scope="function")
def processor(test_config):
    """A DataProcessor that has processed a small synthetic dataset."""
    from directrent.data.processor import DataProcessor

    processor = DataProcessor(config=test_config, reference_date=REFERENCE_DATE)
    processor.process_full_dataset()
    return processor


@pytest.fixture(scope="function")
def sample_listing() -> dict:
    """A plausible, honest London listing."""
    return {
        "property_id": "listing-123",
        "title": "Bright two bedroom flat",
        "description": "Lovely flat close to shops and transport links.",
        "city": "London",
        "postcode": "SW1A 1AA",
        "property_type": "Flat",
        "bedrooms": 3,
        "bathrooms": 1,
        "price_per_month": 1200,
        "furnishing_status": "Furnished",
        "images": ["1.jpg", "2.jpg", "3.jpg", "4.jpg"],
        "landlord_listing_count": 2,
    }


@pytest.fixture(scope="function")
def sample_interactions() -> pd.DataFrame:
    """Interaction log where two users share a strong taste for prop_b."""
    rows = [
        ("u1", "prop_a", "view"),
        ("u1", "prop_b", "contact"),
        ("u1", "prop_c", "save"),
        ("u2", "prop_b", "contact"),
        ("u2", "prop_c", "inquiry"),
        ("u2", "prop_d", "view"),
        ("u3", "prop_a", "view"),
        ("u3", "prop_b", "inquiry"),
        ("u3", "prop_d", "save"),
    ]
    return pd.DataFrame(rows, columns=["user_id", "property_id", "interaction_type"])
