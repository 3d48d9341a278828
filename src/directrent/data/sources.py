"""
Dataset Sources

Raw listing data comes from one of two providers behind a common interface:

- RealFileSource reads the listings CSV and raises DataUnavailableError when
  the file is missing, unreadable or empty.
- SyntheticSource generates plausible UK rental listings.

FallbackDatasetSource tries its sources in order and returns the first frame
that loads, so the pipeline never fails purely because a file is missing.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from directrent.core.constants import (
    COUNCIL_TAX_BANDS,
    EPC_RATINGS,
    FURNISHING_STATUSES,
    POSTCODE_PREFIXES,
    PROPERTY_TYPES,
    SYNTHETIC_BASE_PRICE,
    SYNTHETIC_PRICE_CLIP,
    SYNTHETIC_PRICE_NOISE,
    UK_CITIES,
)
from directrent.exceptions import DataUnavailableError
from directrent.logging_config import get_logger

logger = get_logger(__name__)

SYNTHETIC_START_DATE = datetime(2020, 1, 1)
SYNTHETIC_IMAGE_HOST = "https://images.directrent.example"
SYNTHETIC_DESCRIPTIONS = [
    "Lovely bright flat close to local shops and transport links.",
    "Spacious family home with a modern kitchen and quiet street.",
    "Well presented property, recently redecorated throughout.",
    "Comfortable home in a popular residential area.",
    "Clean and secure building with friendly neighbours.",
]


class DatasetSource(ABC):
    """A provider of raw listing rows."""

    name: str = "dataset"

    @abstractmethod
    def load(self) -> pd.DataFrame:
        """Return raw listing rows.

        Raises:
            DataUnavailableError: If the source cannot produce any rows.
        """


class RealFileSource(DatasetSource):
    """Listings read from a CSV file.

    Malformed lines are skipped rather than failing the whole read.
    """

    name = "file"

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> pd.DataFrame:
        if not self.path.exists():
            raise DataUnavailableError(f"Dataset not found at: {self.path}", path=str(self.path))

        try:
            df = pd.read_csv(self.path, on_bad_lines="skip", skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
            raise DataUnavailableError(
                f"Could not parse dataset {self.path}: {e}", path=str(self.path)
            ) from e

        df = df.dropna(how="all")
        if df.empty or len(df.columns) == 0:
            raise DataUnavailableError(f"No valid rows in dataset {self.path}", path=str(self.path))

        logger.info("Loaded dataset with %d records from %s", len(df), self.path)
        return df


class SyntheticSource(DatasetSource):
    """Generated listings with UK-like distributions.

    Prices are a uniform base in [1000, 2000] plus uniform noise of +/-800,
    clipped to [300, 8000], so the market average sits around 1500.
    """

    name = "synthetic"

    def __init__(self, n_samples: int = 10000, seed: Optional[int] = 42):
        self.n_samples = n_samples
        self.seed = seed

    def load(self) -> pd.DataFrame:
        logger.info("Creating synthetic dataset with %d records", self.n_samples)
        rng = np.random.default_rng(self.seed)
        n = self.n_samples

        letters = np.array(list("ABCDEFGHIJKLMNOPQRSTUVWXYZ"))
        postcodes = [
            f"{prefix}{district} {sector}{l1}{l2}"
            for prefix, district, sector, l1, l2 in zip(
                rng.choice(POSTCODE_PREFIXES, n),
                rng.integers(1, 21, n),
                rng.integers(1, 10, n),
                rng.choice(letters, n),
                rng.choice(letters, n),
            )
        ]

        base = rng.uniform(*SYNTHETIC_BASE_PRICE, n)
        noise = rng.uniform(-SYNTHETIC_PRICE_NOISE, SYNTHETIC_PRICE_NOISE, n)
        prices = np.round(np.clip(base + noise, *SYNTHETIC_PRICE_CLIP))

        property_ids = [f"prop_{i:06d}" for i in range(n)]
        image_counts = rng.integers(3, 11, n)

        return pd.DataFrame({
            "property_id": property_ids,
            "title": [f"Property {i}" for i in range(n)],
            "description": rng.choice(SYNTHETIC_DESCRIPTIONS, n),
            "city": rng.choice(UK_CITIES, n),
            "postcode": postcodes,
            "property_type": rng.choice(PROPERTY_TYPES, n),
            "bedrooms": rng.integers(1, 6, n),
            "bathrooms": rng.integers(1, 4, n),
            "price_per_month": prices,
            "furnishing_status": rng.choice(FURNISHING_STATUSES, n),
            "epc_rating": rng.choice(EPC_RATINGS, n),
            "council_tax_band": rng.choice(COUNCIL_TAX_BANDS, n),
            "parking": rng.random(n) > 0.5,
            "garden": rng.random(n) > 0.5,
            "pets_allowed": rng.random(n) > 0.5,
            "latitude": rng.uniform(50.0, 58.0, n),
            "longitude": rng.uniform(-5.0, 2.0, n),
            "images": [
                [f"{SYNTHETIC_IMAGE_HOST}/{pid}/{j}.jpg" for j in range(count)]
                for pid, count in zip(property_ids, image_counts)
            ],
            "landlord_listing_count": rng.integers(1, 11, n),
            "created_at": [
                (SYNTHETIC_START_DATE + timedelta(days=i)).isoformat() for i in range(n)
            ],
            "view_count": rng.integers(0, 100, n),
            "landlord_rating": rng.uniform(1.0, 5.0, n),
        })


class FallbackDatasetSource(DatasetSource):
    """Tries each source in order and returns the first that loads."""

    name = "fallback"

    def __init__(self, sources: Sequence[DatasetSource]):
        self.sources: List[DatasetSource] = list(sources)
        self.last_source: Optional[DatasetSource] = None

    def load(self) -> pd.DataFrame:
        for source in self.sources:
            try:
                df = source.load()
            except DataUnavailableError as e:
                logger.warning("Dataset source '%s' unavailable: %s", source.name, e.message)
                continue
            self.last_source = source
            return df

        raise DataUnavailableError("No dataset source produced any rows")
