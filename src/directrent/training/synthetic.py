"""
Synthetic training signals.

The listings dataset carries no fraud labels and no user behaviour, so
training runs generate them:

- inject_synthetic_fraud: turns ~5% of listings into obvious scams
- generate_synthetic_users: users with city/type/price preferences
- generate_synthetic_interactions: interaction logs biased towards views and
  towards listings that match each user's preferences
- augment_dataset: tops up a too-small dataset with synthetic listings
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from directrent.core.constants import PROPERTY_TYPES, UK_CITIES
from directrent.data.processor import DataProcessor
from directrent.data.sources import SyntheticSource
from directrent.logging_config import get_logger

logger = get_logger(__name__)

FRAUD_FRACTION = 0.05
FRAUD_PRICE_FACTOR = 0.3
FRAUD_PHRASE = " URGENT cash only no questions western union immediate discount"

INTERACTION_TYPES = ["view", "save", "inquiry", "contact"]
INTERACTION_WEIGHTS = [0.6, 0.2, 0.12, 0.08]
PREFERENCE_MATCH_SHARE = 0.7


def inject_synthetic_fraud(
    df: pd.DataFrame,
    fraction: float = FRAUD_FRACTION,
    seed: Optional[int] = 42,
) -> Tuple[pd.DataFrame, List[str]]:
    """Make a random share of listings look fraudulent.

    Selected listings get price x 0.3, no images and scam phrases appended to
    the description.

    Returns:
        Tuple of (modified copy, ids of the modified listings).
    """
    df = df.copy()
    if df.empty:
        return df, []

    rng = np.random.default_rng(seed)
    count = min(len(df), math.ceil(len(df) * fraction))
    positions = rng.choice(len(df), size=count, replace=False)
    index = df.index[positions]

    df["price_per_month"] = df["price_per_month"].astype(float)
    df.loc[index, "price_per_month"] = df.loc[index, "price_per_month"] * FRAUD_PRICE_FACTOR
    selected = set(index)
    df["images"] = [
        [] if label in selected else images for label, images in zip(df.index, df["images"])
    ]
    df.loc[index, "description"] = df.loc[index, "description"].fillna("").astype(str) + FRAUD_PHRASE

    fraud_ids = df.loc[index, "property_id"].astype(str).tolist()
    logger.info("Created %d synthetic fraud examples", len(fraud_ids))
    return df, fraud_ids


def generate_synthetic_users(n_users: int = 200, seed: Optional[int] = 42) -> List[Dict[str, Any]]:
    """Users with randomized search preferences."""
    rng = np.random.default_rng(seed)
    users = []
    for i in range(n_users):
        price_min = int(rng.integers(5, 16)) * 100
        users.append({
            "user_id": f"user_{i:04d}",
            "preferences": {
                "city": str(rng.choice(UK_CITIES)),
                "property_type": str(rng.choice(PROPERTY_TYPES)),
                "price_min": price_min,
                "price_max": price_min + int(rng.integers(5, 16)) * 100,
                "min_bedrooms": int(rng.integers(1, 4)),
            },
        })
    return users


def generate_synthetic_interactions(
    properties: pd.DataFrame,
    users: List[Dict[str, Any]],
    per_user: int = 15,
    seed: Optional[int] = 42,
    start: Optional[datetime] = None,
) -> pd.DataFrame:
    """Interaction logs for synthetic users.

    About 70% of each user's interactions hit listings in their preferred
    city; interaction types are drawn with weights favouring views.
    """
    columns = ["user_id", "property_id", "interaction_type", "timestamp"]
    if properties.empty or not users:
        return pd.DataFrame(columns=columns)

    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 1, 1)
    all_ids = properties["property_id"].astype(str).to_numpy()
    cities = properties["city"].astype(str).str.lower().to_numpy()

    rows = []
    for user in users:
        preferred_city = str(user.get("preferences", {}).get("city", "")).lower()
        matching = all_ids[cities == preferred_city] if preferred_city else all_ids[:0]
        for _ in range(per_user):
            pool = matching if len(matching) and rng.random() < PREFERENCE_MATCH_SHARE else all_ids
            rows.append({
                "user_id": user["user_id"],
                "property_id": str(rng.choice(pool)),
                "interaction_type": str(rng.choice(INTERACTION_TYPES, p=INTERACTION_WEIGHTS)),
                "timestamp": (start + timedelta(minutes=int(rng.integers(0, 60 * 24 * 180)))).isoformat(),
            })

    logger.info("Generated %d synthetic interactions for %d users", len(rows), len(users))
    return pd.DataFrame(rows, columns=columns)


def augment_dataset(processor: DataProcessor, min_samples: int) -> pd.DataFrame:
    """Re-process the raw data topped up with synthetic listings.

    Preprocessing state is refit over the combined rows.
    """
    current = 0 if processor.processed_data is None else len(processor.processed_data)
    synthetic = SyntheticSource(n_samples=min_samples, seed=processor.config.dataset.random_seed).load()
    synthetic["property_id"] = "syn_" + synthetic["property_id"].astype(str)

    raw = synthetic if processor.data is None else pd.concat([processor.data, synthetic], ignore_index=True)
    logger.warning(
        "Augmenting %d processed listings with %d synthetic listings", current, len(synthetic)
    )
    processor.reset_state()
    return processor.process_full_dataset(raw)
