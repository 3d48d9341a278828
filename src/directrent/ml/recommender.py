"""
Hybrid Property Recommender

Two models blended into one ranking:

- ContentModel: cosine similarity between a user's preference vector and each
  listing's feature vector (bedrooms, bathrooms, price, encoded type/city,
  latitude/longitude). Features are standardized with the training-time
  mean and max(std, 1) before comparison.
- CollaborativeModel: matrix factorization of the user x listing implicit
  rating matrix (view=1, save=3, inquiry=4, contact=5), trained by
  stochastic gradient descent over the observed entries. A prediction is the
  dot product of the user and listing factor rows.

RecommenderEngine combines them: score = content x 0.6 + collaborative x 0.4
over the union of both candidate sets, with the missing side counting as 0.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics.pairwise import cosine_similarity

from directrent.config import Config, get_config
from directrent.core.constants import (
    COLLABORATIVE_REASON,
    CONTENT_FEATURE_COLUMNS,
    CONTENT_REASON,
    DEFAULT_INTERACTION_RATING,
    DEFAULT_PREFERRED_BATHROOMS,
    DEFAULT_PREFERRED_BEDROOMS,
    DEFAULT_PRICE_BAND,
    INTERACTION_RATINGS,
)
from directrent.core.models import InteractionRecord, ModelMetadata, Recommendation
from directrent.core.persistence import build_metadata, load_artifact, save_artifact
from directrent.data.encoders import FeatureScaler, UnknownAwareEncoder
from directrent.data.processor import is_missing, to_float
from directrent.exceptions import ModelNotFoundError, TrainingError
from directrent.logging_config import get_logger
from directrent.utils.property_types import normalize_property_type

logger = get_logger(__name__)

InteractionInput = Union[pd.DataFrame, Iterable[Union[InteractionRecord, Dict[str, Any]]]]

# Preference key -> encoded feature it controls
ENCODED_PREFERENCES = {
    "property_type_encoded": "property_type",
    "city_encoded": "city",
}


def interactions_frame(interactions: InteractionInput) -> pd.DataFrame:
    """Normalize interaction logs into a frame with a ``rating`` column."""
    if isinstance(interactions, pd.DataFrame):
        df = interactions.copy()
    else:
        rows = [
            item.to_dict() if isinstance(item, InteractionRecord) else dict(item)
            for item in interactions
        ]
        df = pd.DataFrame(rows)

    if df.empty:
        return pd.DataFrame(columns=["user_id", "property_id", "interaction_type", "rating"])

    df = df.dropna(subset=["user_id", "property_id"])
    df["user_id"] = df["user_id"].astype(str)
    df["property_id"] = df["property_id"].astype(str)
    if "interaction_type" not in df.columns:
        df["interaction_type"] = "view"
    df["rating"] = df["interaction_type"].map(
        lambda t: INTERACTION_RATINGS.get(str(t).lower(), DEFAULT_INTERACTION_RATING)
    )
    return df


class ContentModel:
    """Listing feature matrix plus everything needed to build preference vectors."""

    def __init__(self):
        self.feature_names: List[str] = []
        self.property_ids: List[str] = []
        self.feature_matrix: np.ndarray = np.zeros((0, 0))
        self.scaler = FeatureScaler()
        self.encoders: Dict[str, UnknownAwareEncoder] = {}
        self.metadata: Optional[ModelMetadata] = None

    def fit(
        self,
        properties: pd.DataFrame,
        encoders: Optional[Dict[str, UnknownAwareEncoder]] = None,
    ) -> "ContentModel":
        self.feature_names = [c for c in CONTENT_FEATURE_COLUMNS if c in properties.columns]
        if not self.feature_names:
            raise TrainingError("No content features available in the listings data")

        self.property_ids = properties["property_id"].astype(str).tolist()
        self.feature_matrix = self.features_for(properties)
        self.scaler = FeatureScaler().fit(properties, self.feature_names)
        self.encoders = {
            column: encoder
            for column, encoder in (encoders or {}).items()
            if f"{column}_encoded" in self.feature_names
        }
        logger.info(
            "Content model trained with %d properties and %d features",
            len(self.property_ids), len(self.feature_names),
        )
        return self

    def features_for(self, properties: pd.DataFrame) -> np.ndarray:
        """Raw feature matrix in feature_names order; absent values are 0."""
        columns = {}
        for name in self.feature_names:
            if name in properties.columns:
                columns[name] = pd.to_numeric(properties[name], errors="coerce").fillna(0)
            else:
                columns[name] = pd.Series(0.0, index=properties.index)
        return pd.DataFrame(columns, index=properties.index).to_numpy(dtype=float)

    def _standardize(self, matrix: np.ndarray) -> np.ndarray:
        means = np.array([self.scaler.params[name]["mean"] for name in self.feature_names])
        divisors = np.array([self.scaler.divisor(name) for name in self.feature_names])
        return (matrix - means) / divisors

    def preference_vector(self, preferences: Optional[Dict[str, Any]]) -> np.ndarray:
        """Raw preference vector in feature_names order.

        Bedrooms default to 2, bathrooms to 1 and price to the midpoint of
        price_min/price_max (500/3000 when absent). Other features come from
        the preferences when given, otherwise the training mean, so they do
        not pull the similarity either way.
        """
        preferences = preferences or {}
        vector = []
        for name in self.feature_names:
            mean = self.scaler.params[name]["mean"]
            if name == "bedrooms":
                value = to_float(preferences.get("bedrooms"))
                if value is None:
                    value = to_float(preferences.get("min_bedrooms"), DEFAULT_PREFERRED_BEDROOMS)
            elif name == "bathrooms":
                value = to_float(preferences.get("bathrooms"), DEFAULT_PREFERRED_BATHROOMS)
            elif name == "price_per_month":
                low = to_float(preferences.get("price_min"), DEFAULT_PRICE_BAND[0])
                high = to_float(preferences.get("price_max"), DEFAULT_PRICE_BAND[1])
                value = (low + high) / 2
            elif name in ENCODED_PREFERENCES:
                column = ENCODED_PREFERENCES[name]
                raw = preferences.get(column)
                encoder = self.encoders.get(column)
                if is_missing(raw) or encoder is None:
                    value = mean
                else:
                    if column == "property_type":
                        raw = normalize_property_type(raw)
                    value = float(encoder.encode(str(raw).strip()))
            else:
                value = to_float(preferences.get(name), mean)
            vector.append(value)
        return np.array(vector, dtype=float)

    def similarities(self, preferences: Optional[Dict[str, Any]], matrix: np.ndarray) -> np.ndarray:
        """Cosine similarity between the preference vector and each row."""
        if matrix.shape[0] == 0:
            return np.zeros(0)
        pref = self._standardize(self.preference_vector(preferences)).reshape(1, -1)
        return cosine_similarity(pref, self._standardize(matrix))[0]

    def recommend(
        self,
        preferences: Optional[Dict[str, Any]],
        properties: Optional[pd.DataFrame] = None,
        limit: int = 10,
    ) -> List[Tuple[str, float]]:
        """Top listings by similarity, as (property_id, score) pairs.

        Scores the given candidate listings, or every training listing when
        no candidates are passed.
        """
        if properties is None:
            ids, matrix = self.property_ids, self.feature_matrix
        else:
            ids = properties["property_id"].astype(str).tolist()
            matrix = self.features_for(properties)

        scores = self.similarities(preferences, matrix)
        order = np.argsort(-scores, kind="stable")[:limit]
        return [(ids[i], float(scores[i])) for i in order]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "feature_names": list(self.feature_names),
            "property_ids": list(self.property_ids),
            "feature_matrix": self.feature_matrix,
            "scaler": self.scaler.to_dict(),
            "encoders": {column: encoder.to_dict() for column, encoder in self.encoders.items()},
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ContentModel":
        model = cls()
        model.feature_names = list(payload["feature_names"])
        model.property_ids = list(payload["property_ids"])
        model.feature_matrix = np.asarray(payload["feature_matrix"], dtype=float)
        model.scaler = FeatureScaler.from_dict(payload["scaler"])
        model.encoders = {
            column: UnknownAwareEncoder.from_dict(data)
            for column, data in payload.get("encoders", {}).items()
        }
        model.metadata = payload.get("metadata")
        return model


class CollaborativeModel:
    """Matrix factorization of implicit ratings trained by SGD.

    Args:
        factors: Latent dimension.
        iterations: Passes over the observed ratings.
        learning_rate: SGD step size.
        regularization: L2 penalty on the factor rows.
        seed: Seed for factor initialization.
    """

    def __init__(
        self,
        factors: int = 10,
        iterations: int = 50,
        learning_rate: float = 0.01,
        regularization: float = 0.1,
        seed: Optional[int] = 42,
    ):
        self.factors = factors
        self.iterations = iterations
        self.learning_rate = learning_rate
        self.regularization = regularization
        self.seed = seed

        self.user_index: Dict[str, int] = {}
        self.item_index: Dict[str, int] = {}
        self.user_factors: np.ndarray = np.zeros((0, factors))
        self.item_factors: np.ndarray = np.zeros((0, factors))
        self.training_rmse: Optional[float] = None
        self.metadata: Optional[ModelMetadata] = None

    @property
    def item_ids(self) -> List[str]:
        return sorted(self.item_index, key=self.item_index.get)

    def build_rating_matrix(self, interactions: InteractionInput) -> np.ndarray:
        """Dense user x item matrix; repeated pairs keep the strongest rating."""
        df = interactions_frame(interactions)
        self.user_index = {}
        self.item_index = {}
        for user_id in df["user_id"]:
            self.user_index.setdefault(user_id, len(self.user_index))
        for property_id in df["property_id"]:
            self.item_index.setdefault(property_id, len(self.item_index))

        ratings = np.zeros((len(self.user_index), len(self.item_index)))
        for user_id, property_id, rating in zip(df["user_id"], df["property_id"], df["rating"]):
            u, i = self.user_index[user_id], self.item_index[property_id]
            ratings[u, i] = max(ratings[u, i], rating)
        return ratings

    def fit(self, interactions: InteractionInput) -> "CollaborativeModel":
        ratings = self.build_rating_matrix(interactions)
        if ratings.size == 0:
            raise TrainingError("No interactions available for collaborative filtering")

        logger.info(
            "Training collaborative model: %d users x %d properties, %d ratings",
            ratings.shape[0], ratings.shape[1], int(np.count_nonzero(ratings)),
        )
        rng = np.random.default_rng(self.seed)
        P = rng.random((ratings.shape[0], self.factors))
        Q = rng.random((ratings.shape[1], self.factors))
        users, items = np.nonzero(ratings)
        lr, reg = self.learning_rate, self.regularization

        for iteration in range(self.iterations):
            for u, i in zip(users, items):
                error = ratings[u, i] - P[u] @ Q[i]
                p_u = P[u].copy()
                P[u] += lr * (2 * error * Q[i] - reg * P[u])
                Q[i] += lr * (2 * error * p_u - reg * Q[i])
            if (iteration + 1) % 10 == 0:
                logger.debug("MF iteration %d/%d", iteration + 1, self.iterations)

        self.user_factors = P
        self.item_factors = Q
        self.training_rmse = self.rmse(ratings)
        logger.info("Collaborative model trained. RMSE on observed ratings: %.4f", self.training_rmse)
        return self

    def rmse(self, ratings: np.ndarray) -> float:
        users, items = np.nonzero(ratings)
        if len(users) == 0:
            return 0.0
        predicted = np.einsum("ij,ij->i", self.user_factors[users], self.item_factors[items])
        return float(np.sqrt(np.mean((ratings[users, items] - predicted) ** 2)))

    def knows_user(self, user_id: Optional[str]) -> bool:
        return user_id is not None and str(user_id) in self.user_index

    def predict(self, user_id: str, property_id: str) -> Optional[float]:
        """Predicted rating, or None if the user or listing is unknown."""
        u = self.user_index.get(str(user_id))
        i = self.item_index.get(str(property_id))
        if u is None or i is None:
            return None
        return float(self.user_factors[u] @ self.item_factors[i])

    def recommend(
        self,
        user_id: str,
        property_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
    ) -> List[Tuple[str, float]]:
        """Top candidate listings by predicted rating for a known user."""
        if not self.knows_user(user_id):
            return []
        candidates = self.item_ids if property_ids is None else [str(pid) for pid in property_ids]
        scored = [
            (pid, score)
            for pid, score in ((pid, self.predict(user_id, pid)) for pid in candidates)
            if score is not None
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:limit]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "user_index": dict(self.user_index),
            "item_index": dict(self.item_index),
            "user_factors": self.user_factors,
            "item_factors": self.item_factors,
            "hyperparameters": {
                "factors": self.factors,
                "iterations": self.iterations,
                "learning_rate": self.learning_rate,
                "regularization": self.regularization,
                "seed": self.seed,
            },
            "training_rmse": self.training_rmse,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CollaborativeModel":
        model = cls(**payload.get("hyperparameters", {}))
        model.user_index = dict(payload["user_index"])
        model.item_index = dict(payload["item_index"])
        model.user_factors = np.asarray(payload["user_factors"], dtype=float)
        model.item_factors = np.asarray(payload["item_factors"], dtype=float)
        model.training_rmse = payload.get("training_rmse")
        model.metadata = payload.get("metadata")
        return model


class RecommenderEngine:
    """Owns the content and collaborative models and blends their output.

    Models are loaded lazily from the model directory on first use. Either
    model may be missing: without the collaborative model (or for a user it
    has never seen) recommendations are content-only, and vice versa.
    """

    def __init__(self, config: Optional[Config] = None, model_dir: Optional[Path] = None):
        self.config = config or get_config()
        model_dir = Path(model_dir) if model_dir else self.config.ml.recommendation_dir
        self.content_model_path = model_dir / "content_model.joblib"
        self.collaborative_model_path = model_dir / "collaborative_model.joblib"

        self.content_model: Optional[ContentModel] = None
        self.collaborative_model: Optional[CollaborativeModel] = None
        self._load_attempted = False

    # ------------------------------------------------------------------
    # Training and persistence
    # ------------------------------------------------------------------

    def train_content_model(
        self,
        properties: pd.DataFrame,
        encoders: Optional[Dict[str, UnknownAwareEncoder]] = None,
    ) -> ContentModel:
        self.content_model = ContentModel().fit(properties, encoders)
        return self.content_model

    def train_collaborative_model(self, interactions: InteractionInput) -> CollaborativeModel:
        settings = self.config.recommender
        self.collaborative_model = CollaborativeModel(
            factors=settings.factors,
            iterations=settings.iterations,
            learning_rate=settings.learning_rate,
            regularization=settings.regularization,
            seed=self.config.dataset.random_seed,
        ).fit(interactions)
        return self.collaborative_model

    def train(
        self,
        properties: pd.DataFrame,
        interactions: InteractionInput,
        encoders: Optional[Dict[str, UnknownAwareEncoder]] = None,
    ) -> Dict[str, Any]:
        """Train both models and return summary metrics."""
        content = self.train_content_model(properties, encoders)
        collaborative = self.train_collaborative_model(interactions)
        self._load_attempted = True
        return {
            "content_properties": len(content.property_ids),
            "content_features": list(content.feature_names),
            "users": len(collaborative.user_index),
            "properties_with_interactions": len(collaborative.item_index),
            "training_rmse": collaborative.training_rmse,
        }

    def save(self) -> None:
        if self.content_model is None and self.collaborative_model is None:
            raise ModelNotFoundError("No recommendation models to save. Train the models first.")

        if self.content_model is not None:
            self.content_model.metadata = build_metadata(
                "content_model",
                self.content_model.feature_names,
                n_properties=len(self.content_model.property_ids),
            )
            save_artifact(self.content_model_path, self.content_model.to_payload(), self.content_model.metadata)

        if self.collaborative_model is not None:
            self.collaborative_model.metadata = build_metadata(
                "collaborative_model",
                n_users=len(self.collaborative_model.user_index),
                n_properties=len(self.collaborative_model.item_index),
            )
            save_artifact(
                self.collaborative_model_path,
                self.collaborative_model.to_payload(),
                self.collaborative_model.metadata,
            )

    def load_models(self) -> bool:
        """Load whichever models are on disk. True if at least one loaded."""
        self._load_attempted = True
        try:
            self.content_model = ContentModel.from_payload(load_artifact(self.content_model_path))
            logger.info("Content model loaded from %s", self.content_model_path)
        except ModelNotFoundError as e:
            logger.warning("%s. Content-based recommendations unavailable.", e.message)

        try:
            self.collaborative_model = CollaborativeModel.from_payload(
                load_artifact(self.collaborative_model_path)
            )
            logger.info("Collaborative model loaded from %s", self.collaborative_model_path)
        except ModelNotFoundError as e:
            logger.warning("%s. Recommendations will be content-only.", e.message)

        return self.content_model is not None or self.collaborative_model is not None

    def _ensure_loaded(self) -> None:
        if not self._load_attempted and self.content_model is None and self.collaborative_model is None:
            self.load_models()

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    @staticmethod
    def _rows_by_id(properties: Optional[pd.DataFrame]) -> Dict[str, Dict[str, Any]]:
        if properties is None or properties.empty:
            return {}
        return {str(row["property_id"]): row for row in properties.to_dict("records")}

    def get_content_based_recommendations(
        self,
        preferences: Optional[Dict[str, Any]],
        properties: Optional[pd.DataFrame] = None,
        limit: int = 10,
    ) -> List[Recommendation]:
        self._ensure_loaded()
        if self.content_model is None:
            return []
        if properties is not None and properties.empty:
            return []
        rows = self._rows_by_id(properties)
        return [
            Recommendation(
                property_id=pid,
                score=score,
                reason=CONTENT_REASON,
                content_score=score,
                property=rows.get(pid),
            )
            for pid, score in self.content_model.recommend(preferences, properties, limit)
        ]

    def get_collaborative_recommendations(
        self,
        user_id: Optional[str],
        properties: Optional[pd.DataFrame] = None,
        limit: int = 10,
    ) -> List[Recommendation]:
        self._ensure_loaded()
        if self.collaborative_model is None or not self.collaborative_model.knows_user(user_id):
            return []
        rows = self._rows_by_id(properties)
        candidates = None if properties is None else list(rows)
        return [
            Recommendation(
                property_id=pid,
                score=score,
                reason=COLLABORATIVE_REASON,
                collaborative_score=score,
                property=rows.get(pid),
            )
            for pid, score in self.collaborative_model.recommend(user_id, candidates, limit)
        ]

    def get_hybrid_recommendations(
        self,
        user_id: Optional[str],
        preferences: Optional[Dict[str, Any]],
        properties: Optional[pd.DataFrame] = None,
        limit: int = 10,
    ) -> List[Recommendation]:
        """Blend content and collaborative candidates into one ranking.

        Each model contributes its top 2 x limit candidates; a listing found
        by only one model scores 0 on the other side.
        """
        content_weight = self.config.recommender.content_weight
        collaborative_weight = self.config.recommender.collaborative_weight

        content = {
            rec.property_id: rec
            for rec in self.get_content_based_recommendations(preferences, properties, limit * 2)
        }
        collaborative = {
            rec.property_id: rec
            for rec in self.get_collaborative_recommendations(user_id, properties, limit * 2)
        }

        blended = []
        for pid in list(content) + [pid for pid in collaborative if pid not in content]:
            content_rec = content.get(pid)
            collaborative_rec = collaborative.get(pid)
            content_score = content_rec.score if content_rec else 0.0
            collaborative_score = collaborative_rec.score if collaborative_rec else 0.0
            reasons = [rec.reason for rec in (content_rec, collaborative_rec) if rec is not None]
            blended.append(Recommendation(
                property_id=pid,
                score=content_score * content_weight + collaborative_score * collaborative_weight,
                reason="; ".join(reasons),
                content_score=content_score,
                collaborative_score=collaborative_score,
                property=(content_rec or collaborative_rec).property,
            ))

        blended.sort(key=lambda rec: rec.score, reverse=True)
        return blended[:limit]
