"""
Model artifact persistence.

Every artifact is a dict payload saved with joblib and carrying a
``metadata`` manifest (model type, version, creation time, feature names).
Writes go to a temporary file in the target directory and are moved into
place with os.replace, so readers never observe a half-written artifact.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib

from directrent.config import get_config
from directrent.core.models import ModelMetadata
from directrent.exceptions import ModelNotFoundError
from directrent.logging_config import get_logger

logger = get_logger(__name__)


def build_metadata(
    model_type: str,
    feature_names: Optional[List[str]] = None,
    version: Optional[str] = None,
    **extra: Any,
) -> ModelMetadata:
    """Create the manifest for a freshly trained artifact."""
    return ModelMetadata(
        model_type=model_type,
        version=version or get_config().ml.model_version,
        created_at=datetime.now().isoformat(),
        feature_names=list(feature_names or []),
        extra=extra,
    )


def save_artifact(path: Path, payload: Dict[str, Any], metadata: ModelMetadata) -> Path:
    """Atomically write an artifact payload with its manifest.

    Args:
        path: Destination file.
        payload: Model parameters (must not contain a "metadata" key).
        metadata: Manifest to store alongside the payload.

    Returns:
        The destination path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    document = dict(payload)
    document["metadata"] = metadata.to_dict()

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    os.close(fd)
    try:
        joblib.dump(document, tmp_name)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info("Saved %s artifact to %s", metadata.model_type, path)
    return path


def load_artifact(path: Path) -> Dict[str, Any]:
    """Load an artifact payload.

    Raises:
        ModelNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise ModelNotFoundError(str(path))

    document = joblib.load(path)
    document["metadata"] = ModelMetadata.from_dict(document.get("metadata", {}))
    return document


def save_evaluation(path: Path, metrics: Dict[str, Any]) -> Path:
    """Write evaluation metrics as JSON with a timestamp."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    document = dict(metrics)
    document["timestamp"] = datetime.now().isoformat()
    with open(path, "w") as f:
        json.dump(document, f, indent=2, default=str)
    logger.info("Evaluation saved to: %s", path)
    return path


def load_evaluation(path: Path) -> Optional[Dict[str, Any]]:
    """Read evaluation metrics, or None if missing or unreadable."""
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not parse evaluation data at %s: %s", path, e)
        return None
