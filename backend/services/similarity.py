"""Vector similarity helpers for full-scan retrieval."""
import json
import logging
from typing import Any, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

Vector = Union[Sequence[float], np.ndarray]


def cosine_similarity(vec_a: Optional[Vector], vec_b: Optional[Vector]) -> float:
    """
    Cosine similarity of two vectors.

    Missing vectors, mismatched dimensions, zero magnitudes and non-finite
    results all score 0.0 so they sink to the bottom of any ranking.
    """
    if vec_a is None or vec_b is None:
        return 0.0

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    if a.ndim != 1 or a.shape != b.shape or a.size == 0:
        return 0.0

    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0

    similarity = float(np.dot(a, b) / magnitude)
    if not np.isfinite(similarity):
        return 0.0
    return similarity


def parse_embedding(raw: Any) -> Optional[np.ndarray]:
    """
    Parse a stored embedding into a float vector.

    Accepts a list of numbers or its JSON text form (which is how pgvector
    columns come back over PostgREST). Returns None for anything unparsable.
    """
    try:
        values = json.loads(raw) if isinstance(raw, str) else raw
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed stored embedding: {str(e)}")
        return None

    if vector.ndim != 1 or vector.size == 0:
        logger.warning(f"Skipping stored embedding with shape {vector.shape}")
        return None
    return vector
