"""Vector similarity used for ranking segments."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """Cosine similarity of two vectors, always within [-1, 1].

    Vectors of different lengths are compared over their common prefix for the
    dot product while the norms use the full vectors. Empty, zero-magnitude or
    non-finite inputs score 0.0.
    """
    if a is None or b is None:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.size == 0 or vb.size == 0:
        return 0.0

    n = min(va.size, vb.size)
    dot = float(np.dot(va[:n], vb[:n]))
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    denominator = norm_a * norm_b
    if denominator == 0.0:
        return 0.0

    score = dot / denominator
    if not math.isfinite(score):
        return 0.0
    return max(-1.0, min(1.0, score))
