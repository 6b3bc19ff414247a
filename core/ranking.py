"""
Top-K ranking of a flat probability vector against a label table.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.models import RankedEntry, Ranking

UNKNOWN_LABEL = "unknown"


def label_for(labels: Sequence[str], class_index: int) -> str:
    if 0 <= class_index < len(labels):
        return labels[class_index]
    return UNKNOWN_LABEL


def top_k(
    probabilities: Sequence[float] | np.ndarray,
    labels: Sequence[str],
    k: int = 3,
) -> Ranking:
    """
    Return the k highest (probability, class_index) pairs, highest first.

    Equal probabilities keep their input order (lower index first). If k exceeds
    the number of probabilities all of them are returned. Values are not
    renormalised.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    probs = np.asarray(probabilities, dtype=np.float64).ravel()
    # Stable sort on the negated values keeps equal scores in index order
    order = np.argsort(-probs, kind="stable")[:k]
    return [
        RankedEntry(float(probs[i]), int(i), label_for(labels, int(i)))
        for i in order
    ]


def format_probability(probability: float) -> str:
    return f"{probability * 100:.2f}%"
