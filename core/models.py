"""
Shared data models: per-frame tensor, inference output and ranking entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

# Output name -> flat probability buffer
InferenceResult = dict[str, np.ndarray]

# Class index -> label; immutable once loaded
LabelTable = tuple[str, ...]


@dataclass(frozen=True)
class FrameTensor:
    """Flat numeric buffer plus the layout and shape it was packed with."""

    data: np.ndarray
    layout: str
    shape: tuple[int, ...]

    def as_array(self) -> np.ndarray:
        """Buffer reshaped to the declared shape (no copy)."""
        return self.data.reshape(self.shape)

    def __len__(self) -> int:
        return int(self.data.size)


class RankedEntry(NamedTuple):
    probability: float
    class_index: int
    label: str


Ranking = list[RankedEntry]
