from __future__ import annotations

import numpy as np

from .base import KMeansBase


class KMeansSequential(KMeansBase):
    """Однопоточная реализация KMeans на NumPy: суммы копятся прямо на хосте."""

    def _allocate_accumulators(self, dimension: int, k: int) -> None:
        self._sums = np.zeros((k, dimension), dtype=np.float64)

    def _accumulate(self, X: np.ndarray, labels: np.ndarray) -> None:
        # scatter-add: строка labels[i] получает X[i]
        np.add.at(self._sums, labels, X)

    def _cluster_sums(self) -> np.ndarray:
        return self._sums

    def _reset_accumulators(self) -> None:
        self._sums.fill(0.0)
