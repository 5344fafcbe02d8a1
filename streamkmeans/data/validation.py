"""
Проверка входных данных перед запуском KMeans.

Ошибки здесь фатальны: они поднимаются до первой итерации, и никакой
частичный результат не записывается.
"""

from __future__ import annotations

import numpy as np

from streamkmeans.errors import DimensionMismatchError, EmptyInputError


def validate_inputs(X: np.ndarray, centroids: np.ndarray) -> None:
    """
    Проверяет, что точки и центроиды непусты и имеют одну размерность.

    Args:
        X: Точки, форма (N, D)
        centroids: Начальные центроиды, форма (K, D)

    Raises:
        EmptyInputError: Если N == 0 или K == 0
        DimensionMismatchError: Если массивы не двумерные или D различаются
    """
    if X is None or centroids is None or X.size == 0 or centroids.size == 0:
        raise EmptyInputError("Empty points or centroids!")

    if X.ndim != 2 or centroids.ndim != 2:
        raise DimensionMismatchError(
            f"Expected 2-D arrays, got points.ndim={X.ndim}, centroids.ndim={centroids.ndim}"
        )

    if X.shape[1] != centroids.shape[1]:
        raise DimensionMismatchError(
            f"Different dimensions! points D={X.shape[1]}, centroids D={centroids.shape[1]}"
        )
