from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from streamkmeans.data.validation import validate_inputs
from streamkmeans.errors import DimensionMismatchError, EngineStateError
from streamkmeans.metrics.timers import Timer


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ITERATING = "iterating"
    DONE = "done"


@dataclass
class KMeansResult:
    """Итог запуска: центроиды (K, D), метки точек (N,) и число итераций."""

    centroids: np.ndarray
    labels: np.ndarray
    n_iters: int


class KMeansBase(ABC):
    """
    Базовый класс стратегий KMeans.

    Отвечает за жизненный цикл (Uninitialized -> Initialized -> Iterating -> Done),
    цикл итераций и сбор таймингов:
    - T_назначения: время шага assign_clusters;
    - T_обновления: накопление сумм по кластерам и пересчёт центроидов;
    - T_итерации: сумма двух предыдущих.

    Стратегии отличаются только аккумуляторами сумм координат: подкласс
    реализует _allocate_accumulators / _accumulate / _cluster_sums /
    _reset_accumulators.
    """

    def __init__(
        self,
        n_clusters: int | None = None,
        n_iters: int = 1,
        logger: Any | None = None,
    ):
        self.K = n_clusters
        self.n_iters = n_iters
        self.logger = logger

        self.D: int | None = None
        self.state = EngineState.UNINITIALIZED

        self.centroids: np.ndarray | None = None
        self.labels: np.ndarray | None = None

        # агрегированные тайминги за один вызов run(...)
        self.t_assign_total: float = 0.0
        self.t_update_total: float = 0.0
        self.t_iter_total: float = 0.0
        self.n_iters_actual: int = 0

    def initialize(self, dimension: int, k: int) -> None:
        """Фиксирует D и K и выделяет K×D аккумуляторов."""
        if dimension < 1 or k < 1:
            raise ValueError(f"dimension and k must be positive, got D={dimension}, K={k}")
        self.D = int(dimension)
        self.K = int(k)
        self._allocate_accumulators(self.D, self.K)
        self.state = EngineState.INITIALIZED

    def run(
        self, X: np.ndarray, initial_centroids: np.ndarray, max_iterations: int
    ) -> KMeansResult:
        """
        Выполняет ровно max_iterations итераций KMeans.

        Ранней остановки по сходимости нет: число итераций - единственный
        критерий останова. Пустой кластер сохраняет прежний центроид.

        Raises:
            EngineStateError: Движок не инициализирован
            EmptyInputError: Нет точек или центроидов
            DimensionMismatchError: Размерности или число центроидов не совпадают
        """
        if self.state == EngineState.UNINITIALIZED:
            raise EngineStateError("initialize() must be called before run()")
        validate_inputs(X, initial_centroids)
        if X.shape[1] != self.D or initial_centroids.shape != (self.K, self.D):
            raise DimensionMismatchError(
                f"Engine initialized for K={self.K}, D={self.D}, got points D={X.shape[1]} "
                f"and centroids {initial_centroids.shape}"
            )

        self.state = EngineState.ITERATING
        self.centroids = np.array(initial_centroids, dtype=np.float64, copy=True)
        self.labels = np.full(X.shape[0], -1, dtype=np.int32)

        # сбрасываем накопленные тайминги для нового запуска
        self.t_assign_total = 0.0
        self.t_update_total = 0.0
        self.t_iter_total = 0.0
        self.n_iters_actual = 0
        self._reset_accumulators()

        for i in range(max_iterations):
            with Timer() as t_assign:
                self.labels[:] = self.assign_clusters(X, self.centroids)
            with Timer() as t_update:
                self.update_centroids(X, self.labels)

            t_assign_elapsed = t_assign.elapsed
            t_update_elapsed = t_update.elapsed

            self.t_assign_total += t_assign_elapsed
            self.t_update_total += t_update_elapsed
            self.t_iter_total += t_assign_elapsed + t_update_elapsed
            self.n_iters_actual = i + 1

            if self.logger and (i == 0 or (i + 1) % 10 == 0 or i + 1 == max_iterations):
                self.logger.info(
                    f"  Iteration {i + 1}/{max_iterations} "
                    f"(T_assign={t_assign_elapsed:.6f}s, "
                    f"T_update={t_update_elapsed:.6f}s)"
                )

        self.state = EngineState.DONE
        return KMeansResult(
            centroids=self.centroids, labels=self.labels, n_iters=self.n_iters_actual
        )

    def fit(self, X: np.ndarray, initial_centroids: np.ndarray) -> KMeansResult:
        """initialize() по форме входа (если нужно) и run() на n_iters итераций."""
        validate_inputs(X, initial_centroids)
        if self.state == EngineState.UNINITIALIZED:
            self.initialize(X.shape[1], initial_centroids.shape[0])
        return self.run(X, initial_centroids, self.n_iters)

    def assign_clusters(self, X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Шаг назначения: индекс ближайшего центроида (при равенстве - меньший)."""
        # (N, K, D) → (N, K)
        diff = X[:, None, :] - centroids[None, :, :]
        distances = np.sum(diff * diff, axis=2)
        return np.argmin(distances, axis=1).astype(np.int32, copy=False)

    def update_centroids(self, X: np.ndarray, labels: np.ndarray) -> np.ndarray:
        """
        Шаг обновления: накапливает суммы координат по кластерам и делит
        на число членов. Центроиды пустых кластеров не меняются.
        """
        counts = np.bincount(labels, minlength=self.K)
        self._accumulate(X, labels)
        sums = self._cluster_sums()

        non_empty = counts > 0
        self.centroids[non_empty] = sums[non_empty] / counts[non_empty, None]

        self._reset_accumulators()
        return self.centroids

    @abstractmethod
    def _allocate_accumulators(self, dimension: int, k: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def _accumulate(self, X: np.ndarray, labels: np.ndarray) -> None:
        """Добавляет координаты каждой точки в аккумуляторы её кластера."""
        raise NotImplementedError

    @abstractmethod
    def _cluster_sums(self) -> np.ndarray:
        """Суммы координат по кластерам, форма (K, D)."""
        raise NotImplementedError

    @abstractmethod
    def _reset_accumulators(self) -> None:
        raise NotImplementedError
