"""
KMeans с суммированием координат на вычислительном устройстве.

На каждую пару (кластер, измерение) создаётся свой StreamingReducer.
Координаты точек кластера потоком уходят в сумматоры, после чего каждый
сумматор сворачивается, и центроид считается как сумма / число членов.
Сумматоры создаются один раз в initialize() и между итерациями только
сбрасываются.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from streamkmeans.config import ReductionConfig
from streamkmeans.core.base import KMeansBase
from streamkmeans.core.reduction import StreamingReducer
from streamkmeans.device.base import DeviceContext


class KMeansAccelerated(KMeansBase):
    """
    Ускоренная стратегия KMeans.

    Движок владеет одним контекстом устройства и передаёт ссылку на него
    каждому сумматору.
    """

    def __init__(
        self,
        device: DeviceContext,
        n_clusters: int | None = None,
        n_iters: int = 1,
        reduction: ReductionConfig = ReductionConfig(),
        logger: Any | None = None,
    ) -> None:
        super().__init__(n_clusters=n_clusters, n_iters=n_iters, logger=logger)
        self.device = device
        self.reduction = reduction
        self.reducers: list[list[StreamingReducer]] = []

    def _allocate_accumulators(self, dimension: int, k: int) -> None:
        self.reducers = [
            [StreamingReducer(self.device, self.reduction) for _ in range(dimension)]
            for _ in range(k)
        ]
        if self.logger:
            capacities = [r.capacity for row in self.reducers for r in row]
            self.logger.info(
                f"Allocated {k}x{dimension} reducers "
                f"(capacity min={min(capacities)}, max={max(capacities)})"
            )

    def _accumulate(self, X: np.ndarray, labels: np.ndarray) -> None:
        for k, row in enumerate(self.reducers):
            members = X[labels == k]
            if members.shape[0] == 0:
                continue
            for d, reducer in enumerate(row):
                reducer.put_many(members[:, d])

    def _cluster_sums(self) -> np.ndarray:
        sums = np.zeros((self.K, self.D), dtype=np.float64)
        for k, row in enumerate(self.reducers):
            for d, reducer in enumerate(row):
                sums[k, d] = reducer.get_sum()
        return sums

    def _reset_accumulators(self) -> None:
        for row in self.reducers:
            for reducer in row:
                reducer.reset_result()

    @property
    def failed_flushes(self) -> int:
        """Сколько пакетов потеряно из-за ошибок устройства за всё время."""
        return sum(r.failed_flushes for row in self.reducers for r in row)
