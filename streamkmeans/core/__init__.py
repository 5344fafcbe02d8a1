from __future__ import annotations

from typing import Any

from streamkmeans.config import DeviceConfig, ReductionConfig, Strategy
from streamkmeans.errors import UnknownStrategyError

from .base import EngineState, KMeansBase, KMeansResult
from .cpu_sequential import KMeansSequential
from .accelerated import KMeansAccelerated
from .reduction import StreamingReducer


def parse_strategy(name: str | Strategy) -> Strategy:
    """Строка из командной строки → Strategy; иначе UnknownStrategyError."""
    try:
        return Strategy(name)
    except ValueError:
        choices = ", ".join(s.value for s in Strategy)
        raise UnknownStrategyError(f"Unknown strategy '{name}' (expected one of: {choices})") from None


def create_kmeans(
    strategy: str | Strategy,
    n_iters: int = 1,
    device_config: DeviceConfig = DeviceConfig(),
    reduction: ReductionConfig = ReductionConfig(),
    logger: Any | None = None,
) -> KMeansBase:
    """Создаёт движок KMeans выбранной стратегии."""
    strategy = parse_strategy(strategy)

    if strategy is Strategy.SEQUENTIAL:
        return KMeansSequential(n_iters=n_iters, logger=logger)

    if strategy is Strategy.ACCELERATED:
        from streamkmeans.device.gpu_cupy import CuPyDeviceContext

        device = CuPyDeviceContext(
            device_id=device_config.device_id,
            memory_limit_bytes=device_config.memory_limit_bytes,
        )
    else:
        from streamkmeans.device.host import HostDeviceContext

        memory_bytes = device_config.memory_limit_bytes
        if memory_bytes is None:
            memory_bytes = device_config.host_memory_bytes
        device = HostDeviceContext(
            memory_bytes=memory_bytes,
            wave_size=device_config.host_wave_size,
            max_work_group_size=device_config.host_max_work_group_size,
        )
    return KMeansAccelerated(device, n_iters=n_iters, reduction=reduction, logger=logger)


__all__ = [
    "EngineState",
    "KMeansBase",
    "KMeansResult",
    "KMeansSequential",
    "KMeansAccelerated",
    "StreamingReducer",
    "create_kmeans",
    "parse_strategy",
]
