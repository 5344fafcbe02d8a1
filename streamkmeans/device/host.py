"""
Эмулируемое устройство на NumPy.

Воспроизводит семантику рабочих групп CUDA-ядра на хосте: те же размеры
волны и группы, та же древовидная редукция, те же ошибки выделения памяти.
Используется стратегией "emulated" и в тестах, где CUDA недоступна.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

from streamkmeans.errors import AllocationFailureError, DeviceComputeError, DeviceError
from streamkmeans.device.base import DeviceContext, check_launch, is_power_of_two
from streamkmeans.device.kernels import HOST_PROGRAMS


class HostDeviceContext(DeviceContext):
    """
    Контекст устройства, исполняющий ядра на NumPy.

    Args:
        memory_bytes: Объём «памяти устройства», сообщаемый сумматорам
        wave_size: Размер волны (степень двойки)
        max_work_group_size: Максимальный размер рабочей группы (степень двойки)
        allocation_limit_bytes: Предел для одного буфера; запросы больше
            него завершаются AllocationFailureError (устройство сообщает
            больше памяти, чем реально можно выделить одним куском)
    """

    def __init__(
        self,
        memory_bytes: int = 1024 * 1024,
        wave_size: int = 32,
        max_work_group_size: int = 256,
        allocation_limit_bytes: Optional[int] = None,
    ) -> None:
        super().__init__()
        if not is_power_of_two(wave_size):
            raise ValueError(f"wave_size must be a power of two, got {wave_size}")
        if not is_power_of_two(max_work_group_size):
            raise ValueError(
                f"max_work_group_size must be a power of two, got {max_work_group_size}"
            )
        if wave_size > max_work_group_size:
            raise ValueError(
                f"wave_size {wave_size} exceeds max_work_group_size {max_work_group_size}"
            )
        self._memory_bytes = int(memory_bytes)
        self._wave_size = int(wave_size)
        self._max_group = int(max_work_group_size)
        self.allocation_limit_bytes = allocation_limit_bytes

        # Счётчики для диагностики и тестов
        self.allocations: int = 0
        self.dispatches: int = 0

    def max_memory_bytes(self) -> int:
        return self._memory_bytes

    def wave_size(self) -> int:
        return self._wave_size

    def max_work_group_size(self) -> int:
        return self._max_group

    def _load_kernel(self, program_id: str, entry_point: str) -> Callable[..., None]:
        try:
            return HOST_PROGRAMS[program_id][entry_point]
        except KeyError:
            raise DeviceError(f"Unknown kernel {program_id}/{entry_point}") from None

    def allocate(self, count: int, dtype: Any) -> np.ndarray:
        nbytes = int(count) * np.dtype(dtype).itemsize
        limit = self.allocation_limit_bytes
        if nbytes > self._memory_bytes or (limit is not None and nbytes > limit):
            raise AllocationFailureError(
                f"Cannot allocate {nbytes} bytes on host device", requested_items=count
            )
        try:
            buffer = np.zeros(int(count), dtype=dtype)
        except MemoryError as e:
            raise AllocationFailureError(str(e), requested_items=count) from e
        self.allocations += 1
        return buffer

    def write(self, buffer: np.ndarray, host: np.ndarray, offset: int = 0) -> None:
        end = offset + host.shape[0]
        if end > buffer.shape[0]:
            raise DeviceComputeError(
                f"Write of {host.shape[0]} items at {offset} overflows buffer of {buffer.shape[0]}"
            )
        buffer[offset:end] = host

    def read(self, buffer: np.ndarray, offset: int, count: int) -> np.ndarray:
        return buffer[offset:offset + count].copy()

    def dispatch(
        self,
        kernel: Callable[..., None],
        buffer: np.ndarray,
        global_size: int,
        local_size: int,
        local_mem_bytes: int,
    ) -> None:
        check_launch(buffer.shape[0], global_size, local_size, self._max_group)
        if local_mem_bytes < local_size * buffer.itemsize:
            raise DeviceComputeError(
                f"Local memory of {local_mem_bytes} bytes is too small for {local_size} items"
            )
        kernel(buffer, global_size, local_size)
        self.dispatches += 1

    def gather(self, buffer: np.ndarray, count: int, stride: int) -> None:
        buffer[:count] = buffer[0:count * stride:stride].copy()

    def finish(self) -> None:
        # Все операции уже выполнены синхронно
        return None
