"""
CUDA-устройство на CuPy.

Ядра компилируются через cp.RawKernel один раз на (программа, точка входа)
и берутся из кэша контекста. Все операции идут в собственный
non-blocking stream и синхронизируются сразу после постановки в очередь.
"""

from __future__ import annotations

from typing import Any, Optional

try:  # CuPy опционален: можем работать без GPU
    import cupy as cp

    _GPU_OK = True
except Exception:  # noqa: BLE001
    cp = None  # type: ignore
    _GPU_OK = False

import numpy as np

from streamkmeans.errors import AllocationFailureError, DeviceComputeError, DeviceError
from streamkmeans.device.base import DeviceContext, check_launch, floor_power_of_two
from streamkmeans.device.kernels import CUDA_PROGRAMS


def gpu_available() -> bool:
    """Проверка доступности CuPy/CUDA."""
    if not _GPU_OK:
        return False
    try:
        return cp.cuda.runtime.getDeviceCount() > 0
    except Exception:  # noqa: BLE001
        return False


def _cuda_errors() -> tuple[type[BaseException], ...]:
    return (
        cp.cuda.driver.CUDADriverError,
        cp.cuda.runtime.CUDARuntimeError,
        cp.cuda.compiler.CompileException,
        cp.cuda.memory.OutOfMemoryError,
    )


class CuPyDeviceContext(DeviceContext):
    """
    Контекст CUDA-устройства.

    Args:
        device_id: Номер CUDA-устройства
        memory_limit_bytes: Верхняя граница памяти, сообщаемой сумматорам.
            Без неё используется свободная память устройства на момент запроса.
    """

    def __init__(self, device_id: int = 0, memory_limit_bytes: Optional[int] = None) -> None:
        if not _GPU_OK:
            raise RuntimeError("CuPy/CUDA недоступен, GPU KMeans выключен")
        super().__init__()
        self._device = cp.cuda.Device(device_id)
        self.memory_limit_bytes = memory_limit_bytes
        with self._device:
            self._stream: "cp.cuda.Stream" = cp.cuda.Stream(non_blocking=True)
            attrs = self._device.attributes
        self._wave_size = int(attrs["WarpSize"])
        # Размер группы должен быть степенью двойки для древовидной редукции
        self._max_group = floor_power_of_two(int(attrs["MaxThreadsPerBlock"]))

    def max_memory_bytes(self) -> int:
        with self._device:
            free, _total = cp.cuda.runtime.memGetInfo()
        if self.memory_limit_bytes is not None:
            return min(int(free), int(self.memory_limit_bytes))
        return int(free)

    def wave_size(self) -> int:
        return self._wave_size

    def max_work_group_size(self) -> int:
        return self._max_group

    def _load_kernel(self, program_id: str, entry_point: str) -> "cp.RawKernel":
        source = CUDA_PROGRAMS.get(program_id)
        if source is None:
            raise DeviceError(f"Unknown kernel program {program_id}")
        with self._device:
            kernel = cp.RawKernel(source, entry_point)
            try:
                kernel.compile()
            except _cuda_errors() as e:
                raise DeviceError(f"Cannot compile {program_id}/{entry_point}: {e}") from e
        return kernel

    def allocate(self, count: int, dtype: Any) -> "cp.ndarray":
        try:
            with self._device, self._stream:
                buffer = cp.zeros(int(count), dtype=dtype)
            self._stream.synchronize()
        except cp.cuda.memory.OutOfMemoryError as e:
            raise AllocationFailureError(str(e), requested_items=count) from e
        return buffer

    def write(self, buffer: "cp.ndarray", host: np.ndarray, offset: int = 0) -> None:
        try:
            with self._device:
                buffer[offset:offset + host.shape[0]].set(
                    np.ascontiguousarray(host), stream=self._stream
                )
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceComputeError(f"Buffer write failed: {e}") from e

    def read(self, buffer: "cp.ndarray", offset: int, count: int) -> np.ndarray:
        try:
            with self._device:
                out = buffer[offset:offset + count].get(stream=self._stream)
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceComputeError(f"Buffer read failed: {e}") from e
        return out

    def dispatch(
        self,
        kernel: "cp.RawKernel",
        buffer: "cp.ndarray",
        global_size: int,
        local_size: int,
        local_mem_bytes: int,
    ) -> None:
        check_launch(buffer.shape[0], global_size, local_size, self._max_group)
        blocks = global_size // local_size
        try:
            with self._device, self._stream:
                kernel((blocks,), (local_size,), (buffer,), shared_mem=local_mem_bytes)
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceComputeError(f"Kernel launch failed: {e}") from e

    def gather(self, buffer: "cp.ndarray", count: int, stride: int) -> None:
        try:
            with self._device, self._stream:
                # copy(): источник и приёмник перекрываются
                buffer[:count] = buffer[0:count * stride:stride].copy()
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceComputeError(f"Gather failed: {e}") from e

    def finish(self) -> None:
        try:
            self._stream.synchronize()
        except _cuda_errors() as e:
            raise DeviceComputeError(f"Queue finish failed: {e}") from e
